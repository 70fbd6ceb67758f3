import numpy as np
import PIL.Image
import pytest

from viqi_tiles.constants import TileState
from viqi_tiles.tilesource import (DecodedBuffer, RenderOptions,
                                   TileRenderPipeline, clearRenderCache)
from viqi_tiles.tilesource import buffers
from viqi_tiles.tilesource.utilities import bufferSize, imageToSurface

from .utilities import RecordingHooks, loadedTile


def testRenderIsMemoized():
    hooks = RecordingHooks()
    pipeline = TileRenderPipeline(hooks.options(), 256)
    tile = loadedTile(rawBytes=b'\x00' * 8)
    surface = pipeline.getDrawableSurface(tile, (4, 2))
    assert surface.shape == (2, 4, 4)
    assert surface[0, 0, 0] == 1
    assert pipeline.getDrawableSurface(tile, (4, 2)) is surface
    assert len(hooks.processCalls) == 1
    assert hooks.processCalls[0] == (b'\x00' * 8, (4, 2))
    assert hooks.renderCalls == 1
    assert tile.renderCache.drawableSurface is surface
    assert tile.renderCache.rawBytes is None
    assert isinstance(tile.renderCache.decodedBuffer, DecodedBuffer)


def testClearRenderCacheRerenders():
    hooks = RecordingHooks()
    pipeline = TileRenderPipeline(hooks.options(), 256)
    tile = loadedTile(rawBytes=b'\x00' * 8)
    pipeline.getDrawableSurface(tile, (4, 2))
    clearRenderCache(tile)
    assert tile.renderCache.drawableSurface is None
    assert tile.renderCache.decodedBuffer is not None
    surface = pipeline.getDrawableSurface(tile, (4, 2))
    assert surface[0, 0, 0] == 2
    assert len(hooks.processCalls) == 1
    assert hooks.renderCalls == 2
    pipeline.clearRenderCache(tile)
    pipeline.getDrawableSurface(tile, (4, 2))
    assert hooks.renderCalls == 3


@pytest.mark.parametrize('state', [
    TileState.IDLE, TileState.LOADING, TileState.ERROR, TileState.EMPTY])
def testNotLoadedReturnsImage(state):
    hooks = RecordingHooks()
    pipeline = TileRenderPipeline(hooks.options(), 256)
    placeholder = PIL.Image.new('RGB', (4, 2))
    tile = loadedTile(rawBytes=b'\x00' * 8, image=placeholder)
    tile.state = state
    assert pipeline.getDrawableSurface(tile, (4, 2)) is placeholder
    assert hooks.processCalls == []
    assert hooks.renderCalls == 0


def testProcessBufferNotReady():
    hooks = RecordingHooks(decodeResult=False)
    pipeline = TileRenderPipeline(hooks.options(), 256)
    tile = loadedTile(rawBytes=b'\x00' * 8)
    assert pipeline.getDrawableSurface(tile, (4, 2)) is None
    assert tile.renderCache.decodedBuffer is None
    assert tile.renderCache.drawableSurface is None
    assert tile.renderCache.rawBytes == b'\x00' * 8
    assert hooks.renderCalls == 0
    pipeline.getDrawableSurface(tile, (4, 2))
    assert len(hooks.processCalls) == 2


def testRenderFailureIsNotCached(caplog):
    hooks = RecordingHooks(failRender=True)
    pipeline = TileRenderPipeline(hooks.options(), 256)
    tile = loadedTile(rawBytes=b'\x00' * 8)
    surface = pipeline.getDrawableSurface(tile, (4, 2))
    # the partially drawn canvas is shown but not memoized
    assert surface is not None
    assert surface[0, 0, 1] == 128
    assert tile.renderCache.drawableSurface is None
    assert 'Failed to render tile' in caplog.text
    hooks.failRender = False
    surface = pipeline.getDrawableSurface(tile, (4, 2))
    assert tile.renderCache.drawableSurface is surface
    assert surface[0, 0, 3] == 255
    assert len(hooks.processCalls) == 1
    assert hooks.renderCalls == 2


def testRenderFailureLogIsThrottled(caplog):
    hooks = RecordingHooks(failRender=True)
    pipeline = TileRenderPipeline(hooks.options(), 256)
    tile = loadedTile(rawBytes=b'\x00' * 8)
    for _ in range(5):
        pipeline.getDrawableSurface(tile, (4, 2))
    assert hooks.renderCalls == 5
    assert caplog.text.count('Failed to render tile') == 1
    assert pipeline.lastError[(ValueError, pipeline.logger.warning)]['skipped'] == 4


def testProcessBufferFailure():
    def processBuffer(rawBytes, size):
        raise ValueError('cannot decode')

    options = RenderOptions(
        useRawBuffer=True, processBuffer=processBuffer,
        renderBuffer=RecordingHooks().renderBuffer)
    pipeline = TileRenderPipeline(options, 256)
    placeholder = PIL.Image.new('RGB', (4, 2))
    tile = loadedTile(rawBytes=b'\x00' * 8, image=placeholder)
    assert pipeline.getDrawableSurface(tile, (4, 2)) is placeholder
    assert tile.renderCache.rawBytes == b'\x00' * 8


def testEncodedImageWithoutHooks():
    pipeline = TileRenderPipeline(None, 256)
    tile = loadedTile(image=PIL.Image.new('RGB', (100, 50), (255, 0, 0)))
    surface = pipeline.getDrawableSurface(tile)
    assert surface.shape == (256, 256, 4)
    assert list(surface[0, 0]) == [255, 0, 0, 255]
    assert list(surface[49, 99]) == [255, 0, 0, 255]
    # padding is transparent
    assert list(surface[60, 10]) == [0, 0, 0, 0]
    assert list(surface[10, 110]) == [0, 0, 0, 0]
    assert pipeline.getDrawableSurface(tile) is surface


def testEncodedImageWithHooks():
    hooks = RecordingHooks()
    pipeline = TileRenderPipeline(hooks.options(useRawBuffer=False), 256)
    tile = loadedTile(image=PIL.Image.new('L', (4, 2), 7))
    surface = pipeline.getDrawableSurface(tile)
    assert surface.shape == (2, 4, 4)
    pixels, size = hooks.processCalls[0]
    assert size == (4, 2)
    assert isinstance(pixels, np.ndarray)
    assert pixels.shape == (2, 4, 4)
    assert pixels[0, 0, 0] == 7


def testNoImageNoRawBytes():
    hooks = RecordingHooks()
    pipeline = TileRenderPipeline(hooks.options(), 256)
    tile = loadedTile()
    assert pipeline.getDrawableSurface(tile, (4, 2)) is None
    assert hooks.processCalls == []


def testStockHooksGray():
    options = RenderOptions.fromStyle(bitDepth=8, channels=1)
    pipeline = TileRenderPipeline(options, 256)
    tile = loadedTile(rawBytes=bytes([0, 255, 128, 64, 0, 0]))
    surface = pipeline.getDrawableSurface(tile, (3, 2))
    assert surface.shape == (2, 3, 4)
    assert list(surface[0, 0]) == [0, 0, 0, 255]
    assert list(surface[0, 1]) == [255, 255, 255, 255]
    assert list(surface[0, 2]) == [128, 128, 128, 255]
    assert list(surface[1, 0]) == [64, 64, 64, 255]


def testStockHooksSixteenBit():
    options = RenderOptions.fromStyle(bitDepth=16, channels=1)
    pipeline = TileRenderPipeline(options, 256)
    tile = loadedTile(rawBytes=np.array([0, 65535], dtype='<u2').tobytes())
    surface = pipeline.getDrawableSurface(tile, (2, 1))
    assert list(surface[0, 0]) == [0, 0, 0, 255]
    assert list(surface[0, 1]) == [255, 255, 255, 255]


def testStockHooksWrongSize():
    options = RenderOptions.fromStyle(bitDepth=8, channels=1)
    pipeline = TileRenderPipeline(options, 256)
    tile = loadedTile(rawBytes=b'\x00' * 5)
    assert pipeline.getDrawableSurface(tile, (3, 2)) is None
    assert tile.renderCache.rawBytes == b'\x00' * 5


def testStockHooksFusion():
    raw = bytes([255, 128, 100, 200])
    options = RenderOptions.fromStyle(channels=2, fusion='255,0,0;0,255,0')
    surface = TileRenderPipeline(options).getDrawableSurface(loadedTile(raw), (2, 1))
    assert list(surface[0, 0]) == [255, 128, 0, 255]
    assert list(surface[0, 1]) == [100, 200, 0, 255]

    options = RenderOptions.fromStyle(channels=2, fusion='255,0,0;255,0,0;:a')
    surface = TileRenderPipeline(options).getDrawableSurface(loadedTile(raw), (2, 1))
    assert list(surface[0, 1]) == [255, 0, 0, 255]

    options = RenderOptions.fromStyle(channels=2, fusion='255,0,0;255,0,0;:m')
    surface = TileRenderPipeline(options).getDrawableSurface(loadedTile(raw), (2, 1))
    assert list(surface[0, 1]) == [200, 0, 0, 255]

    options = RenderOptions.fromStyle(channels=2, fusion=[(0, 0, 255), (0, 255, 0)])
    surface = TileRenderPipeline(options).getDrawableSurface(loadedTile(raw), (2, 1))
    assert list(surface[0, 0]) == [0, 128, 255, 255]


def testStockHooksBrightnessContrast():
    options = RenderOptions.fromStyle(channels=1)
    pipeline = TileRenderPipeline(options)
    tile = loadedTile(rawBytes=bytes([0, 255]))
    surface = pipeline.getDrawableSurface(tile, (2, 1))
    assert list(surface[0, 0]) == [0, 0, 0, 255]
    # changed options are used once the render cache is cleared
    options.brightnessContrast = (100, 0)
    assert pipeline.getDrawableSurface(tile, (2, 1))[0, 0, 0] == 0
    clearRenderCache(tile)
    surface = pipeline.getDrawableSurface(tile, (2, 1))
    assert list(surface[0, 0]) == [255, 255, 255, 255]
    options.brightnessContrast = (0, -100)
    clearRenderCache(tile)
    surface = pipeline.getDrawableSurface(tile, (2, 1))
    assert surface[0, 0, 0] == surface[0, 1, 0] == 128


@pytest.mark.parametrize(('fusion', 'colors', 'method'), [
    (None, None, 'a'),
    ('255,0,0', [(255, 0, 0)], 'a'),
    ('255,0,0;0,255,0;:m', [(255, 0, 0), (0, 255, 0)], 'm'),
    ('0,0,255;:A', [(0, 0, 255)], 'a'),
    (':m', None, 'm'),
    ([[1, 2, 3, 4]], [(1, 2, 3)], 'a'),
])
def testParseFusion(fusion, colors, method):
    assert buffers.parseFusion(fusion) == (colors, method)


@pytest.mark.parametrize('fusion', ['255,0;', '255,0,0;:x', 'red'])
def testParseFusionErrors(fusion):
    with pytest.raises(ValueError):
        buffers.parseFusion(fusion)


def testApplyBrightnessContrast():
    image = np.array([0.0, 0.25, 0.5, 1.0])
    assert buffers.applyBrightnessContrast(image, None) is image
    assert list(buffers.applyBrightnessContrast(image, (0, 0))) == [0.0, 0.25, 0.5, 1.0]
    assert list(buffers.applyBrightnessContrast(image, (0, 100))) == [0.0, 0.0, 0.5, 1.0]
    assert list(buffers.applyBrightnessContrast(image, (-50, 0))) == [0.0, 0.0, 0.0, 0.5]


def testProcessBufferArray():
    pixels = np.zeros((2, 3, 4), dtype=np.uint8)
    decoded = buffers.processBuffer(pixels, None)
    assert (decoded.width, decoded.height) == (3, 2)
    assert decoded.data.shape == (2, 3, 3)
    decoded = buffers.processBuffer(pixels, None, options=RenderOptions(channels=1))
    assert decoded.data.shape == (2, 3, 1)


def testProcessBufferBadBitDepth():
    with pytest.raises(ValueError):
        buffers.processBuffer(b'\x00' * 4, (2, 2), options=RenderOptions(bitDepth=12))


def testImageToSurface():
    surface = imageToSurface(PIL.Image.new('LA', (3, 2), (9, 20)), 4, 4)
    assert surface.shape == (4, 4, 4)
    assert list(surface[1, 2]) == [9, 9, 9, 20]
    assert list(surface[3, 3]) == [0, 0, 0, 0]
    surface = imageToSurface(np.full((5, 5, 3), 7, dtype=np.uint8), 2, 2)
    assert surface.shape == (2, 2, 4)
    assert list(surface[1, 1]) == [7, 7, 7, 255]


def testBufferSize():
    assert bufferSize({'width': 3, 'height': 2}) == (3, 2)
    assert bufferSize(DecodedBuffer(5, 4, np.zeros((4, 5, 1)))) == (5, 4)
