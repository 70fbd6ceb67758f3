import dataclasses
import functools
import time
from typing import Any, Callable, Optional, Union

import numpy as np
import PIL.Image

from .. import config
from ..constants import TileState
from . import buffers
from .tile import Tile, clearRenderCache
from .utilities import bufferSize, imageToSurface, newSurface


@dataclasses.dataclass
class RenderOptions:
    """
    Caller owned rendering configuration.  Only ``useRawBuffer``,
    ``processBuffer``, and ``renderBuffer`` are used by the tile source; the
    other values are passed through to the hooks.

    :param useRawBuffer: if True, tiles are fetched as raw binary buffers
        rather than encoded images.
    :param processBuffer: a function (rawBytes, size) -> decoded buffer.  The
        decoded buffer must report its width and height.  Return None if the
        data cannot be decoded yet.
    :param renderBuffer: a function (surface, decodedBuffer, size) that fills
        the surface in place.
    :param bitDepth: bits per sample of the raw data.
    :param channels: number of channels in the raw data.
    :param fusion: channel fusion colors and method.
    :param brightnessContrast: a (brightness, contrast) tuple.
    :param extra: any other values the hooks need.
    """

    useRawBuffer: bool = False
    processBuffer: Optional[Callable[..., Any]] = None
    renderBuffer: Optional[Callable[..., None]] = None
    bitDepth: Optional[int] = None
    channels: Optional[int] = None
    fusion: Optional[Union[str, list]] = None
    brightnessContrast: Optional[tuple[float, float]] = None
    extra: dict[str, Any] = dataclasses.field(default_factory=dict)

    @classmethod
    def fromStyle(cls, useRawBuffer: bool = True, bitDepth: int = 8,
                  channels: int = 1, fusion: Optional[Union[str, list]] = None,
                  brightnessContrast: Optional[tuple[float, float]] = None,
                  **kwargs) -> 'RenderOptions':
        """
        Create render options that use the stock hooks from the buffers
        module.  The hooks read the options each time they are called, so
        changing, for instance, ``brightnessContrast`` and then clearing the
        render cache re-renders tiles with the new values.
        """
        options = cls(
            useRawBuffer=useRawBuffer, bitDepth=bitDepth, channels=channels,
            fusion=fusion, brightnessContrast=brightnessContrast, extra=kwargs)
        options.processBuffer = functools.partial(buffers.processBuffer, options=options)
        options.renderBuffer = functools.partial(buffers.renderBuffer, options=options)
        return options

    @property
    def hasHooks(self) -> bool:
        return self.processBuffer is not None and self.renderBuffer is not None


class TileRenderPipeline:
    """
    Turn loaded tiles into drawable surfaces.  Results are memoized on each
    tile's render cache.  A failed decode or render is not cached, so the next
    request for the tile tries again.
    """

    def __init__(self, options: Optional[RenderOptions] = None,
                 tileSize: Optional[int] = None) -> None:
        self.logger = config.getLogger()
        self.options = options
        self.tileSize = tileSize
        self.lastError: dict[tuple[Any, Callable], dict[str, Any]] = {}
        self.throttleErrors = config.getConfig('render_error_throttle')

    def logError(self, err: Any, func: Callable, msg: str) -> None:
        """
        Log errors, but throttle them so as not to spam the logs.

        :param err: error to log.
        :param func: function to use for logging.  This is something like
            logger.exception or logger.error.
        :param msg: the message to log.
        """
        curtime = time.time()
        key = (err, func)
        if curtime - self.lastError.get(key, {}).get('time', 0) > self.throttleErrors:
            skipped = self.lastError.get(key, {}).get('skipped', 0)
            if skipped:
                msg += '  (%d similar messages)' % skipped
            self.lastError[key] = {'time': curtime, 'skipped': 0}
            func(msg)
        else:
            self.lastError[key]['skipped'] += 1

    def getDrawableSurface(
            self, tile: Tile, size: Optional[tuple[int, int]] = None,
    ) -> Optional[Union[np.ndarray, PIL.Image.Image]]:
        """
        Get the drawable surface of a tile.

        If the tile has a memoized surface, it is returned.  If the tile is not
        loaded, its placeholder image is returned unchanged.  Otherwise, the
        raw data is decoded with the processBuffer hook (once) and rendered
        with the renderBuffer hook, and the result is memoized.

        :param tile: the tile.
        :param size: the (width, height) of the tile in pixels, passed to the
            processBuffer hook.
        :returns: a surface, or the tile's image if no surface could be made.
        """
        cache = tile.renderCache
        if cache.drawableSurface is not None:
            return cache.drawableSurface
        if tile.state != TileState.LOADED:
            return tile.image
        if self.options is None or not self.options.hasHooks:
            return self._imageSurface(tile)
        canvas = None
        try:
            if cache.decodedBuffer is None:
                if cache.rawBytes is None:
                    if tile.image is None:
                        return tile.image
                    canvas = imageToSurface(tile.image)
                    rawBytes = canvas
                    if size is None:
                        size = (canvas.shape[1], canvas.shape[0])
                else:
                    rawBytes = cache.rawBytes
                decoded = self.options.processBuffer(rawBytes, size)
                if decoded is None:
                    return tile.image
                cache.decodedBuffer = decoded
                cache.rawBytes = None
            width, height = bufferSize(cache.decodedBuffer)
            canvas = cache.canvas
            if canvas is None or canvas.shape[:2] != (height, width):
                canvas = newSurface(width, height)
                cache.canvas = canvas
            else:
                canvas.fill(0)
            self.options.renderBuffer(canvas, cache.decodedBuffer, (width, height))
            cache.drawableSurface = canvas
            return canvas
        except Exception as exc:
            self.logError(
                type(exc), self.logger.warning,
                'Failed to render tile %r: %r' % (tuple(tile.tileCoord), exc))
            return canvas if canvas is not None else tile.image

    def _imageSurface(self, tile: Tile) -> Optional[Union[np.ndarray, PIL.Image.Image]]:
        """
        Without render hooks, copy the loaded image into a surface the size of
        a full tile.  Edge tiles are padded with transparent pixels.
        """
        if tile.image is None:
            return tile.image
        width = height = self.tileSize
        surface = imageToSurface(tile.image, width, height)
        tile.renderCache.drawableSurface = surface
        return surface

    def clearRenderCache(self, tile: Tile) -> None:
        clearRenderCache(tile)
