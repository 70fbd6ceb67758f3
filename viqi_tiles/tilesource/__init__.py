from .. import config
from ..constants import DEFAULT_TILE_SIZE, TierSizeCalculation, TileState
from ..exceptions import (TileFetchError, TileGeneralError,
                          TileSourceConfigurationError, TileSourceError,
                          TileSourceXYZRangeError)
from .base import ViQiTileSource
from .buffers import DecodedBuffer
from .fetch import TileFetcher
from .geometry import ImageDescriptor, PyramidGeometry, PyramidLevel, buildPyramid
from .render import RenderOptions, TileRenderPipeline
from .scale import getScale, getScaleReal
from .tile import RenderCache, Tile, addTileListener, clearRenderCache
from .tilecoord import (HostTileAddress, ServiceTileAddress, getTileClipSize,
                        toHostAddress, toServiceAddress)
from .tilegrid import TileGrid
from .urls import TileUrlResolver, expandTemplate, expandUrl, pickMirror


def open(*args, **kwargs) -> ViQiTileSource:
    """
    Create a ViQi tile source.  See ``ViQiTileSource`` for the parameters.
    """
    source = ViQiTileSource(*args, **kwargs)
    config.getLogger('logprint').debug('Opened tile source %r', source)
    return source


__all__ = [
    'DEFAULT_TILE_SIZE',
    'DecodedBuffer',
    'HostTileAddress',
    'ImageDescriptor',
    'PyramidGeometry',
    'PyramidLevel',
    'RenderCache',
    'RenderOptions',
    'ServiceTileAddress',
    'TierSizeCalculation',
    'Tile',
    'TileFetchError',
    'TileFetcher',
    'TileGeneralError',
    'TileGrid',
    'TileRenderPipeline',
    'TileSourceConfigurationError',
    'TileSourceError',
    'TileSourceXYZRangeError',
    'TileState',
    'TileUrlResolver',
    'ViQiTileSource',
    'addTileListener',
    'buildPyramid',
    'clearRenderCache',
    'expandTemplate',
    'expandUrl',
    'getScale',
    'getScaleReal',
    'getTileClipSize',
    'open',
    'pickMirror',
    'toHostAddress',
    'toServiceAddress',
]
