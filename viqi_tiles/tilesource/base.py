import asyncio
from typing import Any, Optional, Union

import numpy as np
import PIL.Image

from .. import config
from ..cache_util import TileCache
from ..constants import DEFAULT_TILE_SIZE, TierSizeCalculation, TileState
from . import scale as scaleResolver
from .fetch import TileFetcher
from .geometry import ImageDescriptor, PyramidGeometry, buildPyramid
from .render import RenderOptions, TileRenderPipeline
from .tile import Tile, clearRenderCache, releaseTile
from .tilecoord import (HostTileAddress, ServiceTileAddress, getTileClipSize,
                        isInRange, toServiceAddress)
from .tilegrid import TileGrid
from .urls import TileUrlResolver, expandUrl


class ViQiTileSource:
    """
    A tile source for images served by a ViQi image service.

    The source builds the resolution pyramid from the image size, resolves
    tile requests to service urls, fetches tiles asynchronously, and turns
    them into drawable surfaces.  Tiles are either standard encoded images or,
    if ``renderOptions.useRawBuffer`` is set, raw pixel buffers that are
    decoded and rendered by the hooks in the render options.
    """

    name = 'viqi'

    def __init__(
            self, url: Optional[Union[str, list[str]]] = None,
            size: Optional[tuple[int, int]] = None,
            tileSize: Optional[int] = None,
            tierSizeCalculation: Union[TierSizeCalculation, str] = TierSizeCalculation.DEFAULT,
            extent: Optional[tuple[float, float, float, float]] = None,
            renderOptions: Optional[RenderOptions] = None,
            cacheSize: Optional[int] = None,
            crossOrigin: Optional[str] = None,
            projection: Optional[Any] = None,
            reprojectionErrorThreshold: Optional[float] = None,
            transition: Optional[float] = None,
            key: Optional[str] = None,
            session: Optional[Any] = None) -> None:
        """
        Initialize the tile source.

        :param url: a url template or list of templates with ``{z}``, ``{x}``,
            ``{y}``, and ``{s}`` placeholders.  A ``{a-c}`` or ``{1-4}`` range
            expands to multiple mirror urls.  For example,
            ``http://localhost:8080/image_service/UUID?slice=,,14,1&tile={z},{x},{y},{s}&format=jpeg``.
        :param size: the (width, height) of the full resolution image.
        :param tileSize: the tile edge length.  Defaults to the
            ``default_tile_size`` config value.
        :param tierSizeCalculation: 'default' or 'truncated'.
        :param extent: the extent of the tile grid.  The default places the
            grid in the fourth quadrant: (0, -height, width, 0).
        :param renderOptions: a RenderOptions object.  If None, tiles are
            fetched as encoded images and are not post-processed.
        :param cacheSize: the maximum number of tiles to keep.
        :param crossOrigin: the cross origin policy passed to the viewer.
        :param projection: the projection passed to the viewer.
        :param reprojectionErrorThreshold: the maximum reprojection error in
            pixels passed to the viewer.
        :param transition: the opacity transition duration in milliseconds.
        :param key: a cache-partition key.
        :param session: an optional aiohttp client session used for fetches.
        """
        if size is None or len(size) != 2:
            msg = 'A (width, height) size is required.'
            raise ValueError(msg)
        self.logger = config.getLogger()
        tileSize = int(tileSize or config.getConfig('default_tile_size') or DEFAULT_TILE_SIZE)
        self.descriptor = ImageDescriptor(
            int(size[0]), int(size[1]), tileSize, tierSizeCalculation)
        self.geometry: PyramidGeometry = buildPyramid(self.descriptor)

        self.sizeX = self.descriptor.sizeX
        self.sizeY = self.descriptor.sizeY
        self.tileWidth = self.tileHeight = tileSize
        self.levels = self.geometry.numLevels
        self.resolutions = list(self.geometry.resolutions)
        self.scales = list(self.geometry.scales)

        self.tileGrid = TileGrid.fromGeometry(self.geometry, extent)
        self.renderOptions = renderOptions
        self.urlResolver = TileUrlResolver.fromUrl(url, self.levels, tileSize)
        self.fetcher = TileFetcher(
            useRawBuffer=bool(renderOptions is not None and renderOptions.useRawBuffer),
            session=session)
        self.renderPipeline = TileRenderPipeline(renderOptions, tileSize)
        self.cache = TileCache(cacheSize, onEvict=self._tileEvicted)

        self.crossOrigin = crossOrigin
        self.projection = projection
        self.reprojectionErrorThreshold = (
            reprojectionErrorThreshold if reprojectionErrorThreshold is not None else
            config.getConfig('reprojection_error_threshold'))
        self.transition = (
            transition if transition is not None else config.getConfig('transition'))
        self.key = key
        self.logger.debug(
            'Created %s source of %d x %d with %d levels', self.name,
            self.sizeX, self.sizeY, self.levels)

    def __repr__(self) -> str:
        return '%s(%r, size=(%d, %d), tileSize=%d)' % (
            self.__class__.__name__, self.urls, self.sizeX, self.sizeY, self.tileWidth)

    @property
    def urls(self) -> list[str]:
        return list(self.urlResolver.templates)

    @property
    def cacheSize(self) -> int:
        return int(self.cache.maxsize)

    @property
    def useRawBuffer(self) -> bool:
        return self.fetcher.useRawBuffer

    def getMetadata(self) -> dict[str, Any]:
        """
        Return a dictionary of metadata about the image.

        :returns: a dictionary with sizeX, sizeY, tileWidth, tileHeight,
            levels, resolutions, and scales.
        """
        return {
            'sizeX': self.sizeX,
            'sizeY': self.sizeY,
            'tileWidth': self.tileWidth,
            'tileHeight': self.tileHeight,
            'levels': self.levels,
            'resolutions': list(self.resolutions),
            'scales': list(self.scales),
            'tierSizeInTiles': [list(tier) for tier in self.geometry.tierSizeInTiles],
        }

    @property
    def metadata(self) -> dict[str, Any]:
        return self.getMetadata()

    def getTileUrl(
            self, tileCoord: Optional[HostTileAddress], pixelRatio: float = 1,
            projection: Any = None) -> Optional[str]:
        """
        Resolve a host tile address to a url.

        :param tileCoord: a (level, column, row) host address or None.
        :param pixelRatio: the device pixel ratio.
        :param projection: the view projection.
        :returns: the url or None if the tile should not be fetched.  Addresses
            outside the pyramid have no url.
        """
        if not isInRange(tileCoord, self.geometry):
            return None
        return self.urlResolver.getTileUrl(tileCoord, pixelRatio, projection)

    def getServiceCoordinate(self, tileCoord: HostTileAddress) -> ServiceTileAddress:
        """
        Convert a host tile address to the image service's (z, x, y, edge)
        convention.
        """
        return toServiceAddress(HostTileAddress(*tileCoord), self.levels, self.tileWidth)

    def getTileSize(self, tileCoord: HostTileAddress) -> tuple[int, int]:
        """
        Get the pixel size of a specific tile, accounting for partial tiles on
        the right and bottom edges.
        """
        return getTileClipSize(HostTileAddress(*tileCoord), self.geometry)

    def createTile(
            self, level: int, column: int, row: int,
            pixelRatio: float = 1, projection: Any = None) -> Tile:
        """
        Create a new tile.  The tile is IDLE if it has a url and EMPTY
        otherwise.
        """
        tileCoord = HostTileAddress(level, column, row)
        src = self.getTileUrl(tileCoord, pixelRatio, projection or self.projection)
        tile = Tile(tileCoord, src=src, key=self.key)
        if src is None:
            tile.state = TileState.EMPTY
        return tile

    def getTile(
            self, level: int, column: int, row: int, pixelRatio: float = 1,
            projection: Any = None, load: Optional[bool] = None) -> Tile:
        """
        Get a tile from the tile cache, creating it if needed.

        :param level: host level.
        :param column: host column.
        :param row: host row.
        :param pixelRatio: the device pixel ratio.
        :param projection: the view projection.
        :param load: if True, start fetching the tile if it is idle.  This
            requires a running asyncio loop.  If None, the tile is fetched if
            an asyncio loop is running.
        :returns: the tile.
        """
        cacheKey = TileCache.tileKey(self.key, level, column, row)
        tile = self.cache.get(cacheKey)
        if tile is None:
            tile = self.createTile(level, column, row, pixelRatio, projection)
            self.cache[cacheKey] = tile
        if load is None:
            try:
                asyncio.get_running_loop()
                load = True
            except RuntimeError:
                load = False
        if load and tile.state == TileState.IDLE:
            self.fetcher.load(tile)
        return tile

    def loadTile(self, tile: Tile) -> Optional[asyncio.Future]:
        """
        Start fetching a tile.  This must be called with a running asyncio
        loop.

        :returns: the fetch task or None if no fetch was started.
        """
        return self.fetcher.load(tile)

    async def fetchTile(
            self, level: int, column: int, row: int) -> Tile:
        """
        Get a tile and wait until it has finished loading.

        :returns: the tile in the LOADED, ERROR, or EMPTY state.
        """
        tile = self.getTile(level, column, row, load=False)
        task = self.fetcher.load(tile)
        if task is not None:
            await task
        return tile

    def getDrawableSurface(
            self, tile: Tile) -> Optional[Union[np.ndarray, PIL.Image.Image]]:
        """
        Get the drawable surface for a tile.  See
        ``TileRenderPipeline.getDrawableSurface``.
        """
        size = None
        if isInRange(tile.tileCoord, self.geometry):
            size = self.getTileSize(tile.tileCoord)
        return self.renderPipeline.getDrawableSurface(tile, size)

    def clearRenderCache(self, tile: Optional[Tile] = None) -> None:
        """
        Discard drawable surfaces so that they are re-rendered on next access.
        Decoded buffers are kept.

        :param tile: a single tile to clear.  If None, every tile in the tile
            cache is cleared.
        """
        if tile is not None:
            clearRenderCache(tile)
            return
        count = 0
        for cachedTile in self.cache.tiles():
            clearRenderCache(cachedTile)
            count += 1
        self.logger.debug('Cleared render cache of %d tiles', count)

    def setUrl(self, url: Optional[Union[str, list[str]]], key: Optional[str] = None) -> None:
        """
        Replace the url templates.  The pyramid geometry is unchanged.

        :param url: a url template or list of templates.
        :param key: if not None, a new cache-partition key.  Tiles cached
            under a different key are not reused.
        """
        self.urlResolver = TileUrlResolver(expandUrl(url), self.levels, self.tileWidth)
        if key is not None:
            self.setKey(key)

    def setKey(self, key: Optional[str]) -> None:
        self.key = key

    def getScale(self, resolution: Optional[float] = None) -> float:
        """
        Get the scale factor of the level nearest a view resolution.

        :param resolution: the view resolution.  If None, 1.0 is returned.
        :returns: the scale factor.
        """
        return scaleResolver.getScale(self.resolutions, self.scales, resolution)

    def getScaleReal(self, resolution: float) -> float:
        return scaleResolver.getScaleReal(resolution)

    def _tileEvicted(self, key: str, tile: Tile) -> None:
        releaseTile(tile)

    async def close(self) -> None:
        """
        Cancel pending fetches, close the fetcher's http session, and release
        all cached tiles.
        """
        await self.fetcher.close()
        self.cache.clear()
