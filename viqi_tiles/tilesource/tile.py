import dataclasses
from typing import Any, Callable, Optional

import numpy as np
import PIL.Image

from .. import config
from ..constants import TileState
from .tilecoord import HostTileAddress


@dataclasses.dataclass
class RenderCache:
    """
    The per-tile render caches.  ``rawBytes`` is the fetched payload (or the
    pixels read from an encoded image), ``decodedBuffer`` is the output of the
    processBuffer hook, and ``drawableSurface`` is the memoized output of the
    renderBuffer hook.  ``canvas`` is a scratch surface that is reused between
    renders of the same size.
    """

    rawBytes: Optional[Any] = None
    decodedBuffer: Optional[Any] = None
    drawableSurface: Optional[np.ndarray] = None
    canvas: Optional[np.ndarray] = None


@dataclasses.dataclass(eq=False)
class Tile:
    """
    One addressable grid cell of a tile source.
    """

    tileCoord: HostTileAddress
    src: Optional[str] = None
    key: Optional[str] = None
    state: TileState = TileState.IDLE
    image: Optional[PIL.Image.Image] = None
    renderCache: RenderCache = dataclasses.field(default_factory=RenderCache)
    error: Optional[BaseException] = None
    listeners: list[Callable[['Tile'], None]] = dataclasses.field(default_factory=list)


def addTileListener(tile: Tile, callback: Callable[[Tile], None]) -> None:
    """
    Register a function that is called with the tile every time its state
    changes.
    """
    tile.listeners.append(callback)


def setTileState(tile: Tile, state: TileState) -> None:
    """
    Change the state of a tile and notify its listeners.  Listeners that raise
    are logged and do not prevent other listeners from running.
    """
    if tile.state == state:
        return
    tile.state = state
    for callback in list(tile.listeners):
        try:
            callback(tile)
        except Exception:
            config.getLogger().exception(
                'Tile state listener failed for %r', tuple(tile.tileCoord))


def clearRenderCache(tile: Tile) -> None:
    """
    Discard the drawable surface of a tile.  The decoded buffer and any raw
    bytes are kept so that the next render does not need to fetch or decode
    again.
    """
    tile.renderCache.drawableSurface = None


def releaseTile(tile: Tile) -> None:
    """
    Drop all data held by a tile.  This is used when a tile is evicted from the
    tile cache; a fetch that completes afterwards is ignored.
    """
    tile.renderCache = RenderCache()
    tile.image = None
    tile.listeners.clear()
    if tile.state == TileState.LOADING:
        tile.state = TileState.IDLE
    tile.src = None
