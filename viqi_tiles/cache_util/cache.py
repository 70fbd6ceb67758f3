from collections.abc import Iterator
from typing import Any, Callable, Optional

import cachetools

from .. import config
from ..exceptions import TileCacheError


def strhash(*args, **kwargs) -> str:
    """
    Generate a string hash value for an arbitrary set of args and kwargs.  This
    relies on the repr of each element.

    :param args: arbitrary tuple of args.
    :param kwargs: arbitrary dictionary of kwargs.
    :returns: hashed string of the arguments.
    """
    if kwargs:
        return '%r,%r' % (args, sorted(kwargs.items()))
    return '%r' % (args, )


class TileCache(cachetools.LRUCache):
    """
    An LRU cache of tiles for a single tile source.  Tiles are created on first
    request and evicted by the LRU policy.  Keys are built with ``tileKey`` so
    that tiles fetched with different cache-partition keys never collide.
    """

    def __init__(
            self, maxsize: Optional[int] = None,
            onEvict: Optional[Callable[[Any, Any], None]] = None,
            **kwargs) -> None:
        """
        :param maxsize: the maximum number of tiles to keep.  None to use the
            ``cache_size`` config value.
        :param onEvict: an optional function called with (key, tile) when a
            tile is evicted by the LRU policy.
        """
        if maxsize is None:
            maxsize = config.getConfig('cache_size')
        try:
            maxsize = int(maxsize)
        except (TypeError, ValueError):
            msg = 'Invalid tile cache size %r' % (maxsize, )
            raise TileCacheError(msg)
        if maxsize < 1:
            msg = 'Tile cache size must be at least 1'
            raise TileCacheError(msg)
        super().__init__(maxsize=maxsize, **kwargs)
        self.onEvict = onEvict

    @staticmethod
    def tileKey(key: Optional[str], level: int, column: int, row: int) -> str:
        """
        Return the cache key for a tile.

        :param key: the cache-partition key of the source (may be None).
        :param level: host level.
        :param column: host column.
        :param row: host row.
        :returns: a string key.
        """
        return strhash(key or '', level, column, row)

    def popitem(self) -> tuple[Any, Any]:
        key, tile = super().popitem()
        config.getLogger().debug('Evicted tile %s', key)
        if self.onEvict is not None:
            self.onEvict(key, tile)
        return key, tile

    def clear(self) -> None:
        """
        Evict every tile, least recently used first, so that each one is
        passed to ``onEvict``.
        """
        while len(self):
            self.popitem()

    def tiles(self) -> Iterator[Any]:
        """
        Iterate through the tiles currently held in the cache without changing
        their recently-used order.
        """
        for key in list(self):
            # Cache.__getitem__ does not update the LRU order
            yield cachetools.Cache.__getitem__(self, key)
