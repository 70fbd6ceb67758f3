"""
Asynchronous tile fetching.

Tiles are fetched with ``aiohttp`` on the running asyncio loop.  A fetch is
started with ``TileFetcher.load``, which returns immediately; the tile's
listeners are called when it reaches the ``LOADED`` or ``ERROR`` state.  The
fetcher holds its pending tasks; ``TileFetcher.close`` cancels them.
"""
import asyncio
import functools
import io
from typing import Any, Optional

import aiohttp
import PIL.Image

from .. import config
from ..constants import TileState
from ..exceptions import TileFetchError
from .tile import Tile, setTileState


class TileFetcher:
    """
    Fetch tile content either as an encoded image or as a raw binary buffer.

    :param useRawBuffer: if True, store the response body on the tile's render
        cache instead of decoding it as an image.
    :param session: an optional ``aiohttp.ClientSession`` to use.  If not
        specified, one is created on first use and closed by ``close``.
    :param timeout: total request timeout in seconds.  None to use the
        ``fetch_timeout`` config value.
    :param headers: optional headers sent with every request.
    """

    def __init__(
            self, useRawBuffer: bool = False,
            session: Optional[aiohttp.ClientSession] = None,
            timeout: Optional[float] = None,
            headers: Optional[dict[str, str]] = None) -> None:
        self.logger = config.getLogger()
        self.useRawBuffer = bool(useRawBuffer)
        self._session = session
        self._ownSession = session is None
        self.timeout = timeout if timeout is not None else config.getConfig('fetch_timeout')
        self.headers = headers if headers is not None else config.getConfig('fetch_headers')
        self._tasks: set[asyncio.Future] = set()

    @property
    def session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(
                timeout=aiohttp.ClientTimeout(total=self.timeout),
                headers=self.headers,
            )
            self._ownSession = True
        return self._session

    async def close(self) -> None:
        """
        Cancel fetches that are still in flight and close the http session if
        it was created by this fetcher.
        """
        tasks = list(self._tasks)
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
        if self._session is not None and self._ownSession and not self._session.closed:
            await self._session.close()
        self._session = None

    async def fetchBytes(self, url: str) -> bytes:
        """
        Fetch the body of a url.

        :param url: the url to get.
        :returns: the response body.
        """
        async with self.session.get(url) as response:
            if response.status != 200:
                raise TileFetchError(url, response.status)
            data = await response.read()
        if not data:
            msg = 'empty response'
            raise TileFetchError(url, response.status, msg)
        return data

    def load(self, tile: Tile) -> Optional[asyncio.Future]:
        """
        Start loading a tile.  This must be called while an asyncio loop is
        running.  Tiles that are already loading or loaded are left alone.

        :param tile: the tile to load.
        :returns: the task performing the fetch or None if no fetch was
            started.
        """
        if tile.state not in {TileState.IDLE, TileState.ERROR}:
            return None
        if not tile.src:
            setTileState(tile, TileState.EMPTY)
            return None
        tile.error = None
        setTileState(tile, TileState.LOADING)
        task = asyncio.ensure_future(self._load(tile, tile.src))
        self._tasks.add(task)
        task.add_done_callback(functools.partial(self._finished, tile, tile.src))
        return task

    def _finished(self, tile: Tile, url: str, task: asyncio.Future) -> None:
        self._tasks.discard(task)
        # a cancelled fetch leaves the tile loadable
        if task.cancelled() and tile.src == url and tile.state == TileState.LOADING:
            setTileState(tile, TileState.IDLE)

    @property
    def pending(self) -> int:
        """The number of fetches that have not finished."""
        return len(self._tasks)

    def _discardStale(self, tile: Tile, url: str) -> bool:
        """
        Check if a completed fetch no longer applies to its tile.  A tile whose
        url changed while loading is returned to IDLE so it can be loaded
        again.

        :returns: True if the result should be ignored.
        """
        if tile.src == url and tile.state == TileState.LOADING:
            return False
        if tile.state == TileState.LOADING:
            setTileState(tile, TileState.IDLE)
        self.logger.debug('Ignoring stale response for %s', url)
        return True

    def _fail(self, tile: Tile, url: str, exc: Exception) -> None:
        if self._discardStale(tile, url):
            return
        self.logger.warning('Tile %r failed to load: %s', tuple(tile.tileCoord), exc)
        tile.error = exc
        setTileState(tile, TileState.ERROR)

    async def _load(self, tile: Tile, url: str) -> None:
        try:
            data = await self.fetchBytes(url)
        except (TileFetchError, aiohttp.ClientError, asyncio.TimeoutError, OSError) as exc:
            self._fail(tile, url, exc)
            return
        image = None
        if not self.useRawBuffer:
            try:
                image = self._decodeImage(data)
            except Exception as exc:
                # Pillow raises a variety of exceptions for malformed data
                self._fail(tile, url, exc)
                return
        if self._discardStale(tile, url):
            return
        if self.useRawBuffer:
            tile.renderCache.rawBytes = data
        else:
            tile.image = image
        setTileState(tile, TileState.LOADED)

    @staticmethod
    def _decodeImage(data: bytes) -> Any:
        image = PIL.Image.open(io.BytesIO(data))
        image.load()
        return image
