class TileGeneralError(Exception):
    pass


class TileSourceError(TileGeneralError):
    pass


class TileSourceConfigurationError(TileSourceError):
    pass


class TileSourceRangeError(TileSourceError):
    pass


class TileSourceXYZRangeError(TileSourceRangeError):
    pass


class TileFetchError(TileGeneralError):
    def __init__(self, url: str, status=None, *args) -> None:
        self.url = url
        self.status = status
        msg = 'Failed to fetch %s' % url
        if status is not None:
            msg += ' (status %s)' % status
        super().__init__(msg, *args)


class TileCacheError(TileGeneralError):
    pass
