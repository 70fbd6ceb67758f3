import functools
import json
import logging
import os
from typing import Any, Optional, Union, cast

# Default logger
fallbackLogger = logging.getLogger('viqi_tiles')
fallbackLogger.setLevel(logging.INFO)
fallbackLogHandler = logging.NullHandler()
fallbackLogHandler.setLevel(logging.NOTSET)
fallbackLogger.addHandler(fallbackLogHandler)


ConfigValues = {
    'logger': fallbackLogger,
    'logprint': fallbackLogger,

    # Tile grid defaults
    'default_tile_size': 256,

    # Number of tiles the source keeps in its LRU tile cache
    'cache_size': 2048,

    # Host contract values that are passed through unchanged
    'reprojection_error_threshold': 0.5,
    # milliseconds
    'transition': 250,

    # Fetching.  fetch_timeout is in seconds for the whole request.
    'fetch_timeout': 30,
    'fetch_headers': None,

    # Minimum number of seconds between repeated render failure log entries
    # for the same error.
    'render_error_throttle': 10,
}


@functools.cache
def getConfig(key: Optional[str] = None,
              default: Optional[Union[str, bool, int, float, logging.Logger]] = None) -> Any:
    """
    Get the config dictionary or a value from the config settings.

    :param key: if None, return the config dictionary.  Otherwise, return the
        value of the key if it is set or the default value if it is not.
    :param default: a value to return if a key is requested and not set.
    :returns: either the config dictionary or the value of a key.
    """
    if key is None:
        return ConfigValues
    envKey = f'VIQI_TILES_{key.replace(".", "_").upper()}'
    if envKey in os.environ:
        value = os.environ[envKey]
        if value == '__default__':
            return default
        try:
            value = json.loads(value)
        except ValueError:
            pass
        return value
    return ConfigValues.get(key, default)


def getLogger(key: Optional[str] = None,
              default: Optional[logging.Logger] = None) -> logging.Logger:
    """
    Get a logger from the config.  Ensure that it is a valid logger.

    :param key: if None, return the 'logger'.
    :param default: a value to return if a key is requested and not set.
    :returns: a logger.
    """
    logger = cast(logging.Logger, getConfig(key or 'logger', default))
    if not isinstance(logger, logging.Logger):
        logger = fallbackLogger
    return logger


def setConfig(key: str, value: Optional[Union[str, bool, int, float, dict, logging.Logger]]) -> None:
    """
    Set a value in the config settings.

    :param key: the key to set.
    :param value: the value to store in the key.
    """
    curConfig = getConfig()
    if curConfig.get(key) is not value:
        curConfig[key] = value
        getConfig.cache_clear()
