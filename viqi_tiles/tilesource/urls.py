import dataclasses
import re
from typing import Any, Optional, Union

from .. import config
from ..constants import URL_PLACEHOLDERS
from .tilecoord import HostTileAddress, ServiceTileAddress, toServiceAddress

_placeholderRegex = re.compile(r'\{(\w+?)\}')
_letterRangeRegex = re.compile(r'\{([a-z])-([a-z])\}')
_numberRangeRegex = re.compile(r'\{(\d+)-(\d+)\}')


def expandUrl(url: Optional[Union[str, list[str], tuple[str, ...]]]) -> list[str]:
    """
    Expand a url template into a list of mirror templates.  A ``{a-c}`` letter
    range or a ``{1-4}`` number range generates one template per value.  A list
    of templates is expanded entry by entry.

    :param url: a template string, a list of template strings, or None.
    :returns: a list of templates.
    """
    if not url:
        return []
    if not isinstance(url, str):
        return [entry for part in url for entry in expandUrl(part)]
    match = _letterRangeRegex.search(url)
    if match:
        return [
            url.replace(match.group(0), chr(code), 1)
            for code in range(ord(match.group(1)), ord(match.group(2)) + 1)]
    match = _numberRangeRegex.search(url)
    if match:
        return [
            url.replace(match.group(0), str(value), 1)
            for value in range(int(match.group(1)), int(match.group(2)) + 1)]
    return [url]


def expandTemplate(template: str, address: ServiceTileAddress) -> str:
    """
    Substitute the ``{z}``, ``{x}``, ``{y}``, and ``{s}`` placeholders of a
    template.  Unknown placeholders are replaced with an empty string.

    :param template: the url template.
    :param address: the service address of the tile.
    :returns: the url.
    """
    context = dict(zip(URL_PLACEHOLDERS, address))
    return _placeholderRegex.sub(lambda m: str(context.get(m.group(1), '')), template)


def pickMirror(address: HostTileAddress, count: int) -> int:
    """
    Choose which of several equivalent templates serves a tile.  Neighboring
    tiles are spread across the mirrors.

    :param address: the host address of the tile.
    :param count: the number of mirrors.
    :returns: an index in the range [0, count).
    """
    if count <= 1:
        return 0
    level, column, row = address
    return ((column << level) + row) % count


@dataclasses.dataclass
class TileUrlResolver:
    """
    Resolve host tile addresses to urls using one or more templates.
    """

    templates: list[str]
    numLevels: int
    tileSize: int

    @classmethod
    def fromUrl(
            cls, url: Optional[Union[str, list[str]]], numLevels: int,
            tileSize: int) -> 'TileUrlResolver':
        return cls(expandUrl(url), numLevels, tileSize)

    def getTileUrl(
            self, address: Optional[HostTileAddress], pixelRatio: float = 1,
            projection: Any = None) -> Optional[str]:
        """
        Get the url of a tile.

        :param address: the host address, or None.
        :param pixelRatio: the device pixel ratio.  Unused by the service.
        :param projection: the view projection.  Unused by the service.
        :returns: the url or None if there is no url for this tile.
        """
        if address is None or not self.templates:
            return None
        try:
            address = HostTileAddress(*address)
            template = self.templates[pickMirror(address, len(self.templates))]
            return expandTemplate(
                template, toServiceAddress(address, self.numLevels, self.tileSize))
        except (TypeError, ValueError) as exc:
            config.getLogger().debug('Cannot resolve url for %r: %s', address, exc)
            return None
