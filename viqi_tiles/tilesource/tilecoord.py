from typing import NamedTuple, Optional

from .. import exceptions
from .geometry import PyramidGeometry


class HostTileAddress(NamedTuple):
    """
    A tile address as used by the tile grid.  Level 0 is the coarsest level.
    Rows count from the top-left origin of the grid, so the top row is -1 and
    rows further down the image are more negative.
    """

    level: int
    column: int
    row: int


class ServiceTileAddress(NamedTuple):
    """
    A tile address as used by the image service.  z is 0 at full resolution
    and y is 0 at the top of the image.
    """

    z: int
    x: int
    y: int
    edge: int


def toServiceAddress(
        address: HostTileAddress, numLevels: int, tileSize: int) -> ServiceTileAddress:
    """
    Convert a host tile address to the service convention.

    :param address: the host address.
    :param numLevels: the number of levels in the pyramid.
    :param tileSize: the tile edge length.
    :returns: the service address.
    """
    level, column, row = address
    return ServiceTileAddress(numLevels - 1 - level, column, -row - 1, tileSize)


def toHostAddress(address: ServiceTileAddress, numLevels: int) -> HostTileAddress:
    """
    Convert a service tile address to the host convention.

    :param address: the service address.
    :param numLevels: the number of levels in the pyramid.
    :returns: the host address.
    """
    z, x, y = address[:3]
    return HostTileAddress(numLevels - 1 - z, x, -y - 1)


def checkInRange(address: HostTileAddress, geometry: PyramidGeometry) -> None:
    """
    Check if a host address is within its level's tier size.  Raise a
    ``TileSourceXYZRangeError`` if not.
    """
    level, column, row = address
    if not (0 <= level < geometry.numLevels):
        msg = 'level does not exist'
        raise exceptions.TileSourceXYZRangeError(msg)
    cols, rows = geometry.tierSizeInTiles[level]
    if not (0 <= column < cols):
        msg = 'column is outside level'
        raise exceptions.TileSourceXYZRangeError(msg)
    if not (0 <= -row - 1 < rows):
        msg = 'row is outside level'
        raise exceptions.TileSourceXYZRangeError(msg)


def isInRange(address: Optional[HostTileAddress], geometry: PyramidGeometry) -> bool:
    if address is None:
        return False
    try:
        checkInRange(address, geometry)
    except (exceptions.TileSourceXYZRangeError, TypeError, ValueError):
        return False
    return True


def getTileClipSize(address: HostTileAddress, geometry: PyramidGeometry) -> tuple[int, int]:
    """
    Get the pixel size of a specific tile.  Tiles on the right and bottom edges
    of the image may be smaller than the tile size.

    :param address: the host address.
    :param geometry: the pyramid geometry.
    :returns: (width, height) of the tile in pixels.
    """
    checkInRange(address, geometry)
    level = geometry[address.level]
    tileSize = geometry.tileSize
    x0 = address.column * tileSize
    y0 = (-address.row - 1) * tileSize
    width = max(1, min(tileSize, level.sizeX - x0))
    height = max(1, min(tileSize, level.sizeY - y0))
    return width, height
