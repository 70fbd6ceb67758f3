import dataclasses
from typing import Optional

from .geometry import PyramidGeometry
from .tilecoord import HostTileAddress


@dataclasses.dataclass(frozen=True)
class TileGrid:
    """
    The tile grid descriptor handed to a viewer.  ``extent`` is
    (minX, minY, maxX, maxY) in view units, where one unit is one pixel of the
    full resolution image; ``origin`` is the top-left corner of the extent.
    ``resolutions`` are indexed by level, coarsest first.
    """

    resolutions: tuple[int, ...]
    extent: tuple[float, float, float, float]
    origin: tuple[float, float]
    tileSize: tuple[int, int]

    @classmethod
    def fromGeometry(
            cls, geometry: PyramidGeometry,
            extent: Optional[tuple[float, float, float, float]] = None) -> 'TileGrid':
        """
        Create a tile grid for a pyramid.  By default the grid is in the fourth
        quadrant: the extent is (0, -sizeY, sizeX, 0).

        :param geometry: the pyramid geometry.
        :param extent: an optional extent.
        """
        descriptor = geometry.descriptor
        if extent is None:
            extent = (0, -descriptor.sizeY, descriptor.sizeX, 0)
        extent = (extent[0], extent[1], extent[2], extent[3])
        return cls(
            resolutions=geometry.resolutions,
            extent=extent,
            origin=(extent[0], extent[3]),
            tileSize=(geometry.tileSize, geometry.tileSize),
        )

    @property
    def minZoom(self) -> int:
        return 0

    @property
    def maxZoom(self) -> int:
        return len(self.resolutions) - 1

    def getResolution(self, level: int) -> int:
        return self.resolutions[level]

    def getTileCoordExtent(self, address: HostTileAddress) -> tuple[float, float, float, float]:
        """
        Get the extent of a tile in view units.

        :param address: the host address of the tile.
        :returns: (minX, minY, maxX, maxY).
        """
        resolution = self.resolutions[address.level]
        width = self.tileSize[0] * resolution
        height = self.tileSize[1] * resolution
        minX = self.origin[0] + address.column * width
        minY = self.origin[1] + address.row * height
        return (minX, minY, minX + width, minY + height)

    def getTileCoordForCoordAndLevel(
            self, coordinate: tuple[float, float], level: int) -> HostTileAddress:
        """
        Get the host address of the tile containing a coordinate.

        :param coordinate: (x, y) in view units.
        :param level: the level.
        :returns: the host address.
        """
        resolution = self.resolutions[level]
        column = int((coordinate[0] - self.origin[0]) // (self.tileSize[0] * resolution))
        row = int((coordinate[1] - self.origin[1]) // (self.tileSize[1] * resolution))
        return HostTileAddress(level, column, row)
