import dataclasses
import math
from typing import NamedTuple, Union

from .. import exceptions
from ..constants import DEFAULT_TILE_SIZE, TierSizeCalculation


@dataclasses.dataclass(frozen=True)
class ImageDescriptor:
    """
    The raw dimensions of a multi-resolution image as reported by the image
    service.

    :param sizeX: full image width in pixels.
    :param sizeY: full image height in pixels.
    :param tileSize: edge length of the square tiles at every level.
    :param tierSizeCalculation: either ``'default'`` or ``'truncated'``.
    """

    sizeX: int
    sizeY: int
    tileSize: int = DEFAULT_TILE_SIZE
    tierSizeCalculation: Union[TierSizeCalculation, str] = TierSizeCalculation.DEFAULT


class PyramidLevel(NamedTuple):
    level: int
    resolution: int
    scale: float
    tierSize: tuple[int, int]
    sizeX: int
    sizeY: int


@dataclasses.dataclass(frozen=True)
class PyramidGeometry:
    """
    The resolution pyramid of an image.  All sequences are indexed by host
    level, where level 0 is the coarsest (a single tile) and the last level is
    the full resolution image.  ``resolutions`` descend to 1 and ``scales``
    ascend to 1.0.
    """

    descriptor: ImageDescriptor
    tierSizeInTiles: tuple[tuple[int, int], ...]
    resolutions: tuple[int, ...]
    scales: tuple[float, ...]
    tileCountUpToTier: tuple[int, ...]
    levels: tuple[PyramidLevel, ...]

    @property
    def numLevels(self) -> int:
        return len(self.levels)

    @property
    def tileSize(self) -> int:
        return self.descriptor.tileSize

    def __getitem__(self, level: int) -> PyramidLevel:
        return self.levels[level]

    def __len__(self) -> int:
        return len(self.levels)


def _tierSizes(
        sizeX: int, sizeY: int, tileSize: int,
        tierSizeCalculation: Union[TierSizeCalculation, str]) -> list[list[int]]:
    """
    Compute the tier sizes in tiles from the finest tier to the coarsest tier
    that still needs more than one tile.

    :returns: a list of [columns, rows], finest first.
    """
    try:
        tierSizeCalculation = TierSizeCalculation(tierSizeCalculation)
    except ValueError:
        msg = 'Unknown tier size calculation %r' % (tierSizeCalculation, )
        raise exceptions.TileSourceConfigurationError(msg)
    tierSizeInTiles = []
    compareSize = tileSize
    if tierSizeCalculation == TierSizeCalculation.DEFAULT:
        while sizeX > compareSize or sizeY > compareSize:
            tierSizeInTiles.append([
                math.ceil(sizeX / compareSize),
                math.ceil(sizeY / compareSize),
            ])
            compareSize += compareSize
    else:
        width, height = sizeX, sizeY
        while width > compareSize or height > compareSize:
            tierSizeInTiles.append([
                math.ceil(width / compareSize),
                math.ceil(height / compareSize),
            ])
            width >>= 1
            height >>= 1
    return tierSizeInTiles


def buildPyramid(descriptor: ImageDescriptor) -> PyramidGeometry:
    """
    Derive the pyramid levels of an image.

    :param descriptor: the image size, tile size, and tier size calculation
        method.
    :returns: an immutable PyramidGeometry.
    """
    sizeX, sizeY = int(descriptor.sizeX), int(descriptor.sizeY)
    tileSize = int(descriptor.tileSize)
    if sizeX < 1 or sizeY < 1:
        msg = 'Image size must be positive, not %d x %d' % (sizeX, sizeY)
        raise exceptions.TileSourceConfigurationError(msg)
    if tileSize < 1:
        msg = 'Tile size must be positive, not %d' % tileSize
        raise exceptions.TileSourceConfigurationError(msg)
    tierSizeInTiles = _tierSizes(sizeX, sizeY, tileSize, descriptor.tierSizeCalculation)
    tierSizeInTiles.append([1, 1])
    tierSizeInTiles.reverse()

    resolutions = [1]
    tileCountUpToTier = [0]
    for i in range(1, len(tierSizeInTiles)):
        resolutions.append(1 << i)
        tileCountUpToTier.append(
            tierSizeInTiles[i - 1][0] * tierSizeInTiles[i - 1][1] +
            tileCountUpToTier[i - 1])
    resolutions.reverse()

    scales = []
    scale = 1.0
    for _ in resolutions:
        scales.append(scale)
        scale /= 2.0
    scales.reverse()

    levels = tuple(
        PyramidLevel(
            level=idx,
            resolution=resolutions[idx],
            scale=scales[idx],
            tierSize=(tierSizeInTiles[idx][0], tierSizeInTiles[idx][1]),
            sizeX=max(1, int(math.floor(sizeX * scales[idx]))),
            sizeY=max(1, int(math.floor(sizeY * scales[idx]))),
        ) for idx in range(len(tierSizeInTiles)))
    return PyramidGeometry(
        descriptor=descriptor,
        tierSizeInTiles=tuple((cols, rows) for cols, rows in tierSizeInTiles),
        resolutions=tuple(resolutions),
        scales=tuple(scales),
        tileCountUpToTier=tuple(tileCountUpToTier),
        levels=levels,
    )
