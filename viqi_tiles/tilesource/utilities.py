import io
from typing import Any, Optional, Union

import numpy as np
import PIL.Image

from ..constants import SURFACE_BANDS


def _imageToNumpy(image: Union[PIL.Image.Image, np.ndarray, bytes]) -> tuple[np.ndarray, str]:
    """
    Convert an image in PIL, numpy, or image file format to a numpy array.  The
    output numpy array always has three dimensions.

    :param image: input image.
    :returns: a numpy array and a target PIL image mode.
    """
    if not isinstance(image, np.ndarray):
        if not isinstance(image, PIL.Image.Image):
            image = PIL.Image.open(io.BytesIO(image))
        if image.mode not in ('L', 'LA', 'RGB', 'RGBA'):
            image = image.convert('RGBA')
        mode = image.mode
        image = np.asarray(image)
    else:
        if len(image.shape) == 3:
            mode = ['L', 'LA', 'RGB', 'RGBA'][(image.shape[2] - 1) if image.shape[2] <= 4 else 3]
        else:
            mode = 'L'
    if len(image.shape) == 2:
        image = np.resize(image, (image.shape[0], image.shape[1], 1))
    return image, mode


def newSurface(width: int, height: int) -> np.ndarray:
    """
    Allocate a transparent RGBA surface.

    :param width: width in pixels.
    :param height: height in pixels.
    :returns: a uint8 numpy array of shape (height, width, 4).
    """
    return np.zeros((int(height), int(width), SURFACE_BANDS), dtype=np.uint8)


def imageToSurface(
        image: Union[PIL.Image.Image, np.ndarray, bytes],
        width: Optional[int] = None, height: Optional[int] = None) -> np.ndarray:
    """
    Copy an image into an RGBA surface.  If a width and height are given and
    the image is smaller, the surface is padded on the right and bottom with
    transparent pixels.  The image is never scaled; larger images are cropped.

    :param image: the source image.
    :param width: the surface width, or None to use the image width.
    :param height: the surface height, or None to use the image height.
    :returns: a uint8 numpy array of shape (height, width, 4).
    """
    if isinstance(image, PIL.Image.Image) and image.mode != 'RGBA':
        image = image.convert('RGBA')
    data, _ = _imageToNumpy(image)
    if data.dtype != np.uint8:
        data = data.astype(np.uint8)
    bands = data.shape[2]
    if bands in (1, 2):
        rgb = np.repeat(data[:, :, :1], 3, axis=2)
        alpha = data[:, :, 1:2] if bands == 2 else np.full(data.shape[:2] + (1, ), 255, np.uint8)
        data = np.concatenate((rgb, alpha), axis=2)
    elif bands == 3:
        data = np.concatenate((data, np.full(data.shape[:2] + (1, ), 255, np.uint8)), axis=2)
    elif bands > SURFACE_BANDS:
        data = data[:, :, :SURFACE_BANDS]
    height = data.shape[0] if height is None else int(height)
    width = data.shape[1] if width is None else int(width)
    surface = newSurface(width, height)
    h = min(height, data.shape[0])
    w = min(width, data.shape[1])
    surface[:h, :w] = data[:h, :w]
    return surface


def bufferSize(buffer: Any) -> tuple[int, int]:
    """
    Get the width and height reported by a decoded buffer.  The buffer may
    either have width and height attributes or be a mapping with width and
    height keys.

    :param buffer: a decoded buffer.
    :returns: (width, height).
    """
    if isinstance(buffer, dict):
        return int(buffer['width']), int(buffer['height'])
    return int(buffer.width), int(buffer.height)
