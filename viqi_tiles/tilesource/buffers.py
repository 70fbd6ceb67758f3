# This module contains the stock processBuffer and renderBuffer hooks.  They
# understand the same parameters as the image service's depth, fuse, and
# brightnesscontrast url options.

import dataclasses
from typing import Any, Optional, Union

import numpy as np

BitDepthTypes = {
    8: np.dtype('uint8'),
    16: np.dtype('<u2'),
    32: np.dtype('<f4'),
}

FuseMethods = {'m', 'a'}


@dataclasses.dataclass
class DecodedBuffer:
    """
    Pixel data decoded from a raw tile buffer.

    :param width: width in pixels.
    :param height: height in pixels.
    :param data: a numpy array of Y, X, Channels.
    :param bitDepth: the number of bits per sample of the source data.
    """

    width: int
    height: int
    data: np.ndarray
    bitDepth: int = 8


def parseFusion(fusion: Optional[Union[str, list]]) -> tuple[Optional[list[tuple[int, int, int]]], str]:
    """
    Parse a channel fusion specification.  This is either a list of (r, g, b)
    colors, one per channel, or a string of the form ``r,g,b;r,g,b;:m`` where
    the optional suffix after the final colon is ``m`` to combine channels by
    maximum or ``a`` to combine them by addition.

    :param fusion: the fusion specification or None.
    :returns: a list of colors or None for the default colors, and the method.
    """
    if fusion is None:
        return None, 'a'
    method = 'a'
    if isinstance(fusion, str):
        entries, _, suffix = fusion.partition(':')
        if suffix:
            method = suffix.strip().lower()
        colors = []
        for entry in entries.split(';'):
            if not entry.strip():
                continue
            rgb = [int(v) for v in entry.split(',')]
            if len(rgb) != 3:
                msg = 'Fusion colors need three components, not %r' % entry
                raise ValueError(msg)
            colors.append((rgb[0], rgb[1], rgb[2]))
    else:
        colors = [tuple(int(v) for v in color[:3]) for color in fusion]
    if method not in FuseMethods:
        msg = 'Unknown fusion method %r' % method
        raise ValueError(msg)
    return colors or None, method


def _defaultColors(channels: int) -> list[tuple[int, int, int]]:
    if channels == 1:
        return [(255, 255, 255)]
    colors = [(255, 0, 0), (0, 255, 0), (0, 0, 255),
              (0, 255, 255), (255, 0, 255), (255, 255, 0)]
    return [colors[idx % len(colors)] for idx in range(channels)]


def processBuffer(
        rawBytes: Union[bytes, bytearray, memoryview, np.ndarray],
        size: Optional[tuple[int, int]] = None, *,
        options: Any = None) -> Optional[DecodedBuffer]:
    """
    Decode a raw tile.  The raw data is interleaved samples of ``bitDepth``
    bits for ``channels`` channels.  A numpy array (such as pixels read from an
    encoded image) is accepted as is; its alpha band is dropped.

    :param rawBytes: the raw data.
    :param size: the (width, height) of the tile in pixels.
    :param options: an object with ``bitDepth`` and ``channels`` attributes.
    :returns: a DecodedBuffer or None if the data does not match the size.
    """
    bitDepth = int(getattr(options, 'bitDepth', None) or 8)
    if isinstance(rawBytes, np.ndarray):
        data = rawBytes
        if len(data.shape) == 2:
            data = data[:, :, np.newaxis]
        if data.shape[2] in (2, 4):
            data = data[:, :, :-1]
        channels = getattr(options, 'channels', None)
        if channels and data.shape[2] > channels:
            data = data[:, :, :channels]
        return DecodedBuffer(data.shape[1], data.shape[0], data, 8 * data.dtype.itemsize)
    if bitDepth not in BitDepthTypes:
        msg = 'Unsupported bit depth %r' % bitDepth
        raise ValueError(msg)
    if size is None:
        return None
    dtype = BitDepthTypes[bitDepth]
    channels = int(getattr(options, 'channels', None) or 1)
    width, height = int(size[0]), int(size[1])
    data = np.frombuffer(rawBytes, dtype=dtype)
    if data.size != width * height * channels:
        return None
    return DecodedBuffer(width, height, data.reshape((height, width, channels)), bitDepth)


def _normalize(data: np.ndarray, bitDepth: int) -> np.ndarray:
    if data.dtype.kind == 'f':
        low, high = float(np.nanmin(data)), float(np.nanmax(data))
        if high <= low:
            return np.zeros(data.shape, dtype=float)
        return np.nan_to_num((data - low) / (high - low))
    maxval = float(2 ** min(bitDepth, 8 * data.dtype.itemsize) - 1)
    return data.astype(float) / maxval


def applyBrightnessContrast(
        image: np.ndarray,
        brightnessContrast: Optional[tuple[float, float]]) -> np.ndarray:
    """
    Adjust brightness and contrast of an image with values in [0, 1].  Both
    values are percentages in the range [-100, 100]; 0 leaves the image
    unchanged.

    :param image: a float numpy array.
    :param brightnessContrast: a (brightness, contrast) tuple or None.
    :returns: a float numpy array clipped to [0, 1].
    """
    if not brightnessContrast:
        return image
    brightness, contrast = (float(v) for v in brightnessContrast[:2])
    image = (image - 0.5) * max(0.0, 1.0 + contrast / 100.0) + 0.5 + brightness / 100.0
    return np.clip(image, 0, 1)


def renderBuffer(
        surface: np.ndarray, decoded: DecodedBuffer,
        size: Optional[tuple[int, int]] = None, *, options: Any = None) -> None:
    """
    Fuse the channels of a decoded buffer into RGBA pixels and write them into
    a surface in place.

    :param surface: a uint8 numpy array of Y, X, 4.
    :param decoded: the decoded buffer.
    :param size: the (width, height) to render.  Defaults to the buffer size.
    :param options: an object with ``fusion`` and ``brightnessContrast``
        attributes.
    """
    width, height = size if size is not None else (decoded.width, decoded.height)
    data = decoded.data[:height, :width]
    channels = data.shape[2]
    colors, method = parseFusion(getattr(options, 'fusion', None))
    if colors is None:
        colors = _defaultColors(channels)
    values = _normalize(data, decoded.bitDepth)
    rgb = np.zeros(data.shape[:2] + (3, ), dtype=float)
    for channel in range(channels):
        color = np.array(colors[channel % len(colors)], dtype=float) / 255.0
        contribution = values[:, :, channel:channel + 1] * color
        if method == 'm':
            rgb = np.maximum(rgb, contribution)
        else:
            rgb += contribution
    rgb = applyBrightnessContrast(np.clip(rgb, 0, 1), getattr(options, 'brightnessContrast', None))
    surface[:height, :width, :3] = np.round(rgb * 255).astype(np.uint8)
    surface[:height, :width, 3] = 255
