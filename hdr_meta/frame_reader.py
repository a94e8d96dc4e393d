import logging
import os

import cv2
import numpy as np
from skimage.util import img_as_uint

logger = logging.getLogger(__name__)


class DecodeError(OSError):
    """Raised when a frame file cannot be opened or decoded."""


class PixelBuffer:
    """Immutable (height, width, 3) grid of 16-bit RGB samples.

    The buffer takes ownership of the array it is given and marks it
    read-only; callers must not keep writing to it.
    """

    def __init__(self, pixels):
        pixels = np.asarray(pixels)
        if pixels.ndim != 3 or pixels.shape[2] != 3:
            raise ValueError(f"Expected (height, width, 3) samples, got shape {pixels.shape}")
        if pixels.dtype != np.uint16:
            raise ValueError(f"Expected uint16 samples, got {pixels.dtype}")
        pixels = np.ascontiguousarray(pixels)
        pixels.setflags(write=False)
        self.pixels = pixels

    @classmethod
    def from_samples(cls, samples, width, height):
        """Build a buffer from row-major interleaved R, G, B samples."""
        flat = np.asarray(samples, dtype=np.uint16).ravel()
        if len(flat) != width * height * 3:
            raise ValueError(
                f"Sample count {len(flat)} does not match {width}x{height}x3")
        return cls(flat.reshape(height, width, 3))

    @property
    def width(self):
        return self.pixels.shape[1]

    @property
    def height(self):
        return self.pixels.shape[0]

    def __len__(self):
        return self.pixels.size


def decode(path):
    """
    Read an image file into a PixelBuffer.

    Samples are delivered as 16-bit RGB whatever the storage of the file:
    BGR(A) from OpenCV is reordered and alpha dropped, grayscale is
    replicated to three channels and other bit depths are rescaled.

    Raises:
        DecodeError: the file is missing, unreadable or not an image.
    """
    path = os.fspath(path)
    if not os.path.isfile(path):
        raise DecodeError(f"No such file: {path}")

    image = cv2.imread(path, cv2.IMREAD_UNCHANGED)
    if image is None:
        raise DecodeError(f"Unable to decode image: {path}")

    if image.ndim == 3 and image.shape[2] not in (3, 4):
        raise DecodeError(f"Unsupported channel count {image.shape[2]}: {path}")

    # cvtColor only takes 8U, 16U and 32F input
    if image.dtype != np.uint16:
        logger.debug("Rescaling %s samples to 16-bit: %s", image.dtype, path)
        try:
            image = img_as_uint(image)
        except ValueError as e:
            raise DecodeError(f"Unable to convert samples of {path}: {e}") from e

    try:
        if image.ndim == 2:
            image = cv2.cvtColor(image, cv2.COLOR_GRAY2RGB)
        elif image.shape[2] == 4:
            image = cv2.cvtColor(image, cv2.COLOR_BGRA2RGB)
        else:
            image = cv2.cvtColor(image, cv2.COLOR_BGR2RGB)
    except cv2.error as e:
        raise DecodeError(f"Unable to convert channels of {path}: {e}") from e

    logger.debug("Decoded %s (%dx%d)", path, image.shape[1], image.shape[0])
    return PixelBuffer(image)
