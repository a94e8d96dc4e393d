import logging
import os
from enum import Enum, auto

from .constants import (
    ANALYSIS_CHUNK_ROWS, PQ_PEAK_NITS,
    CANNOT_OPEN_SENTINEL, INVALID_REGION_SENTINEL,
)
from .frame_reader import DecodeError, decode

logger = logging.getLogger(__name__)


class Region:
    """Vertical band of a frame: rows [row_offset, row_offset + row_count)."""

    def __init__(self, row_offset, row_count):
        if row_offset < 0:
            raise ValueError(f"Row offset must not be negative, got {row_offset}")
        if row_count <= 0:
            raise ValueError(f"Row count must be greater than 0, got {row_count}")
        self.row_offset = int(row_offset)
        self.row_count = int(row_count)

    @property
    def row_end(self):
        return self.row_offset + self.row_count

    def fits(self, height):
        return self.row_end <= height

    def __eq__(self, other):
        if not isinstance(other, Region):
            return NotImplemented
        return (self.row_offset, self.row_count) == (other.row_offset, other.row_count)

    def __hash__(self):
        return hash((self.row_offset, self.row_count))

    def __repr__(self):
        return f"Region(row_offset={self.row_offset}, row_count={self.row_count})"


class FrameStatus(Enum):
    OK = auto()
    CANNOT_OPEN = auto()
    INVALID_REGION = auto()


class FrameMetrics:
    """maxFALL / maxCLL of one frame in nits, or the reason there are none."""

    def __init__(self, status, max_fall=None, max_cll=None, average_luma=None):
        self.status = status
        self.max_fall = max_fall
        self.max_cll = max_cll
        self.average_luma = average_luma

    @classmethod
    def cannot_open(cls):
        return cls(FrameStatus.CANNOT_OPEN)

    @classmethod
    def invalid_region(cls):
        return cls(FrameStatus.INVALID_REGION)

    @property
    def is_ok(self):
        return self.status is FrameStatus.OK

    def values(self):
        """(maxFALL, maxCLL) as written to the result file, sentinels on failure."""
        if self.status is FrameStatus.CANNOT_OPEN:
            return CANNOT_OPEN_SENTINEL
        if self.status is FrameStatus.INVALID_REGION:
            return INVALID_REGION_SENTINEL
        return self.max_fall, self.max_cll

    def __repr__(self):
        if not self.is_ok:
            return f"FrameMetrics({self.status.name})"
        return f"FrameMetrics(max_fall={self.max_fall:.4f}, max_cll={self.max_cll:.4f})"


class BatchEntry:
    """One analyzed file: its path and the metrics computed for it."""

    def __init__(self, path, metrics):
        self.path = path
        self.metrics = metrics

    def __iter__(self):
        return iter((self.path, self.metrics))

    def __repr__(self):
        return f"BatchEntry({self.path!r}, {self.metrics!r})"


class FrameAnalyzer:
    """
    Computes HDR light-level metadata for decoded frames.
    """

    @staticmethod
    def analyze(buffer, region, color_space, table):
        """
        Calculate maxFALL and maxCLL over a vertical band of a frame.

        Every pixel in the band is mapped through the lookup table per
        channel. The brightest channel of each pixel feeds both metrics:
        maxFALL is its mean over the band, maxCLL its peak. The weighted
        luma of the colour space is averaged separately as average_luma.

        Args:
            buffer (PixelBuffer): Decoded frame, or None if decoding failed.
            region (Region): Rows to analyze; None analyzes the whole frame.
            color_space (ColorSpace): Selects the luma weights.
            table (LuminanceTable): Shared read-only code value -> luminance map.

        Returns:
            FrameMetrics: values in nits, or a CANNOT_OPEN / INVALID_REGION status.
        """
        if buffer is None:
            return FrameMetrics.cannot_open()

        if region is None:
            if buffer.height == 0:
                return FrameMetrics.invalid_region()
            row_offset, row_count = 0, buffer.height
        else:
            if not region.fits(buffer.height):
                logger.debug("Region rows %d-%d exceed frame height %d",
                             region.row_offset, region.row_end, buffer.height)
                return FrameMetrics.invalid_region()
            row_offset, row_count = region.row_offset, region.row_count

        pixel_count = buffer.width * row_count
        if pixel_count == 0:
            return FrameMetrics.invalid_region()

        lut = table.values
        kr, kg, kb = color_space.coefficients
        band = buffer.pixels[row_offset:row_offset + row_count]

        sum_lmax = 0.0
        sum_luma = 0.0
        peak_lmax = 0.0
        # At most ANALYSIS_CHUNK_ROWS rows are expanded to float64 at once
        for start in range(0, row_count, ANALYSIS_CHUNK_ROWS):
            lum = lut[band[start:start + ANALYSIS_CHUNK_ROWS]]
            lmax = lum.max(axis=2)
            sum_lmax += float(lmax.sum())
            peak_lmax = max(peak_lmax, float(lmax.max()))
            luma = kr * lum[:, :, 0] + kg * lum[:, :, 1] + kb * lum[:, :, 2]
            sum_luma += float(luma.sum())

        return FrameMetrics(
            FrameStatus.OK,
            max_fall=PQ_PEAK_NITS * (sum_lmax / pixel_count),
            max_cll=PQ_PEAK_NITS * peak_lmax,
            average_luma=PQ_PEAK_NITS * (sum_luma / pixel_count),
        )


def analyze_file(path, region, color_space, table, decoder=decode):
    """Decode one file and analyze it; a decode failure becomes CANNOT_OPEN."""
    path = os.fspath(path)
    try:
        buffer = decoder(path)
    except DecodeError as e:
        logger.warning("Cannot open %s: %s", path, e)
        return BatchEntry(path, FrameMetrics.cannot_open())

    metrics = FrameAnalyzer.analyze(buffer, region, color_space, table)
    if metrics.status is FrameStatus.INVALID_REGION:
        logger.warning("Invalid active area for %s (%dx%d)", path, buffer.width, buffer.height)
    else:
        logger.debug("Analyzed %s: %r", path, metrics)
    return BatchEntry(path, metrics)
