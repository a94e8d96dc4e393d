"""
PQ luminance transform and the per-sample lookup table built from it.
"""

import logging
from enum import Enum

import numpy as np

from .constants import (
    SAMPLE_COUNT,
    FULL_RANGE_BLACK, FULL_RANGE_SPAN, LEGAL_RANGE_BLACK, LEGAL_RANGE_SPAN,
    PQ_M1, PQ_M2, PQ_C1, PQ_C2, PQ_C3,
    BT2020_COEFFICIENTS, P3D65_COEFFICIENTS,
)

logger = logging.getLogger(__name__)


class NumericAnomalyError(ValueError):
    """Raised when a black/range pair drives the PQ formula out of its domain."""


class ColorSpace(Enum):
    """Colour space of the frames, selecting the luma weights."""
    BT2020 = "2020"
    P3D65 = "P3"

    @property
    def coefficients(self):
        if self is ColorSpace.BT2020:
            return BT2020_COEFFICIENTS
        return P3D65_COEFFICIENTS


class RangePolicy(Enum):
    """Signal range of the 16-bit code values."""
    FULL = "FULL"
    LEGAL = "LEGAL"

    @property
    def black(self):
        return FULL_RANGE_BLACK if self is RangePolicy.FULL else LEGAL_RANGE_BLACK

    @property
    def span(self):
        return FULL_RANGE_SPAN if self is RangePolicy.FULL else LEGAL_RANGE_SPAN


def _pq_terms(v):
    # Negative input (codes below black) is treated as black.
    t = np.power(np.maximum(v, 0.0), 1.0 / PQ_M2)
    numerator = np.maximum(t - PQ_C1, 0.0)
    denominator = PQ_C2 - PQ_C3 * t
    return numerator, denominator


def pq(v):
    """
    Map a normalized code value to normalized luminance (1.0 == 10000 nits).

    Accepts a scalar or a numpy array. Only meaningful while the
    denominator ``c2 - c3 * v**(1/m2)`` stays positive, i.e. for v below
    roughly 1.99; callers building tables check that via build_table.
    """
    numerator, denominator = _pq_terms(v)
    with np.errstate(divide="ignore", invalid="ignore"):
        result = np.power(numerator / denominator, 1.0 / PQ_M1)
    if np.ndim(result) == 0:
        return float(result)
    return result


class LuminanceTable:
    """Read-only map from every 16-bit code value to PQ luminance."""

    def __init__(self, black, span, values):
        self.black = black
        self.span = span
        self.values = values

    def __len__(self):
        return len(self.values)

    def __getitem__(self, index):
        return self.values[index]

    @classmethod
    def for_policy(cls, policy):
        return build_table(policy.black, policy.span)


def build_table(black, span):
    """
    Evaluate pq((i - black) / span) for every code value i in [0, 65535].

    Raises:
        NumericAnomalyError: span is not positive, or some code value makes
            the PQ denominator non-positive or the result non-finite.
    """
    if span <= 0:
        raise NumericAnomalyError(f"Range must be positive, got {span}")

    codes = np.arange(SAMPLE_COUNT, dtype=np.float64)
    v = (codes - black) / span

    _, denominator = _pq_terms(v)
    bad = np.flatnonzero(denominator <= 0)
    if bad.size:
        raise NumericAnomalyError(
            f"PQ denominator is non-positive from code value {int(bad[0])} "
            f"(black={black}, range={span})")

    values = pq(v)
    if not np.all(np.isfinite(values)):
        first = int(np.flatnonzero(~np.isfinite(values))[0])
        raise NumericAnomalyError(
            f"PQ lookup produced a non-finite value at code value {first} "
            f"(black={black}, range={span})")

    values.setflags(write=False)
    logger.debug("Built luminance table: black=%s range=%s peak=%.6f",
                 black, span, values[-1])
    return LuminanceTable(black, span, values)
