"""
Active picture area detection for letterboxed frames.

Letterboxed masters pad the picture with rows of a single constant value.
The detector finds the first row whose samples vary and the first uniform
row after it; a random sample of files then votes on the band to use for
the whole batch.
"""

import logging
import os
from collections import Counter

import numpy as np

from .analysis import Region
from .constants import DEFAULT_ACTIVE_AREA_SAMPLE_SIZE, LEGAL_RANGE_BLACK
from .frame_reader import DecodeError, decode
from .luminance import RangePolicy

logger = logging.getLogger(__name__)


class ActiveAreaObservation:
    """Band found in one frame; (-1, -1) when no band could be inferred."""

    def __init__(self, row_offset, row_count):
        self.row_offset = int(row_offset)
        self.row_count = int(row_count)

    @property
    def is_valid(self):
        return self.row_offset >= 0 and self.row_count > 0

    @property
    def key(self):
        return f"{self.row_offset},{self.row_count}"

    def to_region(self):
        return Region(self.row_offset, self.row_count)

    def __eq__(self, other):
        if not isinstance(other, ActiveAreaObservation):
            return NotImplemented
        return (self.row_offset, self.row_count) == (other.row_offset, other.row_count)

    def __hash__(self):
        return hash((self.row_offset, self.row_count))

    def __repr__(self):
        return f"ActiveAreaObservation({self.row_offset}, {self.row_count})"


ActiveAreaObservation.INVALID = ActiveAreaObservation(-1, -1)


class ActiveAreaVote:
    def __init__(self, row_offset, row_count, count=1):
        self.row_offset = row_offset
        self.row_count = row_count
        self.count = count

    @property
    def observation(self):
        return ActiveAreaObservation(self.row_offset, self.row_count)

    def __repr__(self):
        return f"ActiveAreaVote({self.row_offset}, {self.row_count}, count={self.count})"


class ActiveAreaConsensus:
    """Outcome of the sample vote, for the caller to accept or reject."""

    def __init__(self, region, disagreement, tally, sampled, range_suggestions=None):
        self.region = region
        self.disagreement = disagreement
        self.tally = tally
        self.sampled = sampled
        self.range_suggestions = range_suggestions or Counter()

    @property
    def winner(self):
        best = None
        # Strict comparison keeps the first key seen on ties
        for vote in self.tally.values():
            if best is None or vote.count > best.count:
                best = vote
        return best

    def describe(self):
        """Human readable tally lines, "offset,count: votes"."""
        return [f"{key}: {vote.count}" for key, vote in self.tally.items()]


def detect_active_area(buffer):
    """
    Infer the active vertical band of a frame.

    A row is flat when its minimum and maximum sample (over every column
    and channel) are equal. The band starts at the first non-flat row and
    ends before the first flat row after it.

    Returns:
        ActiveAreaObservation: (row_start, row_end - row_start), or INVALID
        when no row varies or the varying rows run to the bottom of the frame.
    """
    if buffer.height == 0 or buffer.width == 0:
        return ActiveAreaObservation.INVALID
    rows = buffer.pixels.reshape(buffer.height, buffer.width * 3)

    flat = rows.min(axis=1) == rows.max(axis=1)

    varied = np.flatnonzero(~flat)
    if varied.size == 0:
        return ActiveAreaObservation.INVALID
    row_start = int(varied[0])

    flat_after = np.flatnonzero(flat[row_start + 1:])
    if flat_after.size == 0:
        return ActiveAreaObservation.INVALID
    row_end = row_start + 1 + int(flat_after[0])

    return ActiveAreaObservation(row_start, row_end - row_start)


def suggest_range_policy(buffer):
    """Full range if any sample sits below legal black, legal range otherwise."""
    if buffer.pixels.size == 0:
        return RangePolicy.FULL
    if int(buffer.pixels.min()) < LEGAL_RANGE_BLACK:
        return RangePolicy.FULL
    return RangePolicy.LEGAL


def vote_active_area(file_paths, sample_size=DEFAULT_ACTIVE_AREA_SAMPLE_SIZE, rng=None,
                     decoder=decode):
    """
    Run the detector on a random sample of files and pick the majority band.

    Files are drawn independently, so one file may be sampled twice; each
    draw counts as a vote. A file that cannot be decoded votes INVALID.

    Args:
        file_paths: Files to sample from.
        sample_size (int): Number of draws, capped at the number of files.
        rng (np.random.Generator): Source of the draws; a fresh default
            generator when omitted.
        decoder: Callable path -> PixelBuffer.

    Returns:
        ActiveAreaConsensus: region is None when nothing was sampled or the
        winning observation is INVALID.
    """
    paths = [os.fspath(p) for p in file_paths]
    if rng is None:
        rng = np.random.default_rng()

    draws = min(sample_size, len(paths))
    tally = {}
    sampled = []
    range_suggestions = Counter()

    for _ in range(draws):
        path = paths[int(rng.integers(0, len(paths)))]
        sampled.append(path)
        try:
            buffer = decoder(path)
        except DecodeError as e:
            logger.warning("Cannot open %s for active area detection: %s", path, e)
            observation = ActiveAreaObservation.INVALID
        else:
            observation = detect_active_area(buffer)
            range_suggestions[suggest_range_policy(buffer)] += 1

        logger.debug("Active area of %s: %s", path, observation.key)
        vote = tally.get(observation.key)
        if vote is None:
            tally[observation.key] = ActiveAreaVote(observation.row_offset, observation.row_count)
        else:
            vote.count += 1

    consensus = ActiveAreaConsensus(None, len(tally) > 1, tally, sampled, range_suggestions)
    winner = consensus.winner
    if winner is not None and winner.observation.is_valid:
        consensus.region = winner.observation.to_region()

    if consensus.disagreement:
        logger.warning("Sampled frames disagree on the active area: %s",
                       ", ".join(consensus.describe()))
    return consensus
