import pytest
import numpy as np

from hdr_meta.analysis import Region
from hdr_meta.batch import BatchScheduler
from hdr_meta.frame_reader import DecodeError, PixelBuffer, decode
from hdr_meta.luminance import NumericAnomalyError, build_table

def test_file_not_found():
    """Test that DecodeError is raised for non-existent files."""
    with pytest.raises(DecodeError):
        decode("non_existent_file.tif")

def test_decode_error_is_os_error():
    with pytest.raises(OSError):
        decode("non_existent_file.tif")

def test_corrupt_file(tmp_path):
    """A file with a TIFF name but no image data cannot be decoded."""
    fpath = tmp_path / "broken.tif"
    fpath.write_bytes(b'\x00' * 100)

    with pytest.raises(DecodeError):
        decode(fpath)

def test_directory_is_not_a_frame(tmp_path):
    with pytest.raises(DecodeError):
        decode(tmp_path)

def test_sample_count_mismatch():
    """Sample count must equal width * height * 3."""
    with pytest.raises(ValueError):
        PixelBuffer.from_samples([0] * 10, width=2, height=2)

def test_wrong_channel_count():
    with pytest.raises(ValueError):
        PixelBuffer(np.zeros((4, 4), dtype=np.uint16))

def test_wrong_sample_type():
    with pytest.raises(ValueError):
        PixelBuffer(np.zeros((4, 4, 3), dtype=np.float32))

def test_zero_length_region():
    with pytest.raises(ValueError):
        Region(0, 0)

def test_bad_range_fails_before_any_file():
    """Table construction happens when the scheduler is built, before decoding."""
    calls = []

    class BadPolicy:
        black = 0
        span = 20000

    with pytest.raises(NumericAnomalyError):
        BatchScheduler(2, Region(0, 1), None, BadPolicy(), decoder=calls.append)
    assert calls == []

def test_nan_free_for_valid_ranges():
    for black, span in [(0, 65535), (4096, 56064)]:
        assert np.all(np.isfinite(build_table(black, span).values))
