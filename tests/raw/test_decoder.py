"""Tests for raw decoding (rawpy and exifread are replaced by fakes)."""

import numpy as np
import pytest

from burstfuse.raw import decoder
from burstfuse.raw.decoder import decode_raw_file, read_exposure_bias

pytestmark = pytest.mark.unit


class FakeRaw:
    """Just the rawpy.RawPy attributes the decoder reads."""

    def __init__(self, pattern=None):
        self.raw_image_visible = np.arange(16, dtype=np.uint16).reshape(4, 4)
        self.raw_pattern = np.array([[0, 1], [3, 2]]) if pattern is None else pattern
        self.black_level_per_channel = [60, 61, 62, 63]
        self.white_level = 4095
        self.camera_whitebalance = [2.0, 1.0, 1.5, 1.0]

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        return False


@pytest.fixture
def raw_file(tmp_path):
    path = tmp_path / "frame.dng"
    path.write_bytes(b"\x00" * 16)
    return path


@pytest.fixture
def fake_exif(monkeypatch):
    tags = {}
    monkeypatch.setattr(decoder.exifread, "process_file", lambda f, details=False: tags)
    return tags


class TestExposureBias:

    def test_absent_tag_is_zero(self, raw_file, fake_exif):
        assert read_exposure_bias(raw_file) == 0

    @pytest.mark.parametrize("text, expected", [("-2/3", -67), ("1", 100), ("0/1", 0), ("-1/2", -50)])
    def test_rational_values(self, raw_file, fake_exif, text, expected):
        fake_exif["EXIF ExposureBiasValue"] = text
        assert read_exposure_bias(raw_file) == expected

    def test_unreadable_value_ignored(self, raw_file, fake_exif):
        fake_exif["EXIF ExposureBiasValue"] = "n/a"
        assert read_exposure_bias(raw_file) == 0


class TestDecodeRawFile:

    def test_frame_from_raw(self, raw_file, fake_exif, monkeypatch):
        fake_exif["EXIF ExposureBiasValue"] = "-1"
        monkeypatch.setattr(decoder.rawpy, "imread", lambda path: FakeRaw())
        frame = decode_raw_file(raw_file)
        np.testing.assert_array_equal(frame["raw"].values, np.arange(16).reshape(4, 4))
        # Black levels follow the pattern layout (R G / G2 B)
        np.testing.assert_array_equal(frame["black_levels"].values, [60, 61, 63, 62])
        np.testing.assert_allclose(frame["color_factors"].values, [2.0, 1.0, 1.5])
        assert frame.attrs["white_level"] == 4095
        assert frame.attrs["exposure_bias"] == -100
        assert frame.attrs["mosaic_pattern_width"] == 2
        assert frame.attrs["source"] == str(raw_file)

    def test_unsupported_pattern(self, raw_file, fake_exif, monkeypatch):
        monkeypatch.setattr(decoder.rawpy, "imread", lambda path: FakeRaw(pattern=np.zeros((4, 4))))
        with pytest.raises(ValueError, match="unsupported colour filter pattern"):
            decode_raw_file(raw_file)
