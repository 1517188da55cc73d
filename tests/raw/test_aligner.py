"""Tests for the hierarchical tile aligner."""

import numpy as np
import pytest

from burstfuse.contracts import AlignmentFailure
from burstfuse.raw.aligner import TileAligner, max_displacement
from burstfuse.raw.frame import make_frame
from burstfuse.raw.pyramid import PyramidBuilder
from tests.helpers.fake_burst import crop_shifted, make_flat_burst, make_shifted_burst, make_texture

pytestmark = pytest.mark.unit


def _align(config, frames, reference_index=0):
    pyramids = PyramidBuilder(config).build_all(frames, reference_index)
    return TileAligner(config).align(frames, pyramids, reference_index)


class TestAlignmentField:

    def test_identical_frames_give_zero_offsets(self, make_config):
        config = make_config(TILE_SIZE=8)
        frames = make_shifted_burst([(0, 0)] * 3)
        field = _align(config, frames)
        assert field["offset_y"].dims == ("frame", "tile_y", "tile_x")
        assert field["offset_y"].dtype == np.int32
        assert not field["offset_y"].values.any()
        assert not field["offset_x"].values.any()

    def test_flat_burst_gives_zero_offsets(self, internal_config):
        field = _align(internal_config, make_flat_burst(3))
        assert not field["offset_y"].values.any()
        assert not field["offset_x"].values.any()

    def test_known_shift_recovered(self, make_config):
        config = make_config(TILE_SIZE=8)
        # Twice the finest search radius: only reachable through the coarse level
        frames = make_shifted_burst([(0, 0), (8, -8)])
        field = _align(config, frames)
        oy = field["offset_y"].values[1]
        ox = field["offset_x"].values[1]
        # Skip tiles whose true match, or whose coarse parent match, leaves the frame
        np.testing.assert_array_equal(oy[:-2, 2:], 8)
        np.testing.assert_array_equal(ox[:-2, 2:], -8)

    def test_non_zero_reference_index(self, make_config):
        config = make_config(TILE_SIZE=8)
        frames = make_shifted_burst([(4, 4), (0, 0)])
        field = _align(config, frames, reference_index=1)
        assert not field["offset_y"].values[1].any()
        assert not field["offset_x"].values[1].any()
        np.testing.assert_array_equal(field["offset_y"].values[0][:-2, :-2], 4)
        np.testing.assert_array_equal(field["offset_x"].values[0][:-2, :-2], 4)

    def test_bracketed_burst_shift_recovered(self, make_config):
        config = make_config(TILE_SIZE=8)
        texture = make_texture((128, 128)).astype(np.float64)
        # Reference two stops darker than the moved frame
        frames = [
            make_frame(crop_shifted(texture, (128, 128)), black_levels=0,
                       white_level=4000, exposure_bias=-200),
            make_frame(4 * crop_shifted(texture, (128, 128), 4, 4), black_levels=0,
                       white_level=4000, exposure_bias=0),
        ]
        field = _align(config, frames)
        np.testing.assert_array_equal(field["offset_y"].values[1][:-2, :-2], 4)
        np.testing.assert_array_equal(field["offset_x"].values[1][:-2, :-2], 4)

    def test_bracketed_burst_with_black_levels(self, make_config):
        config = make_config(TILE_SIZE=8)
        texture = make_texture((128, 128)).astype(np.float64)
        frames = [
            make_frame(crop_shifted(texture, (128, 128)) + 64, black_levels=64,
                       white_level=4000, exposure_bias=0),
            make_frame(crop_shifted(texture, (128, 128), 4, 4) / 2 + 32, black_levels=32,
                       white_level=4000, exposure_bias=-100),
        ]
        field = _align(config, frames)
        np.testing.assert_array_equal(field["offset_y"].values[1][:-2, :-2], 4)
        np.testing.assert_array_equal(field["offset_x"].values[1][:-2, :-2], 4)

    def test_attributes(self, make_config):
        config = make_config(TILE_SIZE=8)
        field = _align(config, make_shifted_burst([(0, 0), (0, 0)]))
        assert field.attrs["tile_size"] == 16
        assert field.attrs["reference_index"] == 0
        assert field.attrs["pyramid_levels"] == 2
        assert field.attrs["max_displacement"] == max_displacement(2, 2, 4, 2)

    def test_offsets_bounded_and_colour_preserving(self, make_config):
        config = make_config(TILE_SIZE=8)
        frames = make_shifted_burst([(0, 0), (10, 8), (-6, 2)], margin=24)
        field = _align(config, frames)
        bound = field.attrs["max_displacement"]
        for name in ("offset_y", "offset_x"):
            values = field[name].values
            assert np.abs(values).max() <= bound
            assert (values % 2 == 0).all()


class TestMaxDisplacement:

    def test_single_level(self):
        assert max_displacement(2, 1, 4, 2) == 8

    def test_three_levels(self):
        # 4 * 4 at the coarsest level, plus 2 * 2 + 2 refinement
        assert max_displacement(1, 3, 4, 2) == 22


class TestSearch:

    def _stripes(self):
        ref = np.where(np.arange(12) % 2 == 0, 10.0, 20.0)[None, :].repeat(12, axis=0)
        cmp = np.where(np.arange(12) % 2 == 0, 20.0, 10.0)[None, :].repeat(12, axis=0)
        return ref, cmp

    def test_ties_prefer_estimate_then_scan_order(self, make_config):
        aligner = TileAligner(make_config(TILE_SIZE=4))
        ref, cmp = self._stripes()
        zeros = np.zeros((3, 3), dtype=np.int64)
        oy, ox = aligner._search_level(ref, cmp, zeros, zeros, radius=1, metric="l1")
        # (0, -1) and (0, 1) both match exactly at distance 1; -1 is scanned first
        assert (oy[1, 1], ox[1, 1]) == (0, -1)

    def test_edge_tiles_clamp_candidates(self, make_config):
        aligner = TileAligner(make_config(TILE_SIZE=4))
        ref, cmp = self._stripes()
        zeros = np.zeros((3, 3), dtype=np.int64)
        oy, ox = aligner._search_level(ref, cmp, zeros, zeros, radius=1, metric="l1")
        # Leftmost tiles cannot look left of the frame
        assert (oy[1, 0], ox[1, 0]) == (0, 1)

    def test_flat_plane_keeps_estimate(self, make_config):
        aligner = TileAligner(make_config(TILE_SIZE=4))
        plane = np.full((12, 12), 5.0)
        guess = np.ones((3, 3), dtype=np.int64)
        oy, ox = aligner._search_level(plane, plane, guess, -guess, radius=2, metric="l2")
        np.testing.assert_array_equal(oy[1, 1], 1)
        np.testing.assert_array_equal(ox[1, 1], -1)
        # Clamped into the frame at the borders
        assert oy[2, 2] == 0 and ox[0, 0] == 0


class TestAlignmentFailure:

    def test_shape_mismatch(self, internal_config):
        frames = make_flat_burst(2)
        frames.append(make_frame(np.full((32, 64), 500), mosaic_pattern_width=2))
        with pytest.raises(AlignmentFailure, match="shape"):
            _align(internal_config, frames)

    def test_empty_frame(self, internal_config):
        frames = make_flat_burst(2)
        frames.append(make_frame(np.zeros((0, 0)), mosaic_pattern_width=2))
        with pytest.raises(AlignmentFailure, match="empty"):
            _align(internal_config, frames)

    def test_frame_smaller_than_mosaic_period(self, internal_config):
        frames = [make_frame(np.full((1, 64), 500), black_levels=0, white_level=1000)] * 2
        with pytest.raises(AlignmentFailure, match="mosaic period"):
            _align(internal_config, frames)

    def test_all_non_finite_frame(self, internal_config):
        frames = make_flat_burst(2)
        frames.append(make_frame(np.full((64, 64), np.nan), mosaic_pattern_width=2))
        with pytest.raises(AlignmentFailure, match="no finite sample"):
            _align(internal_config, frames)
