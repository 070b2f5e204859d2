"""
Tests for the demo engine.
"""

import numpy as np
import pytest

from grid import Grid
from models.config import Config, MODE_DIFFERENCE, MODE_FEATURES, MODE_NONE
from models.frame import FrameData
from observation.base import ObservationSource, ObservationConfig
from pipeline.engine import DemoEngine, EngineConfig, create_engine_from_config


class MockObservationSource(ObservationSource):
    """Mock source that replays frames, optionally failing to open."""
    
    def __init__(self, frames: list = None, fail_open: bool = False):
        super().__init__(ObservationConfig(source_id="mock"))
        self._frames = frames or []
        self._fail_open = fail_open
        self._pos = 0
        self.closed = False
    
    def open(self) -> None:
        if self._fail_open:
            raise RuntimeError("camera unavailable")
        self._is_open = True
    
    def read(self) -> FrameData | None:
        if not self._is_open or self._pos >= len(self._frames):
            return None
        frame = self._frames[self._pos]
        self._pos += 1
        self._frame_index += 1
        return FrameData.from_numpy(frame, frame_index=self._frame_index, source=self.source_id)
    
    def close(self) -> None:
        self._is_open = False
        self.closed = True


def _config(features=None, difference=None, **display):
    cfg = Config.from_dict({
        "features": features or {},
        "difference": difference or {},
        "display": {"enabled": False, **display},
    })
    return cfg


def _engine(frames=None, fail_open=False, max_frames=None, features=None, difference=None, **display):
    source = MockObservationSource(frames, fail_open=fail_open)
    engine_config = EngineConfig(max_consecutive_failures=3, retry_delay=0, max_frames=max_frames)
    return DemoEngine(source, _config(features, difference, **display), engine_config)


def _frame(value=0):
    return np.full((480, 640, 3), value, dtype=np.uint8)


def _frame_with_block(x, y, w, h):
    frame = _frame()
    frame[y:y + h, x:x + w] = 255
    return frame


def _checkerboard():
    frame = _frame()
    ys, xs = np.mgrid[0:480, 0:640]
    frame[((xs // 32 + ys // 32) % 2) == 1] = 255
    return frame


class TestModes:
    def test_initial_mode_none(self):
        engine = _engine()
        assert engine.mode == MODE_NONE

    def test_initial_mode_from_config(self):
        engine = _engine(initial_mode="features")
        assert engine.mode == MODE_FEATURES

    def test_keys_switch_mode(self):
        engine = _engine()
        assert engine.handle_key(ord("f")) is True
        assert engine.mode == MODE_FEATURES
        assert engine.handle_key(ord("d")) is True
        assert engine.mode == MODE_DIFFERENCE

    def test_quit_keys(self):
        engine = _engine()
        assert engine.handle_key(ord("q")) is False
        assert engine.handle_key(27) is False

    def test_no_key_and_unknown_keys(self):
        engine = _engine()
        assert engine.handle_key(255) is True
        assert engine.handle_key(ord("x")) is True
        assert engine.mode == MODE_NONE

    def test_mode_switch_clears_scores(self):
        engine = _engine()
        engine.grid.set_score(0, 9)
        engine.set_mode(MODE_DIFFERENCE)
        assert engine.grid.total() == 0

    def test_unknown_mode_raises(self):
        with pytest.raises(ValueError):
            _engine().set_mode("heatmap")


class TestDifferenceMode:
    def test_space_captures_reference(self):
        engine = _engine()
        engine.tick(FrameData.from_numpy(_frame()))
        
        engine.handle_key(ord(" "))
        
        assert engine.differencer.has_reference
        assert engine.stats.reference_captures == 1

    def test_space_without_frame_is_ignored(self):
        engine = _engine()
        engine.handle_key(ord(" "))
        assert not engine.differencer.has_reference
        assert engine.stats.reference_captures == 0

    def test_no_reference_keeps_zero_scores(self):
        engine = _engine(initial_mode="difference")
        engine.tick(FrameData.from_numpy(_frame_with_block(0, 0, 64, 48)))
        assert engine.mask is None
        assert engine.grid.total() == 0

    def test_changed_block_scores_its_cell(self):
        engine = _engine(initial_mode="difference")
        engine.tick(FrameData.from_numpy(_frame()))
        engine.handle_key(ord(" "))
        
        engine.tick(FrameData.from_numpy(_frame_with_block(64 * 3 + 10, 48 * 2 + 10, 40, 25)))
        
        target = engine.grid.index_of(3, 2)
        assert engine.grid.score(target) > 0
        assert engine.grid.active_count() == 1
        assert engine.grid.total() == int(engine.mask.sum(dtype=np.int64))

    def test_render_draws_active_cell(self):
        engine = _engine(initial_mode="difference", difference_normalization=1000)
        engine.tick(FrameData.from_numpy(_frame()))
        engine.handle_key(ord(" "))
        
        canvas = engine.tick(FrameData.from_numpy(_frame_with_block(10, 10, 40, 25)))
        
        assert canvas.shape == (480, 640, 3)
        assert tuple(canvas[5, 5]) == (0, 255, 0)
        assert tuple(canvas[200, 300]) == (0, 0, 0)

    def test_previous_reference_reseeded_after_mode_switch(self):
        engine = _engine(initial_mode="difference", difference={"reference": "previous"})
        engine.tick(FrameData.from_numpy(_frame(0)))
        engine.tick(FrameData.from_numpy(_frame(0)))
        assert engine.grid.total() == 0
        
        engine.set_mode(MODE_FEATURES)
        engine.tick(FrameData.from_numpy(_frame(200)))
        engine.set_mode(MODE_DIFFERENCE)
        engine.tick(FrameData.from_numpy(_frame(200)))
        
        assert engine.mask is None
        assert engine.grid.total() == 0
        
        engine.tick(FrameData.from_numpy(_frame(200)))
        assert engine.mask is not None
        assert engine.grid.total() == 0


class TestFeaturesMode:
    def test_points_aggregated_on_raw_frame(self):
        engine = _engine(initial_mode="features", features={"source": "frame"})
        
        engine.tick(FrameData.from_numpy(_checkerboard()))
        
        assert engine.points is not None and len(engine.points) > 0
        assert engine.grid.total() == len(engine.points)

    def test_no_background_keeps_zero_scores(self):
        engine = _engine(initial_mode="features")
        engine.tick(FrameData.from_numpy(_checkerboard()))
        assert engine.points is None
        assert engine.grid.total() == 0

    def test_static_scene_scores_zero(self):
        engine = _engine(initial_mode="features")
        engine.tick(FrameData.from_numpy(_checkerboard()))
        engine.handle_key(ord(" "))
        
        for _ in range(5):
            engine.tick(FrameData.from_numpy(_checkerboard()))
        
        assert len(engine.points) == 0
        assert engine.grid.total() == 0
        assert engine.grid.active_count() == 0

    def test_changed_region_produces_features(self):
        engine = _engine(initial_mode="features")
        engine.tick(FrameData.from_numpy(_frame()))
        engine.handle_key(ord(" "))
        
        engine.tick(FrameData.from_numpy(_frame_with_block(64 * 3 + 10, 48 * 2 + 10, 40, 25)))
        
        assert len(engine.points) > 0
        assert engine.grid.total() == len(engine.points)
        assert engine.grid.active_count() == 1
        assert engine.grid.score(engine.grid.index_of(3, 2)) == len(engine.points)

    def test_show_points_draws_dots(self):
        engine = _engine(initial_mode="features", show_points=True)
        engine._points = np.array([[320.0, 240.0]], dtype=np.float32)
        canvas = engine.render()
        assert canvas[240, 320].sum() > 0


class TestStaleState:
    def test_tick_without_frame_keeps_scores(self):
        engine = _engine(initial_mode="difference")
        engine.grid.set_score(4, 7)
        engine.tick(None)
        assert engine.grid.score(4) == 7
        assert engine.stats.frame_count == 0

    def test_camera_unavailable_is_not_fatal(self):
        engine = _engine(fail_open=True, initial_mode="features")
        engine.run()
        assert engine.stats.frame_count == 0
        assert engine.stats.missed_frames == 3
        assert engine.grid.total() == 0

    def test_frames_resized_to_grid(self):
        engine = _engine(initial_mode="difference")
        engine.tick(FrameData.from_numpy(np.zeros((240, 320, 3), dtype=np.uint8)))
        assert engine.current_frame.shape[:2] == (480, 640)


class TestRun:
    def test_runs_until_source_exhausted(self):
        frames = [_frame() for _ in range(4)]
        engine = _engine(frames=frames, initial_mode="difference")
        seen = []
        engine.add_callback(lambda fd, grid: seen.append(fd.frame_index))
        
        engine.run()
        
        assert seen == [1, 2, 3, 4]
        assert engine.stats.frame_count == 4
        assert engine.source.closed

    def test_max_frames(self):
        frames = [_frame() for _ in range(10)]
        engine = _engine(frames=frames, max_frames=2)
        engine.run()
        assert engine.stats.frame_count == 2

    def test_callback_errors_do_not_stop_run(self):
        engine = _engine(frames=[_frame(), _frame()])
        
        def boom(fd, grid):
            raise RuntimeError("callback failed")
        
        engine.add_callback(boom)
        engine.run()
        assert engine.stats.frame_count == 2

    def test_custom_grid(self):
        grid = Grid.from_divisions(640, 480, 4)
        engine = DemoEngine(None, _config(), EngineConfig(retry_delay=0, max_consecutive_failures=1), grid=grid)
        assert engine.grid is grid
        engine.run()
        assert engine.stats.missed_frames == 1


class TestCreateEngineFromConfig:
    def test_overrides(self, valid_config):
        engine = create_engine_from_config(valid_config, display=False, max_frames=5, mode="difference")
        assert engine.mode == MODE_DIFFERENCE
        assert engine.config.display.enabled is False
        assert engine.engine_config.max_frames == 5
        assert len(engine.grid) == 100
        assert engine.source.source_id == "main-camera"

    def test_cell_size_grid(self, valid_config):
        valid_config["grid"] = {"cell_size": [320, 240]}
        engine = create_engine_from_config(valid_config)
        assert engine.grid.shape == (2, 2)
