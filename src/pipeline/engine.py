"""
Frame-stepped engine for the grid flow demo.

Each tick reads one frame, runs the vision step for the current mode,
lets the matching aggregator rewrite the grid scores, and renders the
overlay. Scores are always updated before they are drawn within a tick.

Keys:
    space   capture the current frame as the difference reference
    f       feature-count mode
    d       pixel-difference mode
    q / Esc quit
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional

import cv2
import numpy as np

from algorithms.aggregation import Aggregator, create_aggregator
from grid import Grid, create_grid_from_config
from models.config import (
    Config,
    FEATURE_SOURCE_FRAME,
    MODE_DIFFERENCE,
    MODE_FEATURES,
    MODE_NONE,
    MODES,
)
from models.frame import FrameData
from observation import ObservationSource, create_source_from_config
from presentation.overlay import OverlayRenderer, OverlayStyle
from vision.features import FeatureTracker
from vision.frame_diff import FrameDifferencer

KEY_NONE = 255
KEY_ESC = 27


@dataclass
class EngineConfig:
    """
    Loop control for the engine.

    Attributes:
        max_consecutive_failures: Missed frames before a headless run stops.
        stats_log_interval: Seconds between status log messages.
        retry_delay: Seconds to wait after a missed frame when headless.
        max_frames: Stop after this many frames (None = run until quit).
    """
    max_consecutive_failures: int = 10
    stats_log_interval: float = 60.0
    retry_delay: float = 0.5
    max_frames: Optional[int] = None


@dataclass
class EngineStats:
    """Runtime statistics for the engine."""
    frame_count: int = 0
    missed_frames: int = 0
    reference_captures: int = 0
    start_time: float = field(default_factory=time.time)
    last_stats_log_time: float = field(default_factory=time.time)
    consecutive_failures: int = 0


class DemoEngine:
    """
    Owns the grid and drives capture, aggregation and rendering.

    The grid layout is fixed at construction from the camera resolution;
    frames of any other size are resized to match before processing.

    Example:
        engine = create_engine_from_config(config_dict, display=True)
        engine.run()
    """

    def __init__(
        self,
        source: Optional[ObservationSource],
        config: Config,
        engine_config: Optional[EngineConfig] = None,
        grid: Optional[Grid] = None,
    ):
        self.source = source
        self.config = config
        self.engine_config = engine_config or EngineConfig()
        self.stats = EngineStats()

        width, height = config.camera.resolution
        self.grid = grid or create_grid_from_config(config.grid.to_dict(), width, height)

        self.tracker = FeatureTracker(config.features)
        self.differencer = FrameDifferencer(config.difference)
        self.renderer = OverlayRenderer(OverlayStyle(draw_grid_lines=config.display.draw_grid_lines))
        self._aggregators: Dict[str, Aggregator] = {
            MODE_FEATURES: create_aggregator(MODE_FEATURES),
            MODE_DIFFERENCE: create_aggregator(MODE_DIFFERENCE, config.difference.accumulate),
        }

        self._mode = MODE_NONE
        self.set_mode(config.display.initial_mode)

        self._running = False
        self._source_ready = False
        self._current: Optional[np.ndarray] = None
        self._points: Optional[np.ndarray] = None
        self._mask: Optional[np.ndarray] = None
        self._callbacks: List[Callable[[Optional[FrameData], Grid], None]] = []

    @property
    def mode(self) -> str:
        return self._mode

    @property
    def current_frame(self) -> Optional[np.ndarray]:
        return self._current

    @property
    def points(self) -> Optional[np.ndarray]:
        """Feature points from the last features-mode tick."""
        return self._points

    @property
    def mask(self) -> Optional[np.ndarray]:
        """Difference mask from the last difference-mode tick."""
        return self._mask

    def add_callback(self, callback: Callable[[Optional[FrameData], Grid], None]) -> None:
        """
        Add a callback to be called after each tick.

        Args:
            callback: Function taking (frame_data, grid); frame_data is None
                on ticks without a new frame.
        """
        self._callbacks.append(callback)

    def set_mode(self, mode: str) -> None:
        """Switch aggregation/display mode; scores from the old mode are cleared."""
        if mode not in MODES:
            raise ValueError(f"Unknown mode: {mode}")
        if mode == self._mode:
            return
        self._mode = mode
        self.grid.reset()
        if mode == MODE_FEATURES:
            self.tracker.reset()
        elif mode == MODE_DIFFERENCE:
            self.differencer.reset_previous()
        logging.info(f"Mode set to {mode}")

    def handle_key(self, key: int) -> bool:
        """
        React to a key code from cv2.waitKey.

        Returns:
            False if the key asks to quit.
        """
        if key in (KEY_NONE, -1):
            return True
        if key in (ord("q"), KEY_ESC):
            return False

        ch = chr(key)
        if ch == " ":
            if self.differencer.capture_background(self._current):
                self.stats.reference_captures += 1
        elif ch == "f":
            self.set_mode(MODE_FEATURES)
        elif ch == "d":
            self.set_mode(MODE_DIFFERENCE)
        return True

    def _fit_frame(self, frame: np.ndarray) -> np.ndarray:
        size = (self.grid.width, self.grid.height)
        if (frame.shape[1], frame.shape[0]) != size:
            frame = cv2.resize(frame, size)
        return frame

    def _feature_input(self, frame: np.ndarray) -> Optional[np.ndarray]:
        """Image the tracker runs on; None while no background is captured."""
        if self.config.features.source == FEATURE_SOURCE_FRAME:
            return frame
        return self.differencer.background_mask(frame)

    def update(self, frame_data: Optional[FrameData]) -> None:
        """
        Run the vision step and aggregation for one tick.

        With no new frame the grid keeps the previous tick's scores.
        """
        if frame_data is None:
            return

        frame = self._fit_frame(frame_data.frame)
        self._current = frame
        self.stats.frame_count += 1

        if self._mode == MODE_FEATURES:
            image = self._feature_input(frame)
            if image is not None:
                self._points = self.tracker.update(image)
                self._aggregators[MODE_FEATURES].update(self.grid, self._points)
        elif self._mode == MODE_DIFFERENCE:
            self._mask = self.differencer.update(frame)
            self._aggregators[MODE_DIFFERENCE].update(self.grid, self._mask)

        if self.stats.frame_count % 30 == 0:
            logging.debug(
                f"[GRID] frame={self.stats.frame_count} mode={self._mode} "
                f"active_cells={self.grid.active_count()} total={self.grid.total()}"
            )

    def _background(self) -> np.ndarray:
        canvas = np.zeros((self.grid.height, self.grid.width, 3), dtype=np.uint8)
        background = self.config.display.background
        if self._current is None or background == "black":
            return canvas

        if background == "camera":
            image = self._current
        else:
            image = self.differencer.background_mask(self._current)
            if image is None:
                return canvas

        if image.ndim == 2:
            return cv2.cvtColor(image, cv2.COLOR_GRAY2BGR)
        return image.copy()

    def render(self) -> np.ndarray:
        """Draw the current grid state over the configured background."""
        canvas = self._background()
        if self._mode == MODE_NONE:
            return canvas

        points = None
        if self._mode == MODE_FEATURES and self.config.display.show_points:
            points = self._points
        normalization = self.config.display.normalization_for(self._mode)
        return self.renderer.render(canvas, self.grid, normalization, points)

    def tick(self, frame_data: Optional[FrameData]) -> np.ndarray:
        """Update then render. Returns the rendered canvas."""
        self.update(frame_data)
        canvas = self.render()
        for callback in self._callbacks:
            try:
                callback(frame_data, self.grid)
            except Exception as e:
                logging.warning(f"Callback error: {e}")
        return canvas

    def _open_source(self) -> None:
        if self.source is None:
            logging.warning("No frame source configured; running without capture")
            return
        try:
            self.source.open()
            self._source_ready = True
            logging.info(f"Capture started: source={self.source.source_id}")
        except RuntimeError as e:
            logging.error(f"Failed to init capture: {e}")

    def _read(self) -> Optional[FrameData]:
        if not self._source_ready:
            return None
        return self.source.read()

    def run(self) -> None:
        """
        Run the tick loop until quit, max_frames, or (headless) too many
        consecutive missed frames.

        A missing camera is not fatal: with a display the loop keeps
        rendering the all-zero grid until the user quits.
        """
        self._running = True
        self.stats = EngineStats()
        display = self.config.display.enabled
        cfg = self.engine_config

        self._open_source()
        try:
            while self._running:
                frame_data = self._read()

                if frame_data is None:
                    self.stats.missed_frames += 1
                    self.stats.consecutive_failures += 1
                    if not display:
                        if self.stats.consecutive_failures >= cfg.max_consecutive_failures:
                            logging.error(
                                f"Too many consecutive missed frames ({self.stats.consecutive_failures}), stopping"
                            )
                            break
                        time.sleep(cfg.retry_delay)
                        continue
                else:
                    self.stats.consecutive_failures = 0

                canvas = self.tick(frame_data)

                if display and not self._handle_display(canvas):
                    break

                if cfg.max_frames is not None and self.stats.frame_count >= cfg.max_frames:
                    logging.info(f"Reached max_frames={cfg.max_frames}")
                    break

                self._handle_periodic_tasks()

        except KeyboardInterrupt:
            logging.info("Interrupted by user")
        finally:
            self._cleanup()

    def _handle_display(self, canvas: np.ndarray) -> bool:
        cv2.imshow(self.config.display.window_name, canvas)
        key = cv2.waitKey(1) & 0xFF
        return self.handle_key(key)

    def _handle_periodic_tasks(self) -> None:
        now = time.time()
        if now - self.stats.last_stats_log_time >= self.engine_config.stats_log_interval:
            elapsed = max(now - self.stats.start_time, 1e-6)
            logging.info(
                f"Engine stats: frames={self.stats.frame_count}, "
                f"missed={self.stats.missed_frames}, "
                f"fps={self.stats.frame_count / elapsed:.1f}, "
                f"mode={self._mode}, active_cells={self.grid.active_count()}, "
                f"tracker_frames={self.tracker.frame_count}"
            )
            self.stats.last_stats_log_time = now

    def _cleanup(self) -> None:
        self._running = False
        if self.source is not None:
            try:
                self.source.close()
            except Exception as e:
                logging.warning(f"Error closing source: {e}")
        if self.config.display.enabled:
            cv2.destroyAllWindows()
        logging.info("Engine stopped")


def create_engine_from_config(
    config: Dict[str, Any],
    display: Optional[bool] = None,
    max_frames: Optional[int] = None,
    mode: Optional[str] = None,
) -> DemoEngine:
    """
    Factory: build a DemoEngine and its camera source from the config dict.

    Args:
        config: Full application config dict.
        display: Override display.enabled.
        max_frames: Stop after this many frames.
        mode: Override display.initial_mode.
    """
    typed = Config.from_dict(config)
    if display is not None:
        typed.display.enabled = display
    if mode is not None:
        typed.display.initial_mode = mode

    source = create_source_from_config(config.get("camera", {}), source_id="main-camera")
    return DemoEngine(source, typed, EngineConfig(max_frames=max_frames))
