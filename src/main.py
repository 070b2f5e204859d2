"""
Grid flow demo: live camera activity visualized over a grid of regions.

Captures frames from a webcam (or video file), then either tracks sparse
optical-flow features or differences frames against a reference, and
shades each grid cell by how much activity falls inside it.

Usage:
    python src/main.py --config config/config.yaml

Arguments:
    --config: Path to configuration file
    --no-display: Run headless (no window, no key input)
    --max-frames: Stop after N frames
    --mode: Initial mode (none, features, difference)

Keys (with display):
    space: capture the difference reference frame
    f: feature-count mode
    d: pixel-difference mode
    q / Esc: quit
"""

import os
import sys
import argparse
import logging
from typing import Dict, Any, Tuple, Optional

import yaml

from models.config import MODES, BACKGROUNDS, FEATURE_SOURCES
from ops.logging import setup_logging
from pipeline.engine import create_engine_from_config


def _deep_merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    """Recursively merge override into base and return base."""
    for k, v in (override or {}).items():
        if isinstance(v, dict) and isinstance(base.get(k), dict):
            _deep_merge(base[k], v)
        else:
            base[k] = v
    return base


def load_config(config_path: str) -> Dict[str, Any]:
    """
    Load configuration with layering:
    - `config/default.yaml` (checked in)
    - `config/config.yaml` (local overrides)
    - plus any explicitly provided `--config` path (treated as overrides)
    """
    try:
        base_path = os.path.join(os.path.dirname(config_path), "default.yaml")
        base_cfg: Dict[str, Any] = {}
        if os.path.exists(base_path):
            with open(base_path, "r") as f:
                base_cfg = yaml.safe_load(f) or {}

        local_overrides_path = os.path.join(os.path.dirname(config_path), "config.yaml")
        local_cfg: Dict[str, Any] = {}
        if os.path.exists(local_overrides_path):
            with open(local_overrides_path, "r") as f:
                local_cfg = yaml.safe_load(f) or {}

        merged = _deep_merge(base_cfg, local_cfg)

        # Explicit path last, unless it is the local override file itself
        if os.path.exists(config_path) and os.path.abspath(config_path) != os.path.abspath(local_overrides_path):
            with open(config_path, "r") as f:
                explicit_cfg = yaml.safe_load(f) or {}
            merged = _deep_merge(merged, explicit_cfg)

        return merged
    except (OSError, yaml.YAMLError) as e:
        logging.error(f"Failed to load configuration: {e}")
        sys.exit(1)


def _is_positive_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool) and value > 0


def _is_positive_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool) and value > 0


def validate_config(config: Dict[str, Any]) -> Tuple[bool, Optional[str]]:
    """
    Validate configuration structure and values.

    Args:
        config: Configuration dictionary

    Returns:
        Tuple of (is_valid, error_message)
    """
    required_sections = ['camera', 'grid', 'log_path', 'log_level']
    for section in required_sections:
        if section not in config:
            return False, f"Missing required configuration section: {section}"

    # Camera
    camera = config.get('camera') or {}
    if 'device_id' not in camera:
        return False, "Missing camera.device_id"
    if not isinstance(camera['device_id'], (int, str)) or isinstance(camera['device_id'], bool):
        return False, "camera.device_id must be an integer (index) or string (file path)"
    if isinstance(camera['device_id'], int) and camera['device_id'] < 0:
        return False, "camera.device_id integer must be non-negative"

    if 'resolution' not in camera:
        return False, "Missing camera.resolution"
    if not isinstance(camera['resolution'], list) or len(camera['resolution']) != 2:
        return False, "camera.resolution must be a list of [width, height]"
    if not all(_is_positive_int(x) for x in camera['resolution']):
        return False, "camera.resolution values must be positive integers"
    width, height = camera['resolution']

    if 'fps' in camera and not _is_positive_int(camera['fps']):
        return False, "camera.fps must be a positive integer"

    # Grid
    grid = config.get('grid') or {}
    cell_size = grid.get('cell_size')
    if cell_size is not None:
        if not isinstance(cell_size, list) or len(cell_size) != 2:
            return False, "grid.cell_size must be a list of [width, height]"
        if not all(_is_positive_int(x) for x in cell_size):
            return False, "grid.cell_size values must be positive integers"
    else:
        divisions = grid.get('divisions', 10)
        if not _is_positive_int(divisions):
            return False, "grid.divisions must be a positive integer"
        if divisions > min(width, height):
            return False, "grid.divisions must not exceed the camera resolution"

    # Feature tracking (optional)
    features = config.get('features') or {}
    for key in ('max_corners', 'min_features'):
        if key in features and not _is_positive_int(features[key]):
            return False, f"features.{key} must be a positive integer"
    if 'quality_level' in features:
        q = features['quality_level']
        if not isinstance(q, (int, float)) or not (0 < q < 1):
            return False, "features.quality_level must be between 0 and 1"
    if 'min_distance' in features:
        md = features['min_distance']
        if not isinstance(md, (int, float)) or md < 0:
            return False, "features.min_distance must be a non-negative number"
    if 'refresh_interval' in features:
        ri = features['refresh_interval']
        if not isinstance(ri, int) or ri < 0:
            return False, "features.refresh_interval must be a non-negative integer"
    if features.get('source', 'difference') not in FEATURE_SOURCES:
        return False, f"features.source must be one of: {', '.join(FEATURE_SOURCES)}"

    # Frame differencing (optional)
    difference = config.get('difference') or {}
    if 'kernel_size' in difference:
        k = difference['kernel_size']
        if not _is_positive_int(k) or k % 2 == 0:
            return False, "difference.kernel_size must be a positive odd integer"
    for key in ('threshold', 'max_value'):
        if key in difference:
            v = difference[key]
            if not isinstance(v, int) or not (0 <= v <= 255):
                return False, f"difference.{key} must be an integer between 0 and 255"
    if difference.get('reference', 'background') not in ('background', 'previous'):
        return False, "difference.reference must be one of: background, previous"
    if difference.get('accumulate', 'sum') not in ('sum', 'count'):
        return False, "difference.accumulate must be one of: sum, count"

    # Display (optional)
    display = config.get('display') or {}
    if display.get('initial_mode', 'none') not in MODES:
        return False, f"display.initial_mode must be one of: {', '.join(MODES)}"
    if display.get('background', 'black') not in BACKGROUNDS:
        return False, f"display.background must be one of: {', '.join(BACKGROUNDS)}"
    for key in ('feature_normalization', 'difference_normalization'):
        if key in display and not _is_positive_number(display[key]):
            return False, f"display.{key} must be a positive number"

    # Logging
    valid_log_levels = ['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL']
    if config['log_level'] not in valid_log_levels:
        return False, f"log_level must be one of: {', '.join(valid_log_levels)}"

    return True, None


def main():
    """Main application function."""
    parser = argparse.ArgumentParser(description='Grid Flow - camera activity grid demo')
    parser.add_argument('--config', type=str, default='config/config.yaml',
                        help='Path to configuration file')
    parser.add_argument('--no-display', action='store_true',
                        help='Run headless (no window)')
    parser.add_argument('--max-frames', type=int, default=None,
                        help='Stop after this many frames')
    parser.add_argument('--mode', choices=MODES, default=None,
                        help='Initial aggregation mode')
    args = parser.parse_args()

    config = load_config(args.config)

    is_valid, error_msg = validate_config(config)
    if not is_valid:
        logging.error(f"Configuration validation failed: {error_msg}")
        sys.exit(1)

    setup_logging(config['log_path'], config['log_level'])
    logging.info("Starting Grid Flow")

    engine = create_engine_from_config(
        config,
        display=False if args.no_display else None,
        max_frames=args.max_frames,
        mode=args.mode,
    )
    logging.info(f"Grid: {engine.grid}, mode: {engine.mode}")
    engine.run()

    logging.info("Grid Flow stopped")


if __name__ == "__main__":
    main()
