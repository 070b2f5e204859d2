"""
Pytest configuration and shared fixtures.
"""

import os
import sys

import pytest

# Add src to path for imports
sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "src"))

from grid import Grid  # noqa: E402


@pytest.fixture
def grid():
    """The demo's default layout: 640x480 canvas, 10x10 cells of 64x48."""
    return Grid.from_divisions(640, 480, 10)


@pytest.fixture
def temp_config_dir(tmp_path):
    """Create a temporary config directory with default.yaml."""
    config_dir = tmp_path / "config"
    config_dir.mkdir()
    
    default_yaml = config_dir / "default.yaml"
    default_yaml.write_text("""
camera:
  device_id: 0
  resolution: [640, 480]
  fps: 30

grid:
  divisions: 10

difference:
  threshold: 150
  reference: "background"

display:
  enabled: true
  initial_mode: "none"

log_path: "logs/test.log"
log_level: "INFO"
""")
    
    return config_dir


@pytest.fixture
def valid_config():
    """Return a valid configuration dictionary."""
    return {
        "camera": {
            "device_id": 0,
            "resolution": [640, 480],
            "fps": 30,
        },
        "grid": {
            "divisions": 10,
        },
        "features": {
            "max_corners": 300,
            "quality_level": 0.005,
            "min_distance": 3,
        },
        "difference": {
            "kernel_size": 5,
            "threshold": 150,
            "reference": "background",
            "accumulate": "sum",
        },
        "display": {
            "enabled": False,
            "initial_mode": "none",
            "feature_normalization": 10,
            "difference_normalization": 1005555,
        },
        "log_path": "logs/test.log",
        "log_level": "INFO",
    }
