"""
Pipeline module for the grid flow demo.

The engine orchestrates one tick per frame:
- Frame acquisition from an observation source
- Feature tracking or frame differencing
- Grid aggregation
- Overlay rendering and key handling
"""

from .engine import DemoEngine, EngineConfig, EngineStats, create_engine_from_config

__all__ = [
    "DemoEngine",
    "EngineConfig",
    "EngineStats",
    "create_engine_from_config",
]
