"""
Declarative Windows tweak engine: compile catalog tweaks into apply, undo and status-check scripts.
"""

__all__ = ["catalog", "compiler", "oracle", "orchestrator", "presets", "gateway", "cli"]
__version__ = "0.1.0"
