"""Upgrade steps, an instance upgrader, YAML config helpers and volume builders for OpenTelemetry Collector instances."""

__version__ = "0.1.0"
__all__ = ["collector", "models", "steps_early", "steps_late", "upgrade", "yamlconfig"]