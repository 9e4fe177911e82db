"""Telemetry: operational (system) logging."""
