"""Configuration and machine-readable output."""
