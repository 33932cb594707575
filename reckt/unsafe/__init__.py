"""Unsafe regions: where a raise starts and where it is stopped."""
