"""Filesystem, logging and telemetry helpers."""
