"""Seismic Monitor: live quake feed with per-observer risk ranking."""

__version__ = "0.1.0"
