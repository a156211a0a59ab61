"""Utility helpers for the StreamGate backend.

Submodules:
- aws: S3 presigned GET wrapper
- clock: injectable UTC clock
"""

__all__: list[str] = []
