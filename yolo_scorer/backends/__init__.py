"""
Optional inference engines for yolo_scorer.

Kept apart from the core so pre/post-processing can be used without
installing an inference runtime.
"""

from __future__ import annotations

__all__ = []
