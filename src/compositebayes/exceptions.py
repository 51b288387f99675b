"""Error types raised by the composite model."""

from __future__ import annotations

__all__ = ["ModelError", "InsufficientDataError", "InvalidConfigurationError"]


class ModelError(Exception):
    """Base class for failures of the segmentation/ensemble core."""


class InsufficientDataError(ModelError, ValueError):
    """Too few entries, or too few distinct cut points, to build the model."""


class InvalidConfigurationError(ModelError, ValueError):
    """Segments, bin counts or reconstruction inputs are inconsistent."""
