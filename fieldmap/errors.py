"""Exception types raised by fieldmap.

The default execution mode never lets these escape: transformations log
the failure and fall back to the unchanged value. Strict mode re-raises.
"""

from typing import Optional


class FieldmapError(Exception):
    """Base class for fieldmap errors."""


class TransformationError(FieldmapError):
    """A transformation step failed."""

    def __init__(
        self,
        message: str,
        transformation_type: Optional[str] = None,
        step_id: Optional[str] = None,
    ):
        super().__init__(message)
        self.transformation_type = transformation_type
        self.step_id = step_id


class ScriptError(FieldmapError):
    """A custom aggregate script could not be compiled or evaluated."""
