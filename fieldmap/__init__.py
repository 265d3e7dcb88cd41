"""Field-mapping transformations for JSON records.

Applies named transformations (text, numeric, array, date, lookup,
aggregate and AI-backed) to values, and ordered transformation steps to
records addressed with field paths such as ``results[*].votes``.
"""

from fieldmap.transformations.executor import apply_transformation
from fieldmap.transformations.pipeline import apply_pipeline

__all__ = ["apply_transformation", "apply_pipeline"]

__version__ = "0.1.0"
