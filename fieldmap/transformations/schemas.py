"""Transformation schemas.

A TransformationStep names one operation (TransformKind) plus its config
and the field it reads from / writes to. PipelineDefinitions are named,
persisted lists of steps.
"""

from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


class ValueKind(str, Enum):
    """Type categories used to filter which transformations are offered."""

    STRING = "string"
    NUMBER = "number"
    BOOLEAN = "boolean"
    DATE = "date"
    ARRAY = "array"
    OBJECT = "object"


class TransformKind(str, Enum):
    """The closed set of transformation identifiers."""

    DIRECT = "direct"

    # Text
    UPPERCASE = "uppercase"
    LOWERCASE = "lowercase"
    CAPITALIZE = "capitalize"
    TRIM = "trim"
    SUBSTRING = "substring"
    REPLACE = "replace"
    REGEX_EXTRACT = "regex-extract"
    STRING_FORMAT = "string-format"
    SPLIT = "split"
    LENGTH = "length"
    IS_EMPTY = "is-empty"
    CONTAINS = "contains"

    # Number
    PARSE_NUMBER = "parse-number"
    ROUND = "round"
    FLOOR = "floor"
    CEIL = "ceil"
    ABS = "abs"
    MATH_OPERATION = "math-operation"
    FORMAT_NUMBER = "format-number"
    CURRENCY = "currency"
    IS_POSITIVE = "is-positive"
    IS_ZERO = "is-zero"

    # Conversion / boolean
    TO_STRING = "to-string"
    TO_NUMBER = "to-number"
    INVERT = "invert"
    YES_NO = "yes-no"
    CUSTOM_BOOLEAN = "custom-boolean"
    LOOKUP = "lookup"

    # Date
    DATE_FORMAT = "date-format"
    RELATIVE_TIME = "relative-time"
    TIMESTAMP = "timestamp"
    DAY_OF_WEEK = "day-of-week"
    MONTH = "month"
    YEAR = "year"

    # Array
    JOIN = "join"
    FIRST = "first"
    LAST = "last"
    COUNT = "count"
    SUM = "sum"
    AVERAGE = "average"
    MIN = "min"
    MAX = "max"
    FILTER = "filter"
    MAP = "map"
    SORT = "sort"
    UNIQUE = "unique"
    LIMIT = "limit"

    # Advanced
    CUSTOM_AGGREGATE = "custom-aggregate"
    AI_TRANSFORM = "ai-transform"

    @classmethod
    def parse(cls, value: Any) -> Optional["TransformKind"]:
        """Resolve a raw identifier, returning None for unknown kinds."""
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value))
        except ValueError:
            return None


class TransformDefinition(BaseModel):
    """Catalog entry describing a transformation for pickers."""

    id: str = Field(..., description="TransformKind identifier")
    name: str = Field(..., description="Human-readable name")
    description: str = Field(default="")
    icon: str = Field(default="")
    category: str = Field(default="basic")


class TransformationStep(BaseModel):
    """One operation of a pipeline: read source_field, transform, write target."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    id: str = Field(default="", description="Unique within a pipeline")
    type: str = Field(..., description="TransformKind identifier")
    config: dict[str, Any] = Field(default_factory=dict)
    source_field: str = Field(
        default="",
        alias="sourceField",
        description="Field path to read; empty means the whole record",
    )
    target_field: Optional[str] = Field(
        default=None,
        alias="targetField",
        description="Field path to write; empty means overwrite source_field",
    )

    @field_validator("config", mode="before")
    @classmethod
    def _none_config(cls, v: Any) -> Any:
        return {} if v is None else v

    @property
    def effective_target(self) -> str:
        return self.target_field or self.source_field


class PipelineDefinition(BaseModel):
    """A named, reusable list of transformation steps."""

    pipeline_key: str = Field(..., description="Unique snake_case identifier")
    pipeline_name: str = Field(..., description="Human-readable display name")
    description: str = Field(default="")
    version: int = Field(default=1)
    steps: list[TransformationStep] = Field(default_factory=list)
    strict: bool = Field(
        default=False,
        description="Raise on the first failing step instead of continuing",
    )
    tags: list[str] = Field(default_factory=list)
    status: str = Field(default="active", description="active, draft, deprecated")

    @model_validator(mode="after")
    def _unique_step_ids(self) -> "PipelineDefinition":
        seen: set[str] = set()
        for step in self.steps:
            if not step.id:
                continue
            if step.id in seen:
                raise ValueError(f"Duplicate step id '{step.id}'")
            seen.add(step.id)
        return self


class PipelineSummary(BaseModel):
    """Lightweight summary for listing endpoints."""

    pipeline_key: str
    pipeline_name: str
    description: str = ""
    step_count: int = 0
    tags: list[str] = []
    status: str = "active"


class TransformationResult(BaseModel):
    """Result of a single transformation execution."""

    success: bool
    data: Any = None
    error: Optional[str] = None
    transformation_type: str
    cached: bool = False
    execution_time_ms: int = 0
