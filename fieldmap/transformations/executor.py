"""Transformation executor: applies one named transformation to one value.

Dispatches a TransformKind to its function. Two entry points:

- execute(): returns a TransformationResult with success/error detail
- run(): returns only the transformed value (the original on any failure)

Unknown kinds and failing transformations never raise unless strict mode
is requested; they are logged and the value passes through unchanged.
"""

import logging
import time
from typing import Any, Callable, Optional

from fieldmap.aggregates.election import aggregate_election_data
from fieldmap.aggregates.scripts import ScriptRunner, get_script_runner
from fieldmap.errors import TransformationError
from fieldmap.llm.ai_transform import AITransformAdapter, AITransformCache
from fieldmap.llm.backends import TextGenerator

from . import functions as fn
from .context import TransformContext
from .schemas import TransformationResult, TransformKind

logger = logging.getLogger(__name__)

TransformFunction = Callable[[Any, dict, TransformContext], Any]

_FUNCTIONS: dict[TransformKind, TransformFunction] = {
    TransformKind.DIRECT: fn.direct,
    TransformKind.UPPERCASE: fn.uppercase,
    TransformKind.LOWERCASE: fn.lowercase,
    TransformKind.CAPITALIZE: fn.capitalize,
    TransformKind.TRIM: fn.trim,
    TransformKind.SUBSTRING: fn.substring,
    TransformKind.REPLACE: fn.replace,
    TransformKind.REGEX_EXTRACT: fn.regex_extract,
    TransformKind.STRING_FORMAT: fn.string_format,
    TransformKind.SPLIT: fn.split,
    TransformKind.LENGTH: fn.length,
    TransformKind.IS_EMPTY: fn.is_empty,
    TransformKind.CONTAINS: fn.contains,
    TransformKind.PARSE_NUMBER: fn.parse_number,
    TransformKind.ROUND: fn.round_number,
    TransformKind.FLOOR: fn.floor,
    TransformKind.CEIL: fn.ceil,
    TransformKind.ABS: fn.absolute,
    TransformKind.MATH_OPERATION: fn.math_operation,
    TransformKind.FORMAT_NUMBER: fn.format_number,
    TransformKind.CURRENCY: fn.currency,
    TransformKind.IS_POSITIVE: fn.is_positive,
    TransformKind.IS_ZERO: fn.is_zero,
    TransformKind.TO_STRING: fn.to_string,
    TransformKind.TO_NUMBER: fn.to_number_flag,
    TransformKind.INVERT: fn.invert,
    TransformKind.YES_NO: fn.yes_no,
    TransformKind.CUSTOM_BOOLEAN: fn.custom_boolean,
    TransformKind.LOOKUP: fn.lookup,
    TransformKind.DATE_FORMAT: fn.date_format,
    TransformKind.RELATIVE_TIME: fn.relative_time,
    TransformKind.TIMESTAMP: fn.timestamp,
    TransformKind.DAY_OF_WEEK: fn.day_of_week,
    TransformKind.MONTH: fn.month,
    TransformKind.YEAR: fn.year,
    TransformKind.JOIN: fn.join,
    TransformKind.FIRST: fn.first,
    TransformKind.LAST: fn.last,
    TransformKind.COUNT: fn.count,
    TransformKind.SUM: fn.total,
    TransformKind.AVERAGE: fn.average,
    TransformKind.MIN: fn.minimum,
    TransformKind.MAX: fn.maximum,
    TransformKind.FILTER: fn.filter_items,
    TransformKind.MAP: fn.map_items,
    TransformKind.SORT: fn.sort_items,
    TransformKind.UNIQUE: fn.unique,
    TransformKind.LIMIT: fn.limit,
}


class TransformationExecutor:
    """Executes transformations against values.

    Holds the default collaborators (script runner, text generator, AI
    result cache); a TransformContext passed per call overrides them.
    """

    def __init__(
        self,
        script_runner: Optional[ScriptRunner] = None,
        text_generator: Optional[TextGenerator] = None,
        ai_cache: Optional[AITransformCache] = None,
    ):
        self.script_runner = script_runner
        self.text_generator = text_generator
        self.ai_cache = ai_cache if ai_cache is not None else AITransformCache()
        self._functions: dict[TransformKind, TransformFunction] = dict(_FUNCTIONS)
        self._functions[TransformKind.CUSTOM_AGGREGATE] = self._custom_aggregate
        self._functions[TransformKind.AI_TRANSFORM] = self._ai_transform

    def supported_kinds(self) -> list[str]:
        return sorted(kind.value for kind in self._functions)

    def execute(
        self,
        transformation_type: Any,
        value: Any,
        config: Optional[dict[str, Any]] = None,
        context: Optional[TransformContext] = None,
        strict: bool = False,
    ) -> TransformationResult:
        """Execute a transformation on a value.

        Args:
            transformation_type: TransformKind or its string identifier
            value: The value to transform
            config: Transformation options
            context: Placeholder fields, row index and collaborators
            strict: Raise TransformationError instead of passing through

        Returns:
            TransformationResult; on failure ``data`` is the original value
        """
        start_time = time.time()
        type_name = (
            transformation_type.value
            if isinstance(transformation_type, TransformKind)
            else str(transformation_type)
        )
        config = config or {}
        context = context or TransformContext()

        kind = TransformKind.parse(transformation_type)
        function = self._functions.get(kind) if kind is not None else None
        if function is None:
            error = f"Unknown transformation type: {type_name}"
            logger.warning(error)
            if strict:
                raise TransformationError(error, transformation_type=type_name)
            return TransformationResult(
                success=False,
                data=value,
                error=error,
                transformation_type=type_name,
            )

        try:
            result_data = function(value, config, context)
        except Exception as e:
            elapsed = int((time.time() - start_time) * 1000)
            logger.error(f"Transformation execution failed ({type_name}): {e}")
            if strict:
                raise TransformationError(
                    f"{type_name} failed: {e}", transformation_type=type_name
                ) from e
            return TransformationResult(
                success=False,
                data=value,
                error=str(e),
                transformation_type=type_name,
                execution_time_ms=elapsed,
            )

        elapsed = int((time.time() - start_time) * 1000)
        return TransformationResult(
            success=True,
            data=result_data,
            transformation_type=type_name,
            execution_time_ms=elapsed,
        )

    def run(
        self,
        transformation_type: Any,
        value: Any,
        config: Optional[dict[str, Any]] = None,
        context: Optional[TransformContext] = None,
    ) -> Any:
        """Transform a value, returning the original on any failure."""
        return self.execute(transformation_type, value, config, context).data

    # ── Advanced kinds ────────────────────────────────────

    def _custom_aggregate(
        self, value: Any, config: dict, context: TransformContext
    ) -> Any:
        aggregate_type = config.get("aggregateType")
        if not aggregate_type:
            logger.error("Custom aggregate requires aggregateType option")
            return value

        if aggregate_type == "election-chart":
            return aggregate_election_data(value, config)

        if aggregate_type == "custom-script":
            runner = (
                context.script_runner
                or self.script_runner
                or get_script_runner()
            )
            # ScriptError propagates so the step is reported as failed
            return runner.run(value, config)

        logger.warning(f"Unknown aggregate type: {aggregate_type}")
        return value

    def _ai_transform(
        self, value: Any, config: dict, context: TransformContext
    ) -> Any:
        # Explicit None checks: an empty cache is falsy
        adapter = AITransformAdapter(
            generator=(
                context.text_generator
                if context.text_generator is not None
                else self.text_generator
            ),
            cache=context.ai_cache if context.ai_cache is not None else self.ai_cache,
        )
        return adapter.transform(value, config)


# Global executor instance
_executor: Optional[TransformationExecutor] = None


def get_transformation_executor() -> TransformationExecutor:
    """Get the global transformation executor instance."""
    global _executor
    if _executor is None:
        _executor = TransformationExecutor()
    return _executor


def apply_transformation(
    value: Any,
    transformation_type: Any,
    config: Optional[dict[str, Any]] = None,
    context: Optional[TransformContext] = None,
    strict: bool = False,
) -> Any:
    """Single-value entry point used by previews and tests."""
    executor = get_transformation_executor()
    return executor.execute(
        transformation_type, value, config, context, strict=strict
    ).data
