"""Record-level transformation pipeline.

Applies an ordered list of steps to a record. Each step reads its
source_field, runs one transformation and writes the output to its
target_field (or back to source_field). When both paths contain ``[*]``
the step runs per element. A failing step is logged and
skipped so later steps still run; there is no rollback.
"""

import logging
import time
from typing import Any, Iterable, Optional, Union

from pydantic import ValidationError

from fieldmap.errors import TransformationError
from fieldmap.paths import (
    bind_wildcards,
    expand_wildcards,
    get_value,
    has_wildcard,
    set_value,
)

from .context import TransformContext
from .executor import TransformationExecutor, get_transformation_executor
from .schemas import PipelineDefinition, TransformationStep

logger = logging.getLogger(__name__)

StepLike = Union[TransformationStep, dict[str, Any]]


def coerce_steps(steps: Iterable[StepLike]) -> list[TransformationStep]:
    """Validate step dicts, dropping (and logging) malformed ones."""
    coerced: list[TransformationStep] = []
    for position, step in enumerate(steps):
        if isinstance(step, TransformationStep):
            coerced.append(step)
            continue
        try:
            coerced.append(TransformationStep.model_validate(step))
        except ValidationError as e:
            logger.error(f"Skipping invalid step at position {position}: {e}")
    return coerced


class TransformationPipeline:
    """Sequential, partial-failure tolerant step runner."""

    def __init__(
        self,
        executor: Optional[TransformationExecutor] = None,
        strict: bool = False,
    ):
        self.executor = executor or get_transformation_executor()
        self.strict = strict

    def apply(
        self,
        record: Any,
        steps: Iterable[StepLike],
        context: Optional[TransformContext] = None,
    ) -> Any:
        """Apply steps in order and return the transformed record.

        The input record is never mutated. In strict mode the first failing
        step raises TransformationError.
        """
        base_context = context or TransformContext()
        result = record
        step_list = coerce_steps(steps)
        start_time = time.time()
        failures = 0

        for position, step in enumerate(step_list):
            step_id = step.id or f"step_{position}"
            step_context = base_context.with_fields(result)
            failed = False

            for source_path, target_path in self._locations(result, step):
                try:
                    outcome = self.executor.execute(
                        step.type,
                        get_value(result, source_path),
                        step.config,
                        step_context,
                        strict=self.strict,
                    )
                except TransformationError as e:
                    e.step_id = step_id
                    raise

                if not outcome.success:
                    failed = True
                    logger.warning(
                        f"Step '{step_id}' ({step.type}) failed at "
                        f"{source_path or '<record>'}: {outcome.error}; "
                        f"continuing with partial result"
                    )
                    continue

                logger.debug(
                    f"Applied step '{step_id}' ({step.type}) "
                    f"{source_path or '<record>'} -> {target_path or '<record>'}"
                )
                result = set_value(result, target_path, outcome.data)

            if failed:
                failures += 1

        elapsed = int((time.time() - start_time) * 1000)
        logger.info(
            f"Pipeline applied {len(step_list)} steps in {elapsed}ms "
            f"({failures} failed)"
        )
        return result

    @staticmethod
    def _locations(record: Any, step: TransformationStep) -> list[tuple[str, str]]:
        """(source, target) path pairs one step executes over.

        When both paths contain ``[*]`` the step runs once per matched
        element and writes back to the same element. Otherwise it runs once:
        a wildcard source reads the whole list, a wildcard target broadcasts.
        """
        target = step.effective_target
        if not (has_wildcard(step.source_field) and has_wildcard(target)):
            return [(step.source_field, target)]
        return [
            (source_path, bind_wildcards(target, indices))
            for source_path, indices in expand_wildcards(record, step.source_field)
        ]

    def apply_definition(
        self,
        record: Any,
        definition: PipelineDefinition,
        context: Optional[TransformContext] = None,
    ) -> Any:
        """Apply a saved pipeline, honouring its own strict flag."""
        runner = self
        if definition.strict and not self.strict:
            runner = TransformationPipeline(executor=self.executor, strict=True)
        return runner.apply(record, definition.steps, context)


def apply_pipeline(
    record: Any,
    steps: Iterable[StepLike],
    strict: bool = False,
    context: Optional[TransformContext] = None,
) -> Any:
    """Record-level entry point used by the endpoint-serving path."""
    return TransformationPipeline(strict=strict).apply(record, steps, context)
