"""Per-call collaborators handed to transformations."""

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Optional

if TYPE_CHECKING:
    from fieldmap.aggregates.scripts import ScriptRunner
    from fieldmap.llm.ai_transform import AITransformCache
    from fieldmap.llm.backends import TextGenerator


@dataclass
class TransformContext:
    """Everything a transformation may need beyond (value, config).

    fields holds the values {{placeholders}} resolve against; the pipeline
    sets it to the record being transformed. available_fields lists the
    field paths the data source exposes and is informational only.
    """

    fields: Any = None
    index: Optional[int] = None
    available_fields: list[str] = field(default_factory=list)
    text_generator: Optional["TextGenerator"] = None
    ai_cache: Optional["AITransformCache"] = None
    script_runner: Optional["ScriptRunner"] = None

    def with_fields(self, fields: Any) -> "TransformContext":
        """Copy of this context reading placeholders from ``fields``."""
        return TransformContext(
            fields=fields,
            index=self.index,
            available_fields=self.available_fields,
            text_generator=self.text_generator,
            ai_cache=self.ai_cache,
            script_runner=self.script_runner,
        )
