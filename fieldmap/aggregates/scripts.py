"""Script runners for the custom-script aggregate type.

A script is a Jinja2 expression evaluated in a sandboxed environment with
``data`` (the value being transformed) and ``options`` (the step config) in
scope. The expression's native value is the result, e.g.::

    {"raceName": data.name,
     "candidateCount": data.candidates | length,
     "totalVotes": data.results.totalVotes}

Dict keys that collide with dict methods (``items``, ``keys``, ``values``)
must be read with subscript syntax: ``data["items"]``.
"""

import logging
from collections import OrderedDict
from typing import Any, Optional, Protocol, runtime_checkable

from jinja2 import StrictUndefined, TemplateError, Undefined
from jinja2.sandbox import SandboxedEnvironment

from fieldmap.errors import ScriptError

logger = logging.getLogger(__name__)


@runtime_checkable
class ScriptRunner(Protocol):
    """Evaluates caller-supplied aggregate logic.

    Implementations raise ScriptError on any failure; the caller decides
    whether that becomes a no-op.
    """

    def run(self, data: Any, options: dict[str, Any]) -> Any: ...


class SandboxedScriptRunner:
    """Evaluates the ``script`` option as a sandboxed Jinja2 expression."""

    def __init__(self, max_compiled: int = 256):
        self.env = SandboxedEnvironment(
            undefined=StrictUndefined,
            autoescape=False,
        )
        self.max_compiled = max_compiled
        # Least recently used first
        self._compiled: OrderedDict[str, Any] = OrderedDict()

    def run(self, data: Any, options: dict[str, Any]) -> Any:
        script = options.get("script")
        if not script or not str(script).strip():
            raise ScriptError("custom-script requires a non-empty 'script' option")

        source = str(script).strip()
        try:
            expression = self._compile(source)
            result = expression(data=data, options=options)
        except TemplateError as e:
            raise ScriptError(f"Script evaluation failed: {e}") from e
        except Exception as e:
            raise ScriptError(f"Script raised {type(e).__name__}: {e}") from e

        _reject_undefined(result)
        return result

    def _compile(self, source: str) -> Any:
        expression = self._compiled.get(source)
        if expression is not None:
            self._compiled.move_to_end(source)
            return expression

        expression = self.env.compile_expression(source, undefined_to_none=False)
        self._compiled[source] = expression
        while len(self._compiled) > self.max_compiled:
            self._compiled.popitem(last=False)
        logger.debug(f"Compiled custom script ({len(source)} chars)")
        return expression


def _reject_undefined(value: Any) -> None:
    if isinstance(value, Undefined):
        raise ScriptError("Script produced an undefined value")
    if isinstance(value, dict):
        for item in value.values():
            _reject_undefined(item)
    elif isinstance(value, (list, tuple)):
        for item in value:
            _reject_undefined(item)


_default_runner: Optional[SandboxedScriptRunner] = None


def get_script_runner() -> SandboxedScriptRunner:
    """Get the shared sandboxed script runner."""
    global _default_runner
    if _default_runner is None:
        _default_runner = SandboxedScriptRunner()
    return _default_runner
