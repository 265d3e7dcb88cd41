import pytest

from fieldmap.aggregates.scripts import (
    SandboxedScriptRunner,
    ScriptRunner,
    get_script_runner,
)
from fieldmap.errors import ScriptError


@pytest.fixture
def runner():
    return SandboxedScriptRunner()


def test_runner_satisfies_protocol(runner):
    assert isinstance(runner, ScriptRunner)
    assert get_script_runner() is get_script_runner()


def test_expression_returns_native_values(runner, race):
    result = runner.run(
        race,
        {
            "script": "data.results.candidateResults "
            "| map(attribute='votes') | sum"
        },
    )
    assert result == 2043570


def test_options_are_in_scope(runner):
    result = runner.run([3, 1, 2], {"script": "(data | sort)[:options.top]", "top": 2})
    assert result == [1, 2]


def test_dict_method_names_need_subscript(runner):
    assert runner.run({"items": [1, 2]}, {"script": 'data["items"] | length'}) == 2


def test_missing_script_raises(runner):
    with pytest.raises(ScriptError):
        runner.run({}, {})
    with pytest.raises(ScriptError):
        runner.run({}, {"script": "   "})


def test_syntax_error_raises(runner):
    with pytest.raises(ScriptError):
        runner.run({}, {"script": "data.("})


def test_undefined_values_are_rejected(runner):
    with pytest.raises(ScriptError):
        runner.run({"a": 1}, {"script": "data.missing"})


def test_sandbox_blocks_private_attributes(runner):
    with pytest.raises(ScriptError):
        runner.run({}, {"script": "data.__class__.__mro__"})


def test_compiled_expressions_are_reused(runner):
    options = {"script": "data * 2"}
    assert runner.run(2, options) == 4
    assert runner.run(5, options) == 10
    assert len(runner._compiled) == 1


def test_compiled_expressions_are_bounded():
    runner = SandboxedScriptRunner(max_compiled=2)

    runner.run(1, {"script": "data + 1"})
    runner.run(1, {"script": "data + 2"})
    runner.run(1, {"script": "data + 1"})  # refresh the oldest entry
    assert runner.run(1, {"script": "data + 3"}) == 4

    assert len(runner._compiled) == 2
    assert list(runner._compiled) == ["data + 1", "data + 3"]
