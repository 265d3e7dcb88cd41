"""Aggregate transformations: election chart joins and custom scripts."""

from fieldmap.aggregates.election import ElectionChartConfig, aggregate_election_data
from fieldmap.aggregates.scripts import SandboxedScriptRunner, ScriptRunner

__all__ = [
    "ElectionChartConfig",
    "aggregate_election_data",
    "SandboxedScriptRunner",
    "ScriptRunner",
]
