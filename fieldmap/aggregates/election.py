"""Election results aggregation for charts.

Joins a race's candidates with its per-candidate results and projects the
joined rows into parallel arrays::

    {"label": ["Mamdani", "Cuomo", ...], "percentage": [50.7, 41.8, ...]}

Accepts a single race or a list of races. Never raises: malformed input is
returned unchanged.
"""

import logging
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from fieldmap.paths import get_value
from fieldmap.transformations.functions import half_up, to_number

logger = logging.getLogger(__name__)

UNKNOWN_LABEL = "Unknown"


class ElectionChartConfig(BaseModel):
    """Options for the election-chart aggregate (camelCase in step configs)."""

    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, extra="ignore"
    )

    candidates_path: str = Field(default="candidates")
    results_path: str = Field(default="results.candidateResults")
    label_field: str = Field(default="lastName")
    value_field: str = Field(default="pctVotes")
    sort_by: str = Field(
        default="percentage", description="'percentage', 'votes' or 'none'"
    )
    sort_order: str = Field(default="desc", description="'asc' or 'desc'")
    round_percentages: bool = Field(default=False)
    include_votes: bool = Field(default=False)
    include_winner: bool = Field(default=False)
    include_raw_data: bool = Field(default=False)
    include_unmatched_candidates: bool = Field(
        default=True,
        description="Append candidates that have no result row",
    )


def candidate_key(candidate: Any) -> Any:
    if not isinstance(candidate, dict):
        return None
    for key in ("_id", "id", "apId"):
        if candidate.get(key) is not None:
            return candidate[key]
    return None


def result_candidate_key(result: Any) -> Any:
    if not isinstance(result, dict):
        return None
    for key in ("candidateId", "candidate_id"):
        if result.get(key) is not None:
            return result[key]
    return None


def aggregate_election_data(data: Any, options: Optional[dict[str, Any]] = None) -> Any:
    """Aggregate one race or a list of races into chart arrays."""
    try:
        config = ElectionChartConfig.model_validate(options or {})
        if isinstance(data, list):
            return [aggregate_single_race(race, config) for race in data]
        return aggregate_single_race(data, config)
    except Exception as e:
        logger.error(f"Election data aggregation error: {e}")
        return data


def _sort_value(row: dict[str, Any], sort_by: str) -> float:
    number = to_number(row["percentage"] if sort_by == "percentage" else row["votes"])
    return number if isinstance(number, (int, float)) and number == number else 0


def aggregate_single_race(race: Any, config: ElectionChartConfig) -> Any:
    """Join, sort and project a single race. Returns ``race`` when unusable."""
    candidates = get_value(race, config.candidates_path)
    results = get_value(race, config.results_path)

    if not isinstance(candidates, list) or not isinstance(results, list):
        logger.warning("Candidates or results not found as arrays")
        return race

    candidate_map: dict[Any, Any] = {}
    for candidate in candidates:
        key = candidate_key(candidate)
        if key is not None:
            candidate_map[key] = candidate

    rows: list[dict[str, Any]] = []
    matched: set[Any] = set()
    for result in results:
        if not isinstance(result, dict):
            continue
        key = result_candidate_key(result)
        candidate = candidate_map.get(key)
        if candidate is not None:
            matched.add(key)
        rows.append({
            "label": (
                get_value(candidate, config.label_field)
                if candidate is not None else UNKNOWN_LABEL
            ),
            "percentage": get_value(result, config.value_field) or 0,
            "votes": result.get("votes") or 0,
            "isWinner": result.get("isWinner") or False,
            "candidate": candidate,
            "result": result,
        })

    if config.include_unmatched_candidates:
        for candidate in candidates:
            key = candidate_key(candidate)
            if key is None or key in matched:
                continue
            label = get_value(candidate, config.label_field)
            rows.append({
                "label": label if label is not None else UNKNOWN_LABEL,
                "percentage": 0,
                "votes": 0,
                "isWinner": False,
                "candidate": candidate,
                "result": None,
            })

    if config.sort_by in ("percentage", "votes"):
        rows.sort(
            key=lambda row: _sort_value(row, config.sort_by),
            reverse=config.sort_order == "desc",
        )

    output: dict[str, Any] = {
        "label": [row["label"] for row in rows],
        "percentage": [
            half_up(to_number(row["percentage"])) if config.round_percentages
            else row["percentage"]
            for row in rows
        ],
    }
    if config.include_votes:
        output["votes"] = [row["votes"] for row in rows]
    if config.include_winner:
        output["isWinner"] = [row["isWinner"] for row in rows]
    if config.include_raw_data:
        output["_raw"] = rows

    return output
