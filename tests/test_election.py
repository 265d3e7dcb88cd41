from fieldmap.aggregates.election import ElectionChartConfig, aggregate_election_data


def test_default_options_produce_parallel_arrays(race):
    result = aggregate_election_data(race, {})

    assert result["label"] == ["Mamdani", "Cuomo", "Sliwa", "Adams"]
    assert result["percentage"] == [
        50.6980920643775,
        41.838547248198,
        7.15106406925136,
        0.312296618173099,
    ]
    assert set(result) == {"label", "percentage"}


def test_expected_chart_output_with_rounding(race):
    result = aggregate_election_data(
        race,
        {
            "candidatesPath": "candidates",
            "resultsPath": "results.candidateResults",
            "labelField": "lastName",
            "valueField": "pctVotes",
            "sortBy": "percentage",
            "sortOrder": "desc",
            "roundPercentages": True,
        },
    )
    assert result == {
        "label": ["Mamdani", "Cuomo", "Sliwa", "Adams"],
        "percentage": [51, 42, 7, 0],
    }


def test_include_votes_and_winner(race):
    result = aggregate_election_data(
        race, {"includeVotes": True, "includeWinner": True}
    )
    assert result["votes"] == [1036051, 855000, 146137, 6382]
    assert result["isWinner"] == [True, False, False, False]


def test_sort_by_votes_ascending(race):
    result = aggregate_election_data(race, {"sortBy": "votes", "sortOrder": "asc"})
    assert result["label"] == ["Adams", "Sliwa", "Cuomo", "Mamdani"]


def test_sort_none_keeps_result_order(race):
    race["results"]["candidateResults"].reverse()
    result = aggregate_election_data(race, {"sortBy": "none"})
    assert result["label"] == ["Adams", "Sliwa", "Cuomo", "Mamdani"]


def test_custom_label_field(race):
    result = aggregate_election_data(race, {"labelField": "firstName"})
    assert result["label"] == ["Zohran", "Andrew", "Curtis", "Eric"]


def test_raw_rows_on_request(race):
    result = aggregate_election_data(race, {"includeRawData": True})
    first_row = result["_raw"][0]
    assert first_row["candidate"]["lastName"] == "Mamdani"
    assert first_row["result"]["votes"] == 1036051


def test_array_of_races(race):
    other = dict(race, name="NYC Comptroller")
    result = aggregate_election_data([race, other], {"roundPercentages": True})

    assert isinstance(result, list)
    assert len(result) == 2
    assert result[1]["percentage"] == [51, 42, 7, 0]


def test_missing_arrays_return_input_unchanged():
    race = {"name": "Empty race", "candidates": "not a list"}
    assert aggregate_election_data(race, {}) == race


def test_null_candidates_and_results_return_input_unchanged():
    race = {"name": "Test", "candidates": None, "results": None}
    assert aggregate_election_data(race, {}) == race


def test_zero_ids_still_join():
    race = {
        "candidates": [
            {"_id": 0, "lastName": "Zero"},
            {"_id": 1, "lastName": "One"},
        ],
        "results": {
            "candidateResults": [
                {"candidateId": 0, "pctVotes": 60},
                {"candidateId": 1, "pctVotes": 40},
            ]
        },
    }
    result = aggregate_election_data(race, {})
    assert result["label"] == ["Zero", "One"]
    assert "Unknown" not in result["label"]


def test_unmatched_result_labelled_unknown(race):
    race["results"]["candidateResults"].append(
        {"candidateId": "write-in", "votes": 10, "pctVotes": 0.001}
    )
    result = aggregate_election_data(race, {})
    assert result["label"][-1] == "Unknown"


def test_unmatched_candidates_appended_unless_disabled(race):
    race["results"]["candidateResults"].pop()  # drop Adams' result

    included = aggregate_election_data(race, {})
    assert included["label"] == ["Mamdani", "Cuomo", "Sliwa", "Adams"]
    assert included["percentage"][-1] == 0

    excluded = aggregate_election_data(race, {"includeUnmatchedCandidates": False})
    assert excluded["label"] == ["Mamdani", "Cuomo", "Sliwa"]


def test_candidate_id_fallbacks():
    race = {
        "candidates": [{"apId": 1823, "lastName": "Mamdani"}],
        "results": {"candidateResults": [{"candidate_id": 1823, "pctVotes": 100}]},
    }
    assert aggregate_election_data(race, {})["label"] == ["Mamdani"]


def test_invalid_config_returns_input(race):
    assert aggregate_election_data(race, {"includeVotes": {"not": "a bool"}}) == race


def test_config_accepts_snake_case():
    config = ElectionChartConfig.model_validate({"round_percentages": True})
    assert config.round_percentages is True
