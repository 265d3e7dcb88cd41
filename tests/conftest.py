"""Shared fixtures: a real NYC mayoral race record and a fake text generator."""

import copy

import pytest

NYC_MAYOR_RACE = {
    "_id": "brgfBrRgJ7cjR7tEb",
    "raceId": "ND_393",
    "name": "NYC Mayor",
    "candidates": [
        {
            "_id": "8sYuwgGc4QZzASXuq",
            "apId": 1823,
            "firstName": "Zohran",
            "lastName": "Mamdani",
            "parties": [{"name": "Democrat", "abbr": "D"}],
            "isIncumbent": False,
        },
        {
            "_id": "FtNNMb6za77chSTjY",
            "apId": 5,
            "firstName": "Andrew",
            "lastName": "Cuomo",
            "parties": [{"name": "Independent", "abbr": "IN"}],
            "isIncumbent": False,
        },
        {
            "_id": "BQ6rkGwuAGt3bgP3C",
            "apId": 1825,
            "firstName": "Curtis",
            "lastName": "Sliwa",
            "parties": [{"name": "Republican", "abbr": "R"}],
            "isIncumbent": False,
        },
        {
            "_id": "gHhkGKvneGcSDbMhA",
            "apId": 1824,
            "firstName": "Eric",
            "lastName": "Adams",
            "parties": [{"name": "Independent", "abbr": "IN"}],
            "isIncumbent": True,
        },
    ],
    "results": {
        "candidateResults": [
            {
                "candidateId": "8sYuwgGc4QZzASXuq",
                "votes": 1036051,
                "isWinner": True,
                "pctVotes": 50.6980920643775,
            },
            {
                "candidateId": "FtNNMb6za77chSTjY",
                "votes": 855000,
                "isWinner": False,
                "pctVotes": 41.838547248198,
            },
            {
                "candidateId": "BQ6rkGwuAGt3bgP3C",
                "votes": 146137,
                "isWinner": False,
                "pctVotes": 7.15106406925136,
            },
            {
                "candidateId": "gHhkGKvneGcSDbMhA",
                "votes": 6382,
                "isWinner": False,
                "pctVotes": 0.312296618173099,
            },
        ],
        "totalVotes": 2043570,
    },
}


@pytest.fixture
def race():
    return copy.deepcopy(NYC_MAYOR_RACE)


class FakeTextGenerator:
    """Records prompts and answers with canned replies."""

    def __init__(self, replies=None, error=None):
        self.replies = list(replies or ["ok"])
        self.error = error
        self.calls = []

    def generate(self, prompt, system_prompt, output_format="text"):
        self.calls.append(
            {
                "prompt": prompt,
                "system_prompt": system_prompt,
                "output_format": output_format,
            }
        )
        if self.error is not None:
            raise self.error
        if len(self.replies) > 1:
            return self.replies.pop(0)
        return self.replies[0]


@pytest.fixture
def fake_generator():
    return FakeTextGenerator()
