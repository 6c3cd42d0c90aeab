"""Shared fixtures for SimpleCov MCP server tests."""

import json
from pathlib import Path

import pytest

from coverage_store import CoverageStore


SAMPLE_RESULTSET = {
    "RSpec": {
        "coverage": {
            "/app/models/user.rb": {
                "lines": [1, 0, None, 2],
                "branches": {
                    "[:if, 0, 2, 4, 2, 20]": {
                        "[:then, 1, 2, 4, 2, 10]": 2,
                        "[:else, 2, 2, 4, 2, 20]": 0,
                    }
                },
            },
            "/app/models/post.rb": {"lines": [1, 1, 1, 1, 0]},
        },
        "timestamp": 1700000000,
    },
    "Minitest": {
        "coverage": {
            "/app/models/user.rb": {
                "lines": [0, 3, None, 0],
                "branches": {
                    "[:if, 0, 2, 4, 2, 20]": {
                        "[:then, 1, 2, 4, 2, 10]": 0,
                        "[:else, 2, 2, 4, 2, 20]": 5,
                    }
                },
            },
            "/app/helpers/format.rb": {"lines": [None, 0, 0, None]},
        },
        "timestamp": 1700000001,
    },
}


@pytest.fixture
def resultset() -> dict:
    return json.loads(json.dumps(SAMPLE_RESULTSET))


@pytest.fixture
def write_coverage_dir(tmp_path: Path):
    """Write a coverage directory with the given result set and last run."""

    def _write(resultset, last_run=None, directory: Path = tmp_path / "coverage") -> Path:
        directory.mkdir(parents=True, exist_ok=True)
        (directory / ".resultset.json").write_text(json.dumps(resultset), encoding="utf-8")
        if last_run is not None:
            (directory / ".last_run.json").write_text(json.dumps(last_run), encoding="utf-8")
        return directory

    return _write


@pytest.fixture
def store(resultset) -> CoverageStore:
    return CoverageStore.from_resultset(resultset)
