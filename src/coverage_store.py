"""
Loading, merging and querying of SimpleCov result sets
"""

import json
import logging
from itertools import zip_longest
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Tuple

from config import LAST_RUN_FILE, RESULTSET_FILE
from coverage_analyzer import CoverageAnalyzer
from models import (
    NOT_RELEVANT,
    BranchMap,
    CoverageSummary,
    FileCoverage,
    FileCoverageDetail,
    FileCoverageStats,
    FileQuery,
    LastRunSummary,
    LineEntry,
    Relevant,
    UncoveredReport,
)

logger = logging.getLogger(__name__)

SuiteCoverage = Dict[str, FileCoverage]


class CoverageLoadError(Exception):
    """The primary result set is missing, unreadable or malformed"""


def _parse_count(value: Any, where: str) -> int:
    # bool is an int subclass but never a hit count
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        raise CoverageLoadError(f"{where}: expected a non-negative integer, got {value!r}")
    return value


def _parse_line(value: Any, where: str) -> LineEntry:
    if value is None:
        return NOT_RELEVANT
    return Relevant(_parse_count(value, where))


def _parse_branches(raw: Any, where: str) -> Optional[BranchMap]:
    if raw is None:
        return None
    if not isinstance(raw, dict):
        raise CoverageLoadError(f"{where}: 'branches' must be an object")

    branches: BranchMap = {}
    for condition, outcomes in raw.items():
        if not isinstance(outcomes, dict):
            raise CoverageLoadError(
                f"{where}: branch condition {condition!r} must be an object"
            )
        branches[condition] = {
            label: _parse_count(hits, f"{where} branch {condition!r}/{label!r}")
            for label, hits in outcomes.items()
        }
    return branches


def parse_file_coverage(raw: Any, where: str) -> FileCoverage:
    """Parse one file entry of a suite's coverage map"""
    # Result sets written before SimpleCov 0.18 store the line array directly
    if isinstance(raw, list):
        raw = {"lines": raw}
    if not isinstance(raw, dict):
        raise CoverageLoadError(f"{where}: file coverage must be an object")

    lines = raw.get("lines")
    if not isinstance(lines, list):
        raise CoverageLoadError(f"{where}: 'lines' must be an array")

    return FileCoverage(
        lines=tuple(
            _parse_line(value, f"{where} line {index}")
            for index, value in enumerate(lines, start=1)
        ),
        branches=_parse_branches(raw.get("branches"), where),
    )


def parse_resultset(raw: Any) -> List[Tuple[str, SuiteCoverage]]:
    """Structurally parse a decoded .resultset.json into (suite, files) pairs"""
    if not isinstance(raw, dict):
        raise CoverageLoadError("Result set must be an object keyed by suite name")

    suites: List[Tuple[str, SuiteCoverage]] = []
    for suite_name, suite in raw.items():
        if not isinstance(suite, dict) or not isinstance(suite.get("coverage"), dict):
            raise CoverageLoadError(
                f"Suite {suite_name!r} has no 'coverage' object"
            )
        files = {
            file_path: parse_file_coverage(entry, f"{suite_name}: {file_path}")
            for file_path, entry in suite["coverage"].items()
        }
        suites.append((suite_name, files))
    return suites


def parse_last_run(raw: Any) -> LastRunSummary:
    """Parse a decoded .last_run.json"""
    result = raw.get("result") if isinstance(raw, dict) else None
    if (
        not isinstance(result, dict)
        or not _is_percentage(result.get("line"))
        or not (result.get("branch") is None or _is_percentage(result["branch"]))
    ):
        raise ValueError("expected {'result': {'line': ..., 'branch'?: ...}}")
    return LastRunSummary(line=result["line"], branch=result.get("branch"))


def _is_percentage(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def merge_file_coverage(existing: FileCoverage, incoming: FileCoverage) -> FileCoverage:
    """Combine two suites' coverage of the same file.

    Hit counts are summed line by line. A line one suite marks as not
    relevant takes the other suite's count. Branch data is not merged: the
    existing record's branches are kept and the incoming ones dropped, which
    matches how SimpleCov itself reports branches across suites. Incoming
    branches are only adopted when the existing record has none at all.
    """
    lines = []
    for a, b in zip_longest(existing.lines, incoming.lines, fillvalue=NOT_RELEVANT):
        if isinstance(a, Relevant) and isinstance(b, Relevant):
            lines.append(Relevant(a.count + b.count))
        elif isinstance(a, Relevant):
            lines.append(a)
        else:
            lines.append(b)
    branches = existing.branches if existing.branches is not None else incoming.branches
    return FileCoverage(lines=tuple(lines), branches=branches)


def merge_suites(suites: List[Tuple[str, SuiteCoverage]]) -> Dict[str, FileCoverage]:
    """Merge every suite's files into one map keyed by file path"""
    merged: Dict[str, FileCoverage] = {}
    for suite_name, files in suites:
        logger.debug("Merging suite %s (%d files)", suite_name, len(files))
        for file_path, coverage in files.items():
            existing = merged.get(file_path)
            if existing is None:
                merged[file_path] = coverage
            else:
                merged[file_path] = merge_file_coverage(existing, coverage)
    return merged


def _read_json(path: Path) -> Any:
    with open(path, "r", encoding="utf-8") as f:
        return json.load(f)


class CoverageStore:
    """Immutable snapshot of merged coverage, answering summary and file queries"""

    def __init__(
        self,
        files: Mapping[str, FileCoverage],
        last_run: Optional[LastRunSummary] = None,
    ):
        self._files: Dict[str, FileCoverage] = dict(files)
        self.last_run = last_run

    @classmethod
    def from_resultset(
        cls, raw: Any, last_run: Optional[LastRunSummary] = None
    ) -> "CoverageStore":
        suites = parse_resultset(raw)
        merged = merge_suites(suites)
        logger.info(
            "Merged %d suite(s) into coverage for %d file(s)", len(suites), len(merged)
        )
        return cls(merged, last_run)

    @classmethod
    def from_directory(cls, coverage_dir: Path) -> "CoverageStore":
        """Load .resultset.json (required) and .last_run.json (optional)"""
        coverage_dir = Path(coverage_dir)
        resultset_path = coverage_dir / RESULTSET_FILE
        try:
            raw = _read_json(resultset_path)
        except (OSError, ValueError) as e:
            raise CoverageLoadError(f"Cannot read {resultset_path}: {e}") from e

        try:
            store = cls.from_resultset(raw, cls._load_last_run(coverage_dir))
        except CoverageLoadError as e:
            raise CoverageLoadError(f"Malformed {resultset_path}: {e}") from e

        logger.info("Loaded coverage data from %s", resultset_path)
        return store

    @staticmethod
    def _load_last_run(coverage_dir: Path) -> Optional[LastRunSummary]:
        last_run_path = coverage_dir / LAST_RUN_FILE
        if not last_run_path.exists():
            logger.info("No %s found, last run summary unavailable", LAST_RUN_FILE)
            return None
        try:
            return parse_last_run(_read_json(last_run_path))
        except (OSError, ValueError) as e:
            logger.warning("Ignoring unreadable %s: %s", last_run_path, e)
            return None

    def __len__(self) -> int:
        return len(self._files)

    def __contains__(self, file_path: object) -> bool:
        return file_path in self._files

    def resolve(self, file_path: str) -> Optional[Tuple[str, FileCoverage]]:
        """Find a file by exact path, falling back to a raw suffix match.

        The suffix match does not respect path segments ("ab/file.rb" also
        ends with "b/file.rb"), and when several paths share the suffix the
        first one in store order wins.
        """
        coverage = self._files.get(file_path)
        if coverage is not None:
            return file_path, coverage

        for key, coverage in self._files.items():
            if key.endswith(file_path):
                logger.debug("Resolved %s to %s by suffix", file_path, key)
                return key, coverage
        return None

    def get_summary(self) -> CoverageSummary:
        summary = CoverageAnalyzer.calculate_overall_stats(self._files)
        summary.last_run = self.last_run
        return summary

    def file_stats(self) -> List[FileCoverageStats]:
        return [
            CoverageAnalyzer.compute_file_stats(path, coverage)
            for path, coverage in self._files.items()
        ]

    def list_files(self, query: Optional[FileQuery] = None) -> List[FileCoverageStats]:
        return CoverageAnalyzer.filter_and_sort(self.file_stats(), query or FileQuery())

    def get_file_coverage(self, file_path: str) -> Optional[FileCoverageDetail]:
        resolved = self.resolve(file_path)
        if resolved is None:
            return None
        return CoverageAnalyzer.build_detail(*resolved)

    def get_uncovered_lines(self, file_path: str) -> Optional[UncoveredReport]:
        detail = self.get_file_coverage(file_path)
        if detail is None:
            return None
        return UncoveredReport(
            file_path=detail.file_path,
            line_coverage=detail.stats.line_coverage,
            uncovered_line_numbers=detail.uncovered_line_numbers,
            uncovered_branches=CoverageAnalyzer.uncovered_branches(detail),
        )
