"""Tests for coverage_analyzer.py module."""

import pytest

from coverage_analyzer import CoverageAnalyzer
from models import (
    NOT_RELEVANT,
    CoverageSummary,
    FileCoverage,
    FileCoverageStats,
    FileQuery,
    LastRunSummary,
    Relevant,
)


def coverage(*values, branches=None):
    return FileCoverage(
        tuple(NOT_RELEVANT if v is None else Relevant(v) for v in values), branches
    )


def stats(path, line_coverage, missed=0, branch_coverage=None):
    return FileCoverageStats(
        file_path=path,
        line_coverage=line_coverage,
        branch_coverage=branch_coverage,
        total_lines=10,
        covered_lines=10 - missed,
        missed_lines=missed,
        total_branches=0,
        covered_branches=0,
    )


class TestRoundPercentage:
    @pytest.mark.parametrize(
        "value, expected",
        [
            (66.666666, 66.67),
            (33.333333, 33.33),
            (12.125, 12.13),
            (100.0, 100.0),
            (0.0, 0.0),
            (-12.125, -12.13),
        ],
    )
    def test_rounds_half_away_from_zero(self, value, expected):
        assert CoverageAnalyzer.round_percentage(value) == expected


class TestFileStats:
    def test_mixed_lines(self):
        result = CoverageAnalyzer.compute_file_stats("a.rb", coverage(1, 0, None, 2))
        assert result.line_coverage == 66.67
        assert result.total_lines == 3
        assert result.covered_lines == 2
        assert result.missed_lines == 1

    def test_all_not_relevant_is_full_coverage(self):
        result = CoverageAnalyzer.compute_file_stats(
            "a.rb", coverage(None, None, None, None, None)
        )
        assert result.line_coverage == 100.0
        assert result.total_lines == 0

    def test_no_branch_data_is_absent_not_zero(self):
        result = CoverageAnalyzer.compute_file_stats("a.rb", coverage(1))
        assert result.branch_coverage is None
        assert result.total_branches == 0

    def test_branch_outcomes_counted_individually(self):
        result = CoverageAnalyzer.compute_file_stats(
            "a.rb",
            coverage(
                1,
                branches={
                    "if": {"then": 1, "else": 0},
                    "case": {"when": 0, "else": 0, "in": 3},
                },
            ),
        )
        assert result.total_branches == 5
        assert result.covered_branches == 2
        assert result.branch_coverage == 40.0

    def test_zero_branch_coverage_distinct_from_absent(self):
        result = CoverageAnalyzer.compute_file_stats(
            "a.rb", coverage(1, branches={"if": {"then": 0, "else": 0}})
        )
        assert result.branch_coverage == 0.0


class TestOverallStats:
    def test_sums_counts_instead_of_averaging(self):
        summary = CoverageAnalyzer.calculate_overall_stats(
            {"small.rb": coverage(1), "big.rb": coverage(0, 0, 0)}
        )
        assert summary.line_coverage == 25.0
        assert summary.total_files == 2

    def test_empty_store(self):
        summary = CoverageAnalyzer.calculate_overall_stats({})
        assert summary.line_coverage == 100.0
        assert summary.branch_coverage is None
        assert summary.total_files == 0


class TestBuildDetail:
    def test_lines_are_one_indexed(self):
        detail = CoverageAnalyzer.build_detail("a.rb", coverage(None, 4))
        assert [l.to_dict() for l in detail.lines] == [
            {"lineNumber": 1, "hits": None},
            {"lineNumber": 2, "hits": 4},
        ]

    def test_uncovered_lines_exclude_not_relevant(self):
        detail = CoverageAnalyzer.build_detail("a.rb", coverage(1, 0, 0, None))
        assert detail.uncovered_line_numbers == [2, 3]

    def test_branch_breakdown(self):
        detail = CoverageAnalyzer.build_detail(
            "a.rb", coverage(1, branches={"if": {"then": 2, "else": 0}})
        )
        assert [b.to_dict() for b in detail.branches] == [
            {
                "condition": "if",
                "branches": [
                    {"label": "then", "hits": 2},
                    {"label": "else", "hits": 0},
                ],
            }
        ]
        uncovered = CoverageAnalyzer.uncovered_branches(detail)
        assert [(b.condition, b.branch) for b in uncovered] == [("if", "else")]


class TestFilterAndSort:
    def test_min_and_max_bounds_are_inclusive(self):
        files = [
            stats("a.rb", 79.99),
            stats("b.rb", 80.0),
            stats("c.rb", 100.0),
            stats("d.rb", 42.0),
        ]
        result = CoverageAnalyzer.filter_and_sort(
            files, FileQuery(min_coverage=80, max_coverage=100)
        )
        assert [f.file_path for f in result] == ["b.rb", "c.rb"]

    def test_missed_lines_desc_puts_worst_first(self):
        files = [stats("a.rb", 90, missed=1), stats("b.rb", 10, missed=9), stats("c.rb", 50, missed=5)]
        result = CoverageAnalyzer.filter_and_sort(
            files, FileQuery(sort_by="missed_lines", order="desc")
        )
        assert [f.file_path for f in result] == ["b.rb", "c.rb", "a.rb"]

    def test_line_coverage_asc(self):
        files = [stats("a.rb", 90), stats("b.rb", 10)]
        result = CoverageAnalyzer.filter_and_sort(files, FileQuery(sort_by="line_coverage"))
        assert [f.file_path for f in result] == ["b.rb", "a.rb"]

    def test_absent_branch_coverage_sorts_as_zero(self):
        files = [
            stats("a.rb", 100, branch_coverage=50.0),
            stats("b.rb", 100, branch_coverage=None),
            stats("c.rb", 100, branch_coverage=10.0),
        ]
        result = CoverageAnalyzer.filter_and_sort(files, FileQuery(sort_by="branch_coverage"))
        assert [f.file_path for f in result] == ["b.rb", "c.rb", "a.rb"]

    def test_path_pattern_is_substring(self):
        files = [stats("app/models/user.rb", 1), stats("lib/user.rb", 1)]
        result = CoverageAnalyzer.filter_and_sort(files, FileQuery(path_pattern="models"))
        assert [f.file_path for f in result] == ["app/models/user.rb"]

    def test_filters_apply_before_sort(self):
        files = [stats("z.rb", 95, missed=9), stats("a.rb", 50, missed=50), stats("m.rb", 85, missed=1)]
        result = CoverageAnalyzer.filter_and_sort(
            files, FileQuery(sort_by="missed_lines", order="desc", min_coverage=80)
        )
        assert [f.file_path for f in result] == ["z.rb", "m.rb"]

    def test_invalid_query_rejected(self):
        with pytest.raises(ValueError):
            FileQuery(sort_by="size")
        with pytest.raises(ValueError):
            FileQuery(order="up")


class TestFormatting:
    def test_format_ratio(self):
        assert CoverageAnalyzer.format_ratio(66.67, 2, 3) == "66.67% (2/3)"
        assert CoverageAnalyzer.format_ratio(100.0, 0, 0) == "100% (0/0)"
        assert CoverageAnalyzer.format_ratio(None, 0, 0) is None

    def test_format_coverage_summary(self):
        summary = CoverageSummary(
            total_files=2,
            line_coverage=70.0,
            branch_coverage=None,
            last_run=LastRunSummary(line=68.5, branch=40.0),
        )
        text = CoverageAnalyzer.format_coverage_summary(summary)
        assert "Line Coverage: 70%" in text
        assert "Branch Coverage" not in text
        assert "Files: 2" in text
        assert "Last Run: 68.5% lines, 40% branches" in text
        assert "Per-File" not in text

    def test_format_coverage_summary_without_last_run(self):
        summary = CoverageSummary(total_files=1, line_coverage=12.5, branch_coverage=0.0)
        text = CoverageAnalyzer.format_coverage_summary(summary)
        assert "Line Coverage: 12.5%" in text
        assert "Branch Coverage: 0%" in text
        assert "Last Run" not in text
