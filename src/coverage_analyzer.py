"""
Coverage statistics derivation for the SimpleCov MCP Server
"""

import math
from typing import Iterable, List, Mapping, Optional, Tuple

from models import (
    BranchCondition,
    BranchOutcome,
    CoverageSummary,
    FileCoverage,
    FileCoverageDetail,
    FileCoverageStats,
    FileQuery,
    LineDetail,
    Relevant,
    UncoveredBranch,
)


class CoverageAnalyzer:
    """Derives line and branch statistics from merged coverage"""

    @staticmethod
    def round_percentage(value: float) -> float:
        """Round to 2 decimals, halves away from zero"""
        scaled = value * 100
        rounded = math.floor(abs(scaled) + 0.5)
        return math.copysign(rounded, scaled) / 100

    @staticmethod
    def percentage(
        covered: int, total: int, empty: Optional[float]
    ) -> Optional[float]:
        """covered/total as a rounded percentage, or `empty` when total is 0"""
        if total <= 0:
            return empty
        return CoverageAnalyzer.round_percentage(covered / total * 100)

    @staticmethod
    def count_lines(coverage: FileCoverage) -> Tuple[int, int, int]:
        """Return (relevant, covered, missed) line counts"""
        relevant = covered = missed = 0
        for entry in coverage.lines:
            if not isinstance(entry, Relevant):
                continue
            relevant += 1
            if entry.count > 0:
                covered += 1
            else:
                missed += 1
        return relevant, covered, missed

    @staticmethod
    def count_branches(coverage: FileCoverage) -> Tuple[int, int]:
        """Return (total, covered) branch outcome counts"""
        total = covered = 0
        if not coverage.branches:
            return total, covered
        for outcomes in coverage.branches.values():
            for hits in outcomes.values():
                total += 1
                if hits > 0:
                    covered += 1
        return total, covered

    @staticmethod
    def compute_file_stats(
        file_path: str, coverage: FileCoverage
    ) -> FileCoverageStats:
        relevant, covered, missed = CoverageAnalyzer.count_lines(coverage)
        total_branches, covered_branches = CoverageAnalyzer.count_branches(coverage)
        return FileCoverageStats(
            file_path=file_path,
            line_coverage=CoverageAnalyzer.percentage(covered, relevant, 100.0),
            branch_coverage=CoverageAnalyzer.percentage(
                covered_branches, total_branches, None
            ),
            total_lines=relevant,
            covered_lines=covered,
            missed_lines=missed,
            total_branches=total_branches,
            covered_branches=covered_branches,
        )

    @staticmethod
    def calculate_overall_stats(
        files: Mapping[str, FileCoverage],
    ) -> CoverageSummary:
        """Totals over every file, computed from summed counts"""
        relevant = covered = 0
        total_branches = covered_branches = 0

        for coverage in files.values():
            file_relevant, file_covered, _ = CoverageAnalyzer.count_lines(coverage)
            relevant += file_relevant
            covered += file_covered
            file_total, file_covered_branches = CoverageAnalyzer.count_branches(
                coverage
            )
            total_branches += file_total
            covered_branches += file_covered_branches

        return CoverageSummary(
            total_files=len(files),
            line_coverage=CoverageAnalyzer.percentage(covered, relevant, 100.0),
            branch_coverage=CoverageAnalyzer.percentage(
                covered_branches, total_branches, None
            ),
        )

    @staticmethod
    def build_detail(file_path: str, coverage: FileCoverage) -> FileCoverageDetail:
        """Expand a file's coverage into line and branch listings"""
        lines = [
            LineDetail(
                line_number=index,
                hits=entry.count if isinstance(entry, Relevant) else None,
            )
            for index, entry in enumerate(coverage.lines, start=1)
        ]

        branches: List[BranchCondition] = []
        for condition, outcomes in (coverage.branches or {}).items():
            branches.append(
                BranchCondition(
                    condition=condition,
                    outcomes=[
                        BranchOutcome(label=label, hits=hits)
                        for label, hits in outcomes.items()
                    ],
                )
            )

        return FileCoverageDetail(
            stats=CoverageAnalyzer.compute_file_stats(file_path, coverage),
            lines=lines,
            uncovered_line_numbers=[
                line.line_number for line in lines if line.hits == 0
            ],
            branches=branches,
        )

    @staticmethod
    def uncovered_branches(detail: FileCoverageDetail) -> List[UncoveredBranch]:
        return [
            UncoveredBranch(condition=condition.condition, branch=outcome.label)
            for condition in detail.branches
            for outcome in condition.outcomes
            if outcome.hits == 0
        ]

    @staticmethod
    def filter_and_sort(
        stats: Iterable[FileCoverageStats], query: FileQuery
    ) -> List[FileCoverageStats]:
        """Apply list_files filters, then sort"""
        files = list(stats)

        if query.path_pattern:
            files = [f for f in files if query.path_pattern in f.file_path]
        if query.min_coverage is not None:
            files = [f for f in files if f.line_coverage >= query.min_coverage]
        if query.max_coverage is not None:
            files = [f for f in files if f.line_coverage <= query.max_coverage]

        sort_keys = {
            "path": lambda f: f.file_path,
            "line_coverage": lambda f: f.line_coverage,
            "branch_coverage": lambda f: f.branch_coverage or 0.0,
            "missed_lines": lambda f: f.missed_lines,
        }
        if query.sort_by not in sort_keys:
            raise ValueError(f"Unknown sort key: {query.sort_by}")

        return sorted(
            files, key=sort_keys[query.sort_by], reverse=query.order == "desc"
        )

    @staticmethod
    def format_ratio(pct: Optional[float], covered: int, total: int) -> Optional[str]:
        """Render '66.67% (2/3)', or None when pct is absent"""
        if pct is None:
            return None
        return f"{pct:g}% ({covered}/{total})"

    @staticmethod
    def format_coverage_summary(summary: CoverageSummary) -> str:
        """Format project totals into a readable summary"""
        text = "📊 SimpleCov Coverage Summary\n" + "=" * 50 + "\n\n"
        text += f"📈 Line Coverage: {summary.line_coverage:g}%\n"
        if summary.branch_coverage is not None:
            text += f"🔀 Branch Coverage: {summary.branch_coverage:g}%\n"
        text += f"📁 Files: {summary.total_files}\n"

        if summary.last_run is not None:
            text += f"🕘 Last Run: {summary.last_run.line:g}% lines"
            if summary.last_run.branch is not None:
                text += f", {summary.last_run.branch:g}% branches"
            text += "\n"

        return text
