"""
Data models for the SimpleCov MCP Server
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple, Union


@dataclass(frozen=True)
class Relevant:
    """A line subject to coverage, with its hit count"""

    count: int


class NotRelevant:
    """Marker for a line SimpleCov does not track (blank, comment, nocov)"""

    _instance: Optional["NotRelevant"] = None

    def __new__(cls) -> "NotRelevant":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "NOT_RELEVANT"


NOT_RELEVANT = NotRelevant()

LineEntry = Union[Relevant, NotRelevant]

BranchMap = Dict[str, Dict[str, int]]


@dataclass(frozen=True)
class FileCoverage:
    """Coverage of a single source file, merged or as reported by one suite"""

    lines: Tuple[LineEntry, ...]
    branches: Optional[BranchMap] = None


@dataclass(frozen=True)
class LastRunSummary:
    """Cached result from .last_run.json, reported verbatim"""

    line: float
    branch: Optional[float] = None

    def to_dict(self) -> Dict[str, Any]:
        result: Dict[str, Any] = {"line": self.line}
        if self.branch is not None:
            result["branch"] = self.branch
        return result


@dataclass
class FileCoverageStats:
    """Derived line/branch statistics for one file"""

    file_path: str
    line_coverage: float
    branch_coverage: Optional[float]
    total_lines: int
    covered_lines: int
    missed_lines: int
    total_branches: int
    covered_branches: int


@dataclass
class LineDetail:
    """Hits for one 1-indexed line; hits is None for not relevant lines"""

    line_number: int
    hits: Optional[int]

    def to_dict(self) -> Dict[str, Any]:
        return {"lineNumber": self.line_number, "hits": self.hits}


@dataclass
class BranchOutcome:
    label: str
    hits: int

    def to_dict(self) -> Dict[str, Any]:
        return {"label": self.label, "hits": self.hits}


@dataclass
class BranchCondition:
    condition: str
    outcomes: List[BranchOutcome] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "condition": self.condition,
            "branches": [outcome.to_dict() for outcome in self.outcomes],
        }


@dataclass
class FileCoverageDetail:
    """Full per-line and per-branch breakdown of a resolved file"""

    stats: FileCoverageStats
    lines: List[LineDetail]
    uncovered_line_numbers: List[int]
    branches: List[BranchCondition]

    @property
    def file_path(self) -> str:
        return self.stats.file_path


@dataclass
class UncoveredBranch:
    condition: str
    branch: str

    def to_dict(self) -> Dict[str, Any]:
        return {"condition": self.condition, "branch": self.branch}


@dataclass
class UncoveredReport:
    """Lines and branch outcomes of a file that no suite exercised"""

    file_path: str
    line_coverage: float
    uncovered_line_numbers: List[int]
    uncovered_branches: List[UncoveredBranch]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "filePath": self.file_path,
            "lineCoverage": f"{self.line_coverage:g}%",
            "uncoveredLineNumbers": self.uncovered_line_numbers,
            "uncoveredBranches": [b.to_dict() for b in self.uncovered_branches],
        }


@dataclass
class CoverageSummary:
    """Project-wide totals computed from the merged store"""

    total_files: int
    line_coverage: float
    branch_coverage: Optional[float]
    last_run: Optional[LastRunSummary] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "lastRun": self.last_run.to_dict() if self.last_run else None,
            "totalFiles": self.total_files,
            "computed": {
                "lineCoverage": self.line_coverage,
                "branchCoverage": self.branch_coverage,
            },
        }


SORT_KEYS = ("path", "line_coverage", "branch_coverage", "missed_lines")
SORT_ORDERS = ("asc", "desc")


@dataclass
class FileQuery:
    """Filter and sort options for list_files"""

    sort_by: str = "path"
    order: str = "asc"
    min_coverage: Optional[float] = None
    max_coverage: Optional[float] = None
    path_pattern: Optional[str] = None

    def __post_init__(self):
        if self.sort_by not in SORT_KEYS:
            raise ValueError(
                f"Invalid sort_by {self.sort_by!r}, expected one of {', '.join(SORT_KEYS)}"
            )
        if self.order not in SORT_ORDERS:
            raise ValueError(
                f"Invalid order {self.order!r}, expected one of {', '.join(SORT_ORDERS)}"
            )
