"""
Configuration management for the SimpleCov MCP Server
"""
import logging
import os
from pathlib import Path
from typing import Mapping, Optional

logger = logging.getLogger(__name__)

RESULTSET_FILE = ".resultset.json"
LAST_RUN_FILE = ".last_run.json"
COVERAGE_DIR = "coverage"
COVERAGE_PATH_ENV = "SIMPLECOV_COVERAGE_PATH"


class CoverageConfigError(Exception):
    """The SimpleCov coverage directory could not be located"""


class ConfigurationManager:
    """Locates the SimpleCov coverage directory for a project"""

    def __init__(
        self,
        project_root: Optional[Path] = None,
        coverage_path: Optional[str] = None,
        environ: Optional[Mapping[str, str]] = None,
    ):
        self.project_root = (project_root or Path.cwd()).resolve()
        self.environ = os.environ if environ is None else environ
        self.coverage_path = coverage_path or self.environ.get(COVERAGE_PATH_ENV)
        self._coverage_dir: Optional[Path] = None

    @property
    def coverage_dir(self) -> Path:
        """Coverage directory, discovered on first access"""
        if self._coverage_dir is None:
            self._coverage_dir = self.find_coverage_dir()
        return self._coverage_dir

    def find_coverage_dir(self) -> Path:
        """Honor an explicit path, else search upward for coverage/.resultset.json"""
        if self.coverage_path:
            return self._check_explicit_path(self.coverage_path)

        for path in [self.project_root, *self.project_root.parents]:
            candidate = path / COVERAGE_DIR
            if (candidate / RESULTSET_FILE).is_file():
                logger.info("Found coverage directory at %s", candidate)
                return candidate

        raise CoverageConfigError(
            f"Coverage directory not found: searched from {self.project_root} "
            f"up to the filesystem root for {COVERAGE_DIR}/{RESULTSET_FILE}. "
            f"Set {COVERAGE_PATH_ENV} to point at it explicitly."
        )

    def _check_explicit_path(self, coverage_path: str) -> Path:
        resolved = (self.project_root / Path(coverage_path).expanduser()).resolve()
        if (resolved / RESULTSET_FILE).is_file():
            logger.info("Using coverage directory %s", resolved)
            return resolved
        raise CoverageConfigError(
            f"Coverage path {coverage_path!r} does not contain {RESULTSET_FILE} "
            f"(set via --coverage-dir or {COVERAGE_PATH_ENV})"
        )
