"""Source tree scanner.

Walks a directory, selects source files with gitignore-compatible patterns
(via :mod:`pathspec`), runs a feature extractor over each file, and merges the
results into one :class:`~specmatch.models.CodeFeatureSet` whose features
carry their file name.

Python files go through the AST extractor when ``use_ast`` is on, falling
back to the pattern extractor when the file does not parse.  Every other
file uses the pattern extractor.

See :class:`SourceScanner` for the main entry point.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

import pathspec

from specmatch.analysis.ast_extractor import PythonAstExtractor
from specmatch.analysis.base import FeatureExtractor
from specmatch.analysis.extractor import attach_file
from specmatch.analysis.patterns import PatternFeatureExtractor
from specmatch.exceptions import AnalysisDegraded
from specmatch.models import CodeFeatureSet, ExtractorConfig

logger = logging.getLogger(__name__)

DEFAULT_INCLUDE_PATTERNS = [
    "**/*.py",
    "**/*.ts",
    "**/*.tsx",
    "**/*.js",
    "**/*.jsx",
    "**/*.java",
    "**/*.kt",
]

# Directories that are always pruned during traversal.
_ALWAYS_SKIP = {
    "__pycache__", ".git", ".tox", ".mypy_cache", ".ruff_cache",
    "node_modules", ".venv", "venv", "dist", "build",
}


@dataclass
class ScanResult:
    """Outcome of scanning a source tree.

    Attributes:
        features: Merged features of every scanned file.
        files: Scanned files, relative to the scan root, in scan order.
        failures: One notice per file that could not be analysed.
    """

    features: CodeFeatureSet = field(default_factory=CodeFeatureSet)
    files: list[str] = field(default_factory=list)
    failures: list[AnalysisDegraded] = field(default_factory=list)


def _load_gitignore(root: Path) -> pathspec.PathSpec | None:
    """Load ``.gitignore`` from *root* if it exists, returning a PathSpec matcher."""
    gitignore = root / ".gitignore"
    if not gitignore.is_file():
        return None
    lines = gitignore.read_text(encoding="utf-8", errors="replace").splitlines()
    return pathspec.PathSpec.from_lines("gitignore", lines)


class SourceScanner:
    """Extract code features from every matching file under a directory.

    Args:
        config: Extractor settings shared by every file.
        use_ast: Use :class:`~specmatch.analysis.ast_extractor.PythonAstExtractor`
            for ``.py`` files.
    """

    def __init__(self, config: Optional[ExtractorConfig] = None, use_ast: bool = True) -> None:
        self._config = config or ExtractorConfig()
        self._patterns = PatternFeatureExtractor(self._config)
        self._ast = PythonAstExtractor() if use_ast else None

    def scan(
        self,
        source: str | Path,
        include_patterns: list[str] | None = None,
        exclude_patterns: list[str] | None = None,
    ) -> ScanResult:
        """Walk *source* and extract features from each matching file.

        *source* may also be a single file, which is scanned regardless of
        the include patterns.  Files that cannot be read or analysed are
        logged, recorded in :attr:`ScanResult.failures`, and skipped.

        Args:
            source: Root directory or a single file.
            include_patterns: Glob patterns to include.  Defaults to
                :data:`DEFAULT_INCLUDE_PATTERNS`.
            exclude_patterns: Glob patterns to exclude (e.g.
                ``["**/test_*"]``).

        Returns:
            A :class:`ScanResult` with files in sorted order.
        """
        root = Path(source)
        if root.is_file():
            return self._scan_files(root.parent, [root])
        if not root.is_dir():
            return ScanResult()

        include_spec = pathspec.PathSpec.from_lines(
            "gitignore", include_patterns or DEFAULT_INCLUDE_PATTERNS
        )
        exclude_spec = (
            pathspec.PathSpec.from_lines("gitignore", exclude_patterns)
            if exclude_patterns
            else None
        )
        gitignore_spec = _load_gitignore(root)

        files: list[Path] = []
        for dirpath, dirnames, filenames in os.walk(str(root)):
            rel_dir = os.path.relpath(dirpath, str(root))

            dirnames[:] = [
                d for d in dirnames
                if d not in _ALWAYS_SKIP
                and not (gitignore_spec and gitignore_spec.match_file(
                    (os.path.join(rel_dir, d) if rel_dir != "." else d) + "/",
                ))
            ]

            for fname in filenames:
                rel_path = os.path.join(rel_dir, fname) if rel_dir != "." else fname
                if gitignore_spec and gitignore_spec.match_file(rel_path):
                    continue
                if not include_spec.match_file(rel_path):
                    continue
                if exclude_spec and exclude_spec.match_file(rel_path):
                    continue
                files.append(Path(dirpath) / fname)

        return self._scan_files(root, sorted(files))

    def _scan_files(self, root: Path, files: list[Path]) -> ScanResult:
        result = ScanResult()
        per_file: list[CodeFeatureSet] = []

        for path in files:
            rel = path.relative_to(root).as_posix()
            try:
                text = path.read_text(encoding="utf-8", errors="replace")
            except OSError as exc:
                self._fail(result, f"Cannot read {rel}: {exc}")
                continue

            if len(text) > self._config.max_input_chars:
                self._fail(
                    result,
                    f"Skipping {rel}: {len(text)} characters exceeds the limit "
                    f"of {self._config.max_input_chars}",
                )
                continue

            features = self._extract_file(path, text, result, rel)
            if features is None:
                continue
            result.files.append(rel)
            per_file.append(attach_file(features, rel))

        result.features = CodeFeatureSet.merged(per_file)
        return result

    def _extract_file(
        self, path: Path, text: str, result: ScanResult, rel: str
    ) -> Optional[CodeFeatureSet]:
        strategies: list[FeatureExtractor] = [self._patterns]
        if self._ast is not None and path.suffix == ".py":
            strategies.insert(0, self._ast)

        for strategy in strategies:
            try:
                return strategy.extract_all(text)
            except Exception as exc:
                logger.debug("%s extractor failed on %s: %s", strategy.name, rel, exc)
        self._fail(result, f"No extractor could analyse {rel}")
        return None

    @staticmethod
    def _fail(result: ScanResult, message: str) -> None:
        notice = AnalysisDegraded(message)
        logger.warning("%s", notice)
        result.failures.append(notice)
