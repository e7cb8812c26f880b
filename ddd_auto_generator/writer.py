"""
Artifact Writer.

Writes rendered artifacts under ``<output>/<service module>/`` and then
aggregates one ``__init__.py`` per directory re-exporting the public names of
its modules. Writes are idempotent by path: an existing file is left alone
unless ``force`` is set, and even then it is only rewritten when its content
differs.
"""

import ast
import logging
import threading
from collections import defaultdict
from pathlib import Path
from typing import Callable, Dict, Iterable, Iterator, List, Optional, Tuple

from ddd_auto_generator.ast_codegen.base import create_assign, create_list_of_strings, create_module
from ddd_auto_generator.codegen_utils import render_module
from ddd_auto_generator.constants import DefaultConfig, FileExtensions, OutputLayout
from ddd_auto_generator.domain.imports import ImportSet
from ddd_auto_generator.domain.models import GeneratedArtifact, GenerationReport
from ddd_auto_generator.exceptions import ArtifactWriteError


logger = logging.getLogger(__name__)


def format_license_header(text: Optional[str]) -> str:
    """Comment block prepended to generated Python files; empty when there is no header."""
    if not text:
        return ""
    lines = [line if line.startswith("#") else f"# {line}".rstrip() for line in text.strip().splitlines()]
    return "\n".join(lines) + "\n\n"


class TreeWalker:
    """
    Visits the package directories of a generated tree.

    Directories are visited children first, in sorted order, so the index of
    a package is built after the indexes of its sub-packages.
    """

    def __init__(self, root: Path, excluded_dirs: Iterable[str] = OutputLayout.INDEX_EXCLUDED_DIRS):
        self.root = Path(root)
        self.excluded_dirs = frozenset(excluded_dirs)

    def subdirectories(self, directory: Path) -> List[Path]:
        return sorted(
            child for child in directory.iterdir()
            if child.is_dir() and child.name not in self.excluded_dirs and not child.name.startswith(".")
        )

    def modules(self, directory: Path) -> List[Path]:
        """Python modules of a directory, without its index file."""
        return sorted(
            child for child in directory.iterdir()
            if child.is_file() and child.suffix == FileExtensions.PYTHON and child.name != OutputLayout.INDEX_FILE
        )

    def directories(self) -> Iterator[Path]:
        if not self.root.is_dir():
            return
        yield from self._walk(self.root)

    def _walk(self, directory: Path) -> Iterator[Path]:
        for child in self.subdirectories(directory):
            yield from self._walk(child)
        yield directory

    def walk(self, visitor: Callable[[Path], None]) -> None:
        for directory in self.directories():
            visitor(directory)


def public_names(source: str) -> List[str]:
    """Top-level classes, functions and assignments of a module that do not start with ``_``."""
    names = []
    for node in ast.parse(source).body:
        if isinstance(node, (ast.ClassDef, ast.FunctionDef, ast.AsyncFunctionDef)):
            names.append(node.name)
        elif isinstance(node, ast.Assign):
            names.extend(target.id for target in node.targets if isinstance(target, ast.Name))
        elif isinstance(node, ast.AnnAssign) and isinstance(node.target, ast.Name):
            names.append(node.target.id)
    return sorted(name for name in set(names) if not name.startswith("_"))


def build_index_module(exports: Dict[str, List[str]]) -> ast.Module:
    """``from .<module> import <names>`` per module plus a sorted ``__all__``."""
    imports = ImportSet()
    exported = []
    for module_name in sorted(exports):
        if exports[module_name]:
            imports.add(f".{module_name}", *exports[module_name])
            exported.extend(exports[module_name])
    body = []
    if exported:
        body.append(create_assign("__all__", create_list_of_strings(sorted(set(exported)))))
    return create_module(body, imports)


class ArtifactWriter:
    """Writes artifacts and index files, recording every outcome in a report."""

    def __init__(
        self,
        output_dir: str,
        service_module: str,
        force: bool = False,
        dry_run: bool = False,
        license_header: Optional[str] = None,
        excluded: Iterable[str] = (),
        report: Optional[GenerationReport] = None,
        format_code: bool = DefaultConfig.FORMAT_CODE,
        line_length: int = DefaultConfig.LINE_LENGTH,
    ):
        self.output_dir = Path(output_dir)
        self.root = self.output_dir / service_module
        self.force = force
        self.dry_run = dry_run
        self.header = format_license_header(license_header)
        self.excluded = set(excluded)
        self.report = report if report is not None else GenerationReport()
        self.format_code = format_code
        self.line_length = line_length
        self._directory_locks: Dict[Path, threading.Lock] = defaultdict(threading.Lock)
        self._registry_lock = threading.Lock()

    def _lock_for(self, directory: Path) -> threading.Lock:
        with self._registry_lock:
            return self._directory_locks[directory]

    def target(self, parts: Tuple[str, ...]) -> Path:
        return self.root.joinpath(*parts)

    def _relative(self, path: Path) -> str:
        return path.relative_to(self.output_dir).as_posix()

    def with_header(self, path: Path, content: str) -> str:
        if self.header and path.suffix == FileExtensions.PYTHON and content.strip():
            return self.header + content
        return content

    def write_file(self, path: Path, content: str) -> bool:
        """
        Write ``content`` to ``path`` under the idempotence rules.

        Returns True when the file was (or, in a dry run, would be) written.
        """
        relative = self._relative(path)
        content = self.with_header(path, content)

        if path.exists():
            if not self.force:
                logger.debug(f"Keeping existing file: {relative}")
                self.report.unchanged.append(relative)
                return False
            if path.read_text(encoding="utf-8") == content:
                logger.debug(f"File unchanged: {relative}")
                self.report.unchanged.append(relative)
                return False

        self.report.written.append(relative)
        if self.dry_run:
            logger.info(f"[dry-run] Would write: {relative}")
            return True

        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            with open(path, "w", encoding="utf-8") as f:
                f.write(content)
        except OSError as e:
            raise ArtifactWriteError(f"Could not write artifact: {e}", path=str(path)) from e
        logger.debug(f"Wrote: {relative}")
        return True

    def write(self, artifact: GeneratedArtifact, excluded: Iterable[str] = ()) -> bool:
        """Write one artifact unless its file name is excluded service-wide or by ``excluded``."""
        path = self.target(artifact.parts)
        if artifact.file_name in self.excluded or artifact.file_name in excluded:
            logger.info(f"Skipping excluded artifact: {self._relative(path)}")
            self.report.excluded.append(self._relative(path))
            return False
        return self.write_file(path, artifact.code)

    def write_all(self, artifacts: Iterable[GeneratedArtifact], excluded: Iterable[str] = ()) -> int:
        excluded = set(excluded)
        return sum(1 for artifact in artifacts if self.write(artifact, excluded))

    # --- Index aggregation ------------------------------------------------------

    def index_code(self, directory: Path, walker: TreeWalker) -> str:
        exports = {}
        for module in walker.modules(directory):
            exports[module.stem] = public_names(module.read_text(encoding="utf-8"))
        return render_module(
            build_index_module(exports), self.format_code, self.line_length,
            label=self._relative(directory / OutputLayout.INDEX_FILE),
        )

    def write_index(self, directory: Path, walker: TreeWalker) -> bool:
        with self._lock_for(directory):
            return self.write_file(directory / OutputLayout.INDEX_FILE, self.index_code(directory, walker))

    def write_index_files(self) -> int:
        """Aggregate one ``__init__.py`` per directory of the written tree."""
        if self.dry_run:
            logger.info("[dry-run] Skipping index aggregation")
            return 0
        walker = TreeWalker(self.root)
        written = 0
        for directory in walker.directories():
            if self.write_index(directory, walker):
                written += 1
        logger.debug(f"Aggregated {written} index files under {self.root}")
        return written
