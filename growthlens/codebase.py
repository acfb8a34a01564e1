"""
Sandboxed read-only access to the project being analysed.

``CodebaseExplorer`` is the only component that touches the filesystem of
the analysed project.  Every path it accepts is relative to the project
root and is rejected if it resolves outside that root.  Folder names in the
exclude set (dependency caches, build outputs, VCS metadata) are never
listed, matched or rendered.  Searches prune them during the walk, so
a large ``node_modules`` is never entered.
"""

from __future__ import annotations

import fnmatch
import logging
import os
import re
from pathlib import Path, PurePosixPath
from typing import Iterable, Iterator, List, Optional, Set

from .errors import CodebaseAccessError

logger = logging.getLogger(__name__)

DEFAULT_EXCLUDE_FOLDERS = (
    "node_modules",
    ".git",
    "__pycache__",
    ".venv",
    "venv",
    "dist",
    "build",
    "target",
    ".next",
    ".nuxt",
    "coverage",
    ".pytest_cache",
    ".mypy_cache",
    ".ruff_cache",
    ".tox",
    ".idea",
    ".vscode",
    "vendor",
    ".cache",
    "*.egg-info",
)


def _segment_regex(segment: str) -> str:
    out: List[str] = []
    i = 0
    while i < len(segment):
        c = segment[i]
        if c == "*":
            out.append("[^/]*")
        elif c == "?":
            out.append("[^/]")
        elif c == "[":
            end = segment.find("]", i + 2)
            if end == -1:
                out.append(re.escape(c))
            else:
                body = segment[i + 1:end].replace("\\", "\\\\")
                if body.startswith("!"):
                    body = "^/" + body[1:]
                out.append(f"[{body}]")
                i = end
        else:
            out.append(re.escape(c))
        i += 1
    return "".join(out)


def compile_glob(pattern: str) -> re.Pattern[str]:
    """Compile a ``/``-separated glob into a regex over relative posix paths.

    ``*``, ``?`` and ``[...]`` never cross a ``/``; a ``**`` segment spans
    zero or more whole directories.
    """
    segments = [s for s in pattern.split("/") if s]
    regex = ""
    for index, segment in enumerate(segments):
        last = index == len(segments) - 1
        if segment == "**":
            regex += ".*" if last else "(?:[^/]+/)*"
        else:
            regex += _segment_regex(segment) + ("" if last else "/")
    return re.compile(regex)


class CodebaseExplorer:
    """Read files, list directories and glob-search inside one project root."""

    def __init__(self, base_dir: Path | str, exclude_folders: Optional[Iterable[str]] = None) -> None:
        self.base_dir = Path(os.path.abspath(base_dir))
        excludes: Set[str] = set(DEFAULT_EXCLUDE_FOLDERS)
        for folder in exclude_folders or ():
            folder = folder.strip().replace("\\", "/").strip("/")
            if folder:
                excludes.add(folder)
        self.exclude_folders = frozenset(excludes)

    # ----------------
    # Path helpers
    # ----------------
    def resolve_safe_path(self, relative_path: str) -> Path:
        """Return the absolute path for ``relative_path`` or raise if it escapes the root."""
        cleaned = (relative_path or ".").replace("\\", "/").lstrip("/") or "."
        full = Path(os.path.normpath(self.base_dir / cleaned))
        if full != self.base_dir and self.base_dir not in full.parents:
            raise CodebaseAccessError(
                f"Access denied: Path is outside allowed directory: {relative_path}"
            )
        return full

    def _relative(self, path: Path) -> str:
        return path.relative_to(self.base_dir).as_posix()

    def should_exclude(self, rel_path: str) -> bool:
        """Return True if any component of ``rel_path`` is an excluded folder."""
        rel_norm = rel_path.replace("\\", "/")
        parts = PurePosixPath(rel_norm).parts
        for excluded in self.exclude_folders:
            if "/" in excluded:
                if excluded in rel_norm:
                    return True
                continue
            for part in parts:
                if part == excluded or fnmatch.fnmatchcase(part, excluded):
                    return True
        return False

    # ----------------
    # Operations
    # ----------------
    def read_file(self, file_path: str) -> str:
        target = self.resolve_safe_path(file_path)
        if not target.exists():
            raise CodebaseAccessError(f"File does not exist: {file_path}")
        if not target.is_file():
            raise CodebaseAccessError(f"Path is not a file: {file_path}")
        with target.open("r", encoding="utf-8") as f:
            return f.read()

    def list_directory(self, path: str = ".") -> List[str]:
        target = self.resolve_safe_path(path)
        if not target.exists():
            raise CodebaseAccessError(f"Path does not exist: {path}")
        if not target.is_dir():
            raise CodebaseAccessError(f"Path is not a directory: {path}")
        items: List[str] = []
        for entry in sorted(target.iterdir()):
            rel = self._relative(entry)
            if self.should_exclude(rel):
                continue
            items.append(rel)
        return items

    def iter_files(self) -> Iterator[str]:
        """Yield every non-excluded regular file as a relative posix path.

        Excluded directories are pruned before they are entered.
        """
        for root, dirs, filenames in os.walk(self.base_dir, topdown=True):
            rel_dir = os.path.relpath(root, self.base_dir).replace(os.sep, "/")
            prefix = "" if rel_dir == "." else f"{rel_dir}/"
            dirs[:] = [d for d in dirs if not self.should_exclude(prefix + d)]
            for filename in filenames:
                rel_path = prefix + filename
                if self.should_exclude(rel_path):
                    continue
                if os.path.isfile(os.path.join(root, filename)):
                    yield rel_path

    def search_files(self, pattern: str) -> List[str]:
        """Return regular files matching a glob pattern relative to the root.

        ``**`` matches any number of directories, including none, so
        ``**/*.py`` also finds Python files at the top level.  Wildcards
        match a leading dot, so hidden files and folders such as
        ``.github`` are searched too.
        """
        cleaned = pattern.replace("\\", "/").lstrip("/")
        while cleaned.startswith("./"):
            cleaned = cleaned[2:]
        if not cleaned:
            return []
        matcher = compile_glob(cleaned)
        matches = sorted(rel for rel in self.iter_files() if matcher.fullmatch(rel))
        logger.debug("Pattern %r matched %d files", pattern, len(matches))
        return matches

    def get_directory_tree(self, path: str = ".", max_depth: int = 3) -> str:
        """Render the tree under ``path`` down to ``max_depth`` levels."""
        target = self.resolve_safe_path(path)
        if not target.is_dir():
            raise CodebaseAccessError(f"Path is not a directory: {path}")
        lines: List[str] = [f"{target.name}/"]

        def render_dir(current: Path, depth: int) -> None:
            if depth > max_depth:
                return
            try:
                entries = sorted(current.iterdir(), key=lambda p: p.name)
            except OSError as exc:
                logger.warning("Cannot list %s: %s", current, exc)
                return
            for entry in entries:
                if self.should_exclude(self._relative(entry)):
                    continue
                indent = "  " * depth
                if entry.is_dir():
                    lines.append(f"{indent}{entry.name}/")
                    render_dir(entry, depth + 1)
                else:
                    lines.append(f"{indent}{entry.name}")

        render_dir(target, 1)
        return "\n".join(lines) + "\n"
