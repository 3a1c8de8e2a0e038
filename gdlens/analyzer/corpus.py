"""Project file discovery and reading.

The walker is the only component that touches the filesystem during a scan.
Everything downstream consumes ``SourceFile`` blobs.
"""
from dataclasses import dataclass
from pathlib import Path
from typing import FrozenSet, Iterable, List


# Godot's own caches and VCS metadata are never project code
DEFAULT_EXCLUDED_DIRS = frozenset({'.godot', '.import', '.git'})

# Vendored plugins ship their own public APIs; skipped unless requested
ADDON_DIRS = frozenset({'addons'})

SCRIPT_GLOB = '**/*.gd'
SCENE_GLOB = '**/*.tscn'
RESOURCE_GLOB = '**/*.tres'


class AnalysisError(Exception):
    """Base class for errors surfaced at the tool boundary."""


class NotFoundError(AnalysisError):
    """A requested project root or file does not exist."""

    def __init__(self, path: str | Path, what: str = "Path"):
        self.path = str(path)
        self.what = what
        super().__init__(f"{what} not found: {path}")


class ReadFailureError(AnalysisError):
    """A single requested file exists but could not be decoded or read."""

    def __init__(self, path: str | Path, cause: Exception):
        self.path = str(path)
        self.cause = cause
        super().__init__(f"Could not read {path}: {cause}")


@dataclass(frozen=True)
class SourceFile:
    """Raw text of one project file, addressed by its root-relative path."""
    relative_path: str
    raw_text: str

    @property
    def lines(self) -> List[str]:
        return self.raw_text.splitlines()


def excluded_dirs_for(include_addons: bool = False, extra: Iterable[str] = ()) -> FrozenSet[str]:
    """Build the directory exclusion set for a scan.

    Args:
        include_addons: Keep ``addons/`` in the corpus
        extra: Additional directory names to exclude

    Returns:
        Frozen set of directory names
    """
    excluded = set(DEFAULT_EXCLUDED_DIRS) | set(extra)
    if not include_addons:
        excluded |= ADDON_DIRS
    return frozenset(excluded)


class CorpusWalker:
    """Enumerate and read project files below a root directory."""

    def __init__(self, root: str | Path, excluded_dirs: Iterable[str] = DEFAULT_EXCLUDED_DIRS | ADDON_DIRS):
        """Initialize walker.

        Args:
            root: Project root directory
            excluded_dirs: Directory names whose contents are never listed

        Raises:
            NotFoundError: If ``root`` is not an existing directory
        """
        self.root = Path(root).resolve()
        if not self.root.is_dir():
            raise NotFoundError(self.root, "Project path")
        self.excluded_dirs = frozenset(excluded_dirs)
        # Relative paths that failed to read during load()
        self.skipped: List[str] = []

    def list(self, include_glob: str = SCRIPT_GLOB) -> List[str]:
        """List files matching a glob, relative to the root, sorted.

        Args:
            include_glob: Glob pattern evaluated from the root (e.g. ``**/*.gd``)

        Returns:
            Sorted POSIX-style relative paths
        """
        results = []
        for file_path in self.root.glob(include_glob):
            if not file_path.is_file():
                continue
            rel_path = file_path.relative_to(self.root)
            if any(part in self.excluded_dirs for part in rel_path.parts[:-1]):
                continue
            results.append(rel_path.as_posix())
        return sorted(results)

    def exists(self, relative_path: str) -> bool:
        """True when a root-relative file is present, excluded directories included."""
        return (self.root / relative_path).is_file()

    def read(self, relative_path: str) -> str:
        """Read one file as UTF-8 text.

        Raises:
            NotFoundError: If the file does not exist
            OSError, UnicodeDecodeError: On unreadable content
        """
        path = self.root / relative_path
        if not path.is_file():
            raise NotFoundError(relative_path, "File")
        return path.read_text(encoding='utf-8')

    def load(self, include_glob: str = SCRIPT_GLOB) -> List[SourceFile]:
        """Read every file matching ``include_glob``.

        Files that cannot be read are recorded in ``skipped`` and the scan
        continues with the next file.
        """
        files = []
        for rel_path in self.list(include_glob):
            try:
                text = self.read(rel_path)
            except (NotFoundError, OSError, UnicodeDecodeError):
                self.skipped.append(rel_path)
                continue
            files.append(SourceFile(rel_path, text))
        return files

    def load_one(self, path: str | Path) -> SourceFile:
        """Read a single file given as a root-relative or absolute path.

        Unlike load(), a missing file is an error for the caller.

        Raises:
            NotFoundError: If the file does not exist
            ReadFailureError: If the file cannot be read as UTF-8
        """
        candidate = Path(path)
        if not candidate.is_absolute():
            candidate = self.root / candidate
        if not candidate.is_file():
            raise NotFoundError(path, "File")

        try:
            rel_path = candidate.resolve().relative_to(self.root).as_posix()
        except ValueError:
            rel_path = candidate.as_posix()

        try:
            text = candidate.read_text(encoding='utf-8')
        except (OSError, UnicodeDecodeError) as e:
            raise ReadFailureError(path, e) from e

        return SourceFile(rel_path, text)
