"""Godot project manifest reader.

``project.godot`` is an INI-like file. gdlens needs two things from it: the
``[autoload]`` singleton registry and every ``res://`` path it mentions (those
files are referenced by the engine, not by scripts).
"""
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Set

from .corpus import NotFoundError, ReadFailureError
from .patterns import AUTOLOAD_ENTRY, INI_SECTION, RES_PATH


MANIFEST_NAME = 'project.godot'
RES_SCHEME = 'res://'


@dataclass(frozen=True)
class AutoloadEntry:
    """One registered singleton."""
    name: str
    res_path: str  # res://autoload/audio.gd
    source_file: str  # autoload/audio.gd, relative to the project root
    enabled: bool = True


def to_res_path(relative_path: str) -> str:
    """``scripts/player.gd`` -> ``res://scripts/player.gd``."""
    return RES_SCHEME + relative_path.lstrip('/')


def from_res_path(res_path: str) -> str:
    """``res://scripts/player.gd`` -> ``scripts/player.gd``; other text is returned unchanged."""
    if res_path.startswith(RES_SCHEME):
        return res_path[len(RES_SCHEME):]
    return res_path


class ProjectManifest:
    """Parse ``project.godot`` below a project root."""

    def __init__(self, project_root: Path):
        """Initialize manifest reader.

        Args:
            project_root: Root directory of the project
        """
        self.project_root = Path(project_root)
        self.manifest_path = self.project_root / MANIFEST_NAME

    def exists(self) -> bool:
        return self.manifest_path.is_file()

    def read_text(self) -> str:
        """Raw manifest text.

        Raises:
            NotFoundError: If the project has no ``project.godot``
            ReadFailureError: If the manifest cannot be read as UTF-8
        """
        if not self.exists():
            raise NotFoundError(MANIFEST_NAME, "Project manifest")
        try:
            return self.manifest_path.read_text(encoding='utf-8')
        except (OSError, UnicodeDecodeError) as e:
            raise ReadFailureError(MANIFEST_NAME, e) from e

    def sections(self) -> Dict[str, List[str]]:
        """Split the manifest into ``{section: [lines]}``.

        Lines before the first header are stored under ``""``.
        """
        sections: Dict[str, List[str]] = {"": []}
        current = ""
        for line in self.read_text().splitlines():
            header = INI_SECTION.match_line(line)
            if header:
                current = header.value
                sections.setdefault(current, [])
                continue
            sections[current].append(line)
        return sections

    def read_autoloads(self) -> List[AutoloadEntry]:
        """Parse the ``[autoload]`` section in declaration order.

        Returns:
            List of AutoloadEntry (empty when the section is absent)

        Raises:
            NotFoundError: If the project has no ``project.godot``
        """
        entries = []
        for line in self.sections().get('autoload', []):
            match = AUTOLOAD_ENTRY.match_line(line)
            if not match:
                continue
            name, star, path = match.groups
            entries.append(AutoloadEntry(
                name=name,
                res_path=to_res_path(path),
                source_file=path,
                enabled=star == '*',
            ))
        return entries

    def res_references(self) -> Set[str]:
        """Every ``res://`` target mentioned in the manifest, as relative paths.

        A missing manifest contributes nothing.
        """
        if not self.exists():
            return set()
        return set(RES_PATH.values(self.read_text()))
