"""Shared fixtures for gdlens tests."""
import textwrap
from pathlib import Path

import pytest

from gdlens.analyzer.corpus import SourceFile
from gdlens.analyzer.wisdom_registry import WisdomRegistry


FIXTURE_PROJECT = Path(__file__).parent / 'fixtures' / 'godot_project'


def gd(text: str) -> str:
    """Dedent a GDScript snippet and turn 4-space indents into tabs."""
    lines = []
    for line in textwrap.dedent(text).lstrip('\n').splitlines():
        stripped = line.lstrip(' ')
        depth = (len(line) - len(stripped)) // 4
        lines.append('\t' * depth + stripped)
    return '\n'.join(lines) + '\n'


def source(path: str, text: str) -> SourceFile:
    return SourceFile(path, gd(text))


@pytest.fixture(scope='session')
def registry():
    """Packaged rules, loaded once."""
    return WisdomRegistry()


@pytest.fixture
def fixture_project():
    return FIXTURE_PROJECT


@pytest.fixture
def make_project(tmp_path):
    """Write ``{relative_path: text}`` below tmp_path and return the root."""
    def _make(files):
        for rel_path, text in files.items():
            path = tmp_path / rel_path
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(gd(text) if rel_path.endswith('.gd') else text, encoding='utf-8')
        return tmp_path
    return _make
