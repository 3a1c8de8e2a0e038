"""Tests for the corpus walker."""
import pytest

from gdlens.analyzer.corpus import (
    DEFAULT_EXCLUDED_DIRS,
    SCENE_GLOB,
    CorpusWalker,
    NotFoundError,
    ReadFailureError,
    excluded_dirs_for,
)


@pytest.fixture
def project(make_project):
    return make_project({
        'scripts/player.gd': 'extends Node\n',
        'scripts/ai/brain.gd': 'extends Node\n',
        'addons/plugin/tool.gd': 'extends Node\n',
        '.godot/editor/cache.gd': 'extends Node\n',
        'scenes/main.tscn': '[gd_scene format=3]\n',
    })


class TestListing:
    """CorpusWalker.list()."""

    def test_default_excludes_addons_and_engine_dirs(self, project):
        walker = CorpusWalker(project)
        assert walker.list() == ['scripts/ai/brain.gd', 'scripts/player.gd']

    def test_include_addons(self, project):
        walker = CorpusWalker(project, excluded_dirs_for(include_addons=True))
        assert 'addons/plugin/tool.gd' in walker.list()
        assert '.godot/editor/cache.gd' not in walker.list()

    def test_other_globs(self, project):
        assert CorpusWalker(project).list(SCENE_GLOB) == ['scenes/main.tscn']

    def test_extra_excluded_dirs(self, project):
        walker = CorpusWalker(project, excluded_dirs_for(extra=['ai']))
        assert walker.list() == ['scripts/player.gd']

    def test_exists_ignores_exclusions(self, project):
        walker = CorpusWalker(project)
        assert walker.exists('addons/plugin/tool.gd')
        assert walker.exists('scenes/main.tscn')
        assert not walker.exists('scripts/missing.gd')
        assert not walker.exists('scripts')


class TestExclusionSet:

    def test_addons_only_added_when_not_included(self):
        assert 'addons' in excluded_dirs_for()
        assert 'addons' not in excluded_dirs_for(include_addons=True)
        assert DEFAULT_EXCLUDED_DIRS <= excluded_dirs_for(include_addons=True)


class TestReading:
    """read(), load() and load_one()."""

    def test_missing_root_raises_not_found(self, tmp_path):
        with pytest.raises(NotFoundError) as exc:
            CorpusWalker(tmp_path / 'nope')
        assert 'Project path not found' in str(exc.value)

    def test_read_missing_file(self, project):
        with pytest.raises(NotFoundError):
            CorpusWalker(project).read('scripts/missing.gd')

    def test_load_skips_unreadable_files(self, project):
        (project / 'scripts' / 'broken.gd').write_bytes(b'\xff\xfe\x00broken')
        walker = CorpusWalker(project)

        files = walker.load()

        assert [f.relative_path for f in files] == ['scripts/ai/brain.gd', 'scripts/player.gd']
        assert walker.skipped == ['scripts/broken.gd']

    def test_load_one_relative_and_absolute(self, project):
        walker = CorpusWalker(project)
        by_relative = walker.load_one('scripts/player.gd')
        by_absolute = walker.load_one(project / 'scripts' / 'player.gd')

        assert by_relative.relative_path == 'scripts/player.gd'
        assert by_absolute.relative_path == 'scripts/player.gd'
        assert by_absolute.lines == ['extends Node']

    def test_load_one_missing(self, project):
        with pytest.raises(NotFoundError) as exc:
            CorpusWalker(project).load_one('scripts/missing.gd')
        assert exc.value.path == 'scripts/missing.gd'

    def test_load_one_undecodable(self, project):
        (project / 'scripts' / 'broken.gd').write_bytes(b'\xff\xfe\x00broken')
        with pytest.raises(ReadFailureError):
            CorpusWalker(project).load_one('scripts/broken.gd')
