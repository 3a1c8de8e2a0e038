"""Tests for the gdlens command line."""
import json

import pytest
from typer.testing import CliRunner

from gdlens.config import __version__
from gdlens.main import app


runner = CliRunner()


@pytest.fixture
def project_args(fixture_project):
    return ['--project', str(fixture_project)]


def run_json(*args):
    result = runner.invoke(app, [*args, '--json'])
    return result, json.loads(result.output)


def test_version():
    result = runner.invoke(app, ['--version'])
    assert result.exit_code == 0
    assert result.output.strip() == f'gdlens {__version__}'


class TestJsonOutput:

    def test_dead_code(self, project_args):
        result, data = run_json('dead-code', *project_args)
        assert result.exit_code == 0
        assert data['summary']['detection_rate'] == '27%'

    def test_dead_code_include_addons(self, project_args):
        _, data = run_json('dead-code', *project_args, '--include-addons')
        assert 'dump_state' in {d['name'] for d in data['dead_functions']}

    def test_signals_single_file(self, project_args):
        _, data = run_json('signals', *project_args, '--file', 'autoload/game.gd')
        assert {s['name'] for s in data['orphan_signals']} == {'scored', 'game_over'}

    def test_autoloads(self, project_args):
        _, data = run_json('autoloads', *project_args)
        assert data['suggested_load_order'] == ['Audio', 'Game', 'UI']

    def test_complexity(self, project_args):
        _, data = run_json('complexity', 'scripts/player.gd', *project_args)
        assert data['file'] == 'scripts/player.gd'

    def test_duplication_min_lines(self, project_args):
        _, data = run_json('duplication', *project_args, '--min-lines', '2')
        assert data['summary']['min_lines_threshold'] == 2

    def test_scene_tree_depth(self, project_args):
        _, data = run_json('scene-tree', 'scenes/main.tscn', *project_args, '--depth', '1')
        assert data['tree']['children'] == []

    def test_validate_scenes(self, project_args):
        result, data = run_json('validate-scenes', *project_args)
        assert result.exit_code == 0
        assert data['summary']['scenes_checked'] == 2
        assert data['issues'] == []

    def test_error_result_exits_with_status_one(self, project_args):
        result, data = run_json('symbols', 'scripts/missing.gd', *project_args)
        assert result.exit_code == 1
        assert data == {
            'error': 'not_found',
            'message': 'File not found: scripts/missing.gd',
            'is_error': True,
        }


class TestRichOutput:

    @pytest.mark.parametrize('command', [
        ['dead-code'],
        ['signals'],
        ['autoloads'],
        ['heatmap'],
        ['duplication'],
        ['unused-files'],
        ['complexity', 'scripts/player.gd'],
        ['symbols', 'scripts/player.gd'],
        ['scene-tree', 'scenes/main.tscn'],
        ['validate-scenes'],
    ])
    def test_commands_render(self, project_args, command):
        result = runner.invoke(app, [*command, *project_args])
        assert result.exit_code == 0, result.output
        assert result.output.strip()

    def test_dead_code_lists_names(self, project_args):
        result = runner.invoke(app, ['dead-code', *project_args])
        assert 'spawn_wave' in result.output
        assert 'Detection rate' in result.output

    def test_missing_file_prints_error(self, project_args):
        result = runner.invoke(app, ['scene-tree', 'scenes/missing.tscn', *project_args])
        assert result.exit_code == 1
        assert 'Error:' in result.output
        assert 'File not found' in result.output

    def test_missing_project(self, tmp_path):
        result = runner.invoke(app, ['heatmap', '--project', str(tmp_path / 'nope')])
        assert result.exit_code == 1
        assert 'Project path not found' in result.output

    def test_invalid_min_lines_rejected(self, project_args):
        result = runner.invoke(app, ['duplication', *project_args, '--min-lines', '0'])
        assert result.exit_code != 0

    def test_validate_scenes_lists_problems(self, tmp_path):
        (tmp_path / 'broken.tscn').write_text(
            '[ext_resource type="Script" path="res://gone.gd" id="1"]\n'
            '[node name="Broken" type="Node"]\nscript = ExtResource("1")\n',
            encoding='utf-8',
        )
        result = runner.invoke(app, ['validate-scenes', '--project', str(tmp_path)])
        assert result.exit_code == 0, result.output
        assert 'NEEDS ATTENTION' in result.output
        assert '2 errors' in result.output
