"""Tests for configuration loading and settings priority."""
import json

import pytest

from gdlens.config import DEFAULT_MIN_DUPLICATE_LINES, PROJECT_CONFIG_NAME, AnalysisSettings, Config


ENV_VARS = (
    'GDLENS_PROJECT_PATH',
    'GDLENS_INCLUDE_ADDONS',
    'GDLENS_MIN_DUPLICATE_LINES',
    'GDLENS_RULES_DIR',
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    # setenv first so monkeypatch restores whatever a .env file may load
    for name in ENV_VARS:
        monkeypatch.setenv(name, '')
        monkeypatch.delenv(name)


@pytest.fixture
def no_dotenv(tmp_path):
    return tmp_path / 'absent.env'


def write_overrides(root, data):
    (root / PROJECT_CONFIG_NAME).write_text(
        data if isinstance(data, str) else json.dumps(data), encoding='utf-8'
    )


class TestEnvironment:

    def test_defaults(self, no_dotenv, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        config = Config(no_dotenv)

        assert config.project_path == tmp_path
        assert config.include_addons is False
        assert config.min_duplicate_lines == DEFAULT_MIN_DUPLICATE_LINES
        assert config.rules_dir is None

    def test_values_from_environment(self, no_dotenv, tmp_path, monkeypatch):
        monkeypatch.setenv('GDLENS_PROJECT_PATH', str(tmp_path))
        monkeypatch.setenv('GDLENS_INCLUDE_ADDONS', 'yes')
        monkeypatch.setenv('GDLENS_MIN_DUPLICATE_LINES', '8')
        monkeypatch.setenv('GDLENS_RULES_DIR', str(tmp_path / 'rules'))

        config = Config(no_dotenv)

        assert config.project_path == tmp_path
        assert config.include_addons is True
        assert config.min_duplicate_lines == 8
        assert config.rules_dir == tmp_path / 'rules'

    def test_dotenv_file_is_loaded(self, tmp_path):
        env_file = tmp_path / '.env'
        env_file.write_text('GDLENS_MIN_DUPLICATE_LINES=7\n')
        assert Config(env_file).min_duplicate_lines == 7

    @pytest.mark.parametrize('name, value', [
        ('GDLENS_MIN_DUPLICATE_LINES', 'five'),
        ('GDLENS_MIN_DUPLICATE_LINES', '0'),
        ('GDLENS_INCLUDE_ADDONS', 'maybe'),
    ])
    def test_malformed_values_fail_at_load(self, no_dotenv, monkeypatch, name, value):
        monkeypatch.setenv(name, value)
        with pytest.raises(ValueError) as exc:
            Config(no_dotenv)
        assert name in str(exc.value)


class TestSettings:
    """Config.to_settings() priority: arguments, .gdlens.json, environment, defaults."""

    def test_frozen(self, no_dotenv, tmp_path):
        settings = Config(no_dotenv).to_settings(tmp_path)
        assert settings == AnalysisSettings(project_path=tmp_path)
        with pytest.raises(AttributeError):
            settings.include_addons = True

    def test_project_file_overrides_environment(self, no_dotenv, tmp_path, monkeypatch):
        monkeypatch.setenv('GDLENS_MIN_DUPLICATE_LINES', '8')
        write_overrides(tmp_path, {
            'include_addons': True,
            'min_duplicate_lines': 3,
            'rules_dir': 'tools/rules',
            'exclude_dirs': ['generated', 'third_party'],
        })

        settings = Config(no_dotenv).to_settings(tmp_path)

        assert settings.include_addons is True
        assert settings.min_duplicate_lines == 3
        assert settings.rules_dir == tmp_path / 'tools' / 'rules'
        assert settings.extra_excluded_dirs == ('generated', 'third_party')

    def test_arguments_override_everything(self, no_dotenv, tmp_path):
        write_overrides(tmp_path, {'include_addons': True, 'min_duplicate_lines': 3})

        settings = Config(no_dotenv).to_settings(tmp_path, include_addons=False, min_duplicate_lines=9)

        assert settings.include_addons is False
        assert settings.min_duplicate_lines == 9

    def test_environment_used_without_project_file(self, no_dotenv, tmp_path, monkeypatch):
        monkeypatch.setenv('GDLENS_PROJECT_PATH', str(tmp_path))
        monkeypatch.setenv('GDLENS_INCLUDE_ADDONS', 'true')

        settings = Config(no_dotenv).to_settings()

        assert settings.project_path == tmp_path
        assert settings.include_addons is True

    def test_invalid_argument(self, no_dotenv, tmp_path):
        with pytest.raises(ValueError):
            Config(no_dotenv).to_settings(tmp_path, min_duplicate_lines=0)

    def test_invalid_project_value(self, no_dotenv, tmp_path):
        write_overrides(tmp_path, {'min_duplicate_lines': 'lots'})
        with pytest.raises(ValueError):
            Config(no_dotenv).to_settings(tmp_path)


class TestProjectFile:
    """Problems in .gdlens.json degrade to warnings."""

    def test_malformed_json(self, no_dotenv, tmp_path, capsys):
        write_overrides(tmp_path, '{"include_addons": ')

        settings = Config(no_dotenv).to_settings(tmp_path)

        assert settings.include_addons is False
        assert 'malformed' in capsys.readouterr().err

    def test_non_object(self, tmp_path, capsys):
        write_overrides(tmp_path, [1, 2])
        assert Config.load_project_overrides(tmp_path) == {}
        assert 'expected an object' in capsys.readouterr().err

    def test_exclude_dirs_must_be_a_list(self, no_dotenv, tmp_path, capsys):
        write_overrides(tmp_path, {'exclude_dirs': 'generated'})

        settings = Config(no_dotenv).to_settings(tmp_path)

        assert settings.extra_excluded_dirs == ()
        assert 'exclude_dirs' in capsys.readouterr().err

    def test_undecodable_file(self, no_dotenv, tmp_path, capsys):
        (tmp_path / PROJECT_CONFIG_NAME).write_bytes(b'{"include_addons": true, "note": "\xff"}')

        settings = Config(no_dotenv).to_settings(tmp_path)

        assert settings.include_addons is False
        assert 'malformed' in capsys.readouterr().err

    def test_rules_dir_must_be_a_string(self, no_dotenv, tmp_path, capsys):
        write_overrides(tmp_path, {'rules_dir': ['rules']})

        settings = Config(no_dotenv).to_settings(tmp_path)

        assert settings.rules_dir is None
        assert 'rules_dir' in capsys.readouterr().err

    def test_missing_file(self, tmp_path):
        assert Config.load_project_overrides(tmp_path) == {}
