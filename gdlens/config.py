"""Configuration management for gdlens.

Loads environment variables and an optional per-project ``.gdlens.json`` and
freezes them into AnalysisSettings, which every component receives explicitly.
"""
import json
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional, Tuple

from dotenv import load_dotenv

from gdlens.utils.logger import warn

__version__ = "0.3.0"

PROJECT_CONFIG_NAME = ".gdlens.json"
DEFAULT_MIN_DUPLICATE_LINES = 5

_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"0", "false", "no", "off", ""}


@dataclass(frozen=True)
class AnalysisSettings:
    """Immutable settings for one tool invocation."""
    project_path: Path
    include_addons: bool = False
    min_duplicate_lines: int = DEFAULT_MIN_DUPLICATE_LINES
    rules_dir: Optional[Path] = None
    extra_excluded_dirs: Tuple[str, ...] = ()


def _parse_bool(name: str, raw: Any) -> bool:
    if isinstance(raw, bool):
        return raw
    value = str(raw).strip().lower()
    if value in _TRUE_VALUES:
        return True
    if value in _FALSE_VALUES:
        return False
    raise ValueError(f"{name} must be a boolean, got {raw!r}")


def _parse_positive_int(name: str, raw: Any) -> int:
    if isinstance(raw, bool):
        raise ValueError(f"{name} must be an integer, got {raw!r}")
    try:
        value = int(raw)
    except (TypeError, ValueError):
        raise ValueError(f"{name} must be an integer, got {raw!r}") from None
    if value < 1:
        raise ValueError(f"{name} must be >= 1, got {value}")
    return value


class Config:
    """Configuration loader with environment variable support."""

    def __init__(self, env_path: Optional[Path] = None):
        """Initialize config by loading a .env file.

        Args:
            env_path: Explicit .env file (defaults to ``.env`` in the working directory)
        """
        load_dotenv(env_path if env_path is not None else Path.cwd() / ".env")

        # Fail at load time, not in the middle of a scan
        self._validate()

    def _validate(self):
        """Validate numeric and boolean environment values.

        Raises:
            ValueError: If GDLENS_MIN_DUPLICATE_LINES or GDLENS_INCLUDE_ADDONS is malformed
        """
        _ = self.min_duplicate_lines
        _ = self.include_addons

    @property
    def project_path(self) -> Path:
        """Project root, from GDLENS_PROJECT_PATH or the working directory."""
        return Path(os.getenv("GDLENS_PROJECT_PATH") or Path.cwd())

    @property
    def include_addons(self) -> bool:
        return _parse_bool("GDLENS_INCLUDE_ADDONS", os.getenv("GDLENS_INCLUDE_ADDONS", ""))

    @property
    def min_duplicate_lines(self) -> int:
        """Minimum function length for duplication analysis.

        Priority:
        1. GDLENS_MIN_DUPLICATE_LINES environment variable
        2. Fallback to DEFAULT_MIN_DUPLICATE_LINES
        """
        raw = os.getenv("GDLENS_MIN_DUPLICATE_LINES")
        if raw is None or raw.strip() == "":
            return DEFAULT_MIN_DUPLICATE_LINES
        return _parse_positive_int("GDLENS_MIN_DUPLICATE_LINES", raw)

    @property
    def rules_dir(self) -> Optional[Path]:
        """Extra rule directory replacing the packaged rules, if set."""
        raw = os.getenv("GDLENS_RULES_DIR")
        return Path(raw) if raw else None

    @staticmethod
    def load_project_overrides(project_path: Path) -> Dict[str, Any]:
        """Read ``.gdlens.json`` from the project root.

        Malformed files are reported with a warning and ignored. Unknown
        keys are ignored.

        Returns:
            Dict of raw override values (possibly empty)
        """
        config_file = Path(project_path) / PROJECT_CONFIG_NAME
        if not config_file.is_file():
            return {}

        try:
            with open(config_file, 'r', encoding='utf-8') as f:
                data = json.load(f)
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            warn(f"Ignoring malformed {PROJECT_CONFIG_NAME}: {e}")
            return {}
        except OSError as e:
            warn(f"Could not read {PROJECT_CONFIG_NAME}: {e}")
            return {}

        if not isinstance(data, dict):
            warn(f"Ignoring {PROJECT_CONFIG_NAME}: expected an object, got {type(data).__name__}")
            return {}
        return data

    def to_settings(self, project_path: Optional[Path] = None,
                    include_addons: Optional[bool] = None,
                    min_duplicate_lines: Optional[int] = None) -> AnalysisSettings:
        """Freeze configuration for one invocation.

        Priority (highest first): explicit arguments, ``.gdlens.json``,
        environment, defaults.

        Raises:
            ValueError: If a value in ``.gdlens.json`` is malformed
        """
        root = Path(project_path) if project_path is not None else self.project_path
        overrides = self.load_project_overrides(root)

        if include_addons is None:
            include_addons = (
                _parse_bool("include_addons", overrides["include_addons"])
                if "include_addons" in overrides else self.include_addons
            )

        if min_duplicate_lines is None:
            min_duplicate_lines = (
                _parse_positive_int("min_duplicate_lines", overrides["min_duplicate_lines"])
                if "min_duplicate_lines" in overrides else self.min_duplicate_lines
            )
        else:
            min_duplicate_lines = _parse_positive_int("min_duplicate_lines", min_duplicate_lines)

        rules_dir = self.rules_dir
        override_rules = overrides.get("rules_dir")
        if override_rules and not isinstance(override_rules, str):
            warn(f"Ignoring rules_dir in {PROJECT_CONFIG_NAME}: expected a string")
        elif override_rules:
            rules_dir = root / override_rules

        excluded = overrides.get("exclude_dirs", [])
        if not isinstance(excluded, list):
            warn(f"Ignoring exclude_dirs in {PROJECT_CONFIG_NAME}: expected a list")
            excluded = []

        return AnalysisSettings(
            project_path=root,
            include_addons=include_addons,
            min_duplicate_lines=min_duplicate_lines,
            rules_dir=rules_dir,
            extra_excluded_dirs=tuple(str(d) for d in excluded),
        )


# Singleton instance
_config = None


def get_config() -> Config:
    """Get or create singleton Config instance.

    Returns:
        Config instance
    """
    global _config
    if _config is None:
        _config = Config()
    return _config
