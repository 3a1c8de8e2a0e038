"""Wisdom Registry: engine-reserved names and public API conventions.

Loaded once from JSON rule files and passed explicitly into the extractor and
the dead-code engine. After construction the registry never changes, so one
instance can be shared by every component of a scan.
"""
import json
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, FrozenSet, Iterable, List, Optional, Tuple

from ..utils.logger import warn


DEFAULT_RULES_DIR = Path(__file__).parent.parent / "rules"


@dataclass(frozen=True)
class WisdomRule:
    """A normalized rule."""
    pattern: str
    match_type: str  # 'virtual', 'handler_prefix', 'api_prefix'
    category: str
    source: str = ""  # Rule file stem


class WisdomRegistry:
    """Engine virtual methods, signal-handler naming and public API prefixes."""

    def __init__(self, rules_dir: Optional[Path] = None):
        """Initialize the registry from every ``*.json`` file in ``rules_dir``.

        Args:
            rules_dir: Directory of rule files (defaults to the packaged rules)
        """
        self.rules_dir = Path(rules_dir) if rules_dir is not None else DEFAULT_RULES_DIR

        rules: List[WisdomRule] = []
        if self.rules_dir.is_dir():
            for json_file in sorted(self.rules_dir.glob("*.json")):
                rules.extend(self._load_rule_file(json_file))
        else:
            warn(f"Rules directory not found: {self.rules_dir}")

        self._rules: Tuple[WisdomRule, ...] = tuple(rules)
        self._virtual: FrozenSet[str] = frozenset(
            r.pattern for r in rules if r.match_type == 'virtual'
        )
        self._handler_prefixes: Tuple[str, ...] = tuple(
            dict.fromkeys(r.pattern for r in rules if r.match_type == 'handler_prefix')
        )
        self._api_prefixes: Tuple[str, ...] = tuple(
            dict.fromkeys(r.pattern for r in rules if r.match_type == 'api_prefix')
        )

    @staticmethod
    def _load_rule_file(json_file: Path) -> List[WisdomRule]:
        """Parse one rule file; malformed files are skipped with a warning."""
        try:
            with open(json_file, 'r', encoding='utf-8') as f:
                data = json.load(f)
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            warn(f"Error decoding JSON in rule file {json_file.name}: {e}")
            return []
        except OSError as e:
            warn(f"Could not read rule file {json_file.name}: {e}")
            return []

        if not isinstance(data, dict):
            warn(f"Rule file {json_file.name} is malformed "
                 f"(expected dict, got {type(data).__name__}). Skipping.")
            return []

        source = json_file.stem
        rules = []

        # virtual_methods: either a flat list or {category: [names]}
        virtual = data.get('virtual_methods', [])
        if isinstance(virtual, dict):
            for category, names in virtual.items():
                rules.extend(
                    WisdomRule(name, 'virtual', category, source) for name in _as_names(names)
                )
        else:
            rules.extend(WisdomRule(name, 'virtual', 'Engine', source) for name in _as_names(virtual))

        rules.extend(
            WisdomRule(prefix, 'handler_prefix', 'Signal handler', source)
            for prefix in _as_names(data.get('signal_handler_prefixes', []))
        )
        rules.extend(
            WisdomRule(prefix, 'api_prefix', 'Public API', source)
            for prefix in _as_names(data.get('public_api_prefixes', []))
        )
        return rules

    @property
    def rules(self) -> Tuple[WisdomRule, ...]:
        return self._rules

    @property
    def virtual_methods(self) -> FrozenSet[str]:
        return self._virtual

    def is_virtual_method(self, name: str) -> bool:
        """Engine callbacks such as ``_ready`` are invoked by the engine, never by user code."""
        return name in self._virtual

    def is_signal_handler(self, name: str) -> bool:
        """Auto-wired handlers follow the ``_on_<node>_<signal>`` convention."""
        return any(name.startswith(prefix) for prefix in self._handler_prefixes)

    def is_reserved(self, name: str) -> bool:
        """Names that must never be reported as dead code."""
        return self.is_virtual_method(name) or self.is_signal_handler(name)

    def matches_public_api(self, name: str) -> Optional[str]:
        """Return the public API prefix ``name`` starts with, if any."""
        for prefix in self._api_prefixes:
            if name.startswith(prefix):
                return prefix
        return None

    def get_stats(self) -> Dict[str, int]:
        """Counts per rule type, for report footers."""
        return {
            "virtual_methods": len(self._virtual),
            "signal_handler_prefixes": len(self._handler_prefixes),
            "public_api_prefixes": len(self._api_prefixes),
            "total_rules": len(self._rules),
        }


def _as_names(values: Iterable) -> List[str]:
    # Non-string entries are ignored rather than failing the whole file
    if not isinstance(values, (list, tuple)):
        return []
    return [v for v in values if isinstance(v, str) and v]
