"""Usage collection and dead-code detection.

Usage tracking is a whole-project, name-based approximation: once a bare name
is seen used anywhere, every declaration with that name is alive. Results are
"potentially dead" candidates, never a certainty.
"""
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Set

from .corpus import SourceFile
from .extractor import FUNCTION, SIGNAL, VARIABLE, SymbolDeclaration, find_declaration
from .patterns import (
    AWAIT_TARGET,
    BARE_CALL,
    BARE_IDENTIFIER,
    CALL_BY_STRING,
    CALLABLE_BY_STRING,
    CONNECT_BY_STRING,
    CONNECT_RECEIVER,
    DICT_KEY,
    DOTTED_CALL,
    DOTTED_PROPERTY,
    EMIT_BY_STRING,
    EMIT_RECEIVER,
    HAS_METHOD,
    META_KEY,
    SCENE_METHOD_BINDING,
    SUPER_CALL,
)
from .wisdom_registry import WisdomRegistry


# Shapes whose capture counts as a plain usage
USAGE_RECOGNIZERS = (
    BARE_CALL,
    DOTTED_CALL,
    DOTTED_PROPERTY,
    EMIT_RECEIVER,
    CONNECT_RECEIVER,
    AWAIT_TARGET,
    SUPER_CALL,
    # Fallback: any identifier in an expression, assignment or index
    BARE_IDENTIFIER,
)

# Dynamic dispatch by string: both a usage and a string reference
DYNAMIC_DISPATCH_RECOGNIZERS = (
    CALL_BY_STRING,
    CALLABLE_BY_STRING,
    CONNECT_BY_STRING,
    HAS_METHOD,
    EMIT_BY_STRING,
)

# Dictionary and metadata keys: string references only
STRING_KEY_RECOGNIZERS = (
    DICT_KEY,
    META_KEY,
)

DEFAULT_REPORT_LIMIT = 50


@dataclass
class UsageSet:
    """Identifiers observed as used anywhere in the corpus."""
    names: Set[str] = field(default_factory=set)
    string_references: Set[str] = field(default_factory=set)

    def add(self, name: str) -> None:
        self.names.add(name)

    def add_string_reference(self, name: str, counts_as_usage: bool = False) -> None:
        self.string_references.add(name)
        if counts_as_usage:
            self.names.add(name)

    def __contains__(self, name: str) -> bool:
        return name in self.names

    def __len__(self) -> int:
        return len(self.names)


@dataclass
class DeadCodeReport:
    """Outcome of the decide pass."""
    dead_functions: List[SymbolDeclaration] = field(default_factory=list)
    dead_variables: List[SymbolDeclaration] = field(default_factory=list)
    dead_signals: List[SymbolDeclaration] = field(default_factory=list)
    total_functions: int = 0
    total_variables: int = 0
    total_signals: int = 0
    excluded_as_public_api: int = 0
    excluded_as_documented: int = 0
    files_analyzed: int = 0
    files_skipped: int = 0
    addons_excluded: bool = True

    @property
    def total_declarations(self) -> int:
        return self.total_functions + self.total_variables + self.total_signals

    @property
    def total_dead(self) -> int:
        return len(self.dead_functions) + len(self.dead_variables) + len(self.dead_signals)

    @property
    def detection_rate(self) -> int:
        """Percentage of analyzed declarations flagged as potentially dead."""
        if self.total_declarations == 0:
            return 0
        return round(self.total_dead / self.total_declarations * 100)

    def dead_names(self, kind: Optional[str] = None) -> Set[str]:
        """Names of dead candidates, optionally limited to one kind."""
        groups = {
            FUNCTION: self.dead_functions,
            VARIABLE: self.dead_variables,
            SIGNAL: self.dead_signals,
        }
        if kind is not None:
            return {d.name for d in groups[kind]}
        return {d.name for group in groups.values() for d in group}

    def to_dict(self, limit: int = DEFAULT_REPORT_LIMIT) -> Dict:
        """Serializable report; dead lists are truncated to ``limit`` entries."""
        return {
            "summary": {
                "total_functions": self.total_functions,
                "potentially_dead_functions": len(self.dead_functions),
                "total_variables": self.total_variables,
                "potentially_dead_variables": len(self.dead_variables),
                "total_signals": self.total_signals,
                "potentially_dead_signals": len(self.dead_signals),
                "detection_rate": f"{self.detection_rate}%",
            },
            "filtering_stats": {
                "excluded_as_public_api": self.excluded_as_public_api,
                "excluded_as_documented": self.excluded_as_documented,
                "files_analyzed": self.files_analyzed,
                "files_skipped": self.files_skipped,
                "addons_excluded": self.addons_excluded,
            },
            "dead_functions": [d.to_dict() for d in self.dead_functions[:limit]],
            "dead_variables": [d.to_dict() for d in self.dead_variables[:limit]],
            "dead_signals": [d.to_dict() for d in self.dead_signals[:limit]],
            "note": (
                "Potentially dead code only. Signal handlers, virtual methods, "
                "public API patterns, exported variables and documented declarations are excluded."
            ),
        }


def mask_declarations(text: str) -> str:
    """Blank out declared names so a declaration is not its own usage.

    Only the name span is replaced; the rest of the line (parameters,
    initializers, type hints) still contributes usages.
    """
    masked = []
    for line in text.splitlines():
        found = find_declaration(line)
        if found:
            _, match = found
            line = line[:match.start] + ' ' * (match.end - match.start) + line[match.end:]
        masked.append(line)
    return '\n'.join(masked)


class ReferenceTracker:
    """Build the project UsageSet and decide which declarations look dead."""

    def __init__(self, registry: Optional[WisdomRegistry] = None):
        """Initialize tracker.

        Args:
            registry: Reserved-name and public API rules (defaults to packaged rules)
        """
        self.wisdom = registry if registry is not None else WisdomRegistry()

    # =========================================================================
    # PASS 1: COLLECT USAGES
    # =========================================================================

    def collect(self, script_files: Iterable[SourceFile],
                scene_files: Iterable[SourceFile] = ()) -> UsageSet:
        """Run every usage recognizer over scripts and scene files.

        Args:
            script_files: GDScript sources
            scene_files: ``.tscn`` sources (method bindings, inline calls)

        Returns:
            UsageSet for the whole corpus
        """
        usages = UsageSet()
        for source in script_files:
            self.extract_references_from_file(source, usages)
        for scene in scene_files:
            self.extract_references_from_scene(scene, usages)
        return usages

    def extract_references_from_file(self, source: SourceFile, usages: UsageSet) -> None:
        """Add the usages found in one script to ``usages``."""
        content = mask_declarations(source.raw_text)

        for recognizer in USAGE_RECOGNIZERS:
            for name in recognizer.values(content):
                usages.add(name)

        for recognizer in DYNAMIC_DISPATCH_RECOGNIZERS:
            for name in recognizer.values(content):
                usages.add_string_reference(name, counts_as_usage=True)

        for recognizer in STRING_KEY_RECOGNIZERS:
            for name in recognizer.values(content):
                usages.add_string_reference(name)

    def extract_references_from_scene(self, scene: SourceFile, usages: UsageSet) -> None:
        """Add method bindings and inline calls from one scene file."""
        # [connection signal="pressed" from="Button" to="." method="_on_button_pressed"]
        for name in SCENE_METHOD_BINDING.values(scene.raw_text):
            usages.add_string_reference(name, counts_as_usage=True)

        for name in DOTTED_CALL.values(scene.raw_text):
            usages.add(name)

    # =========================================================================
    # PASS 2: DECIDE
    # =========================================================================

    def find_dead_symbols(self, declarations: Iterable[SymbolDeclaration],
                          usages: UsageSet) -> DeadCodeReport:
        """Classify every function, variable and signal declaration.

        Functions: alive when used or referenced by string; documented
        functions and public functions matching an API prefix are excluded and
        counted; everything else is a candidate.
        Variables: alive when used; exported variables are always alive;
        documented variables are excluded and counted.
        Signals: alive when used or referenced by string; documented signals
        are excluded and counted.

        Classes, constants and enums are extracted but not judged.

        Args:
            declarations: Output of SymbolExtractor.extract_project()
            usages: Output of collect()

        Returns:
            DeadCodeReport
        """
        report = DeadCodeReport()

        for decl in declarations:
            if decl.kind == FUNCTION:
                report.total_functions += 1
                # Extractor already drops these; rules may come from elsewhere
                if self.wisdom.is_reserved(decl.name):
                    continue
                if decl.name in usages or decl.name in usages.string_references:
                    continue
                if decl.has_doc_comment:
                    report.excluded_as_documented += 1
                    continue
                if not decl.is_private and self.wisdom.matches_public_api(decl.name):
                    report.excluded_as_public_api += 1
                    continue
                report.dead_functions.append(decl)

            elif decl.kind == VARIABLE:
                report.total_variables += 1
                if decl.name in usages:
                    continue
                # Exported variables are set from the editor or other scenes
                if decl.is_exported:
                    continue
                if decl.has_doc_comment:
                    report.excluded_as_documented += 1
                    continue
                report.dead_variables.append(decl)

            elif decl.kind == SIGNAL:
                report.total_signals += 1
                if decl.name in usages or decl.name in usages.string_references:
                    continue
                if decl.has_doc_comment:
                    report.excluded_as_documented += 1
                    continue
                report.dead_signals.append(decl)

        return report
