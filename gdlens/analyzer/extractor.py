"""Symbol declaration extraction from GDScript source text."""
from dataclasses import asdict, dataclass
from typing import Dict, Iterable, List, Optional, Tuple

from .corpus import SourceFile
from .patterns import (
    CLASS_NAME_DECL,
    CONSTANT_DECL,
    DOC_COMMENT_MARKER,
    ENUM_DECL,
    EXPORT_ANNOTATION,
    EXTENDS_DECL,
    FUNCTION_DECL,
    INNER_CLASS_DECL,
    SIGNAL_DECL,
    STANDALONE_ANNOTATION,
    VARIABLE_DECL,
    Match,
    Recognizer,
)
from .wisdom_registry import WisdomRegistry


FUNCTION = 'function'
VARIABLE = 'variable'
SIGNAL = 'signal'
CLASS = 'class'
CONSTANT = 'constant'
ENUM = 'enum'

PRIVATE_PREFIX = '_'


# Checked in order; the first recognizer that matches a line wins
DECLARATION_RECOGNIZERS: Tuple[Tuple[Recognizer, str], ...] = (
    (FUNCTION_DECL, FUNCTION),
    (VARIABLE_DECL, VARIABLE),
    (CONSTANT_DECL, CONSTANT),
    (SIGNAL_DECL, SIGNAL),
    (CLASS_NAME_DECL, CLASS),
    (INNER_CLASS_DECL, CLASS),
    (ENUM_DECL, ENUM),
)


@dataclass(frozen=True)
class SymbolDeclaration:
    """A recognized definition site."""
    name: str
    kind: str  # function, variable, signal, class, constant, enum
    file: str
    line: int
    is_private: bool = False
    is_exported: bool = False
    has_doc_comment: bool = False

    def to_dict(self) -> Dict:
        return asdict(self)


def find_declaration(line: str) -> Optional[Tuple[str, Match]]:
    """Return ``(kind, match)`` when ``line`` declares a symbol.

    The match span points at the declared name inside ``line``.
    """
    for recognizer, kind in DECLARATION_RECOGNIZERS:
        match = recognizer.match_line(line)
        if match:
            return kind, match
    return None


def _previous_code_line(lines: List[str], index: int) -> Tuple[int, str]:
    """Index and stripped text of the nearest non-blank line above ``index``."""
    i = index - 1
    while i >= 0:
        stripped = lines[i].strip()
        if stripped:
            return i, stripped
        i -= 1
    return -1, ""


class SymbolExtractor:
    """Extract functions, variables, signals, classes and constants."""

    def __init__(self, registry: Optional[WisdomRegistry] = None):
        """Initialize extractor.

        Args:
            registry: Reserved-name rules (defaults to the packaged rules)
        """
        self.wisdom = registry if registry is not None else WisdomRegistry()

    def extract(self, source: SourceFile) -> List[SymbolDeclaration]:
        """Extract declarations of one file in line order.

        Signal-handler-shaped functions and engine virtual methods are skipped:
        they are called by the engine and must never reach dead-code analysis.

        Args:
            source: File to scan

        Returns:
            List of SymbolDeclaration objects
        """
        declarations = []
        lines = source.lines

        for index, line in enumerate(lines):
            found = find_declaration(line)
            if not found:
                continue
            kind, match = found
            name = match.value

            if kind == FUNCTION and self.wisdom.is_reserved(name):
                continue

            annotations = self._leading_annotations(lines, index, match)
            has_doc = self._has_doc_comment(lines, index)

            declarations.append(SymbolDeclaration(
                name=name,
                kind=kind,
                file=source.relative_path,
                line=index + 1,
                is_private=name.startswith(PRIVATE_PREFIX),
                is_exported=kind == VARIABLE and bool(EXPORT_ANNOTATION.search(annotations)),
                has_doc_comment=has_doc,
            ))

        return declarations

    def extract_project(self, files: Iterable[SourceFile]) -> List[SymbolDeclaration]:
        """Union of extract() over ``files``, in file order."""
        declarations = []
        for source in files:
            declarations.extend(self.extract(source))
        return declarations

    def outline(self, source: SourceFile) -> List[Dict]:
        """Document outline of one file: every declaration, unfiltered.

        Unlike extract(), handlers and virtual methods are listed and
        ``extends`` lines are included. Variables are reported as ``export``
        or ``onready`` when annotated that way.

        Returns:
            List of ``{name, kind, line}`` dicts
        """
        symbols = []
        lines = source.lines

        for index, line in enumerate(lines):
            extends = EXTENDS_DECL.match_line(line)
            if extends:
                symbols.append({"name": extends.value, "kind": "extends", "line": index + 1})
                continue

            found = find_declaration(line)
            if not found:
                continue
            kind, match = found

            if kind == VARIABLE:
                annotations = self._leading_annotations(lines, index, match)
                if EXPORT_ANNOTATION.search(annotations):
                    kind = "export"
                elif "@onready" in annotations:
                    kind = "onready"

            symbols.append({"name": match.value, "kind": kind, "line": index + 1})

        return symbols

    @staticmethod
    def _leading_annotations(lines: List[str], index: int, match: Match) -> str:
        """Annotations on the declaration line plus a standalone one just above it."""
        annotations = ""
        if match.recognizer == VARIABLE_DECL.name:
            annotations = match.groups[0] or ""
        _, previous = _previous_code_line(lines, index)
        if STANDALONE_ANNOTATION.match_line(previous):
            annotations = f"{previous} {annotations}"
        return annotations

    @staticmethod
    def _has_doc_comment(lines: List[str], index: int) -> bool:
        """True when the nearest non-blank line above is a ``##`` doc comment.

        A standalone annotation between the comment and the declaration is
        looked through.
        """
        prev_index, previous = _previous_code_line(lines, index)
        if STANDALONE_ANNOTATION.match_line(previous):
            prev_index, previous = _previous_code_line(lines, prev_index)
        return previous.startswith(DOC_COMMENT_MARKER)
