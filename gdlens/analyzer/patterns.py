"""Recognizer catalogue for GDScript and Godot scene text.

Every structural fact gdlens reports comes from one of the named recognizers in
this module. A recognizer is a compiled regular expression plus the capture
group holding the identifier of interest; callers only see ``Match`` objects,
so a recognizer can later be backed by a real parser without touching them.
"""
import re
from dataclasses import dataclass, field
from typing import Iterator, List, Optional, Tuple


@dataclass(frozen=True)
class Match:
    """A single recognizer hit."""
    recognizer: str
    value: str  # Text of the primary capture group
    start: int  # Column span of the primary capture on the scanned text
    end: int
    groups: Tuple[Optional[str], ...] = ()


class Recognizer:
    """Named pattern that turns text into a list of Match objects."""

    def __init__(self, name: str, pattern: str, group: int = 1, flags: int = 0):
        """Initialize recognizer.

        Args:
            name: Stable identifier used in reports and tests
            pattern: Regular expression source
            group: Index of the capture group holding the primary value
            flags: Extra ``re`` flags
        """
        self.name = name
        self.pattern = pattern
        self.group = group
        self.regex = re.compile(pattern, flags)

    def __repr__(self) -> str:
        return f"Recognizer({self.name!r})"

    def _to_match(self, m: re.Match) -> Optional[Match]:
        value = m.group(self.group)
        if value is None:
            return None
        return Match(
            recognizer=self.name,
            value=value,
            start=m.start(self.group),
            end=m.end(self.group),
            groups=m.groups(),
        )

    def find_all(self, text: str) -> List[Match]:
        """Return every non-overlapping hit in ``text``."""
        matches = []
        for m in self.regex.finditer(text):
            match = self._to_match(m)
            if match is not None:
                matches.append(match)
        return matches

    def match_line(self, line: str) -> Optional[Match]:
        """Match the recognizer at the start of ``line``."""
        m = self.regex.match(line)
        return self._to_match(m) if m else None

    def search(self, line: str) -> Optional[Match]:
        """Return the first hit anywhere in ``line``."""
        m = self.regex.search(line)
        return self._to_match(m) if m else None

    def values(self, text: str) -> List[str]:
        """Shortcut for the captured identifiers only."""
        return [match.value for match in self.find_all(text)]


# =============================================================================
# DECLARATIONS (anchored at line start, leading whitespace allowed)
# =============================================================================

FUNCTION_DECL = Recognizer("function_decl", r"^\s*(?:static\s+)?func\s+(\w+)\s*\(")
# Statement text following the signature on a one-line function
INLINE_FUNCTION_BODY = Recognizer("inline_function_body", r"\)\s*(?:->\s*[^:]+?)?\s*:(.*)$")

# Group 1 holds any leading annotations (@export, @export_range(...), @onready)
VARIABLE_DECL = Recognizer(
    "variable_decl",
    r"^\s*((?:@\w+(?:\([^)]*\))?\s+)*)(?:static\s+)?var\s+(\w+)",
    group=2,
)
CONSTANT_DECL = Recognizer("constant_decl", r"^\s*const\s+(\w+)")
SIGNAL_DECL = Recognizer("signal_decl", r"^\s*signal\s+(\w+)(?:\s*\(([^)]*)\))?")
CLASS_NAME_DECL = Recognizer("class_name_decl", r"^\s*class_name\s+(\w+)")
INNER_CLASS_DECL = Recognizer("inner_class_decl", r"^\s*class\s+(\w+)")
ENUM_DECL = Recognizer("enum_decl", r"^\s*enum\s+(\w+)")
EXTENDS_DECL = Recognizer("extends_decl", r"^\s*extends\s+(\w+)")

# An annotation alone on its own line applies to the next declaration
STANDALONE_ANNOTATION = Recognizer("standalone_annotation", r"^\s*(@\w+)(?:\([^)]*\))?\s*$")

# @export_group, @export_subgroup and @export_category only label inspector sections
EXPORT_ANNOTATION = re.compile(r"@export(?!_(?:group|subgroup|category)\b)(?:_\w+)?\b")
DOC_COMMENT_MARKER = "##"
COMMENT_MARKER = "#"


# =============================================================================
# USAGES
# =============================================================================

BARE_CALL = Recognizer("bare_call", r"\b(\w+)\s*\(")
DOTTED_CALL = Recognizer("dotted_call", r"\.(\w+)\s*\(")
DOTTED_PROPERTY = Recognizer("dotted_property", r"\.(\w+)\b(?!\s*\()")
EMIT_RECEIVER = Recognizer("emit_receiver", r"(\w+)\.emit\s*\(")
CONNECT_RECEIVER = Recognizer("connect_receiver", r"(\w+)\.connect\s*\(")
AWAIT_TARGET = Recognizer("await_target", r"\bawait\s+(\w+)")
SUPER_CALL = Recognizer("super_call", r"\bsuper\.(\w+)\s*\(")
BARE_IDENTIFIER = Recognizer("bare_identifier", r"\b([A-Za-z_][A-Za-z0-9_]*)\b")

# Dynamic dispatch by string: the name counts as used and as a string reference
CALL_BY_STRING = Recognizer(
    "call_by_string",
    r"\b(?:call|call_deferred|callv|call_thread_safe)\s*\(\s*[\"'](\w+)[\"']",
)
CALLABLE_BY_STRING = Recognizer("callable_by_string", r"\bCallable\s*\([^,]+,\s*[\"'](\w+)[\"']")
CONNECT_BY_STRING = Recognizer("connect_by_string", r"\bconnect\s*\([^)]*[\"'](\w+)[\"']")
HAS_METHOD = Recognizer("has_method", r"\bhas_method\s*\(\s*[\"'](\w+)[\"']")
EMIT_BY_STRING = Recognizer("emit_by_string", r"\bemit_signal\s*\(\s*[\"'](\w+)[\"']")

# String keys only: recorded as string references, never as plain usages
DICT_KEY = Recognizer("dict_key", r"(?:\[[\"']|\.get\s*\(\s*[\"'])(\w+)[\"']")
META_KEY = Recognizer("meta_key", r"\b(?:get_meta|set_meta|has_meta)\s*\(\s*[\"'](\w+)[\"']")


# =============================================================================
# SCENES / RESOURCES
# =============================================================================

SCENE_METHOD_BINDING = Recognizer("scene_method_binding", r"\bmethod=\"(\w+)\"")
SECTION_HEADER = Recognizer("section_header", r"^\[(\w+)\s*(.*?)\]\s*$", group=1)
HEADER_ATTRIBUTE = Recognizer("header_attribute", r"(\w+)\s*=\s*(\"(?:[^\"\\]|\\.)*\"|\S+)")
SCRIPT_ATTACHMENT = Recognizer(
    "script_attachment",
    r"^\s*script\s*=\s*ExtResource\(\s*\"?([^\")]+?)\"?\s*\)",
)
RES_PATH = Recognizer("res_path", r"res://([^\"'\s\)]+)")

# project.godot: Name="*res://path/to/script.gd" (``*`` marks an enabled singleton)
AUTOLOAD_ENTRY = Recognizer("autoload_entry", r"^\s*(\w+)\s*=\s*\"?(\*?)res://([^\"]+)\"?\s*$")
INI_SECTION = Recognizer("ini_section", r"^\s*\[([^\]\s]+)\]\s*$")


# =============================================================================
# SIGNAL FLOW
# =============================================================================

QUALIFIED_CONNECT = Recognizer("qualified_connect", r"(\w+)\.(\w+)\.connect\(([^)]+)\)", group=2)
SHORTHAND_CONNECT = Recognizer("shorthand_connect", r"(\w+)\.connect\(([^)]+)\)")
EMISSION = Recognizer("emission", r"(\w+)\.emit\(([^)]*)\)")


# =============================================================================
# COMPLEXITY
# =============================================================================

COMPLEXITY_KEYWORDS: Tuple[Tuple[str, "re.Pattern[str]"], ...] = (
    ("if", re.compile(r"\bif\b")),
    ("elif", re.compile(r"\belif\b")),
    ("else", re.compile(r"\belse\b")),
    ("for", re.compile(r"\bfor\b")),
    ("while", re.compile(r"\bwhile\b")),
    ("match", re.compile(r"\bmatch\b")),
    ("and", re.compile(r"\band\b")),
    ("or", re.compile(r"\bor\b")),
    ("ternary", re.compile(r"\?\s*[^:]+\s*:")),
)


# =============================================================================
# FUNCTION SPANS
# =============================================================================

FUNCTION_HEADER = Recognizer("function_header", r"^\s*(?:static\s+)?func\s+(\w+)")


@dataclass
class FunctionSpan:
    """Text span of one function: the header line plus its indented body."""
    name: str
    start_line: int  # 1-based line of the ``func`` header
    indent: int
    header: str
    body: List[str] = field(default_factory=list)

    @property
    def end_line(self) -> int:
        """Last line of the span, ignoring trailing blank lines."""
        trailing = 0
        for line in reversed(self.body):
            if line.strip():
                break
            trailing += 1
        return self.start_line + len(self.body) - trailing


def indent_of(line: str) -> int:
    """Number of leading whitespace characters (tabs and spaces count as one)."""
    return len(line) - len(line.lstrip())


def is_comment_line(stripped: str) -> bool:
    return stripped.startswith(COMMENT_MARKER)


def iter_function_spans(lines: List[str]) -> Iterator[FunctionSpan]:
    """Yield every named function span in ``lines``.

    A span ends at the first following line that is neither blank nor a
    comment and whose indentation is <= the header's. The last span of the
    file is closed at EOF.
    """
    current: Optional[FunctionSpan] = None

    for index, line in enumerate(lines):
        stripped = line.strip()

        if current is not None:
            if stripped and not is_comment_line(stripped) and indent_of(line) <= current.indent:
                yield current
                current = None
            else:
                current.body.append(line)
                continue

        header = FUNCTION_HEADER.match_line(line)
        if header:
            current = FunctionSpan(
                name=header.value,
                start_line=index + 1,
                indent=indent_of(line),
                header=line,
            )

    if current is not None:
        yield current
