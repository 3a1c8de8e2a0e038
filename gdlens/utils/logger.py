"""Terminal-safe output helpers.

Reports use box-drawing guides, heatmap bars and status glyphs. Terminals that
cannot encode UTF-8 (legacy Windows consoles, some CI runners) get ASCII
replacements instead of a UnicodeEncodeError halfway through a report.
"""
import locale
import sys
from typing import Callable


# Glyphs gdlens emits, mapped to ASCII stand-ins
ICON_MAP = {
    # Tree guides (scene trees, dependency graphs)
    '├──': '|--',
    '└──': '`--',
    '│': '|',
    '─': '-',

    # Heatmap bars
    '█': '#',
    '▓': '=',
    '░': '.',

    # Status
    '✓': '[OK]',
    '✗': '[FAIL]',
    '⚠': '[WARN]',
    '⚡': '[!]',
    '●': '*',

    # Arrows used in dependency edges
    '→': '->',
    '←': '<-',
    '⇄': '<->',
    '…': '...',
}


def detect_terminal_encoding() -> str:
    """Detect the encoding of stdout, falling back to the locale.

    Returns:
        Lower-cased encoding name ('utf-8', 'cp1252', 'ascii', ...)
    """
    encoding = getattr(sys.stdout, 'encoding', None)
    if encoding:
        return encoding.lower()

    try:
        return locale.getpreferredencoding().lower()
    except (ValueError, LookupError):
        return 'ascii'


def is_utf8_capable() -> bool:
    """Check whether the terminal can render the glyphs in ICON_MAP."""
    return detect_terminal_encoding().replace('_', '-') in ('utf-8', 'utf8')


def sanitize_for_terminal(text: str, force: bool = False) -> str:
    """Replace known glyphs with ASCII when the terminal is not UTF-8.

    Args:
        text: Text that may contain glyphs from ICON_MAP
        force: Sanitize regardless of the detected encoding

    Returns:
        Text safe to write to the current terminal
    """
    if not force and is_utf8_capable():
        return text

    # Longest keys first so multi-character guides win over their parts
    for glyph in sorted(ICON_MAP, key=len, reverse=True):
        text = text.replace(glyph, ICON_MAP[glyph])
    return text


def create_safe_print(stream=None) -> Callable:
    """Build a print function that sanitizes string arguments.

    Args:
        stream: Default output stream (stdout when None)
    """
    def safe_print(*args, **kwargs):
        kwargs.setdefault('file', stream or sys.stdout)
        print(*(sanitize_for_terminal(a) if isinstance(a, str) else a for a in args), **kwargs)

    return safe_print


safe_print = create_safe_print()


def warn(message: str) -> None:
    """Write a non-fatal warning to stderr.

    Used for problems that degrade a scan without stopping it, such as a
    malformed rules file or project config.
    """
    safe_print(f"[gdlens] WARNING: {message}", file=sys.stderr)
