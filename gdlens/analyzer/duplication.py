"""Near-duplicate function detection by normalized-text hashing."""
import hashlib
import re
from dataclasses import dataclass, field
from typing import Dict, Iterable, List

from .corpus import SourceFile
from .patterns import FunctionSpan, is_comment_line, iter_function_spans


DEFAULT_MIN_LINES = 5
SAMPLE_LENGTH = 200
REPORT_LIMIT = 20

_WHITESPACE = re.compile(r"\s+")
_STRING_LITERAL = re.compile(r"\"[^\"]*\"|'[^']*'")
_INTEGER_LITERAL = re.compile(r"\b\d+\b")


def normalize_lines(lines: Iterable[str]) -> List[str]:
    """Trim, drop blank and comment-only lines, collapse whitespace, redact literals."""
    normalized = []
    for line in lines:
        stripped = line.strip()
        if not stripped or is_comment_line(stripped):
            continue
        stripped = _WHITESPACE.sub(" ", stripped)
        stripped = _STRING_LITERAL.sub('""', stripped)
        stripped = _INTEGER_LITERAL.sub("N", stripped)
        normalized.append(stripped)
    return normalized


def body_hash(normalized: List[str]) -> str:
    return hashlib.sha1("\n".join(normalized).encode("utf-8")).hexdigest()


@dataclass
class DuplicateGroup:
    """Function bodies sharing one normalized hash."""
    digest: str
    locations: List[Dict] = field(default_factory=list)  # {file, line, function}
    sample: str = ""

    @property
    def occurrences(self) -> int:
        return len(self.locations)

    def to_dict(self) -> Dict:
        return {
            "occurrences": self.occurrences,
            "locations": list(self.locations),
            "sample": self.sample,
        }


class DuplicateFinder:
    """Group functions whose normalized bodies hash identically.

    The signature is excluded from the hash, so two helpers with different
    names but the same body are duplicates of each other.
    """

    def __init__(self, min_lines: int = DEFAULT_MIN_LINES):
        """Initialize finder.

        Args:
            min_lines: Minimum counted lines (signature plus non-blank,
                       non-comment body lines) for a function to be considered
        """
        if min_lines < 1:
            raise ValueError(f"min_lines must be >= 1, got {min_lines}")
        self.min_lines = min_lines
        self.groups: Dict[str, DuplicateGroup] = {}

    def add_file(self, source: SourceFile) -> None:
        for span in iter_function_spans(source.lines):
            self._add_span(source.relative_path, span)

    def _add_span(self, relative_path: str, span: FunctionSpan) -> None:
        normalized = normalize_lines(span.body)
        if 1 + len(normalized) < self.min_lines:
            return

        digest = body_hash(normalized)
        group = self.groups.get(digest)
        if group is None:
            code = "\n".join(
                [span.header.strip()]
                + [line.strip() for line in span.body if line.strip()]
            )
            if len(code) > SAMPLE_LENGTH:
                code = code[:SAMPLE_LENGTH] + "..."
            group = self.groups[digest] = DuplicateGroup(digest, sample=code)

        group.locations.append({
            "file": relative_path,
            "line": span.start_line,
            "function": span.name,
        })

    def duplicates(self) -> List[DuplicateGroup]:
        """Groups with two or more members, most repeated first."""
        found = [g for g in self.groups.values() if g.occurrences > 1]
        # Stable sort keeps first-seen order among equal counts
        found.sort(key=lambda g: g.occurrences, reverse=True)
        return found

    def report(self, files: Iterable[SourceFile]) -> Dict:
        """Scan ``files`` and return the duplication report."""
        analyzed = 0
        for source in files:
            self.add_file(source)
            analyzed += 1

        duplicates = self.duplicates()
        return {
            "summary": {
                "total_duplicates_found": len(duplicates),
                "files_analyzed": analyzed,
                "min_lines_threshold": self.min_lines,
            },
            "duplicates": [g.to_dict() for g in duplicates[:REPORT_LIMIT]],
            "recommendation": (
                "Consider extracting duplicated code into utility functions"
                if duplicates else "No significant duplication found"
            ),
        }
