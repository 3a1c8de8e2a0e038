"""Cyclomatic complexity approximation by keyword counting.

Each function starts at 1 and gains 1 per body line for every branching,
looping or boolean keyword present on that line. Two ``if`` on one line count
once; nested constructs on one line are undercounted. This is a line-keyword
count, not a control-flow-graph edge count.
"""
from typing import Dict, Iterable, List

from .corpus import SourceFile
from .patterns import COMPLEXITY_KEYWORDS, INLINE_FUNCTION_BODY, is_comment_line, iter_function_spans


HIGH_COMPLEXITY = 10  # Functions above this are hotspots
NOTABLE_FILE_COMPLEXITY = 5  # Heatmap keeps files whose worst function reaches this
MEDIUM_FILE_COMPLEXITY = 12
HIGH_FILE_COMPLEXITY = 20
REFACTOR_THRESHOLD = 15
BREAK_UP_THRESHOLD = 25

GRADE_BANDS = (
    (5, "A (simple)"),
    (10, "B (moderate)"),
    (20, "C (complex)"),
    (30, "D (very complex)"),
)
WORST_GRADE = "F (untestable)"


def grade(complexity: int) -> str:
    """Map a complexity score to its letter band."""
    for ceiling, label in GRADE_BANDS:
        if complexity <= ceiling:
            return label
    return WORST_GRADE


def line_complexity(line: str) -> int:
    """Number of distinct complexity keywords present on one line."""
    return sum(1 for _, pattern in COMPLEXITY_KEYWORDS if pattern.search(line))


def health_assessment(project_average: float) -> str:
    if project_average < 5:
        return "EXCELLENT - Low complexity, maintainable code"
    if project_average < 8:
        return "GOOD - Reasonable complexity levels"
    if project_average < 12:
        return "MODERATE - Some refactoring may help"
    return "NEEDS ATTENTION - High complexity detected"


class ComplexityAnalyzer:
    """Per-function complexity records and the project heatmap."""

    def function_records(self, source: SourceFile) -> List[Dict]:
        """One ``{function, line, complexity, grade}`` record per function span.

        Statements written after the signature on the ``func`` line count;
        parameter defaults and comment-only lines do not.
        """
        records = []
        for span in iter_function_spans(source.lines):
            complexity = 1
            inline = INLINE_FUNCTION_BODY.search(span.header)
            for line in ([inline.value] if inline else []) + span.body:
                stripped = line.strip()
                if not stripped or is_comment_line(stripped):
                    continue
                complexity += line_complexity(stripped)
            records.append({
                "function": span.name,
                "line": span.start_line,
                "complexity": complexity,
                "grade": grade(complexity),
            })
        return records

    def analyze_file(self, source: SourceFile) -> Dict:
        """Complexity report for a single file."""
        functions = self.function_records(source)
        total = len(functions)
        average = sum(f["complexity"] for f in functions) / total if total else 0

        return {
            "file": source.relative_path,
            "functions": functions,
            "summary": {
                "total_functions": total,
                "average_complexity": round(average, 2),
                "high_complexity": sum(1 for f in functions if f["complexity"] > HIGH_COMPLEXITY),
            },
        }

    def heatmap(self, files: Iterable[SourceFile], addons_excluded: bool = True) -> Dict:
        """Aggregate complexity over a project.

        Only files whose worst function reaches NOTABLE_FILE_COMPLEXITY are
        listed, sorted by that worst score.

        Args:
            files: Scripts to analyze
            addons_excluded: Recorded in the summary as-is

        Returns:
            Heatmap report dict
        """
        scanned = 0
        file_stats = []
        all_complexities: List[int] = []

        for source in files:
            scanned += 1
            functions = self.function_records(source)
            if not functions:
                continue

            scores = [f["complexity"] for f in functions]
            max_complexity = max(scores)
            if max_complexity < NOTABLE_FILE_COMPLEXITY:
                continue

            all_complexities.extend(scores)
            hotspots = sorted(
                (f for f in functions if f["complexity"] > HIGH_COMPLEXITY),
                key=lambda f: f["complexity"],
                reverse=True,
            )
            file_stats.append({
                "file": source.relative_path,
                "functions": len(functions),
                "avg_complexity": round(sum(scores) / len(scores), 1),
                "max_complexity": max_complexity,
                "hotspots": hotspots,
            })

        file_stats.sort(key=lambda f: f["max_complexity"], reverse=True)

        project_avg = 0.0
        if all_complexities:
            project_avg = round(sum(all_complexities) / len(all_complexities), 1)

        candidates = []
        for stats in file_stats:
            if stats["max_complexity"] <= REFACTOR_THRESHOLD:
                continue
            worst = stats["hotspots"][0]["function"] if stats["hotspots"] else "unknown"
            candidates.append({
                "file": stats["file"],
                "worst_function": worst,
                "complexity": stats["max_complexity"],
                "suggestion": (
                    "Consider breaking into smaller functions"
                    if stats["max_complexity"] > BREAK_UP_THRESHOLD
                    else "Review for simplification opportunities"
                ),
            })

        all_hotspots = sorted(
            ({**h, "file": stats["file"]} for stats in file_stats for h in stats["hotspots"]),
            key=lambda h: h["complexity"],
            reverse=True,
        )

        return {
            "summary": {
                "files_analyzed": scanned,
                "files_with_notable_complexity": len(file_stats),
                "project_avg_complexity": project_avg,
                "high_complexity_files": sum(
                    1 for f in file_stats if f["max_complexity"] > HIGH_FILE_COMPLEXITY
                ),
                "medium_complexity_files": sum(
                    1 for f in file_stats
                    if MEDIUM_FILE_COMPLEXITY < f["max_complexity"] <= HIGH_FILE_COMPLEXITY
                ),
                "addons_excluded": addons_excluded,
            },
            "health_assessment": health_assessment(project_avg),
            "refactoring_candidates": candidates[:5],
            "top_complex_files": file_stats[:10],
            "all_hotspots": all_hotspots[:20],
        }
