"""Tool facade: one method per analysis, each returning a plain dict.

Every call re-reads the project. A missing project, file or manifest never
escapes as an exception; it becomes a structured error result.
"""
import functools
from typing import Callable, Dict, Optional

from gdlens.analyzer.complexity import ComplexityAnalyzer
from gdlens.analyzer.corpus import (
    RESOURCE_GLOB,
    SCENE_GLOB,
    SCRIPT_GLOB,
    CorpusWalker,
    NotFoundError,
    ReadFailureError,
    excluded_dirs_for,
)
from gdlens.analyzer.duplication import DuplicateFinder
from gdlens.analyzer.extractor import SymbolExtractor
from gdlens.analyzer.graph_builder import AutoloadGraphBuilder
from gdlens.analyzer.orphan_detector import OrphanDetector
from gdlens.analyzer.project_config import ProjectManifest
from gdlens.analyzer.reference_tracker import ReferenceTracker
from gdlens.analyzer.scene_parser import DEFAULT_DEPTH, ERROR, SceneParser
from gdlens.analyzer.signal_flow import SignalFlowBuilder
from gdlens.analyzer.wisdom_registry import WisdomRegistry
from gdlens.config import AnalysisSettings


def error_result(kind: str, message: str) -> Dict:
    return {"error": kind, "message": message, "is_error": True}


def is_error(result: Dict) -> bool:
    return bool(result.get("is_error"))


def tool_boundary(method: Callable[..., Dict]) -> Callable[..., Dict]:
    """Convert NotFoundError and ReadFailureError into error results."""
    @functools.wraps(method)
    def wrapper(*args, **kwargs) -> Dict:
        try:
            return method(*args, **kwargs)
        except NotFoundError as e:
            return error_result("not_found", str(e))
        except ReadFailureError as e:
            return error_result("read_failure", str(e))
    return wrapper


class ProjectAnalyzer:
    """Run gdlens analyses against one project."""

    def __init__(self, settings: AnalysisSettings):
        self.settings = settings

    def _walker(self) -> CorpusWalker:
        return CorpusWalker(
            self.settings.project_path,
            excluded_dirs_for(self.settings.include_addons, self.settings.extra_excluded_dirs),
        )

    def _registry(self) -> WisdomRegistry:
        return WisdomRegistry(self.settings.rules_dir)

    @tool_boundary
    def detect_dead_code(self) -> Dict:
        """Potentially dead functions, variables and signals across the project."""
        walker = self._walker()
        scripts = walker.load(SCRIPT_GLOB)
        scenes = walker.load(SCENE_GLOB)

        registry = self._registry()
        declarations = SymbolExtractor(registry).extract_project(scripts)
        tracker = ReferenceTracker(registry)
        usages = tracker.collect(scripts, scenes)

        report = tracker.find_dead_symbols(declarations, usages)
        report.files_analyzed = len(scripts)
        report.files_skipped = len(walker.skipped)
        report.addons_excluded = not self.settings.include_addons
        return report.to_dict()

    @tool_boundary
    def analyze_signal_flow(self, file: Optional[str] = None) -> Dict:
        """Signal flow of the whole project, or of ``file`` alone."""
        walker = self._walker()
        files = [walker.load_one(file)] if file else walker.load(SCRIPT_GLOB)
        return SignalFlowBuilder().build(files)

    @tool_boundary
    def analyze_autoloads(self) -> Dict:
        """Autoload dependency graph, mutual pairs and a suggested load order."""
        walker = self._walker()
        entries = ProjectManifest(walker.root).read_autoloads()

        texts: Dict[str, Optional[str]] = {}
        for entry in entries:
            try:
                texts[entry.name] = walker.read(entry.source_file)
            except (NotFoundError, OSError, UnicodeDecodeError):
                texts[entry.name] = None

        builder = AutoloadGraphBuilder(entries, texts)
        builder.build()
        return builder.report()

    @tool_boundary
    def get_complexity(self, file: str) -> Dict:
        return ComplexityAnalyzer().analyze_file(self._walker().load_one(file))

    @tool_boundary
    def complexity_heatmap(self) -> Dict:
        scripts = self._walker().load(SCRIPT_GLOB)
        return ComplexityAnalyzer().heatmap(scripts, addons_excluded=not self.settings.include_addons)

    @tool_boundary
    def find_duplication(self, min_lines: Optional[int] = None) -> Dict:
        finder = DuplicateFinder(min_lines or self.settings.min_duplicate_lines)
        return finder.report(self._walker().load(SCRIPT_GLOB))

    @tool_boundary
    def document_symbols(self, file: str) -> Dict:
        """Outline of one script."""
        source = self._walker().load_one(file)
        symbols = SymbolExtractor(self._registry()).outline(source)
        return {"file": source.relative_path, "symbols": symbols, "total_symbols": len(symbols)}

    @tool_boundary
    def find_unused_files(self) -> Dict:
        """Scripts, scenes and resources no ``res://`` path points at."""
        walker = self._walker()
        files = walker.load(SCRIPT_GLOB) + walker.load(SCENE_GLOB) + walker.load(RESOURCE_GLOB)
        manifest_refs = ProjectManifest(walker.root).res_references()
        return OrphanDetector().report(files, manifest_refs)

    @tool_boundary
    def scene_tree(self, scene: str, depth: int = DEFAULT_DEPTH) -> Dict:
        source = self._walker().load_one(scene)
        return SceneParser(source).report(max_depth=depth)

    @tool_boundary
    def validate_scenes(self) -> Dict:
        """Missing resources, missing scripts and duplicate node names in every scene."""
        walker = self._walker()
        scenes = walker.load(SCENE_GLOB)

        issues = []
        for scene in scenes:
            issues.extend(SceneParser(scene).validate(walker.exists))

        errors = sum(1 for issue in issues if issue.severity == ERROR)
        broken = {issue.scene for issue in issues}
        return {
            "summary": {
                "scenes_checked": len(scenes),
                "valid_scenes": len(scenes) - len(broken),
                "errors": errors,
                "warnings": len(issues) - errors,
                "files_skipped": len(walker.skipped),
            },
            "health": "HEALTHY" if errors == 0 else "NEEDS ATTENTION",
            "issues": [issue.to_dict() for issue in issues],
        }
