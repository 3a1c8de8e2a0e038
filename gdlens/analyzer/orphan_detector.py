"""Unused file detection - project files nothing refers to by ``res://`` path."""
from pathlib import PurePosixPath
from typing import Dict, Iterable, List

import networkx as nx

from .corpus import SourceFile
from .project_config import MANIFEST_NAME
from .patterns import RES_PATH


SCRIPT_SUFFIXES = {'.gd'}
SCENE_SUFFIXES = {'.tscn'}
RESOURCE_SUFFIXES = {'.tres'}

# Scripts on these paths are loaded by name or only run by a test runner
EXEMPT_SCRIPT_MARKERS = ('autoload', 'utils', 'test_')


class OrphanDetector:
    """Detect files with zero incoming ``res://`` references."""

    def __init__(self):
        self.graph = nx.DiGraph()

    def build_graph(self, files: Iterable[SourceFile], manifest_refs: Iterable[str] = ()) -> nx.DiGraph:
        """Create a reference graph.

        Every file in ``files`` is a node. Edge (A, B) means "A mentions
        ``res://B``". References from ``project.godot`` come from the
        ``MANIFEST_NAME`` node. Referenced paths that are not in ``files``
        still get a node.

        Args:
            files: Scripts, scenes and resources of the project
            manifest_refs: Relative paths referenced by the manifest

        Returns:
            NetworkX DiGraph of file references
        """
        for source in files:
            self.graph.add_node(source.relative_path, candidate=True)

        for ref in manifest_refs:
            self.graph.add_edge(MANIFEST_NAME, ref)

        for source in files:
            for ref in RES_PATH.values(source.raw_text):
                # A scene listing its own path is not a use
                if ref != source.relative_path:
                    self.graph.add_edge(source.relative_path, ref)

        return self.graph

    @staticmethod
    def is_exempt(relative_path: str) -> bool:
        """Scripts under an autoload or utils path, or named ``test_*``, are never reported."""
        if PurePosixPath(relative_path).suffix not in SCRIPT_SUFFIXES:
            return False
        return any(marker in relative_path for marker in EXEMPT_SCRIPT_MARKERS)

    def detect_orphans(self, graph: nx.DiGraph = None) -> List[str]:
        """Candidate files with in-degree 0, sorted."""
        graph = graph if graph is not None else self.graph
        orphans = []
        for node, data in graph.nodes(data=True):
            if not data.get('candidate'):
                continue
            if graph.in_degree(node) == 0 and not self.is_exempt(node):
                orphans.append(node)
        return sorted(orphans)

    def report(self, files: Iterable[SourceFile], manifest_refs: Iterable[str] = ()) -> Dict:
        """Build the graph and summarize unreferenced scripts, scenes and resources."""
        files = list(files)
        self.build_graph(files, manifest_refs)
        orphans = self.detect_orphans()

        by_kind: Dict[str, List[str]] = {"scripts": [], "scenes": [], "resources": []}
        for path in orphans:
            suffix = PurePosixPath(path).suffix
            if suffix in SCRIPT_SUFFIXES:
                by_kind["scripts"].append(path)
            elif suffix in SCENE_SUFFIXES:
                by_kind["scenes"].append(path)
            elif suffix in RESOURCE_SUFFIXES:
                by_kind["resources"].append(path)

        total_unused = sum(len(paths) for paths in by_kind.values())
        total_files = len(files)
        waste = round(total_unused / total_files * 100) if total_files else 0

        if total_unused < 5:
            health = "CLEAN"
        elif total_unused < 15:
            health = "SOME CLEANUP NEEDED"
        else:
            health = "SIGNIFICANT CLEANUP NEEDED"

        return {
            "summary": {
                "total_files": total_files,
                "unreferenced_scripts": len(by_kind["scripts"]),
                "unreferenced_scenes": len(by_kind["scenes"]),
                "unreferenced_resources": len(by_kind["resources"]),
                "waste_percentage": f"{waste}%",
            },
            "health": health,
            "unreferenced_scripts": by_kind["scripts"][:20],
            "unreferenced_scenes": by_kind["scenes"][:10],
            "unreferenced_resources": by_kind["resources"][:10],
            "note": "Autoloads, utils, and test files are excluded. Verify before deleting.",
            "recommendations": (
                [f"Review and remove {total_unused} potentially unused files"]
                if total_unused else ["No unused files detected!"]
            ),
        }
