"""Autoload dependency graph builder using NetworkX.

Nodes are autoload singletons. Edge (A, B) means "A's source text mentions B
as a whole word". Detection is name-based; a comment or string that contains
another singleton's name is a dependency too.
"""
import re
from typing import Dict, Iterable, List, Mapping, Optional

import networkx as nx

from .project_config import AutoloadEntry


CIRCULAR_WARNING = "CIRCULAR DEPENDENCIES DETECTED!"


class AutoloadGraphBuilder:
    """Build the directed dependency graph of autoload singletons."""

    def __init__(self, entries: Iterable[AutoloadEntry], texts: Mapping[str, Optional[str]]):
        """Initialize graph builder.

        Args:
            entries: Registered singletons in manifest order
            texts: Source text per singleton name; ``None`` or a missing key
                   means the source could not be read
        """
        self.entries: List[AutoloadEntry] = list(entries)
        self.texts = texts
        self.graph = nx.DiGraph()

    def build(self) -> nx.DiGraph:
        """Populate and return the graph.

        Every singleton is a node, even when its source is unreadable (it then
        has no outgoing edges). Node and edge insertion follows manifest order.
        """
        for entry in self.entries:
            self.graph.add_node(entry.name, path=entry.res_path, source_file=entry.source_file)

        for entry in self.entries:
            content = self.texts.get(entry.name)
            if content is None:
                continue
            for other in self.entries:
                if other.name == entry.name:
                    continue
                if re.search(rf"\b{re.escape(other.name)}\b", content):
                    self.graph.add_edge(entry.name, other.name)

        return self.graph

    def dependencies(self) -> Dict[str, List[str]]:
        """``{name: [singletons it references]}``."""
        return {node: list(self.graph.successors(node)) for node in self.graph.nodes}

    def dependents(self) -> Dict[str, List[str]]:
        """``{name: [singletons referencing it]}``."""
        return {node: list(self.graph.predecessors(node)) for node in self.graph.nodes}

    def find_circular_pairs(self) -> List[List[str]]:
        """Report mutual pairs (A -> B and B -> A), each once, sorted.

        Only 2-cycles are detected. A longer loop such as A -> B -> C -> A
        yields no pair at all.
        """
        pairs = []
        for a, b in self.graph.edges:
            if self.graph.has_edge(b, a):
                pair = sorted((a, b))
                if pair not in pairs:
                    pairs.append(pair)
        return pairs

    def suggest_load_order(self) -> List[str]:
        """Depth-first postorder over all singletons: dependencies come first.

        A node that is still in progress when reached again is treated as
        already satisfied, so cyclic graphs still produce a total order. That
        order is not guaranteed to be correct for the nodes on the cycle.
        """
        order: List[str] = []
        visited = set()
        in_progress = set()

        def visit(name: str) -> None:
            if name in in_progress or name in visited:
                return
            in_progress.add(name)
            for dep in self.graph.successors(name):
                visit(dep)
            in_progress.discard(name)
            visited.add(name)
            order.append(name)

        for node in self.graph.nodes:
            visit(node)

        return order

    def report(self) -> Dict:
        """Serializable dependency report."""
        if self.graph.number_of_nodes() == 0 and self.entries:
            self.build()

        circular = self.find_circular_pairs()
        return {
            "autoloads": [{"name": e.name, "path": e.res_path} for e in self.entries],
            "dependencies": self.dependencies(),
            "dependents": self.dependents(),
            "circular_dependencies": circular,
            "warning": CIRCULAR_WARNING if circular else None,
            "suggested_load_order": self.suggest_load_order(),
        }
