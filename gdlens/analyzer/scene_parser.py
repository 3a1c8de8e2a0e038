"""Scene (``.tscn``) node hierarchy parser."""
from collections import Counter
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional

from .corpus import SourceFile
from .patterns import HEADER_ATTRIBUTE, SCRIPT_ATTACHMENT, SECTION_HEADER
from .project_config import RES_SCHEME, from_res_path


DEFAULT_DEPTH = 10
ROOT_PARENT = '.'
INSTANCE_TYPE = 'Instance'

ERROR = 'error'
WARNING = 'warning'


@dataclass
class SceneNode:
    """One ``[node ...]`` section."""
    name: str
    type: str
    parent: Optional[str] = None  # None for the scene root
    script: Optional[str] = None
    script_line: int = 0
    line: int = 0
    children: List['SceneNode'] = field(default_factory=list)

    def path(self) -> str:
        """NodePath relative to the root, as used in ``parent=`` attributes."""
        if self.parent is None:
            return ROOT_PARENT
        if self.parent == ROOT_PARENT:
            return self.name
        return f"{self.parent}/{self.name}"

    def to_dict(self) -> Dict:
        return {
            "name": self.name,
            "type": self.type,
            "script": self.script,
            "children": [child.to_dict() for child in self.children],
        }


@dataclass(frozen=True)
class SceneIssue:
    """A broken reference or suspicious structure found in one scene."""
    scene: str
    category: str  # missing_resource, missing_script, duplicate_name
    severity: str
    message: str
    line: int
    path: Optional[str] = None

    def to_dict(self) -> Dict:
        return {
            "scene": self.scene,
            "category": self.category,
            "severity": self.severity,
            "message": self.message,
            "line": self.line,
            "path": self.path,
        }


def parse_attributes(text: str) -> Dict[str, str]:
    """``name="Player" type="Node2D"`` -> ``{"name": "Player", "type": "Node2D"}``."""
    attributes = {}
    for match in HEADER_ATTRIBUTE.find_all(text):
        key, value = match.groups
        if value.startswith('"') and value.endswith('"') and len(value) >= 2:
            value = value[1:-1]
        attributes[key] = value
    return attributes


class SceneParser:
    """Parse nodes, external resources and script attachments of one scene."""

    def __init__(self, source: SourceFile):
        self.source = source
        self.nodes: List[SceneNode] = []
        self.ext_resources: Dict[str, str] = {}  # id -> res:// path
        self.resource_lines: Dict[str, int] = {}
        self.resource_types: Dict[str, str] = {}
        self._parse()

    def _parse(self) -> None:
        current: Optional[SceneNode] = None

        for index, line in enumerate(self.source.lines):
            header = SECTION_HEADER.match_line(line.strip())
            if header:
                section, attribute_text = header.groups
                attributes = parse_attributes(attribute_text or "")
                current = None

                if section == 'ext_resource' and 'id' in attributes:
                    resource_id = attributes['id']
                    self.ext_resources[resource_id] = attributes.get('path', '')
                    self.resource_lines[resource_id] = index + 1
                    self.resource_types[resource_id] = attributes.get('type', 'Resource')
                elif section == 'node' and 'name' in attributes:
                    current = SceneNode(
                        name=attributes['name'],
                        type=attributes.get('type', INSTANCE_TYPE),
                        parent=attributes.get('parent'),
                        line=index + 1,
                    )
                    self.nodes.append(current)
                continue

            if current is not None:
                attached = SCRIPT_ATTACHMENT.match_line(line)
                if attached:
                    # Godot 4 uses string ids, Godot 3 numeric ones
                    current.script = self.ext_resources.get(attached.value, attached.value)
                    current.script_line = index + 1

    @property
    def root(self) -> Optional[SceneNode]:
        for node in self.nodes:
            if node.parent is None:
                return node
        return None

    def build_tree(self, max_depth: int = DEFAULT_DEPTH) -> Optional[SceneNode]:
        """Link children under the root, stopping below ``max_depth`` levels.

        The root is depth 1. Returns None for a scene without a root node.
        """
        root = self.root
        if root is None:
            return None

        by_parent: Dict[str, List[SceneNode]] = {}
        for node in self.nodes:
            if node.parent is not None:
                by_parent.setdefault(node.parent, []).append(node)

        def attach(node: SceneNode, depth: int) -> None:
            node.children = []
            if depth >= max_depth:
                return
            for child in by_parent.get(node.path(), []):
                node.children.append(child)
                attach(child, depth + 1)

        attach(root, 1)
        return root

    def node_types(self) -> Dict[str, int]:
        return dict(Counter(node.type for node in self.nodes))

    def scripts(self) -> List[Dict]:
        return [{"node": n.name, "script": n.script} for n in self.nodes if n.script]

    def report(self, max_depth: int = DEFAULT_DEPTH) -> Dict:
        tree = self.build_tree(max_depth)
        return {
            "scene": self.source.relative_path,
            "total_nodes": len(self.nodes),
            "tree": tree.to_dict() if tree else {"name": "Empty Scene", "type": None, "script": None, "children": []},
            "node_types": self.node_types(),
            "scripts": self.scripts(),
        }

    def validate(self, exists: Callable[[str], bool]) -> List[SceneIssue]:
        """Broken references and duplicate sibling names in this scene.

        ``exists`` answers whether a root-relative path is present. Only
        ``res://`` targets are checked; ``uid://`` and ``user://`` paths are
        left alone.
        """
        scene = self.source.relative_path
        issues: List[SceneIssue] = []

        for resource_id, res_path in self.ext_resources.items():
            if res_path.startswith(RES_SCHEME) and not exists(from_res_path(res_path)):
                issues.append(SceneIssue(
                    scene, 'missing_resource', ERROR,
                    f"Missing {self.resource_types[resource_id]}: {res_path}",
                    self.resource_lines[resource_id], res_path,
                ))

        for node in self.nodes:
            if not node.script:
                continue
            if node.script.startswith(RES_SCHEME):
                if not exists(from_res_path(node.script)):
                    issues.append(SceneIssue(
                        scene, 'missing_script', ERROR,
                        f"Node '{node.name}' uses missing script: {node.script}",
                        node.script_line, node.script,
                    ))
            elif node.script not in self.ext_resources.values():
                issues.append(SceneIssue(
                    scene, 'missing_script', ERROR,
                    f"Node '{node.name}' uses undeclared resource id: {node.script}",
                    node.script_line,
                ))

        seen = set()
        for node in self.nodes:
            key = (node.parent, node.name)
            if key in seen:
                issues.append(SceneIssue(
                    scene, 'duplicate_name', WARNING,
                    f"Duplicate node name '{node.name}' under parent '{node.parent or ROOT_PARENT}'",
                    node.line,
                ))
            seen.add(key)

        return issues
