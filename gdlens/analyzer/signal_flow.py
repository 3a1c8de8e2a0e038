"""Signal flow graph: declarations, connections and emissions keyed by signal name.

Linking is a same-name join across the whole corpus. Two classes declaring a
signal with the same name share one flow entry; that false link is accepted.
"""
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional

from .corpus import SourceFile
from .patterns import EMISSION, QUALIFIED_CONNECT, SHORTHAND_CONNECT, SIGNAL_DECL


@dataclass
class SignalRecord:
    """Flow entry of one declared signal name."""
    name: str
    declared_in: str
    connections: List[Dict] = field(default_factory=list)  # {file, handler}
    emissions: List[Dict] = field(default_factory=list)  # {file, line}

    @property
    def is_orphan(self) -> bool:
        return not self.connections and not self.emissions

    def to_dict(self) -> Dict:
        return {
            "defined_in": self.declared_in,
            "connected_to": list(self.connections),
            "emitted_from": list(self.emissions),
        }


class SignalFlowBuilder:
    """Collect signal facts file by file, then link them by name."""

    def __init__(self):
        self.signals: List[Dict] = []
        self.connections: List[Dict] = []
        self.emissions: List[Dict] = []

    def scan_file(self, source: SourceFile) -> None:
        """Record declarations, connections and emissions of one file.

        Each recognizer contributes at most one hit per line. A qualified
        ``source.signal.connect(...)`` hit suppresses the shorthand recognizer
        on that line so one connection is never counted twice.
        """
        for index, line in enumerate(source.lines):
            line_no = index + 1

            declared = SIGNAL_DECL.match_line(line)
            if declared:
                self.signals.append({
                    "file": source.relative_path,
                    "line": line_no,
                    "name": declared.value,
                    "params": (declared.groups[1] or "").strip(),
                })

            qualified = QUALIFIED_CONNECT.search(line)
            if qualified:
                emitter, signal, handler = qualified.groups
                self.connections.append({
                    "file": source.relative_path,
                    "line": line_no,
                    "source": emitter,
                    "signal": signal,
                    "handler": handler.strip(),
                })
            else:
                shorthand = SHORTHAND_CONNECT.search(line)
                if shorthand:
                    self.connections.append({
                        "file": source.relative_path,
                        "line": line_no,
                        "signal": shorthand.value,
                        "handler": shorthand.groups[1].strip(),
                    })

            emitted = EMISSION.search(line)
            if emitted:
                self.emissions.append({
                    "file": source.relative_path,
                    "line": line_no,
                    "signal": emitted.value,
                    "args": (emitted.groups[1] or "").strip(),
                })

    def flow_graph(self) -> Dict[str, SignalRecord]:
        """Link collected facts; only declared names get an entry."""
        graph: Dict[str, SignalRecord] = {}
        for signal in self.signals:
            if signal["name"] not in graph:
                graph[signal["name"]] = SignalRecord(signal["name"], signal["file"])

        for conn in self.connections:
            record = graph.get(conn["signal"])
            if record is not None:
                record.connections.append({"file": conn["file"], "handler": conn["handler"]})

        for emit in self.emissions:
            record = graph.get(emit["signal"])
            if record is not None:
                record.emissions.append({"file": emit["file"], "line": emit["line"]})

        return graph

    def build(self, files: Optional[Iterable[SourceFile]] = None) -> Dict:
        """Scan ``files`` (if given) and return the signal flow report.

        Args:
            files: Sources to scan; pass a single file for per-file analysis

        Returns:
            Dict with summary, signals, connections, emissions, signal_flow
            and orphan_signals
        """
        if files is not None:
            for source in files:
                self.scan_file(source)

        graph = self.flow_graph()
        orphans = [s for s in self.signals if graph[s["name"]].is_orphan]

        return {
            "summary": {
                "total_signals_defined": len(self.signals),
                "total_connections": len(self.connections),
                "total_emissions": len(self.emissions),
                "orphan_signals": len(orphans),
            },
            "signals": list(self.signals),
            "connections": list(self.connections),
            "emissions": list(self.emissions),
            "signal_flow": {name: record.to_dict() for name, record in graph.items()},
            "orphan_signals": orphans,
        }
