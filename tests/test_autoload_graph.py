"""Tests for the autoload dependency graph."""
from gdlens.analyzer.graph_builder import CIRCULAR_WARNING, AutoloadGraphBuilder
from gdlens.analyzer.project_config import AutoloadEntry


def entries(*names):
    return [
        AutoloadEntry(name, f'res://autoload/{name.lower()}.gd', f'autoload/{name.lower()}.gd')
        for name in names
    ]


def builder(texts, order=None):
    graph = AutoloadGraphBuilder(entries(*(order or texts)), texts)
    graph.build()
    return graph


class TestEdges:
    """Edge detection by whole-word mention."""

    def test_edges_follow_mentions(self):
        graph = builder({
            'UI': 'func _ready():\n\tGame.start()\n',
            'Game': 'func start():\n\tAudio.play()\n',
            'Audio': 'func play():\n\tpass\n',
        })
        assert graph.dependencies() == {'UI': ['Game'], 'Game': ['Audio'], 'Audio': []}
        assert graph.dependents() == {'UI': [], 'Game': ['UI'], 'Audio': ['Game']}

    def test_whole_word_only(self):
        graph = builder({
            'Game': 'var game_state = GameState.new()\n',
            'GameState': 'extends Node\n',
        })
        assert graph.dependencies()['Game'] == ['GameState']
        assert graph.dependencies()['GameState'] == []

    def test_self_mention_is_not_an_edge(self):
        graph = builder({'Game': 'Game.reset()\n'})
        assert graph.dependencies() == {'Game': []}

    def test_unreadable_source_keeps_node_without_edges(self):
        graph = builder({'Audio': None, 'Game': 'Audio.play()\n'})
        assert set(graph.graph.nodes) == {'Audio', 'Game'}
        assert graph.dependencies() == {'Audio': [], 'Game': ['Audio']}

    def test_missing_text_key(self):
        graph = AutoloadGraphBuilder(entries('Audio'), {})
        graph.build()
        assert graph.dependencies() == {'Audio': []}


class TestCycles:
    """Mutual-pair detection."""

    def test_pair_reported_once(self):
        graph = builder({'A': 'B.x()\n', 'B': 'A.y()\n'})
        assert graph.find_circular_pairs() == [['A', 'B']]

    def test_pair_sorted(self):
        graph = builder({'Zed': 'Alpha\n', 'Alpha': 'Zed\n'})
        assert graph.find_circular_pairs() == [['Alpha', 'Zed']]

    def test_longer_cycle_is_not_reported(self):
        graph = builder({'A': 'B\n', 'B': 'C\n', 'C': 'A\n'})
        assert graph.find_circular_pairs() == []


class TestLoadOrder:
    """suggest_load_order()."""

    def test_dependencies_come_first(self):
        graph = builder({
            'UI': 'Game.start()\n',
            'Game': 'Audio.play()\n',
            'Audio': 'pass\n',
        })
        assert graph.suggest_load_order() == ['Audio', 'Game', 'UI']

    def test_independent_nodes_keep_manifest_order(self):
        graph = builder({'B': 'pass\n', 'A': 'pass\n', 'C': 'pass\n'})
        assert graph.suggest_load_order() == ['B', 'A', 'C']

    def test_cyclic_graph_still_orders_every_node(self):
        graph = builder({'A': 'B\n', 'B': 'C\n', 'C': 'A\n'})
        order = graph.suggest_load_order()
        assert sorted(order) == ['A', 'B', 'C']
        assert len(order) == 3


class TestReport:

    def test_report_builds_on_demand(self):
        graph = AutoloadGraphBuilder(entries('Audio', 'Game'), {'Audio': '', 'Game': 'Audio\n'})
        report = graph.report()

        assert report['autoloads'] == [
            {'name': 'Audio', 'path': 'res://autoload/audio.gd'},
            {'name': 'Game', 'path': 'res://autoload/game.gd'},
        ]
        assert report['dependencies'] == {'Audio': [], 'Game': ['Audio']}
        assert report['dependents'] == {'Audio': ['Game'], 'Game': []}
        assert report['circular_dependencies'] == []
        assert report['warning'] is None
        assert report['suggested_load_order'] == ['Audio', 'Game']

    def test_report_warning(self):
        report = AutoloadGraphBuilder(entries('A', 'B'), {'A': 'B', 'B': 'A'}).report()
        assert report['circular_dependencies'] == [['A', 'B']]
        assert report['warning'] == CIRCULAR_WARNING

    def test_empty_registry(self):
        report = AutoloadGraphBuilder([], {}).report()
        assert report['autoloads'] == []
        assert report['suggested_load_order'] == []
        assert report['warning'] is None
