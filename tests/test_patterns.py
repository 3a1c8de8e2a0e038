"""Tests for the recognizer catalogue and function span helper."""
from gdlens.analyzer.patterns import (
    BARE_CALL,
    DOTTED_PROPERTY,
    EMIT_BY_STRING,
    FUNCTION_DECL,
    QUALIFIED_CONNECT,
    SCRIPT_ATTACHMENT,
    SIGNAL_DECL,
    VARIABLE_DECL,
    Recognizer,
    iter_function_spans,
)


class TestRecognizer:
    """Generic Recognizer behaviour."""

    def test_find_all_returns_every_hit(self):
        assert BARE_CALL.values("foo(bar(1))") == ["foo", "bar"]

    def test_match_span_points_at_name(self):
        match = FUNCTION_DECL.match_line("  func foo(a):")
        assert match.value == "foo"
        assert (match.start, match.end) == (7, 10)
        assert match.recognizer == "function_decl"

    def test_match_line_is_anchored(self):
        assert FUNCTION_DECL.match_line("# func foo():") is None
        assert FUNCTION_DECL.match_line("var f = func foo():") is None

    def test_unmatched_optional_group_is_dropped(self):
        rec = Recognizer("opt", r"a(b)?")
        assert rec.find_all("a a") == []


class TestDeclarations:
    """Declaration recognizers."""

    def test_static_function(self):
        assert FUNCTION_DECL.match_line("static func build(x):").value == "build"

    def test_annotated_variable_keeps_annotations(self):
        match = VARIABLE_DECL.match_line("@export_range(0, 10) var speed := 1")
        assert match.value == "speed"
        assert match.groups[0].strip() == "@export_range(0, 10)"

    def test_plain_variable(self):
        match = VARIABLE_DECL.match_line("\tvar count = 0")
        assert match.value == "count"
        assert match.groups[0] == ""

    def test_signal_parameters(self):
        match = SIGNAL_DECL.match_line("signal hit(damage, source)")
        assert match.value == "hit"
        assert match.groups[1] == "damage, source"

    def test_signal_without_parameters(self):
        match = SIGNAL_DECL.match_line("signal died")
        assert match.value == "died"
        assert match.groups[1] is None


class TestUsageShapes:
    """Usage and scene recognizers."""

    def test_dotted_property_excludes_calls(self):
        assert DOTTED_PROPERTY.values("a.b.c()") == ["b"]

    def test_qualified_connect_groups(self):
        match = QUALIFIED_CONNECT.search("player.died.connect(_on_died)")
        assert match.value == "died"
        assert match.groups == ("player", "died", "_on_died")

    def test_emit_signal_by_string(self):
        assert EMIT_BY_STRING.values('emit_signal("scored", 10)') == ["scored"]

    def test_script_attachment_godot4_and_godot3(self):
        assert SCRIPT_ATTACHMENT.match_line('script = ExtResource("1_abc")').value == "1_abc"
        assert SCRIPT_ATTACHMENT.match_line('script = ExtResource( 2 )').value == "2"


class TestFunctionSpans:
    """iter_function_spans()."""

    def test_spans_end_at_dedent_and_flush_at_eof(self):
        lines = [
            "func a():",
            "\tpass",
            "",
            "func b():",
            "\tif x:",
            "\t\tpass",
            "# trailing comment",
        ]
        spans = list(iter_function_spans(lines))

        assert [s.name for s in spans] == ["a", "b"]
        assert spans[0].start_line == 1
        assert spans[0].end_line == 2
        assert spans[1].start_line == 4
        # Comment lines never close a span
        assert spans[1].body[-1] == "# trailing comment"

    def test_top_level_statement_closes_span(self):
        lines = ["func a():", "\treturn 1", "var after = 2", "func b():", "\tpass"]
        spans = list(iter_function_spans(lines))
        assert spans[0].body == ["\treturn 1"]
        assert spans[1].name == "b"

    def test_inner_class_methods(self):
        lines = ["class Inner:", "\tfunc m():", "\t\tpass", "\tfunc n():", "\t\tpass"]
        spans = list(iter_function_spans(lines))
        assert [s.name for s in spans] == ["m", "n"]
        assert spans[0].indent == 1
