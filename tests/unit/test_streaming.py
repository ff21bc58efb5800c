"""Unit tests for streaming primitives."""

from streamfold.streaming import (
    DeltaAccumulator,
    FinishFragment,
    TextDelta,
    ToolCall,
    ToolCallAccumulator,
    ToolCallFragment,
)


class TestToolCallAccumulator:
    def test_single_tool_call_single_fragment(self):
        acc = ToolCallAccumulator()
        acc.feed(ToolCallFragment(index=0, call_id="c1", name="echo", arguments_delta='{"text": "hi"}'))
        result = acc.finalize()

        assert len(result) == 1
        assert result[0] == ToolCall(id="c1", name="echo", arguments='{"text": "hi"}')

    def test_arguments_accumulated_across_fragments(self):
        acc = ToolCallAccumulator()
        acc.feed(ToolCallFragment(index=0, call_id="c1", name="sum", arguments_delta='{"a":'))
        acc.feed(ToolCallFragment(index=0, arguments_delta='1}'))
        result = acc.finalize()

        assert result[0].arguments == '{"a":1}'

    def test_interleaved_tool_calls_do_not_mix(self):
        acc = ToolCallAccumulator()
        acc.feed(ToolCallFragment(index=0, call_id="c1", name="foo", arguments_delta='{"a":'))
        acc.feed(ToolCallFragment(index=1, call_id="c2", name="bar", arguments_delta='{"b":'))
        acc.feed(ToolCallFragment(index=0, arguments_delta=' 1}'))
        acc.feed(ToolCallFragment(index=1, arguments_delta=' 2}'))
        result = acc.finalize()

        assert len(result) == 2
        assert result[0] == ToolCall(id="c1", name="foo", arguments='{"a": 1}')
        assert result[1] == ToolCall(id="c2", name="bar", arguments='{"b": 2}')

    def test_finalize_returns_first_appearance_order(self):
        acc = ToolCallAccumulator()
        acc.feed(ToolCallFragment(index=2, call_id="c3", name="c"))
        acc.feed(ToolCallFragment(index=0, call_id="c1", name="a"))
        acc.feed(ToolCallFragment(index=5, call_id="c2", name="b"))
        result = acc.finalize()

        assert [tc.name for tc in result] == ["c", "a", "b"]

    def test_first_non_empty_name_and_id_win(self):
        acc = ToolCallAccumulator()
        acc.feed(ToolCallFragment(index=0, call_id="", name=""))
        acc.feed(ToolCallFragment(index=0, call_id="c1", name="first"))
        acc.feed(ToolCallFragment(index=0, call_id="c9", name="second"))
        result = acc.finalize()

        assert result[0].id == "c1"
        assert result[0].name == "first"

    def test_string_index_is_normalised(self):
        acc = ToolCallAccumulator()
        acc.feed(ToolCallFragment(index=0, call_id="c1", name="f", arguments_delta="{"))
        acc.feed(ToolCallFragment(index="0", arguments_delta="}"))

        assert acc.finalize() == [ToolCall(id="c1", name="f", arguments="{}")]

    def test_missing_index_routes_by_call_id(self):
        acc = ToolCallAccumulator()
        acc.feed(ToolCallFragment(index=0, call_id="c1", name="f"))
        acc.feed(ToolCallFragment(index=1, call_id="c2", name="g"))
        acc.feed(ToolCallFragment(call_id="c1", arguments_delta="{}"))

        result = acc.finalize()
        assert result[0].arguments == "{}"
        assert result[1].arguments == ""

    def test_missing_index_and_id_routes_to_last_call(self):
        acc = ToolCallAccumulator()
        acc.feed(ToolCallFragment(index=0, call_id="c1", name="f"))
        acc.feed(ToolCallFragment(index=1, call_id="c2", name="g"))
        acc.feed(ToolCallFragment(arguments_delta='{"x": 1}'))

        assert acc.finalize()[1].arguments == '{"x": 1}'

    def test_missing_index_with_new_id_starts_new_call(self):
        acc = ToolCallAccumulator()
        acc.feed(ToolCallFragment(index=0, call_id="c1", name="f"))
        acc.feed(ToolCallFragment(call_id="c2", name="g", arguments_delta="{}"))

        assert [tc.id for tc in acc.finalize()] == ["c1", "c2"]

    def test_empty_accumulator(self):
        acc = ToolCallAccumulator()
        assert acc.finalize() == []

    def test_index_only_fragment_is_not_a_call(self):
        acc = ToolCallAccumulator()
        acc.feed(ToolCallFragment(index=0))
        acc.feed(ToolCallFragment(index=1, call_id="", name="", arguments_delta=""))

        assert not acc.has_calls
        assert acc.finalize() == []

    def test_index_only_fragment_filled_in_later(self):
        acc = ToolCallAccumulator()
        acc.feed(ToolCallFragment(index=0))
        acc.feed(ToolCallFragment(index=0, call_id="c1", name="f", arguments_delta="{}"))

        assert acc.finalize() == [ToolCall(id="c1", name="f", arguments="{}")]


class TestDeltaAccumulator:
    def test_text_concatenated_in_arrival_order(self):
        acc = DeltaAccumulator()
        for piece in ["The ", "capital ", "is ", "Berlin."]:
            acc.apply(TextDelta(text=piece))

        assert acc.text == "The capital is Berlin."
        assert not acc.has_tool_calls

    def test_routes_tool_fragments_to_tool_calls(self):
        acc = DeltaAccumulator()
        acc.apply(ToolCallFragment(index=0, call_id="c1", name="f", arguments_delta="{}"))

        assert acc.has_tool_calls
        assert acc.text == ""

    def test_ignores_signal_fragments(self):
        acc = DeltaAccumulator()
        acc.apply(FinishFragment())

        assert acc.is_empty

    def test_empty_text_delta_leaves_accumulator_empty(self):
        acc = DeltaAccumulator()
        acc.apply(TextDelta(text=""))

        assert acc.is_empty
