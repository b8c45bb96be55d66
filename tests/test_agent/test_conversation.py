import pytest

from autocoder.conversation import ConversationState
from autocoder.llm import Message, ToolCall


def test_append_beyond_capacity_keeps_most_recent_in_order():
    state = ConversationState(system_prompt="sys", max_messages=5)

    for i in range(12):
        state.append(Message(role="user", content=f"m{i}"))

    assert len(state) == 5
    assert [m.content for m in state.messages] == ["m7", "m8", "m9", "m10", "m11"]


def test_trim_to_capacity_reports_dropped_count():
    state = ConversationState(system_prompt="sys", max_messages=3)
    for i in range(3):
        state.append(Message(role="user", content=str(i)))

    assert state.trim_to_capacity() == 0

    state.max_messages = 1
    assert state.trim_to_capacity() == 2
    assert [m.content for m in state.messages] == ["2"]


def test_snapshot_prepends_system_prompt_and_does_not_mutate():
    state = ConversationState(system_prompt="be helpful", max_messages=2)
    state.add("user", "hello")
    state.add("assistant", "hi")

    snapshot = state.snapshot_for_request()
    snapshot.append(Message(role="user", content="extra"))

    assert snapshot[0] == Message(role="system", content="be helpful")
    assert [m.content for m in snapshot[1:3]] == ["hello", "hi"]
    assert len(state) == 2


def test_system_prompt_does_not_count_against_capacity():
    state = ConversationState(system_prompt="sys", max_messages=1)
    state.add("user", "only")

    snapshot = state.snapshot_for_request()

    assert [m.role for m in snapshot] == ["system", "user"]


def test_snapshot_skips_orphaned_tool_results_at_window_head():
    state = ConversationState(system_prompt="sys", max_messages=3)
    state.add("user", "do it")
    state.add(
        "assistant",
        "",
        tool_calls=[ToolCall(id="c1", name="read_file", arguments="{}"),
                    ToolCall(id="c2", name="read_file", arguments="{}")],
    )
    state.add("tool", "one", tool_call_id="c1", tool_name="read_file")
    state.add("tool", "two", tool_call_id="c2", tool_name="read_file")
    state.add("assistant", "done")

    assert [m.role for m in state.messages] == ["tool", "tool", "assistant"]
    snapshot = state.snapshot_for_request()
    assert [m.role for m in snapshot] == ["system", "assistant"]
    assert len(state) == 3


def test_messages_are_immutable():
    state = ConversationState(system_prompt="sys")
    message = state.add("user", "hi")

    with pytest.raises(AttributeError):
        message.content = "changed"  # type: ignore[misc]


def test_messages_property_is_a_copy():
    state = ConversationState(system_prompt="sys")
    state.add("user", "hi")

    messages = state.messages
    state.clear()

    assert len(messages) == 1
    assert len(state) == 0


def test_rejects_non_positive_capacity():
    with pytest.raises(ValueError):
        ConversationState(system_prompt="sys", max_messages=0)
