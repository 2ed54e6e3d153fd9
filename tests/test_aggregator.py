"""Tests for merging both agents' messages into one timeline."""

from jobpilot.chat.aggregator import SessionAggregator
from jobpilot.chat.messages import AgentName, Message, TextPart


def _msg(agent: AgentName, text: str, role: str = "user", msg_id: str | None = None) -> Message:
    message = Message(role=role, origin=agent, parts=[TextPart(text=text)])
    if msg_id is not None:
        message.id = msg_id
    return message


def _texts(ordered) -> list[str]:
    return [item.message.text for item in ordered]


def test_empty_sessions() -> None:
    assert SessionAggregator().observe([], []) == []


def test_discovery_numbered_before_matching_in_one_pass() -> None:
    agg = SessionAggregator()
    d = [_msg(AgentName.DISCOVERY, "d1"), _msg(AgentName.DISCOVERY, "d2")]
    m = [_msg(AgentName.MATCHING, "m1")]

    ordered = agg.observe(d, m)
    assert _texts(ordered) == ["d1", "d2", "m1"]
    assert [item.sequence for item in ordered] == [0, 1, 2]


def test_sequences_follow_first_sighting() -> None:
    agg = SessionAggregator()
    d = [_msg(AgentName.DISCOVERY, "find jobs")]
    m: list[Message] = []
    agg.observe(d, m)

    m.append(_msg(AgentName.MATCHING, "score them"))
    agg.observe(d, m)

    d.append(_msg(AgentName.DISCOVERY, "find more"))
    ordered = agg.observe(d, m)
    assert _texts(ordered) == ["find jobs", "score them", "find more"]


def test_sequences_never_change_as_messages_grow() -> None:
    agg = SessionAggregator()
    reply = _msg(AgentName.DISCOVERY, "", role="assistant")
    d = [_msg(AgentName.DISCOVERY, "hi"), reply]
    first = {item.id: item.sequence for item in agg.observe(d, [])}

    reply.parts[0].text = "streamed text"
    m = [_msg(AgentName.MATCHING, "score")]
    second = {item.id: item.sequence for item in agg.observe(d, m)}

    for message_id, sequence in first.items():
        assert second[message_id] == sequence
    assert agg.sequence_of(reply.id) == 1


def test_observation_is_idempotent() -> None:
    agg = SessionAggregator()
    d = [_msg(AgentName.DISCOVERY, "a")]
    m = [_msg(AgentName.MATCHING, "b")]
    assert _texts(agg.observe(d, m)) == _texts(agg.observe(d, m))
    assert len(agg) == 2


def test_removed_message_drops_out_but_keeps_others_positions() -> None:
    agg = SessionAggregator()
    d = [_msg(AgentName.DISCOVERY, "a"), _msg(AgentName.DISCOVERY, "b")]
    m = [_msg(AgentName.MATCHING, "c")]
    agg.observe(d, m)

    ordered = agg.observe(d[1:], m)
    assert [(item.sequence, item.message.text) for item in ordered] == [(1, "b"), (2, "c")]


def test_duplicate_id_across_sessions_is_flagged_and_excluded() -> None:
    agg = SessionAggregator()
    d = [_msg(AgentName.DISCOVERY, "original", msg_id="same")]
    m = [_msg(AgentName.MATCHING, "impostor", msg_id="same")]

    ordered = agg.observe(d, m)
    assert _texts(ordered) == ["original"]
    assert ("same", AgentName.MATCHING) in agg.duplicates

    # Re-observing keeps the first claim and does not re-flag
    assert _texts(agg.observe(d, m)) == ["original"]
    assert len(agg.duplicates) == 1


def test_duplicate_id_within_session_keeps_first() -> None:
    agg = SessionAggregator()
    d = [_msg(AgentName.DISCOVERY, "one", msg_id="x"), _msg(AgentName.DISCOVERY, "two", msg_id="x")]
    assert _texts(agg.observe(d, [])) == ["one"]
    assert ("x", AgentName.DISCOVERY) in agg.duplicates


def test_reset_restarts_numbering() -> None:
    agg = SessionAggregator()
    agg.observe([_msg(AgentName.DISCOVERY, "old")], [])
    agg.reset()

    ordered = agg.observe([], [_msg(AgentName.MATCHING, "new")])
    assert ordered[0].sequence == 0
    assert len(agg) == 1
