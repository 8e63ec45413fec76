import threading
import uuid
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime, timezone

import pytest

from cogito import signals
from cogito.thought import (
    Memory,
    Message,
    Note,
    Session,
    Thought,
    new_thought,
    new_thought_for_task,
    new_thought_with_trace,
    render_notes_to_context,
)
from cogito.vector import Vector


def _thought(intent="test"):
    return new_thought(Memory(), intent)


class _FixedEmbedder:
    def embed(self, text):
        return Vector([0.1, 0.2, 0.3])


class _FailingEmbedder:
    def embed(self, text):
        raise TimeoutError("embedding service down")


def test_new():
    thought = _thought("test intent")
    assert thought.intent == "test intent"
    assert uuid.UUID(thought.trace_id).version == 4
    assert thought.created_at <= datetime.now(timezone.utc)
    assert thought.updated_at <= datetime.now(timezone.utc)
    assert thought.id


def test_new_with_trace():
    thought = new_thought_with_trace(Memory(), "test intent", "trace-123")
    assert thought.trace_id == "trace-123"


def test_new_for_task():
    thought = new_thought_for_task(Memory(), "intent", "task-123")
    assert thought.task_id == "task-123"


def test_duplicate_trace_rejected():
    memory = Memory()
    new_thought_with_trace(memory, "a", "trace-1")
    with pytest.raises(ValueError):
        new_thought_with_trace(memory, "b", "trace-1")


def test_add_note():
    thought = _thought()
    thought.add_note(Note("test-key", "test content", "test-source", {"foo": "bar"}))
    retrieved = thought.get_note("test-key")
    assert retrieved.content == "test content"
    assert retrieved.metadata["foo"] == "bar"
    assert retrieved.source == "test-source"
    assert retrieved.created <= datetime.now(timezone.utc)
    assert retrieved.thought_id == thought.id
    assert retrieved.id


def test_add_note_without_memory_raises():
    with pytest.raises(RuntimeError):
        Thought("no memory").set_content("k", "v", "s")


def test_set_content():
    thought = _thought()
    thought.set_content("greeting", "hello", "test")
    assert thought.get_content("greeting") == "hello"


def test_set_note():
    thought = _thought()
    thought.set_note("decision", "yes", "decide-step",
                     {"confidence": "0.95", "reasoning": "test reasoning"})
    note = thought.get_note("decision")
    assert note.content == "yes"
    assert note.metadata["confidence"] == "0.95"


def test_get_nonexistent_note():
    thought = _thought()
    assert thought.get_note("nonexistent") is None
    with pytest.raises(LookupError):
        thought.get_content("nonexistent")


def test_note_overwrite():
    thought = _thought()
    thought.set_content("status", "pending", "step1")
    thought.set_content("status", "completed", "step2")
    assert thought.get_content("status") == "completed"
    assert len(thought.all_notes()) == 2


def test_get_metadata():
    thought = _thought()
    thought.set_note("result", "success", "test", {"code": "200", "message": "OK"})
    assert thought.get_metadata("result", "code") == "200"
    assert thought.get_metadata("result", "message") == "OK"


def test_get_metadata_errors():
    thought = _thought()
    with pytest.raises(LookupError, match="note not found"):
        thought.get_metadata("nonexistent", "field")
    thought.set_note("result", "ok", "test", {"foo": "bar"})
    with pytest.raises(LookupError, match="metadata field not found: result.nonexistent"):
        thought.get_metadata("result", "nonexistent")


def test_get_latest_note():
    thought = _thought()
    assert thought.get_latest_note() is None
    thought.set_content("first", "1", "test")
    thought.set_content("second", "2", "test")
    thought.set_content("third", "3", "test")
    latest = thought.get_latest_note()
    assert (latest.key, latest.content) == ("third", "3")


def test_all_notes_in_order():
    thought = _thought()
    for key, value in [("a", "1"), ("b", "2"), ("c", "3")]:
        thought.set_content(key, value, "test")
    assert [n.key for n in thought.all_notes()] == ["a", "b", "c"]


@pytest.mark.parametrize(
    "value, expected",
    [("true", True), ("false", False), ("yes", True), ("no", False), ("1", True), ("0", False)],
)
def test_get_bool(value, expected):
    thought = _thought()
    thought.set_content("bool", value, "test")
    assert thought.get_bool("bool") is expected


def test_get_bool_invalid():
    thought = _thought()
    thought.set_content("bool", "invalid", "test")
    with pytest.raises(ValueError):
        thought.get_bool("bool")


def test_get_float():
    thought = _thought()
    thought.set_content("score", "0.95", "test")
    assert thought.get_float("score") == 0.95
    thought.set_content("invalid", "not-a-number", "test")
    with pytest.raises(ValueError):
        thought.get_float("invalid")


def test_get_int():
    thought = _thought()
    thought.set_content("count", "42", "test")
    assert thought.get_int("count") == 42
    thought.set_content("invalid", "not-a-number", "test")
    with pytest.raises(ValueError):
        thought.get_int("invalid")


def test_get_int_rejects_whitespace():
    thought = _thought()
    thought.set_content("count", " 42", "test")
    with pytest.raises(ValueError):
        thought.get_int("count")


def test_clone():
    original = _thought()
    original.set_note("result", "success", "test", {"code": "200", "message": "OK"})
    original.session.append("user", "hello")
    clone = original.clone()

    assert clone.intent == original.intent
    assert clone.trace_id == original.trace_id
    note = clone.get_note("result")
    assert note.content == "success"
    assert note.metadata["code"] == "200"
    assert clone.session.messages() == [Message("user", "hello")]

    clone.set_content("result", "modified", "test")
    clone.session.append("assistant", "hi")
    assert original.get_content("result") == "success"
    assert clone.get_content("result") == "modified"
    assert len(original.session) == 1


def test_concurrent_access():
    thought = _thought()
    workers = [
        threading.Thread(target=thought.set_content, args=("counter", str(i % 10), "test"))
        for i in range(100)
    ]
    for w in workers:
        w.start()
    for w in workers:
        w.join()
    assert len(thought.all_notes()) == 100
    assert thought.get_content("counter") in {str(i) for i in range(10)}


def test_concurrent_clone():
    original = _thought()
    for _ in range(10):
        original.set_content("key", "value", "test")

    with ThreadPoolExecutor(max_workers=8) as pool:
        clones = list(pool.map(lambda _: original.clone(), range(50)))

    assert len(clones) == 50
    assert [c.trace_id for c in clones] == [original.trace_id] * 50
    assert [[n.content for n in c.all_notes()] for c in clones] == [["value"] * 10] * 50
    assert [c.get_content("key") for c in clones] == ["value"] * 50


def test_unpublished_notes_and_published_count():
    thought = _thought()
    thought.set_content("a", "1", "test")
    thought.mark_notes_published()
    thought.set_content("b", "2", "test")
    assert thought.published_count == 1
    assert [n.key for n in thought.get_unpublished_notes()] == ["b"]
    thought.published_count = 0
    assert len(thought.get_unpublished_notes()) == 2


def test_add_note_without_persist():
    thought = Thought("hydrated")
    thought.add_note_without_persist(Note("decision", "Used OAuth2", "decide"))
    assert thought.get_content("decision") == "Used OAuth2"


def test_embedder_sets_embedding():
    thought = _thought()
    thought.embedder = _FixedEmbedder()
    thought.set_content("k", "v", "s")
    assert thought.get_note("k").embedding == Vector([0.1, 0.2, 0.3])


def test_failing_embedder_still_adds_note():
    thought = _thought()
    thought.embedder = _FailingEmbedder()
    errors = []

    def record(event):
        failure = signals.FIELD_ERROR.from_event(event)
        if failure is not None:
            errors.append(failure)

    with signals.hook(signals.NOTE_ADDED, record):
        thought.set_content("k", "v", "s")
    assert thought.get_note("k").embedding is None
    assert len(errors) == 1
    assert "embedding failed" in str(errors[0])


def test_memory_hydrates_thought():
    memory = Memory()
    thought = new_thought_for_task(memory, "intent", "task-9")
    thought.set_note("a", "1", "test", {"x": "y"})
    thought.set_content("b", "2", "test")
    loaded = memory.get_thought(thought.id)
    assert loaded.id == thought.id
    assert loaded.trace_id == thought.trace_id
    assert loaded.task_id == "task-9"
    assert [(n.key, n.content) for n in loaded.all_notes()] == [("a", "1"), ("b", "2")]
    assert loaded.get_metadata("a", "x") == "y"
    assert loaded.published_count == 0


def test_memory_unknown_thought():
    with pytest.raises(LookupError, match="thought not found"):
        Memory().get_thought("nonexistent-id")


def test_render_notes_to_context():
    notes = [Note("a", "one"), Note("b", "two")]
    assert render_notes_to_context(notes) == "a: one\nb: two"
    assert render_notes_to_context([]) == ""


def test_session_operations():
    session = Session()
    for i in range(5):
        session.append("user", f"Message {i}")
    assert len(session) == 5
    assert session.at(0) == Message("user", "Message 0")
    with pytest.raises(IndexError):
        session.at(5)
    session.truncate(1, 2)
    assert [m.content for m in session.messages()] == ["Message 0", "Message 3", "Message 4"]
    session.truncate(2, 0)
    assert [m.content for m in session.messages()] == ["Message 0", "Message 3"]
    session.clear()
    assert len(session) == 0


def test_session_truncate_rejects_negative():
    with pytest.raises(ValueError):
        Session().truncate(-1, 2)