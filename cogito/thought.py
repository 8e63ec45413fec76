"""Thoughts: append-only note logs that carry the context of a reasoning chain."""

from __future__ import annotations

import dataclasses
import math
import re
import threading
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Iterable, Optional, Protocol, runtime_checkable

from . import signals
from .vector import Vector

_INT_RE = re.compile(r"[+-]?[0-9]+")
_INT_MIN = -(2**63)
_INT_MAX = 2**63 - 1


def _now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class Message:
    role: str
    content: str


class Session:
    """Thread-safe history of an LLM conversation."""

    def __init__(self, messages: Iterable[Message] = ()) -> None:
        self._lock = threading.Lock()
        self._messages: list[Message] = list(messages)

    def __len__(self) -> int:
        with self._lock:
            return len(self._messages)

    def append(self, role: str, content: str) -> None:
        with self._lock:
            self._messages.append(Message(role, content))

    def clear(self) -> None:
        with self._lock:
            self._messages.clear()

    def at(self, index: int) -> Message:
        """Return the message at ``index``; raises IndexError when out of range."""
        with self._lock:
            if not 0 <= index < len(self._messages):
                raise IndexError(f"message index {index} out of range")
            return self._messages[index]

    def truncate(self, keep_first: int, keep_last: int) -> None:
        """Drop the middle of the history, keeping the first and last messages."""
        if keep_first < 0 or keep_last < 0:
            raise ValueError("keep_first and keep_last must be non-negative")
        with self._lock:
            total = len(self._messages)
            if keep_first + keep_last >= total:
                return
            self._messages = self._messages[:keep_first] + self._messages[total - keep_last:]

    def messages(self) -> list[Message]:
        with self._lock:
            return list(self._messages)

    def set_messages(self, messages: Iterable[Message]) -> None:
        with self._lock:
            self._messages = list(messages)


@dataclass
class Note:
    """A keyed piece of text in a reasoning chain."""

    key: str
    content: str
    source: str = ""
    metadata: dict[str, str] = field(default_factory=dict)
    id: str = ""
    thought_id: str = ""
    created: Optional[datetime] = None
    embedding: Optional[Vector] = None


def _copy_note(note: Note) -> Note:
    return dataclasses.replace(
        note,
        metadata=dict(note.metadata),
        embedding=None if note.embedding is None else Vector(note.embedding),
    )


@runtime_checkable
class Embedder(Protocol):
    """Turns text into an embedding vector."""

    def embed(self, text: str) -> Vector:
        """Return the embedding of ``text``."""


@dataclass(frozen=True)
class _ThoughtRecord:
    id: str
    intent: str
    trace_id: str
    parent_id: Optional[str]
    task_id: Optional[str]
    created_at: datetime
    updated_at: datetime


class Memory:
    """In-process store of thoughts and their notes."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._thoughts: dict[str, _ThoughtRecord] = {}
        self._notes: dict[str, list[Note]] = {}

    def create_thought(self, thought: "Thought") -> "Thought":
        """Store a thought, assigning it an ID, and return the stored copy."""
        with self._lock:
            if any(r.trace_id == thought.trace_id for r in self._thoughts.values()):
                raise ValueError(f"trace ID already exists: {thought.trace_id}")
            thought_id = thought.id or str(uuid.uuid4())
            if thought_id in self._thoughts:
                raise ValueError(f"thought ID already exists: {thought_id}")
            self._thoughts[thought_id] = _ThoughtRecord(
                thought_id,
                thought.intent,
                thought.trace_id,
                thought.parent_id,
                thought.task_id,
                thought.created_at,
                thought.updated_at,
            )
            self._notes.setdefault(thought_id, [])
        return self.get_thought(thought_id)

    def add_note(self, note: Note) -> Note:
        """Store a note, assigning it an ID, and return the stored copy."""
        stored = _copy_note(note)
        if not stored.id:
            stored.id = str(uuid.uuid4())
        with self._lock:
            self._notes.setdefault(stored.thought_id, []).append(stored)
        return _copy_note(stored)

    def get_thought(self, thought_id: str) -> "Thought":
        """Load a thought and its notes; raises LookupError when unknown."""
        with self._lock:
            record = self._thoughts.get(thought_id)
            if record is None:
                raise LookupError(f"thought not found: {thought_id}")
            notes = [_copy_note(n) for n in self._notes.get(thought_id, [])]

        thought = Thought(
            record.intent,
            trace_id=record.trace_id,
            id=record.id,
            parent_id=record.parent_id,
            task_id=record.task_id,
            memory=self,
        )
        for note in notes:
            thought.add_note_without_persist(note)
        thought.created_at = record.created_at
        thought.updated_at = record.updated_at
        return thought


class Thought:
    """The rolling context of a chain of thought: an append-only log of notes.

    Reads may run concurrently; writes must not race with each other. Use
    ``clone`` to give each parallel worker its own copy.
    """

    def __init__(
        self,
        intent: str,
        *,
        trace_id: Optional[str] = None,
        id: str = "",
        parent_id: Optional[str] = None,
        task_id: Optional[str] = None,
        memory: Optional[Memory] = None,
        embedder: Optional[Embedder] = None,
        session: Optional[Session] = None,
    ) -> None:
        self.id = id
        self.intent = intent
        self.trace_id = trace_id if trace_id is not None else str(uuid.uuid4())
        self.parent_id = parent_id
        self.task_id = task_id
        self.session = session if session is not None else Session()
        self.memory = memory
        self.embedder = embedder
        self.created_at = _now()
        self.updated_at = self.created_at
        self._lock = threading.RLock()
        self._notes: list[Note] = []
        self._index: dict[str, int] = {}
        self._published_count = 0

    def __repr__(self) -> str:
        return f"Thought(id={self.id!r}, intent={self.intent!r}, trace_id={self.trace_id!r})"

    @property
    def published_count(self) -> int:
        """Number of notes already sent to the LLM."""
        with self._lock:
            return self._published_count

    @published_count.setter
    def published_count(self, count: int) -> None:
        with self._lock:
            self._published_count = count

    def add_note(self, note: Note) -> None:
        """Persist a note and append it; it becomes the current value of its key."""
        with self._lock:
            if self.memory is None:
                raise RuntimeError("thought has no memory to persist notes")
            note = _copy_note(note)
            if note.created is None:
                note.created = _now()
            note.thought_id = self.id

            if self.embedder is not None:
                try:
                    note.embedding = Vector(self.embedder.embed(note.content))
                except Exception as exc:
                    failure = RuntimeError(f"embedding failed: {exc}")
                    failure.__cause__ = exc
                    signals.emit(
                        signals.NOTE_ADDED,
                        signals.FIELD_TRACE_ID.field(self.trace_id),
                        signals.FIELD_NOTE_KEY.field(note.key),
                        signals.FIELD_ERROR.field(failure),
                    )

            persisted = self.memory.add_note(note)
            note.id = persisted.id

            self._notes.append(note)
            self._index[note.key] = len(self._notes) - 1
            self.updated_at = _now()
            count = len(self._notes)

        signals.emit(
            signals.NOTE_ADDED,
            signals.FIELD_TRACE_ID.field(self.trace_id),
            signals.FIELD_NOTE_KEY.field(note.key),
            signals.FIELD_NOTE_SOURCE.field(note.source),
            signals.FIELD_NOTE_COUNT.field(count),
            signals.FIELD_CONTENT_SIZE.field(len(note.content.encode("utf-8"))),
        )

    def set_content(self, key: str, content: str, source: str) -> None:
        self.add_note(Note(key, content, source, {}, created=_now()))

    def set_note(
        self,
        key: str,
        content: str,
        source: str,
        metadata: Optional[dict[str, str]] = None,
    ) -> None:
        self.add_note(Note(key, content, source, dict(metadata or {}), created=_now()))

    def get_note(self, key: str) -> Optional[Note]:
        """Return the most recent note with ``key``, or None."""
        with self._lock:
            idx = self._index.get(key)
            if idx is None or not 0 <= idx < len(self._notes):
                return None
            return _copy_note(self._notes[idx])

    def get_content(self, key: str) -> str:
        note = self.get_note(key)
        if note is None:
            raise LookupError(f"note not found: {key}")
        return note.content

    def get_metadata(self, key: str, field: str) -> str:
        note = self.get_note(key)
        if note is None:
            raise LookupError(f"note not found: {key}")
        try:
            return note.metadata[field]
        except KeyError:
            raise LookupError(f"metadata field not found: {key}.{field}") from None

    def get_latest_note(self) -> Optional[Note]:
        with self._lock:
            return _copy_note(self._notes[-1]) if self._notes else None

    def all_notes(self) -> list[Note]:
        """All notes in the order they were added."""
        with self._lock:
            return [_copy_note(n) for n in self._notes]

    def get_bool(self, key: str) -> bool:
        content = self.get_content(key)
        if content in ("true", "yes", "1"):
            return True
        if content in ("false", "no", "0"):
            return False
        raise ValueError(f"cannot parse {key!r} as boolean: {content}")

    def get_float(self, key: str) -> float:
        content = self.get_content(key)
        if content != content.strip() or "_" in content:
            raise ValueError(f"cannot parse {key!r} as float: {content}")
        try:
            value = float(content)
        except ValueError as exc:
            raise ValueError(f"cannot parse {key!r} as float: {exc}") from exc
        if math.isinf(value) and "inf" not in content.lower():
            raise ValueError(f"cannot parse {key!r} as float: value out of range")
        return value

    def get_int(self, key: str) -> int:
        content = self.get_content(key)
        if not _INT_RE.fullmatch(content):
            raise ValueError(f"cannot parse {key!r} as int: {content}")
        value = int(content)
        if not _INT_MIN <= value <= _INT_MAX:
            raise ValueError(f"cannot parse {key!r} as int: value out of range")
        return value

    def clone(self) -> "Thought":
        """Deep copy with an independent session and note log."""
        with self._lock:
            copy = Thought(
                self.intent,
                trace_id=self.trace_id,
                id=self.id,
                parent_id=self.parent_id,
                task_id=self.task_id,
                memory=self.memory,
                embedder=self.embedder,
                session=Session(self.session.messages()),
            )
            copy._notes = [_copy_note(n) for n in self._notes]
            copy._index = {n.key: i for i, n in enumerate(copy._notes)}
            copy._published_count = self._published_count
            copy.created_at = self.created_at
            copy.updated_at = _now()
        return copy

    def get_unpublished_notes(self) -> list[Note]:
        """Notes added since the last ``mark_notes_published``."""
        with self._lock:
            return [_copy_note(n) for n in self._notes[self._published_count:]]

    def add_note_without_persist(self, note: Note) -> None:
        """Append a note to the in-memory log only, as when loading from storage."""
        with self._lock:
            self._notes.append(note)
            self._index[note.key] = len(self._notes) - 1
            self.updated_at = _now()

    def mark_notes_published(self) -> None:
        with self._lock:
            previous = self._published_count
            self._published_count = len(self._notes)
            current = self._published_count
        signals.emit(
            signals.NOTES_PUBLISHED,
            signals.FIELD_TRACE_ID.field(self.trace_id),
            signals.FIELD_PUBLISHED_COUNT.field(current),
            signals.FIELD_UNPUBLISHED_COUNT.field(current - previous),
        )


def _persist(memory: Memory, thought: Thought) -> Thought:
    persisted = memory.create_thought(thought)
    thought.id = persisted.id
    signals.emit(
        signals.THOUGHT_CREATED,
        signals.FIELD_INTENT.field(thought.intent),
        signals.FIELD_TRACE_ID.field(thought.trace_id),
    )
    return thought


def new_thought(memory: Memory, intent: str) -> Thought:
    """Create and persist a thought with a generated trace ID."""
    return _persist(memory, Thought(intent, memory=memory))


def new_thought_with_trace(memory: Memory, intent: str, trace_id: str) -> Thought:
    """Create and persist a thought with an explicit trace ID."""
    return _persist(memory, Thought(intent, trace_id=trace_id, memory=memory))


def new_thought_for_task(memory: Memory, intent: str, task_id: str) -> Thought:
    """Create and persist a thought belonging to a task."""
    return _persist(memory, Thought(intent, task_id=task_id, memory=memory))


def render_notes_to_context(notes: Iterable[Note]) -> str:
    """Render notes as ``key: content`` lines for an LLM prompt."""
    return "\n".join(f"{note.key}: {note.content}" for note in notes)