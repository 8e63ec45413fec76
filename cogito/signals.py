"""Lifecycle signals for reasoning chains and a small synchronous event bus."""

from __future__ import annotations

import enum
import logging
import threading
from dataclasses import dataclass
from dataclasses import field as dc_field
from datetime import datetime, timedelta, timezone
from typing import Any, Callable

_log = logging.getLogger(__name__)


class Severity(enum.Enum):
    DEBUG = "debug"
    INFO = "info"
    WARN = "warn"
    ERROR = "error"


@dataclass(frozen=True)
class Signal:
    """A named kind of event."""

    name: str
    description: str = ""


@dataclass(frozen=True)
class Key:
    """A typed field name carried by events."""

    name: str
    kind: type

    def field(self, value: Any) -> "Field":
        """Bind a value to this key, checking its type."""
        if self.kind is float:
            if isinstance(value, bool) or not isinstance(value, (int, float)):
                raise TypeError(f"field {self.name!r} expects a float, got {type(value).__name__}")
            value = float(value)
        elif self.kind is int:
            if isinstance(value, bool) or not isinstance(value, int):
                raise TypeError(f"field {self.name!r} expects an int, got {type(value).__name__}")
        elif not isinstance(value, self.kind):
            raise TypeError(
                f"field {self.name!r} expects {self.kind.__name__}, got {type(value).__name__}"
            )
        return Field(self, value)

    def from_event(self, event: "Event") -> Any:
        """Return this key's value in the event, or None if absent."""
        return event.get(self)


@dataclass(frozen=True)
class Field:
    key: Key
    value: Any


@dataclass(frozen=True)
class Event:
    signal: Signal
    severity: Severity
    fields: tuple[Field, ...] = ()
    timestamp: datetime = dc_field(default_factory=lambda: datetime.now(timezone.utc))

    def get(self, key: Key) -> Any:
        """Return the value stored under ``key``, or None."""
        for item in self.fields:
            if item.key == key:
                return item.value
        return None


Handler = Callable[[Event], Any]

_lock = threading.Lock()
_registry: dict[Signal, list["Listener"]] = {}


class Listener:
    """A registered handler; close it to stop receiving events."""

    def __init__(self, signal: Signal, handler: Handler) -> None:
        self.signal = signal
        self.handler = handler
        self.closed = False

    def close(self) -> None:
        with _lock:
            listeners = _registry.get(self.signal, [])
            if self in listeners:
                listeners.remove(self)
        self.closed = True

    def __enter__(self) -> "Listener":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()


def hook(signal: Signal, handler: Handler) -> Listener:
    """Register ``handler`` for every event of ``signal``."""
    listener = Listener(signal, handler)
    with _lock:
        _registry.setdefault(signal, []).append(listener)
    return listener


def _dispatch(signal: Signal, severity: Severity, fields: tuple[Any, ...]) -> Event:
    for item in fields:
        if not isinstance(item, Field):
            raise TypeError(f"event fields must be Field instances, got {type(item).__name__}")
    event = Event(signal, severity, tuple(fields))
    with _lock:
        listeners = list(_registry.get(signal, ()))
    for listener in listeners:
        try:
            listener.handler(event)
        except Exception:
            _log.exception("listener for %s failed", signal.name)
    return event


def emit(signal: Signal, *args: Field) -> Event:
    """Send an informational event to all listeners of ``signal``."""
    return _dispatch(signal, Severity.INFO, args)


def error(signal: Signal, *args: Field) -> Event:
    """Send an error event to all listeners of ``signal``."""
    return _dispatch(signal, Severity.ERROR, args)


THOUGHT_CREATED = Signal(
    "cogito.thought.created", "New thought chain initiated with intent and trace ID"
)
STEP_STARTED = Signal("cogito.step.started", "Reasoning step began execution")
STEP_COMPLETED = Signal("cogito.step.completed", "Reasoning step finished successfully")
STEP_FAILED = Signal("cogito.step.failed", "Reasoning step encountered an error")
NOTE_ADDED = Signal("cogito.note.added", "New note added to thought context")
NOTES_PUBLISHED = Signal("cogito.notes.published", "Notes marked as published to LLM")
INTROSPECTION_COMPLETED = Signal(
    "cogito.introspection.completed", "Transform synapse completed semantic summary"
)
SIFT_DECIDED = Signal("cogito.sift.decided", "Semantic gate decision made")
AMPLIFY_ITERATION_COMPLETED = Signal(
    "cogito.amplify.iteration.completed", "Refinement iteration finished"
)
AMPLIFY_COMPLETED = Signal("cogito.amplify.completed", "Refinement met completion criteria")
CONVERGE_BRANCH_STARTED = Signal(
    "cogito.converge.branch.started", "Parallel branch began execution"
)
CONVERGE_BRANCH_COMPLETED = Signal(
    "cogito.converge.branch.completed", "Parallel branch finished execution"
)
CONVERGE_SYNTHESIS_STARTED = Signal(
    "cogito.converge.synthesis.started", "Synthesis phase began"
)
SEEK_RESULTS_FOUND = Signal("cogito.seek.results_found", "Semantic search returned results")
SURVEY_RESULTS_FOUND = Signal(
    "cogito.survey.results_found", "Task-grouped semantic search returned results"
)

FIELD_INTENT = Key("intent", str)
FIELD_TRACE_ID = Key("trace_id", str)
FIELD_NOTE_COUNT = Key("note_count", int)

FIELD_STEP_NAME = Key("step_name", str)
FIELD_STEP_TYPE = Key("step_type", str)
FIELD_TEMPERATURE = Key("temperature", float)
FIELD_PROVIDER = Key("provider", str)

FIELD_NOTE_KEY = Key("note_key", str)
FIELD_NOTE_SOURCE = Key("note_source", str)
FIELD_CONTENT_SIZE = Key("content_size", int)

FIELD_UNPUBLISHED_COUNT = Key("unpublished_count", int)
FIELD_PUBLISHED_COUNT = Key("published_count", int)
FIELD_CONTEXT_SIZE = Key("context_size", int)

FIELD_STEP_DURATION = Key("step_duration", timedelta)

FIELD_ERROR = Key("error", BaseException)

FIELD_DECISION = Key("decision", bool)
FIELD_CONFIDENCE = Key("confidence", float)

FIELD_ITERATION_COUNT = Key("iteration_count", int)

FIELD_BRANCH_COUNT = Key("branch_count", int)
FIELD_BRANCH_NAME = Key("branch_name", str)

FIELD_SEARCH_QUERY = Key("search_query", str)
FIELD_RESULT_COUNT = Key("result_count", int)
FIELD_SEARCH_LIMIT = Key("search_limit", int)