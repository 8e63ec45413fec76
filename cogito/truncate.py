"""Session truncation step: sliding-window trimming of the LLM conversation."""

from __future__ import annotations

import time
from datetime import timedelta

from . import signals
from .thought import Thought

_STEP_TYPE = "truncate"


class Truncate:
    """Remove messages from the middle of a session without calling the LLM.

    The first ``keep_first`` messages (typically system prompts) and the last
    ``keep_last`` messages are kept. With a positive ``threshold`` the session
    is left untouched until it holds at least that many messages.
    """

    def __init__(self, key: str) -> None:
        self._key = key
        self.keep_first = 1
        self.keep_last = 10
        self.threshold = 0
        self.closed = False

    @property
    def name(self) -> str:
        return self._key

    def process(self, thought: Thought) -> Thought:
        """Trim the thought's session; returns the same thought."""
        start = time.monotonic()
        message_count = len(thought.session)

        if self.threshold > 0 and message_count < self.threshold:
            return thought
        if message_count <= self.keep_first + self.keep_last:
            return thought

        signals.emit(
            signals.STEP_STARTED,
            signals.FIELD_TRACE_ID.field(thought.trace_id),
            signals.FIELD_STEP_NAME.field(self._key),
            signals.FIELD_STEP_TYPE.field(_STEP_TYPE),
            signals.FIELD_NOTE_COUNT.field(message_count),
        )

        try:
            thought.session.truncate(self.keep_first, self.keep_last)
        except ValueError as exc:
            signals.error(
                signals.STEP_FAILED,
                signals.FIELD_TRACE_ID.field(thought.trace_id),
                signals.FIELD_STEP_NAME.field(self._key),
                signals.FIELD_STEP_TYPE.field(_STEP_TYPE),
                signals.FIELD_STEP_DURATION.field(timedelta(seconds=time.monotonic() - start)),
                signals.FIELD_ERROR.field(exc),
            )
            raise ValueError(f"truncate: {exc}") from exc

        removed = message_count - len(thought.session)

        signals.emit(
            signals.STEP_COMPLETED,
            signals.FIELD_TRACE_ID.field(thought.trace_id),
            signals.FIELD_STEP_NAME.field(self._key),
            signals.FIELD_STEP_TYPE.field(_STEP_TYPE),
            signals.FIELD_STEP_DURATION.field(timedelta(seconds=time.monotonic() - start)),
            signals.FIELD_NOTE_COUNT.field(removed),
        )
        return thought

    def close(self) -> None:
        """Mark the step as closed; it holds no other resources."""
        self.closed = True

    def with_keep_first(self, n: int) -> "Truncate":
        """Set how many messages to keep from the start."""
        self.keep_first = n
        return self

    def with_keep_last(self, n: int) -> "Truncate":
        """Set how many recent messages to keep."""
        self.keep_last = n
        return self

    def with_threshold(self, n: int) -> "Truncate":
        """Only truncate once the session has at least ``n`` messages."""
        self.threshold = n
        return self