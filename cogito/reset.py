"""Session reset step: clears the LLM conversation, optionally reseeding it."""

from __future__ import annotations

import time
from datetime import timedelta

from . import signals
from .thought import Thought

_STEP_TYPE = "reset"


class Reset:
    """Clear a thought's session and optionally inject a system message.

    No LLM call is made. When a note key is configured with
    ``with_preserve_note`` and that note exists, its content becomes the new
    system message; otherwise the explicit system message (if any) is used.
    """

    def __init__(self, key: str) -> None:
        self._key = key
        self.system_message = ""
        self.preserve_note_key = ""
        self.closed = False

    @property
    def name(self) -> str:
        return self._key

    def process(self, thought: Thought) -> Thought:
        """Clear the session and reseed it; returns the same thought."""
        start = time.monotonic()
        previous_count = len(thought.session)

        signals.emit(
            signals.STEP_STARTED,
            signals.FIELD_TRACE_ID.field(thought.trace_id),
            signals.FIELD_STEP_NAME.field(self._key),
            signals.FIELD_STEP_TYPE.field(_STEP_TYPE),
            signals.FIELD_NOTE_COUNT.field(previous_count),
        )

        thought.session.clear()

        system_message = self.system_message
        if self.preserve_note_key:
            note = thought.get_note(self.preserve_note_key)
            if note is not None:
                system_message = note.content

        if system_message:
            thought.session.append("system", system_message)

        signals.emit(
            signals.STEP_COMPLETED,
            signals.FIELD_TRACE_ID.field(thought.trace_id),
            signals.FIELD_STEP_NAME.field(self._key),
            signals.FIELD_STEP_TYPE.field(_STEP_TYPE),
            signals.FIELD_STEP_DURATION.field(timedelta(seconds=time.monotonic() - start)),
            signals.FIELD_NOTE_COUNT.field(previous_count),
        )
        return thought

    def close(self) -> None:
        """Mark the step as closed; it holds no other resources."""
        self.closed = True

    def with_system_message(self, message: str) -> "Reset":
        """Set the system message injected after clearing."""
        self.system_message = message
        return self

    def with_preserve_note(self, note_key: str) -> "Reset":
        """Use the content of this note, when present, as the system message."""
        self.preserve_note_key = note_key
        return self