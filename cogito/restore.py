"""Restore step: branch a new thought from a previously persisted one."""

from __future__ import annotations

import time
from datetime import timedelta

from . import signals
from .thought import Note, Thought

_STEP_TYPE = "restore"


class Restore:
    """Load a thought by ID and continue from a fresh branch of it.

    The new thought has the loaded one as parent, keeps its intent and task,
    receives copies of all its notes (persisted again), starts with an empty
    session and with no notes marked as published. The incoming thought is
    left as it is in memory.
    """

    def __init__(self, key: str, thought_id: str) -> None:
        self._key = key
        self.thought_id = thought_id
        self.closed = False

    @property
    def name(self) -> str:
        return self._key

    def _fail(self, thought: Thought, start: float, exc: BaseException) -> None:
        signals.error(
            signals.STEP_FAILED,
            signals.FIELD_TRACE_ID.field(thought.trace_id),
            signals.FIELD_STEP_NAME.field(self._key),
            signals.FIELD_STEP_TYPE.field(_STEP_TYPE),
            signals.FIELD_STEP_DURATION.field(timedelta(seconds=time.monotonic() - start)),
            signals.FIELD_ERROR.field(exc),
        )

    def process(self, thought: Thought) -> Thought:
        """Return a new thought branched from the configured one."""
        start = time.monotonic()

        signals.emit(
            signals.STEP_STARTED,
            signals.FIELD_TRACE_ID.field(thought.trace_id),
            signals.FIELD_STEP_NAME.field(self._key),
            signals.FIELD_STEP_TYPE.field(_STEP_TYPE),
        )

        memory = thought.memory
        if memory is None:
            exc = RuntimeError("thought has no memory to load from")
            self._fail(thought, start, exc)
            raise RuntimeError(f"restore: {exc}")

        try:
            target = memory.get_thought(self.thought_id)
        except LookupError as exc:
            self._fail(thought, start, exc)
            raise LookupError(
                f"restore: failed to load thought {self.thought_id}: {exc}"
            ) from exc

        branch = Thought(
            target.intent,
            parent_id=target.id,
            task_id=target.task_id,
            memory=memory,
        )

        try:
            persisted = memory.create_thought(branch)
        except Exception as exc:
            self._fail(thought, start, exc)
            raise RuntimeError(f"restore: failed to create thought: {exc}") from exc
        branch.id = persisted.id

        for note in target.all_notes():
            try:
                branch.add_note(
                    Note(
                        note.key,
                        note.content,
                        note.source,
                        dict(note.metadata),
                        created=note.created,
                    )
                )
            except Exception as exc:
                self._fail(thought, start, exc)
                raise RuntimeError(f"restore: failed to copy note: {exc}") from exc

        signals.emit(
            signals.THOUGHT_CREATED,
            signals.FIELD_INTENT.field(branch.intent),
            signals.FIELD_TRACE_ID.field(branch.trace_id),
        )
        signals.emit(
            signals.STEP_COMPLETED,
            signals.FIELD_TRACE_ID.field(branch.trace_id),
            signals.FIELD_STEP_NAME.field(self._key),
            signals.FIELD_STEP_TYPE.field(_STEP_TYPE),
            signals.FIELD_STEP_DURATION.field(timedelta(seconds=time.monotonic() - start)),
            signals.FIELD_NOTE_COUNT.field(len(branch.all_notes())),
        )
        return branch

    def close(self) -> None:
        """Mark the step as closed; it holds no other resources."""
        self.closed = True