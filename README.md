# cogito

Building blocks for keeping the state of an LLM reasoning chain.

A `Thought` holds an append-only log of `Note`s and a conversation
`Session`. Notes are stored in a `Memory` and, when the thought has an
`embedder`, embedded as they are added. Changes emit events on the signal
bus in `cogito.signals`, so the life of a chain can be observed and
followed by its trace ID.

## Installing

```
pip install .
```

The package has no runtime dependencies. To run the tests:

```
pip install ".[test]"
pytest
```

## Thoughts and notes

```python
from cogito.thought import Memory, new_thought, render_notes_to_context

memory = Memory()
thought = new_thought(memory, "triage a support ticket")
thought.set_content("ticket", "URGENT: production is down", "input")
thought.set_note("score", "0.95", "classify", {"model": "example"})

thought.get_content("ticket")          # latest note with that key
thought.get_float("score")             # 0.95
thought.get_metadata("score", "model") # "example"
thought.get_note("missing")            # None
thought.all_notes()                    # every note, oldest first
thought.get_unpublished_notes()        # notes added since the last publish
thought.mark_notes_published()
thought.published_count                # 2

render_notes_to_context(thought.all_notes())
# "ticket: URGENT: production is down\nscore: 0.95"
```

- `new_thought_with_trace(memory, intent, trace_id)` sets the trace ID
  yourself; `new_thought_for_task(memory, intent, task_id)` ties the
  thought to a task.
- Adding a note with a key that already exists makes the new note the
  current value; the older one stays in the log.
- `get_content` and `get_metadata` raise `LookupError` for a missing note
  or field. `get_bool` accepts `true`/`yes`/`1` and `false`/`no`/`0`;
  `get_bool`, `get_float` and `get_int` raise `ValueError` for anything
  they cannot parse.
- `clone()` returns an independent copy, session and notes included, for
  parallel work.
- `add_note_without_persist(note)` appends to the in-memory log only.

`Memory` keeps thoughts and notes in process: `create_thought` assigns an
ID (and rejects a repeated trace ID), `add_note` stores a note, and
`get_thought(thought_id)` loads a thought with its notes or raises
`LookupError`.

An embedder is any object with an `embed(text)` method returning a
`Vector`; set it as `thought.embedder`. If embedding fails, the note is
still added and a `NOTE_ADDED` event carrying the error is emitted.

## Sessions

`Session` is a thread-safe list of `Message(role, content)` with
`append`, `clear`, `at(index)`, `truncate(keep_first, keep_last)`,
`messages()`, `set_messages()` and `len()`.

## Session steps

Each step is built with a key (available as `name`), has a
`process(thought)` method that returns the thought to carry on with, and a
`close()` method. Builder methods return the step, so they can be chained.

- `cogito.truncate.Truncate` keeps the first and last messages of the
  session and drops the middle. Configure it with `with_keep_first`,
  `with_keep_last` and `with_threshold`. The defaults keep the first 1 and
  the last 10 messages, with no threshold.
- `cogito.reset.Reset` clears the session. It can seed the new session with
  a system message set by `with_system_message`, or with the content of a
  note named by `with_preserve_note`; the note wins when it exists.
- `cogito.restore.Restore(key, thought_id)` loads an earlier thought from
  the current thought's memory. It returns a new child thought with the
  same intent and task, copies of that thought's notes (none marked
  published) and an empty session. An unknown ID raises `LookupError`.

```python
from cogito.truncate import Truncate

Truncate("trim").with_keep_first(1).with_keep_last(3).process(thought)
```

## Events

```python
from cogito import signals

listener = signals.hook(
    signals.NOTE_ADDED,
    lambda event: print(event.get(signals.FIELD_NOTE_KEY)),
)
...
listener.close()
```

Handlers run synchronously when `signals.emit` or `signals.error` is
called; an exception in a handler is logged and does not stop the others.
`Listener` also works as a context manager.

## Vectors

`cogito.vector.Vector` is a list of float32 values. `Vector.from_sql`
parses the text form `[0.1,0.2,0.3]` (from `str` or `bytes`; empty input
gives `None`) and `to_sql()` writes it back.

## What this package does not do

It makes no LLM calls and has no steps that do (no deciding, gating,
reflecting or synthesising). `Memory` keeps everything in process: there
is no database storage and no semantic search over stored notes. There is
no command-line tool.