"""Data anchor — plain Python structures that hold all Observer state.

Observer instances are thin handles holding an _id; their listener
emitters, dispose callbacks and flags live here, keyed by that id.
Entries are released when the handle is garbage collected.
"""

import itertools

emitters: dict[int, object] = {}  # obs_id -> EventEmitter
disposers: dict[int, object] = {}  # obs_id -> dispose callable, popped when fired
connect_hooks: dict[int, list] = {}  # obs_id -> callables run on first connect
shared: dict[int, bool] = {}
disposed: dict[int, bool] = {}

# one counter for every handle; ids are never reused
_id_counter = itertools.count(1)


def new_id() -> int:
    return next(_id_counter)


def release(obs_id: int) -> None:
    """Forget everything stored for an id. Called by the handle's finalizer."""
    emitters.pop(obs_id, None)
    disposers.pop(obs_id, None)
    connect_hooks.pop(obs_id, None)
    shared.pop(obs_id, None)
    disposed.pop(obs_id, None)


def live_count() -> int:
    """Number of Observer handles still registered. Useful for testing."""
    return len(disposed)
