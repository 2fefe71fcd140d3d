"""rxkit: push-based observables and async control-flow wrappers for asyncio."""

from importlib.metadata import version as _version

__version__ = _version("rxkit")

from rxkit._scheduling import get_pending_count, set_error_handler, settle, sleep
from rxkit.result import CANCELED, Canceled, is_canceled
from rxkit.emitter import EventEmitter
from rxkit.observer import Observer, IteratorContext
from rxkit.subject import Subject, BehaviorSubject
from rxkit.operator import Operator, Counted
from rxkit.source import Source
from rxkit.queued import queued, QueuedFn
from rxkit.lock import lock, LockedFn
from rxkit.cancelable import cancelable, CancelableFn
from rxkit.debounce import debounce, DebouncedFn
from rxkit.singleshot import singleshot, SingleshotFn
from rxkit.singlerun import singlerun, SinglerunFn, TrackedTask
from rxkit.memoize import memoize, cached, MemoizedFn, CachedFn
from rxkit.trycatch import trycatch

__all__ = [
    "EventEmitter",
    "Observer",
    "IteratorContext",
    "Subject",
    "BehaviorSubject",
    "Operator",
    "Counted",
    "Source",
    "queued",
    "QueuedFn",
    "lock",
    "LockedFn",
    "cancelable",
    "CancelableFn",
    "debounce",
    "DebouncedFn",
    "singleshot",
    "SingleshotFn",
    "singlerun",
    "SinglerunFn",
    "TrackedTask",
    "memoize",
    "MemoizedFn",
    "cached",
    "CachedFn",
    "trycatch",
    "sleep",
    "CANCELED",
    "Canceled",
    "is_canceled",
    "set_error_handler",
    "get_pending_count",
    "settle",
]
