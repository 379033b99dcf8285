"""Lifecycle state machine for a tail stream.

States and signals are plain enums; ``transition`` is a pure function from
(state, signal) to (next state, effects). The stream applies the effects in
order, which keeps every ordering guarantee (open first, close last, error
once) checkable without touching the filesystem.
"""
from __future__ import annotations

import enum
from typing import Tuple

from .errors import TransitionError


class State(enum.Enum):
    INITIALIZING = "initializing"
    OPENING = "opening"
    ACTIVE = "active"
    DRAINING = "draining"
    CLOSED = "closed"
    ERRORED = "errored"


class Signal(enum.Enum):
    START = "start"
    OPENED = "opened"
    RESCHEDULE = "reschedule"
    DRAINED = "drained"
    FINISHED = "finished"
    FAILED = "failed"
    DESTROY = "destroy"


class Effect(enum.Enum):
    CANCEL_TIMER = "cancel_timer"
    SCHEDULE_POLL = "schedule_poll"
    RELEASE = "release"
    EMIT_OPEN = "emit_open"
    EMIT_END = "emit_end"
    EMIT_CLOSE = "emit_close"
    EMIT_ERROR = "emit_error"


TERMINAL = frozenset({State.CLOSED, State.ERRORED})

Transition = Tuple[State, Tuple[Effect, ...]]


def transition(state: State, signal: Signal, *, auto_close: bool = True, emit_close: bool = True) -> Transition:
    if signal is Signal.DESTROY:
        return _destroy(state, emit_close)
    if state in TERMINAL:
        return state, ()

    if signal is Signal.FAILED:
        effects = [Effect.CANCEL_TIMER]
        if auto_close:
            effects.append(Effect.RELEASE)
        effects.append(Effect.EMIT_ERROR)
        return State.ERRORED, tuple(effects)

    if state is State.INITIALIZING and signal is Signal.START:
        return State.OPENING, ()
    if state is State.OPENING and signal is Signal.OPENED:
        return State.ACTIVE, (Effect.EMIT_OPEN, Effect.SCHEDULE_POLL)
    if state is State.ACTIVE and signal is Signal.RESCHEDULE:
        return State.ACTIVE, (Effect.SCHEDULE_POLL,)
    if state is State.ACTIVE and signal is Signal.DRAINED:
        return State.DRAINING, (Effect.CANCEL_TIMER, Effect.EMIT_END)
    if state is State.DRAINING and signal is Signal.FINISHED:
        if not auto_close:
            # Caller keeps the descriptor; teardown waits for destroy().
            return State.DRAINING, ()
        if emit_close:
            return State.CLOSED, (Effect.RELEASE, Effect.EMIT_CLOSE)
        return State.CLOSED, (Effect.RELEASE,)

    raise TransitionError(f"signal {signal.value!r} is not valid in state {state.value!r}")


def _destroy(state: State, emit_close: bool) -> Transition:
    if state is State.CLOSED:
        return state, ()
    if state is State.ERRORED:
        # auto_close=False leaves the descriptor for an explicit destroy.
        return state, (Effect.RELEASE,)
    if state in (State.INITIALIZING, State.OPENING):
        # Open never completed: tear down silently.
        return State.CLOSED, (Effect.CANCEL_TIMER, Effect.RELEASE)
    if emit_close:
        return State.CLOSED, (Effect.CANCEL_TIMER, Effect.RELEASE, Effect.EMIT_CLOSE)
    return State.CLOSED, (Effect.CANCEL_TIMER, Effect.RELEASE)


__all__ = ["State", "Signal", "Effect", "TERMINAL", "transition"]
