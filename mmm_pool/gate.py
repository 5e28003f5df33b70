"""Mutual exclusion and admin checks for pool entry points.

Mutating entry points hold the ReentrancyGuard for their whole execution;
a nested acquisition fails immediately instead of queuing. Read-only
entry points only check that the guard is free, so views never observe a
half-applied mutation.
"""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager

from mmm_pool.errors import AuthorizationError, Reason, StateError
from mmm_pool.models.records import PoolState
from mmm_pool.models.types import normalize_address


class ReentrancyGuard:
    """Single-holder mutex flag."""

    __slots__ = ("_locked",)

    def __init__(self) -> None:
        self._locked = False

    @property
    def locked(self) -> bool:
        return self._locked

    @contextmanager
    def acquire(self) -> Iterator[None]:
        """Hold the guard for the duration of the block, released on all exit paths."""
        if self._locked:
            raise StateError(Reason.REENTRY)
        self._locked = True
        try:
            yield
        finally:
            self._locked = False

    def check(self) -> None:
        """Fail if a mutation is in progress."""
        if self._locked:
            raise StateError(Reason.REENTRY)


def require_controller(sender: str, controller: str) -> None:
    if normalize_address(sender) != controller:
        raise AuthorizationError(Reason.NOT_CONTROLLER, f"{sender} is not the controller")


def require_configuring(state: PoolState) -> None:
    if state is not PoolState.CONFIGURING:
        raise StateError(Reason.IS_FINALIZED)


def require_finalized(state: PoolState) -> None:
    if state is not PoolState.FINALIZED:
        raise StateError(Reason.NOT_FINALIZED)


def require_public_swap(public_swap: bool) -> None:
    if not public_swap:
        raise StateError(Reason.SWAP_NOT_PUBLIC)


def require_not_paused(paused: bool) -> None:
    if paused:
        raise StateError(Reason.PAUSED)
