"""All-or-nothing operation boundary.

A Transaction snapshots every participating object on entry. If the body
raises, all snapshots are restored and the exception propagates; otherwise
the changes stand and the commit callbacks run.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable
from typing import Any, Protocol


class Journaled(Protocol):
    """State holder that can capture and restore its mutable state."""

    def snapshot(self) -> Any: ...

    def restore(self, state: Any) -> None: ...


class Transaction:
    """Rollback boundary over a set of journaled objects.

    Usage:
        with Transaction([pool, weth, dai], name="swap") as tx:
            ...
            tx.on_commit(lambda: publish(events))
    """

    def __init__(self, objects: Iterable[Journaled], name: str | None = None) -> None:
        # Deduplicate by identity, preserving order
        unique: dict[int, Journaled] = {}
        for obj in objects:
            unique.setdefault(id(obj), obj)
        self.objects = list(unique.values())
        self.name = name or "tx"
        self._snapshots: list[tuple[Journaled, Any]] = []
        self._commit_hooks: list[Callable[[], None]] = []

    def __enter__(self) -> Transaction:
        self._snapshots = [(obj, obj.snapshot()) for obj in self.objects]
        return self

    def __exit__(self, exc_type, exc, tb) -> bool:  # type: ignore[no-untyped-def]
        if exc_type is not None:
            self._rollback()
            return False
        for hook in self._commit_hooks:
            hook()
        return False

    def on_commit(self, hook: Callable[[], None]) -> None:
        """Run ``hook`` once the body completes without raising."""
        self._commit_hooks.append(hook)

    def _rollback(self) -> None:
        for obj, state in reversed(self._snapshots):
            obj.restore(state)
        self._commit_hooks.clear()
