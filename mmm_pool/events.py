"""Audit log events.

Every mutating pool entry point records a CallEvent (signature, caller, raw
arguments) plus an operation-specific event. Events are immutable and are
handed to a write-only AuditLog sink only once the operation has committed.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass
from types import MappingProxyType
from typing import Any, Protocol

import structlog

logger = structlog.get_logger()


@dataclass(frozen=True)
class CallEvent:
    """Raw record of a mutating call."""

    pool: str
    signature: str
    caller: str
    args: MappingProxyType[str, Any]


@dataclass(frozen=True)
class SwapEvent:
    """A swap executed against the pool."""

    pool: str
    caller: str
    token_in: str
    token_out: str
    amount_in: int
    amount_out: int
    spread: int


@dataclass(frozen=True)
class JoinEvent:
    """Tokens added to the pool by a liquidity provider."""

    pool: str
    caller: str
    token_in: str
    amount_in: int


@dataclass(frozen=True)
class ExitEvent:
    """Tokens withdrawn from the pool by a liquidity provider."""

    pool: str
    caller: str
    token_out: str
    amount_out: int


@dataclass(frozen=True)
class OracleStateEvent:
    """A token's oracle binding and performance baseline were (re)set."""

    pool: str
    token: str
    oracle: str
    initial_price: int


PoolEvent = CallEvent | SwapEvent | JoinEvent | ExitEvent | OracleStateEvent


class AuditLog(Protocol):
    """Write-only sink for pool events."""

    def append(self, event: PoolEvent) -> None:
        """Durably record an event."""
        ...


class MemoryAuditLog:
    """In-memory audit log. Entries can be inspected but not modified."""

    def __init__(self) -> None:
        self._entries: list[PoolEvent] = []

    def append(self, event: PoolEvent) -> None:
        self._entries.append(event)

    @property
    def entries(self) -> tuple[PoolEvent, ...]:
        return tuple(self._entries)

    def of_type(self, kind: type) -> list[PoolEvent]:
        return [e for e in self._entries if isinstance(e, kind)]

    def __len__(self) -> int:
        return len(self._entries)


_LOG_NAMES = {
    CallEvent: "pool_call",
    SwapEvent: "pool_swap",
    JoinEvent: "pool_join",
    ExitEvent: "pool_exit",
    OracleStateEvent: "pool_oracle_state",
}


def feed_label(oracle: object) -> str:
    """Printable identifier of a price feed."""
    return str(getattr(oracle, "address", None) or type(oracle).__name__)


def call_event(pool: str, signature: str, caller: str, **args: Any) -> CallEvent:
    """Build a CallEvent with a read-only copy of the arguments."""
    return CallEvent(
        pool=pool, signature=signature, caller=caller, args=MappingProxyType(dict(args))
    )


def publish(sink: AuditLog, events: list[PoolEvent]) -> None:
    """Append committed events to the sink and mirror them to the structured log."""
    for event in events:
        sink.append(event)
        if isinstance(event, CallEvent):
            logger.debug(
                _LOG_NAMES[CallEvent],
                pool=event.pool,
                signature=event.signature,
                caller=event.caller,
            )
        else:
            logger.info(_LOG_NAMES[type(event)], **asdict(event))
