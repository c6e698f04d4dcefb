"""Hooks observing delegated calls."""

from __future__ import annotations

import contextlib
import dataclasses
from collections import Counter
from typing import TYPE_CHECKING, Optional, Tuple, Union

if TYPE_CHECKING:
    from collections.abc import Iterator

__all__ = [
    "DelegationCounter",
    "DelegationEvent",
    "DelegationObserver",
]


@dataclasses.dataclass(frozen=True)
class DelegationEvent:
    """A call delegated to a source schema.

    Attributes
    ----------
        schema_name:
            Name of the schema receiving the call
        operation:
            "query", "mutation" or "subscription"
        field_name:
            Root field executed on the source schema
        response_key:
            Key of the outer field the call resolves
        entry_point:
            Entry point query wrapping the call, if any
        path:
            Response path of the outer field

    """

    schema_name: str
    operation: str
    field_name: str
    response_key: str
    entry_point: Optional[str] = None
    path: Tuple[Union[str, int], ...] = ()


class DelegationObserver:
    """Base class for delegation observers.

    `on_delegate` wraps every delegated call, so subclasses can count calls,
    open trace spans or time them.
    """

    @contextlib.contextmanager
    def on_delegate(self, event: DelegationEvent) -> Iterator[None]:
        yield


class DelegationCounter(DelegationObserver):
    """Count delegated calls per schema and per entry point."""

    def __init__(self):
        self.calls: Counter[str] = Counter()
        self.entry_points: Counter[tuple[str, str]] = Counter()
        self.events: list[DelegationEvent] = []

    @contextlib.contextmanager
    def on_delegate(self, event: DelegationEvent) -> Iterator[None]:
        self.calls[event.schema_name] += 1
        if event.entry_point is not None:
            self.entry_points[(event.schema_name, event.entry_point)] += 1
        self.events.append(event)
        yield

    @property
    def total(self) -> int:
        return sum(self.calls.values())
