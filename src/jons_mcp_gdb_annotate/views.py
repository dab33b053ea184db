"""Auto-refreshing views kept in sync with gdb state."""

from __future__ import annotations

import functools
import logging
from collections.abc import Iterable, Iterator
from dataclasses import dataclass
from typing import Callable

from .commands import enqueue_idle
from .constants import DEFAULT_VIEW_COMMANDS
from .exceptions import UnknownViewError
from .session import Command, CompletionHandler, Session

logger = logging.getLogger(__name__)

DemandPredicate = Callable[[Session], bool]


@dataclass(frozen=True)
class ViewDescriptor:
    """Binding of a view id to the gdb command that refreshes it.

    Attributes:
        id: View identifier, also the host buffer name.
        demand_predicate: Whether anyone is currently looking at the view.
        protocol_command: Command whose output becomes the view contents.
        handler: Completion handler run with the accumulated output. It is
            responsible for removing ``id`` from ``pending_triggers``.
    """

    id: str
    demand_predicate: DemandPredicate
    protocol_command: str
    handler: CompletionHandler


class ViewRegistry:
    """Static table of the views a session keeps refreshed."""

    def __init__(self, descriptors: Iterable[ViewDescriptor] = ()) -> None:
        self._views: dict[str, ViewDescriptor] = {}
        for descriptor in descriptors:
            self.register_view(descriptor)

    def register_view(self, descriptor: ViewDescriptor) -> None:
        if descriptor.id in self._views:
            raise ValueError(f"View already registered: {descriptor.id}")
        self._views[descriptor.id] = descriptor

    def get(self, view_id: str) -> ViewDescriptor:
        try:
            return self._views[view_id]
        except KeyError:
            raise UnknownViewError(view_id) from None

    def ids(self) -> list[str]:
        return list(self._views)

    def __contains__(self, view_id: object) -> bool:
        return view_id in self._views

    def __iter__(self) -> Iterator[ViewDescriptor]:
        return iter(self._views.values())

    def __len__(self) -> int:
        return len(self._views)


def buffer_demand(view_id: str) -> DemandPredicate:
    """Demand predicate: the host has a buffer open for ``view_id``."""

    def predicate(session: Session) -> bool:
        return session.host.buffer_exists(view_id)

    return predicate


def refresh_view(view_id: str, session: Session, payload: str) -> None:
    """Completion handler shared by all buffer-backed views."""
    session.pending_triggers.discard(view_id)
    session.host.replace_buffer_contents(view_id, payload)
    session.host.notify_refresh_complete(view_id)


def make_view(view_id: str, protocol_command: str) -> ViewDescriptor:
    return ViewDescriptor(
        id=view_id,
        demand_predicate=buffer_demand(view_id),
        protocol_command=protocol_command,
        handler=functools.partial(refresh_view, view_id),
    )


def default_registry(view_ids: Iterable[str] | None = None) -> ViewRegistry:
    """Build a registry of the standard views.

    Args:
        view_ids: Subset of the standard view ids to register. All of them
            when None.

    Raises:
        UnknownViewError: If an id is not a standard view.
    """
    if view_ids is None:
        view_ids = DEFAULT_VIEW_COMMANDS
    descriptors = []
    for view_id in view_ids:
        if view_id not in DEFAULT_VIEW_COMMANDS:
            raise UnknownViewError(view_id)
        descriptors.append(make_view(view_id, DEFAULT_VIEW_COMMANDS[view_id]))
    return ViewRegistry(descriptors)


def trigger(session: Session, view_id: str) -> bool:
    """Request a refresh of ``view_id``.

    At most one refresh per view is outstanding at a time; further triggers
    before it completes are no-ops.

    Returns:
        True if a refresh command was enqueued.
    """
    session.ensure_alive()
    descriptor = session.views.get(view_id)
    if view_id in session.pending_triggers:
        return False
    if not descriptor.demand_predicate(session):
        return False
    session.pending_triggers.add(view_id)
    enqueue_idle(
        session,
        Command(descriptor.protocol_command, descriptor.handler, view_id=view_id),
    )
    logger.debug(f"Triggered refresh of view {view_id}")
    return True


def trigger_many(session: Session, view_ids: Iterable[str]) -> list[str]:
    """Trigger every registered view in ``view_ids``, skipping unknown ones."""
    triggered = []
    for view_id in view_ids:
        if view_id in session.views and trigger(session, view_id):
            triggered.append(view_id)
    return triggered
