"""Central application state.

State is a tree of frozen dataclasses. Every change goes through a typed
action and a pure reducer; ``AppStore.dispatch`` applies the reducers and
notifies subscribers with the new state.
"""

from collections.abc import Callable
from dataclasses import dataclass, field, replace
from datetime import date

import structlog

from iamcfo.production.identity import entry_key
from iamcfo.production.merge import merge_entries
from iamcfo.production.models import ProductionEntry
from iamcfo.reports.periods import ReportPeriod
from iamcfo.reports.summaries import ReportKind

logger = structlog.get_logger(__name__)


# === State ===


@dataclass(frozen=True)
class ProductionState:
    """Merged production list plus the offline queue behind it."""

    entries: tuple[ProductionEntry, ...] = ()
    pending: tuple[ProductionEntry, ...] = ()
    is_syncing: bool = False
    last_sync_failures: int = 0

    @property
    def confirmed(self) -> list[ProductionEntry]:
        return [e for e in self.entries if e.synced]


@dataclass(frozen=True)
class ReportFilters:
    kind: ReportKind = ReportKind.PL
    period: ReportPeriod = ReportPeriod.MONTHLY
    year: int = field(default_factory=lambda: date.today().year)
    month: int = field(default_factory=lambda: date.today().month)
    entity: str | None = None
    custom_start: date | None = None
    custom_end: date | None = None


@dataclass(frozen=True)
class ViewState:
    screen: str = "production"
    notice: str | None = None
    drilldown: str | None = None


@dataclass(frozen=True)
class AppState:
    production: ProductionState = field(default_factory=ProductionState)
    filters: ReportFilters = field(default_factory=ReportFilters)
    view: ViewState = field(default_factory=ViewState)


# === Actions ===


@dataclass(frozen=True)
class EntriesLoaded:
    entries: tuple[ProductionEntry, ...]
    pending: tuple[ProductionEntry, ...]


@dataclass(frozen=True)
class EntryQueued:
    entry: ProductionEntry


@dataclass(frozen=True)
class EntryConfirmed:
    entry: ProductionEntry


@dataclass(frozen=True)
class SyncStarted:
    pass


@dataclass(frozen=True)
class SyncFinished:
    """Outcome of one sweep over ``attempted``, the queue as it was at start."""

    attempted: tuple[ProductionEntry, ...]
    synced: tuple[ProductionEntry, ...]
    remaining: tuple[ProductionEntry, ...]


@dataclass(frozen=True)
class FiltersChanged:
    """Replace any subset of the report filters; ``None`` fields are kept."""

    kind: ReportKind | None = None
    period: ReportPeriod | None = None
    year: int | None = None
    month: int | None = None
    entity: str | None = None
    custom_start: date | None = None
    custom_end: date | None = None
    clear_entity: bool = False


@dataclass(frozen=True)
class ScreenChanged:
    screen: str
    drilldown: str | None = None


@dataclass(frozen=True)
class NoticeShown:
    text: str


@dataclass(frozen=True)
class NoticeDismissed:
    pass


Action = (
    EntriesLoaded
    | EntryQueued
    | EntryConfirmed
    | SyncStarted
    | SyncFinished
    | FiltersChanged
    | ScreenChanged
    | NoticeShown
    | NoticeDismissed
)


# === Reducers ===


def _merged(
    confirmed: list[ProductionEntry], pending: tuple[ProductionEntry, ...]
) -> tuple[ProductionEntry, ...]:
    return tuple(merge_entries(confirmed, pending))


def reduce_production(state: ProductionState, action: Action) -> ProductionState:
    if isinstance(action, EntriesLoaded):
        return replace(state, entries=action.entries, pending=action.pending)

    if isinstance(action, EntryQueued):
        pending = state.pending + (action.entry,)
        return replace(state, pending=pending, entries=_merged(state.confirmed, pending))

    if isinstance(action, EntryConfirmed):
        key = entry_key(action.entry)
        pending = tuple(e for e in state.pending if entry_key(e) != key)
        confirmed = [action.entry] + state.confirmed
        return replace(state, pending=pending, entries=_merged(confirmed, pending))

    if isinstance(action, SyncStarted):
        return replace(state, is_syncing=True)

    if isinstance(action, SyncFinished):
        confirmed = list(action.synced) + state.confirmed
        # Entries queued while the sweep ran are kept behind the survivors
        swept = {entry_key(e) for e in action.attempted}
        queued_since = tuple(e for e in state.pending if entry_key(e) not in swept)
        pending = action.remaining + queued_since
        return ProductionState(
            entries=_merged(confirmed, pending),
            pending=pending,
            is_syncing=False,
            last_sync_failures=len(action.remaining),
        )

    return state


def reduce_filters(state: ReportFilters, action: Action) -> ReportFilters:
    if not isinstance(action, FiltersChanged):
        return state
    changes = {
        name: getattr(action, name)
        for name in ("kind", "period", "year", "month", "entity", "custom_start", "custom_end")
        if getattr(action, name) is not None
    }
    if action.clear_entity:
        changes["entity"] = None
    return replace(state, **changes)


def reduce_view(state: ViewState, action: Action) -> ViewState:
    if isinstance(action, ScreenChanged):
        return replace(state, screen=action.screen, drilldown=action.drilldown)
    if isinstance(action, NoticeShown):
        return replace(state, notice=action.text)
    if isinstance(action, NoticeDismissed):
        return replace(state, notice=None)
    return state


def reduce(state: AppState, action: Action) -> AppState:
    return AppState(
        production=reduce_production(state.production, action),
        filters=reduce_filters(state.filters, action),
        view=reduce_view(state.view, action),
    )


# === Store ===


Listener = Callable[[AppState], None]


class AppStore:
    """Holds the current state and notifies listeners after each dispatch.

    Usage:
        store = AppStore()
        store.subscribe(render)
        store.dispatch(NoticeShown("Saved"))
    """

    def __init__(self, initial: AppState | None = None):
        self._state = initial or AppState()
        self._listeners: list[Listener] = []

    @property
    def state(self) -> AppState:
        return self._state

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register ``listener``; returns a function that removes it."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def dispatch(self, action: Action) -> AppState:
        self._state = reduce(self._state, action)
        logger.debug("action_dispatched", action=type(action).__name__)
        for listener in list(self._listeners):
            try:
                listener(self._state)
            except Exception as e:
                logger.error("listener_failed", action=type(action).__name__, error=str(e))
        return self._state
