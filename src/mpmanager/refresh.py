"""
Coalescing of VM list refreshes.

Listing VMs is a slow external call while the refresh timer keeps ticking.
The coordinator makes sure at most one list fetch runs at a time, with at
most one more queued behind it, and that results arriving after the user
left the list view are not applied.

The coordinator never performs the fetch itself: each transition returns a
RefreshEffects telling the caller whether to start a fetch and whether to
apply the results it just received. Events are handled one at a time on the
UI thread.
"""
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any

from .constants import View


class RefreshState(Enum):
    IDLE = "idle"
    FETCHING = "fetching"
    FETCHING_PENDING_FOREGROUND = "fetching_pending_foreground"
    FETCHING_PENDING_BACKGROUND = "fetching_pending_background"


@dataclass(frozen=True)
class TimerTick:
    """Periodic auto refresh."""


@dataclass(frozen=True)
class RefreshRequested:
    """Refresh asked for by the user or after an action."""
    background: bool = False


@dataclass(frozen=True)
class FetchCompleted:
    result: Any = None
    background: bool = True


@dataclass(frozen=True)
class ViewChanged:
    view: View


@dataclass(frozen=True)
class FetchRequest:
    background: bool


@dataclass(frozen=True)
class RefreshEffects:
    """What the caller has to do after a transition."""
    start_fetch: FetchRequest | None = None
    apply_result: bool = False
    result: Any = None
    discarded: bool = False


NO_EFFECT = RefreshEffects()


class RefreshCoordinator:
    """State machine deciding when VM list fetches start and when results apply."""

    def __init__(self, view: View = View.LIST, logger: logging.Logger | None = None):
        self.state = RefreshState.IDLE
        self.current_view = view
        self.logger = logger or logging.getLogger(__name__)
        self._replay_foreground = False

    @property
    def fetch_in_flight(self) -> bool:
        return self.state is not RefreshState.IDLE

    @property
    def fetch_pending(self) -> bool:
        return self.state in (
            RefreshState.FETCHING_PENDING_FOREGROUND,
            RefreshState.FETCHING_PENDING_BACKGROUND,
        )

    @property
    def pending_is_background(self) -> bool:
        return self.state is RefreshState.FETCHING_PENDING_BACKGROUND

    def handle(self, event) -> RefreshEffects:
        """Dispatches one event to its transition."""
        if isinstance(event, TimerTick):
            return self.on_timer_tick()
        if isinstance(event, RefreshRequested):
            return self.request_refresh(background=event.background)
        if isinstance(event, FetchCompleted):
            return self.on_fetch_completed(event.result, background=event.background)
        if isinstance(event, ViewChanged):
            return self.on_view_changed(event.view)
        raise TypeError(f"unknown refresh event: {event!r}")

    def _start(self, background: bool) -> RefreshEffects:
        self.state = RefreshState.FETCHING
        self.logger.debug("starting %s VM list fetch", "background" if background else "foreground")
        return RefreshEffects(start_fetch=FetchRequest(background=background))

    def _queue(self, background: bool) -> RefreshEffects:
        # A queued foreground request is never downgraded by a background one.
        if background and self.state is RefreshState.FETCHING_PENDING_FOREGROUND:
            return NO_EFFECT
        if background:
            self.state = RefreshState.FETCHING_PENDING_BACKGROUND
        else:
            self.state = RefreshState.FETCHING_PENDING_FOREGROUND
        self.logger.debug("VM list fetch in flight, queued %s refresh",
                          "background" if background else "foreground")
        return NO_EFFECT

    def on_timer_tick(self) -> RefreshEffects:
        if self.fetch_in_flight:
            return self._queue(background=True)
        if self.current_view is not View.LIST:
            # Nothing on screen would show the result.
            return NO_EFFECT
        return self._start(background=True)

    def request_refresh(self, background: bool = False) -> RefreshEffects:
        if self.fetch_in_flight:
            return self._queue(background=background)
        return self._start(background=background)

    def on_fetch_completed(self, result: Any = None, background: bool = True) -> RefreshEffects:
        if not self.fetch_in_flight:
            self.logger.warning("VM list result received with no fetch in flight, ignoring it")
            return RefreshEffects(result=result, discarded=True)

        pending = self.state
        self.state = RefreshState.IDLE

        if self.current_view is not View.LIST:
            if pending is RefreshState.FETCHING_PENDING_FOREGROUND:
                self._replay_foreground = True
            if pending is not RefreshState.FETCHING:
                self.logger.info("dropping queued VM list refresh, list view is not active")
            self.logger.debug("discarding %s VM list result, list view is not active",
                              "background" if background else "foreground")
            return RefreshEffects(result=result, discarded=True)

        if pending is RefreshState.FETCHING:
            return RefreshEffects(apply_result=True, result=result)

        follow_up = self._start(background=pending is RefreshState.FETCHING_PENDING_BACKGROUND)
        return RefreshEffects(start_fetch=follow_up.start_fetch, apply_result=True, result=result)

    def on_view_changed(self, view: View) -> RefreshEffects:
        previous = self.current_view
        self.current_view = view
        if view is not View.LIST or previous is View.LIST:
            return NO_EFFECT
        replay_foreground = self._replay_foreground
        self._replay_foreground = False
        if self.fetch_in_flight:
            return NO_EFFECT
        # Back on the list: bring it up to date.
        return self._start(background=not replay_foreground)
