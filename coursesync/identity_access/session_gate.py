"""
Session gate: three-state lifecycle derived from the auth provider's signals.

Why:
    Every synchronized resource must defer while the session is loading, stay
    empty while anonymous and refetch when the identity changes. Modelling the
    session as an explicit observable value (instead of ambient global state)
    lets resources subscribe to transitions.

Behavior:
    - `unresolved`: session_loading is true.
    - `anonymous`: not loading and no current user.
    - `identified(u)`: not loading and current user `u`.
    - Returning to `unresolved` after the first resolution is a precondition
      violation: logged at error level and ignored.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Callable, List, Optional

logger = logging.getLogger("coursesync.identity")


class Phase(str, Enum):
    UNRESOLVED = "unresolved"
    ANONYMOUS = "anonymous"
    IDENTIFIED = "identified"


@dataclass(frozen=True)
class SessionState:
    phase: Phase
    user_id: Optional[str] = None

    @property
    def is_identified(self) -> bool:
        return self.phase is Phase.IDENTIFIED

    @property
    def is_unresolved(self) -> bool:
        return self.phase is Phase.UNRESOLVED

    @classmethod
    def derive(cls, *, current_user: Optional[str], session_loading: bool) -> "SessionState":
        if session_loading:
            return UNRESOLVED
        if current_user is None or str(current_user).strip() == "":
            return ANONYMOUS
        return cls(Phase.IDENTIFIED, user_id=str(current_user))


UNRESOLVED = SessionState(Phase.UNRESOLVED)
ANONYMOUS = SessionState(Phase.ANONYMOUS)

TransitionCallback = Callable[[SessionState, SessionState], None]


class SessionGate:
    def __init__(self, *, current_user: Optional[str] = None, session_loading: bool = True) -> None:
        self._user = current_user
        self._loading = bool(session_loading)
        self._state = SessionState.derive(current_user=current_user, session_loading=session_loading)
        self._resolved_once = not self._state.is_unresolved
        self._subscribers: List[TransitionCallback] = []

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def user_id(self) -> Optional[str]:
        return self._state.user_id

    def subscribe(self, callback: TransitionCallback) -> Callable[[], None]:
        """Register `callback(previous, current)`; returns an unsubscribe function."""
        self._subscribers.append(callback)

        def _unsubscribe() -> None:
            try:
                self._subscribers.remove(callback)
            except ValueError:
                pass

        return _unsubscribe

    def update(self, *, current_user: Optional[str], session_loading: bool) -> SessionState:
        """Re-evaluate the lifecycle from both auth signals and publish transitions.

        An ignored re-entry into unresolved keeps the user signal but not the
        loading flag, so a later `set_user` resolves normally.
        """
        self._user = current_user
        new_state = SessionState.derive(current_user=current_user, session_loading=session_loading)
        if new_state.is_unresolved and self._resolved_once:
            logger.error(
                "Session gate re-entered unresolved after resolution; keeping %s",
                self._state.phase.value,
            )
            return self._state
        self._loading = bool(session_loading)
        if new_state == self._state:
            return self._state
        previous, self._state = self._state, new_state
        if not new_state.is_unresolved:
            self._resolved_once = True
        logger.info(
            "Session transition %s -> %s (user_tail=%s)",
            previous.phase.value,
            new_state.phase.value,
            (new_state.user_id or "")[-6:],
        )
        for callback in list(self._subscribers):
            try:
                callback(previous, new_state)
            except Exception:
                logger.exception("Session subscriber failed during %s transition", new_state.phase.value)
        return self._state

    def set_user(self, current_user: Optional[str]) -> SessionState:
        return self.update(current_user=current_user, session_loading=self._loading)

    def set_loading(self, session_loading: bool) -> SessionState:
        return self.update(current_user=self._user, session_loading=session_loading)

    def sign_out(self) -> SessionState:
        return self.update(current_user=None, session_loading=False)


__all__ = ["Phase", "SessionState", "SessionGate", "UNRESOLVED", "ANONYMOUS"]
