"""Session / interruption state machine

Owns the single current session and interruption. Every transition returns
a TransitionResult instead of raising; rejected transitions and storage
failures are logged and the in-memory state stays authoritative.
"""
import copy
import logging
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Callable, List, Optional

from productivity_tracker.models.work_session import Interruption, WorkSession
from productivity_tracker.services.database import DatabaseManager
from productivity_tracker.services.errors import TrackingError

logger = logging.getLogger(__name__)


class TrackingState(str, Enum):
    IDLE = "idle"
    TRACKING = "tracking"
    INTERRUPTED = "interrupted"


class TransitionOutcome(str, Enum):
    OK = "ok"
    INVALID_TRANSITION = "invalid_transition"
    NO_ACTIVE_ENTITY = "no_active_entity"


class EventKind(str, Enum):
    SESSION_STARTED = "session_started"
    SESSION_ENDED = "session_ended"
    SESSION_RECOVERED = "session_recovered"
    SESSION_DELETED = "session_deleted"
    INTERRUPTION_STARTED = "interruption_started"
    INTERRUPTION_ENDED = "interruption_ended"


@dataclass(frozen=True)
class TransitionResult:
    outcome: TransitionOutcome
    state: TrackingState
    persisted: bool = True  # False when the store rejected the change
    message: str = ""
    session: Optional[WorkSession] = None
    interruption: Optional[Interruption] = None

    @property
    def ok(self) -> bool:
        return self.outcome == TransitionOutcome.OK

    def raise_for_outcome(self) -> "TransitionResult":
        """Raise TrackingError unless the transition was applied"""
        if not self.ok:
            raise TrackingError(self.message or self.outcome.value)
        return self


@dataclass(frozen=True)
class TrackingEvent:
    kind: EventKind
    state: TrackingState
    timestamp: datetime
    session: Optional[WorkSession] = None
    interruption: Optional[Interruption] = None


Subscriber = Callable[[TrackingEvent], None]


class SessionStateMachine:
    """Idle -> Tracking <-> Interrupted, with Tracking/Interrupted -> Idle

    Not thread-safe: all transitions are expected to run on one thread.
    """

    def __init__(self, db: DatabaseManager, clock: Callable[[], datetime] = datetime.now,
                 recover: bool = True):
        self.db = db
        self.clock = clock
        self._session: Optional[WorkSession] = None
        self._interruption: Optional[Interruption] = None
        self._subscribers: List[Subscriber] = []
        if recover:
            self.recover()

    # Read-only view

    @property
    def state(self) -> TrackingState:
        if self._session is None:
            return TrackingState.IDLE
        if self._interruption is None:
            return TrackingState.TRACKING
        return TrackingState.INTERRUPTED

    @property
    def is_tracking(self) -> bool:
        return self._session is not None

    @property
    def is_interrupted(self) -> bool:
        return self._interruption is not None

    @property
    def current_session(self) -> Optional[WorkSession]:
        """Snapshot of the active session; mutating it has no effect"""
        return copy.deepcopy(self._session)

    @property
    def current_interruption(self) -> Optional[Interruption]:
        return copy.deepcopy(self._interruption)

    # Observers

    def subscribe(self, callback: Subscriber) -> Callable[[], None]:
        """Register for state-change events; returns an unsubscribe function"""
        self._subscribers.append(callback)

        def unsubscribe():
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        return unsubscribe

    def _emit(self, kind: EventKind, timestamp: datetime,
              session: Optional[WorkSession] = None,
              interruption: Optional[Interruption] = None):
        event = TrackingEvent(
            kind=kind,
            state=self.state,
            timestamp=timestamp,
            session=copy.deepcopy(session or self._session),
            interruption=copy.deepcopy(interruption or self._interruption),
        )
        for callback in list(self._subscribers):
            try:
                callback(event)
            except Exception as e:
                logger.error(f"Subscriber failed handling {kind.value}: {e}", exc_info=True)

    # Startup

    def recover(self) -> TrackingState:
        """Resume whichever session the store still has open"""
        try:
            active_sessions = self.db.fetch_active_sessions()
        except Exception as e:
            logger.error(f"Could not recover active session: {e}")
            return self.state

        if not active_sessions:
            logger.debug("No active session to recover")
            return self.state

        if len(active_sessions) > 1:
            logger.warning(f"Found {len(active_sessions)} open sessions; resuming the most recent")

        session = active_sessions[0]
        self._session = session
        self._interruption = session.active_interruption
        logger.info(f"Resumed session {session.id} in state {self.state.value}")
        self._emit(EventKind.SESSION_RECOVERED, self.clock())
        return self.state

    # Transitions

    def start_session(self) -> TransitionResult:
        if self.state != TrackingState.IDLE:
            return self._reject(TransitionOutcome.INVALID_TRANSITION, "Session already in progress")

        now = self.clock()
        self._session = WorkSession(start_time=now)
        persisted = self._persist("insert session", self.db.insert_session, self._session)

        logger.info(f"Started session {self._session.id}")
        self._emit(EventKind.SESSION_STARTED, now)
        return self._accept(persisted)

    def start_interruption(self, reason: Optional[str] = None) -> TransitionResult:
        if self.state == TrackingState.IDLE:
            return self._reject(TransitionOutcome.INVALID_TRANSITION, "No session to interrupt")
        if self.state == TrackingState.INTERRUPTED:
            return self._reject(TransitionOutcome.INVALID_TRANSITION, "Interruption already in progress")

        now = max(self.clock(), self._session.start_time)
        self._interruption = Interruption(start_time=now, reason=_clean(reason))
        self._session.add_interruption(self._interruption)
        persisted = self._persist("save interruption", self.db.save_session, self._session)

        logger.info(f"Interruption started in session {self._session.id} (reason: {self._interruption.reason})")
        self._emit(EventKind.INTERRUPTION_STARTED, now)
        return self._accept(persisted)

    def end_interruption(self) -> TransitionResult:
        if self.state != TrackingState.INTERRUPTED:
            return self._reject(TransitionOutcome.NO_ACTIVE_ENTITY, "No active interruption to end")

        self._close_interruption()
        persisted = self._persist("save interruption", self.db.save_session, self._session)
        return self._accept(persisted)

    def end_session(self, interruption_reason: Optional[str] = None) -> TransitionResult:
        if self.state == TrackingState.IDLE:
            return self._reject(TransitionOutcome.NO_ACTIVE_ENTITY, "No active session to end")

        reason = _clean(interruption_reason)
        now = max(self.clock(), self._session.start_time)

        if self._interruption is not None:
            now = self._close_interruption(now)

        session = self._session
        session.end_time = now
        if reason:
            # Recorded on the session; it adds no interruption and no penalty
            session.interruption_reason = reason
        persisted = self._persist("save session", self.db.save_session, session)

        self._session = None
        logger.info(f"Ended session {session.id}. Duration: {session.duration_formatted(now)}")
        self._emit(EventKind.SESSION_ENDED, now, session=session)
        return self._accept(persisted, session=session)

    def toggle_session(self) -> TransitionResult:
        if self.state == TrackingState.IDLE:
            return self.start_session()
        return self.end_session()

    def delete_session(self, session_id: str) -> TransitionResult:
        """Remove a session and its interruptions, ending it first if current"""
        now = self.clock()
        current = self._session if self._session and self._session.id == session_id else None

        persisted, error = True, ""
        try:
            deleted = self.db.delete_session(session_id)
        except Exception as e:
            logger.error(f"Failed to delete session {session_id}: {e}")
            deleted, persisted, error = False, False, str(e)

        if current is None:
            if not persisted:
                return TransitionResult(TransitionOutcome.OK, self.state, persisted=False, message=error)
            if not deleted:
                return self._reject(TransitionOutcome.NO_ACTIVE_ENTITY, f"Session {session_id} not found")
        else:
            self._interruption = None
            self._session = None

        self._emit(EventKind.SESSION_DELETED, now, session=current)
        return TransitionResult(TransitionOutcome.OK, self.state, persisted=persisted)

    # Helpers

    def _close_interruption(self, now: Optional[datetime] = None) -> datetime:
        interruption = self._interruption
        now = max(now or self.clock(), interruption.start_time)
        interruption.end_time = now
        self._interruption = None
        logger.info(f"Interruption ended after {interruption.duration_formatted(now)}")
        self._emit(EventKind.INTERRUPTION_ENDED, now, interruption=interruption)
        return now

    def _persist(self, action: str, operation: Callable, *args) -> bool:
        """Run a store operation; failures are logged and reported, never raised"""
        try:
            operation(*args)
            return True
        except Exception as e:
            logger.error(f"Failed to {action}; keeping in-memory state: {e}")
            return False

    def _accept(self, persisted: bool, session: Optional[WorkSession] = None) -> TransitionResult:
        return TransitionResult(
            outcome=TransitionOutcome.OK,
            state=self.state,
            persisted=persisted,
            session=copy.deepcopy(session or self._session),
            interruption=copy.deepcopy(self._interruption),
        )

    def _reject(self, outcome: TransitionOutcome, message: str) -> TransitionResult:
        logger.warning(f"Rejected transition in state {self.state.value}: {message}")
        return TransitionResult(outcome=outcome, state=self.state, message=message)


def _clean(reason: Optional[str]) -> Optional[str]:
    if reason is None:
        return None
    reason = reason.strip()
    return reason or None
