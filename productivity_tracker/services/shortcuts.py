import logging

from productivity_tracker.services.tracking import SessionStateMachine, TrackingState, TransitionResult

logger = logging.getLogger(__name__)


class ShortcutHandler:
    """Maps the global toggle hotkey onto state-machine transitions

    Idle starts a session, Tracking opens an interruption and Interrupted
    closes it again. Ending a session stays an explicit action.
    """

    def __init__(self, machine: SessionStateMachine):
        self.machine = machine

    def handle_toggle(self) -> TransitionResult:
        state = self.machine.state
        logger.debug(f"Toggle hotkey pressed in state {state.value}")
        if state == TrackingState.IDLE:
            return self.machine.start_session()
        if state == TrackingState.INTERRUPTED:
            return self.machine.end_interruption()
        return self.machine.start_interruption()
