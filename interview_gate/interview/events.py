"""
Event-driven notifications for interview sessions.
"""
import logging
from abc import ABC
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Dict, List, Optional

logger = logging.getLogger("events")


class EventType(str, Enum):
    """Types of session events."""
    SESSION_STARTED = "session_started"
    STAGE_CHANGED = "stage_changed"
    UTTERANCE_MISMATCH = "utterance_mismatch"
    TURN_SCORED = "turn_scored"
    PHASE_EXITED = "phase_exited"
    SESSION_ENDED = "session_ended"
    SESSION_RESET = "session_reset"


@dataclass
class InterviewEvent(ABC):
    """Base class for all session events."""
    event_type: EventType
    session_id: str
    timestamp_ms: int
    data: Dict[str, Any]


@dataclass
class SessionStartedEvent(InterviewEvent):
    """Event fired when a candidate is configured for a session."""
    def __init__(self, session_id: str, timestamp_ms: int, candidate_name: str, timebox_ms: int):
        super().__init__(
            event_type=EventType.SESSION_STARTED,
            session_id=session_id,
            timestamp_ms=timestamp_ms,
            data={"candidate_name": candidate_name, "timebox_ms": timebox_ms}
        )


@dataclass
class StageChangedEvent(InterviewEvent):
    """Event fired whenever the dialogue stage changes."""
    def __init__(self, session_id: str, timestamp_ms: int, from_stage: str, to_stage: str):
        super().__init__(
            event_type=EventType.STAGE_CHANGED,
            session_id=session_id,
            timestamp_ms=timestamp_ms,
            data={"from": from_stage, "to": to_stage}
        )


@dataclass
class UtteranceMismatchEvent(InterviewEvent):
    """Event fired when an assistant line does not advance the script.

    `kind` is "drift" (a line was expected and a different one was said) or
    "not_configured" (no line is configured for the stage yet).
    """
    def __init__(self, session_id: str, timestamp_ms: int, stage: str, kind: str,
                 expected: Optional[str], received: str):
        super().__init__(
            event_type=EventType.UTTERANCE_MISMATCH,
            session_id=session_id,
            timestamp_ms=timestamp_ms,
            data={"stage": stage, "kind": kind, "expected": expected, "received": received}
        )


@dataclass
class TurnScoredEvent(InterviewEvent):
    """Event fired after a judge result has been folded into the scorer."""
    def __init__(self, session_id: str, timestamp_ms: int, ratings: Dict[str, float],
                 weights: Dict[str, float], unproductive: bool, streak: int, gate_ready: bool,
                 pillars: Optional[Dict[str, float]] = None, rationale: Optional[str] = None,
                 rationales: Optional[Dict[str, Optional[str]]] = None):
        super().__init__(
            event_type=EventType.TURN_SCORED,
            session_id=session_id,
            timestamp_ms=timestamp_ms,
            data={
                "ratings": ratings,
                "weights": weights,
                "unproductive": unproductive,
                "streak": streak,
                "gate_ready": gate_ready,
                "pillars": pillars,
                "rationale": rationale,
                "rationales": rationales or {},
            }
        )


@dataclass
class PhaseExitedEvent(InterviewEvent):
    """Event fired when the background phase ends."""
    def __init__(self, session_id: str, timestamp_ms: int, reason: str, elapsed_ms: int):
        super().__init__(
            event_type=EventType.PHASE_EXITED,
            session_id=session_id,
            timestamp_ms=timestamp_ms,
            data={"reason": reason, "elapsed_ms": elapsed_ms}
        )


@dataclass
class SessionEndedEvent(InterviewEvent):
    def __init__(self, session_id: str, timestamp_ms: int, stage: str):
        super().__init__(
            event_type=EventType.SESSION_ENDED,
            session_id=session_id,
            timestamp_ms=timestamp_ms,
            data={"stage": stage}
        )


@dataclass
class SessionResetEvent(InterviewEvent):
    def __init__(self, session_id: str, timestamp_ms: int, stage: str):
        super().__init__(
            event_type=EventType.SESSION_RESET,
            session_id=session_id,
            timestamp_ms=timestamp_ms,
            data={"from_stage": stage}
        )


EventHandler = Callable[[InterviewEvent], None]


class InterviewEventBus:
    """Event bus for session notifications."""

    def __init__(self):
        self._handlers: Dict[EventType, List[EventHandler]] = {}
        self._global_handlers: List[EventHandler] = []

    def subscribe(self, event_type: EventType, handler: EventHandler) -> None:
        """
        Subscribe to specific event type.

        Args:
            event_type: Type of event to listen for
            handler: Function to call when event occurs
        """
        self._handlers.setdefault(event_type, []).append(handler)
        logger.debug(f"Subscribed handler to {event_type.value}")

    def subscribe_all(self, handler: EventHandler) -> None:
        """Subscribe to all events."""
        self._global_handlers.append(handler)
        logger.debug("Subscribed global handler")

    def unsubscribe(self, event_type: EventType, handler: EventHandler) -> None:
        if event_type in self._handlers:
            try:
                self._handlers[event_type].remove(handler)
                logger.debug(f"Unsubscribed handler from {event_type.value}")
            except ValueError:
                logger.warning(f"Handler not found for {event_type.value}")

    def emit(self, event: InterviewEvent) -> None:
        """
        Emit an event to all subscribers.

        Handler failures are logged and never abort the transition that
        produced the event.
        """
        logger.debug(f"Emitting event: {event.event_type.value} for session {event.session_id}")

        for handler in self._handlers.get(event.event_type, []):
            try:
                handler(event)
            except Exception:
                logger.exception(f"Error in event handler for {event.event_type.value}")

        for handler in self._global_handlers:
            try:
                handler(event)
            except Exception:
                logger.exception("Error in global event handler")

    def clear_handlers(self) -> None:
        """Clear all event handlers."""
        self._handlers.clear()
        self._global_handlers.clear()
        logger.debug("Cleared all event handlers")


class EventLogger:
    """Logs all events for debugging and analysis."""

    def __init__(self, log_level: int = logging.INFO):
        self.logger = logging.getLogger("event_logger")
        self.logger.setLevel(log_level)

    def handle_event(self, event: InterviewEvent) -> None:
        self.logger.info(f"Event: {event.event_type.value} | Session: {event.session_id} | Data: {event.data}")


class SessionMetrics:
    """Collects counters from session events."""

    def __init__(self):
        self.reset()

    def handle_event(self, event: InterviewEvent) -> None:
        """Update metrics based on event."""
        if event.event_type == EventType.STAGE_CHANGED:
            self.stage_changes += 1
        elif event.event_type == EventType.TURN_SCORED:
            self.turns_scored += 1
            if event.data.get("unproductive"):
                self.unproductive_turns += 1
        elif event.event_type == EventType.UTTERANCE_MISMATCH:
            if event.data.get("kind") == "drift":
                self.script_drifts += 1
            else:
                self.unconfigured_utterances += 1
        elif event.event_type == EventType.PHASE_EXITED:
            reason = event.data.get("reason")
            self.exits_by_reason[reason] = self.exits_by_reason.get(reason, 0) + 1

    def get_metrics(self) -> Dict[str, Any]:
        """Get current metrics snapshot."""
        return {
            "stage_changes": self.stage_changes,
            "turns_scored": self.turns_scored,
            "unproductive_turns": self.unproductive_turns,
            "script_drifts": self.script_drifts,
            "unconfigured_utterances": self.unconfigured_utterances,
            "exits_by_reason": dict(self.exits_by_reason),
        }

    def reset(self) -> None:
        """Reset all metrics to zero."""
        self.stage_changes = 0
        self.turns_scored = 0
        self.unproductive_turns = 0
        self.script_drifts = 0
        self.unconfigured_utterances = 0
        self.exits_by_reason: Dict[str, int] = {}
