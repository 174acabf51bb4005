"""
Stopping guard for the background phase.

Time is sampled, not scheduled: the timebox is only checked when a decision is
requested, never by a timer callback.
"""
import logging
import time
from dataclasses import replace
from typing import Optional

from .models import ExitReason, GuardState
from ..config import UNPRODUCTIVE_LIMIT, validate_timebox_ms, validate_unproductive_limit

logger = logging.getLogger("guard")


def wall_clock_ms() -> int:
    """Wall-clock time in milliseconds."""
    return int(time.time() * 1000)


def format_countdown(remaining_ms: float) -> str:
    """Render remaining time as m:ss, clamped at 0:00."""
    clamped = max(0, int(remaining_ms // 1000))
    minutes, seconds = divmod(clamped, 60)
    return f"{minutes}:{seconds:02d}"


class StoppingGuard:
    """
    Decides when the background phase must end.

    Rules are applied in fixed priority, first match wins:
    timebox, then unproductive streak, then scorer readiness.
    """

    def __init__(self, unproductive_limit: int = UNPRODUCTIVE_LIMIT):
        self.unproductive_limit = validate_unproductive_limit(unproductive_limit)

    def new_state(self, timebox_ms: int) -> GuardState:
        """
        Create guard state for a new background phase.

        Raises:
            ConfigurationError: If the timebox is missing or not a positive duration
        """
        return GuardState(timebox_ms=validate_timebox_ms(timebox_ms))

    def ensure_timer_started(self, state: GuardState, now_ms: int) -> GuardState:
        """Start the clock on first entry; later calls leave it untouched."""
        if state.started_at_ms is not None:
            return state
        logger.info("Background timer started at %d (timebox %d ms)", now_ms, state.timebox_ms)
        return replace(state, started_at_ms=now_ms)

    def elapsed_ms(self, state: GuardState, now_ms: int) -> int:
        if state.started_at_ms is None:
            return 0
        return max(0, now_ms - state.started_at_ms)

    def remaining_ms(self, state: GuardState, now_ms: int) -> int:
        return max(0, state.timebox_ms - self.elapsed_ms(state, now_ms))

    def record_turn_outcome(self, state: GuardState, all_traits_zero_weight: bool) -> GuardState:
        """
        Update the unproductive streak after a scored turn.

        Args:
            state: Current guard state
            all_traits_zero_weight: True when no trait received a nonzero-weight observation

        Returns:
            New guard state with the streak incremented or reset to 0
        """
        if all_traits_zero_weight:
            streak = state.consecutive_unproductive_answers + 1
            logger.info("Unproductive answer (%d/%d)", streak, self.unproductive_limit)
        else:
            streak = 0
        return replace(state, consecutive_unproductive_answers=streak)

    def decide(self, state: GuardState, gate_ready: bool, now_ms: int) -> Optional[ExitReason]:
        """
        Decide whether the background phase ends now.

        Args:
            state: Current guard state
            gate_ready: Readiness reported by the trait scorer
            now_ms: Wall-clock sample taken at the decision point

        Returns:
            ExitReason for the first rule that holds, or None to continue
        """
        elapsed = self.elapsed_ms(state, now_ms)
        if elapsed >= state.timebox_ms:
            reason = ExitReason.TIMEBOX
        elif state.consecutive_unproductive_answers >= self.unproductive_limit:
            reason = ExitReason.UNPRODUCTIVE_STREAK
        elif gate_ready:
            reason = ExitReason.SCORER_READY
        else:
            reason = None

        logger.debug(
            "decide: elapsed=%d/%d streak=%d/%d gate_ready=%s -> %s",
            elapsed, state.timebox_ms, state.consecutive_unproductive_answers,
            self.unproductive_limit, gate_ready, reason.value if reason else None
        )
        return reason

    def record_exit(self, state: GuardState, reason: ExitReason) -> GuardState:
        return replace(state, last_exit_reason=reason)
