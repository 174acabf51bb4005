"""
Per-interview session context.

A session owns one state machine, one guard state and one scorer state, and
threads them through every event. Nothing is shared between sessions, so any
number of sessions can run side by side in one process.
"""
import logging
import uuid
from typing import Any, Callable, List, Optional

from .events import (
    InterviewEventBus, SessionMetrics, SessionStartedEvent, StageChangedEvent,
    UtteranceMismatchEvent, TurnScoredEvent, PhaseExitedEvent,
    SessionEndedEvent, SessionResetEvent
)
from .guard import StoppingGuard, format_countdown, wall_clock_ms
from .models import (
    BACKGROUND_STAGES, ConversationStage, ExitReason, GuardState,
    ScorerState, TraitObservation
)
from .prompts import InterviewPrompts
from .schemas import JudgeResult, SessionSnapshot, parse_judge_result
from .scorer import TraitScorer, WeightFn, all_traits_zero_weight
from .state_machine import ConversationStateMachine, Transition, UtteranceCheck
from ..config import (
    INTERVIEWER_NAME, UNPRODUCTIVE_LIMIT, Config, ScorerConfig, validate_timebox_ms
)

logger = logging.getLogger("session")

Clock = Callable[[], int]

# Entering either stage means the assistant has put a background question to the candidate
_TIMER_STAGES = (ConversationStage.BACKGROUND_ASKED, ConversationStage.FOLLOWUP_ASKED)


class InterviewSession:
    """
    Drives the background phase of one interview.

    The host feeds it finalized utterances and judge results; the session
    advances the dialogue, keeps the guard and scorer current, and reports
    stage, exit reason and a scorer snapshot.
    """

    def __init__(self,
                 timebox_ms: int,
                 candidate_name: Optional[str] = None,
                 background_question: Optional[str] = None,
                 unproductive_limit: int = UNPRODUCTIVE_LIMIT,
                 interviewer_name: str = INTERVIEWER_NAME,
                 scorer_config: Optional[ScorerConfig] = None,
                 weight_fn: Optional[WeightFn] = None,
                 clock: Optional[Clock] = None,
                 event_bus: Optional[InterviewEventBus] = None,
                 session_id: Optional[str] = None):

        self.session_id = session_id or uuid.uuid4().hex[:12]
        self.timebox_ms = validate_timebox_ms(timebox_ms)
        self.clock = clock or wall_clock_ms

        self.machine = ConversationStateMachine(interviewer_name)
        self.guard = StoppingGuard(unproductive_limit)
        self.scorer = TraitScorer(scorer_config, weight_fn)

        self.event_bus = event_bus or InterviewEventBus()
        self.metrics = SessionMetrics()
        self.event_bus.subscribe_all(self.metrics.handle_event)

        self._fresh_phase_state()

        if candidate_name is not None:
            self.start(candidate_name)
        if background_question is not None:
            self.set_expected_background_question(background_question)

    @classmethod
    def from_config(cls, config: Config, **kwargs: Any) -> "InterviewSession":
        """Build a session from a loaded Config; keyword arguments override it."""
        options = {
            "timebox_ms": config.timebox_ms,
            "unproductive_limit": config.unproductive_limit,
            "interviewer_name": config.interviewer_name,
            "scorer_config": config.scorer,
        }
        options.update(kwargs)
        return cls(**options)

    def _fresh_phase_state(self) -> None:
        self.guard_state: GuardState = self.guard.new_state(self.timebox_ms)
        self.scorer_state: ScorerState = self.scorer.init_state()
        self.turns_scored = 0
        self.latest_judge_result: Optional[JudgeResult] = None

    # -------------------------------------------------------------------------
    # Read-only views
    # -------------------------------------------------------------------------

    @property
    def stage(self) -> ConversationStage:
        return self.machine.stage

    @property
    def last_exit_reason(self) -> Optional[ExitReason]:
        return self.machine.last_exit_reason

    @property
    def gate_ready(self) -> bool:
        return self.scorer.stop_check(self.scorer_state)

    def pending_exit_reason(self) -> Optional[ExitReason]:
        """
        What the guard would decide if the decision point were reached now.

        Lets the host pick the closing line before the assistant speaks.
        Returns None outside the background phase.
        """
        if self.stage not in BACKGROUND_STAGES:
            return None
        return self.guard.decide(self.guard_state, self.gate_ready, self.clock())

    def closing_instruction(self) -> str:
        return InterviewPrompts.closing_instruction(self.machine.candidate_name or "")

    def snapshot(self) -> SessionSnapshot:
        now = self.clock()
        remaining = self.guard.remaining_ms(self.guard_state, now)
        last_reason = self.last_exit_reason
        latest = self.latest_judge_result
        return SessionSnapshot(
            session_id=self.session_id,
            stage=self.stage.value,
            last_exit_reason=last_reason.value if last_reason else None,
            scorer=self.scorer.snapshot(self.scorer_state),
            consecutive_unproductive_answers=self.guard_state.consecutive_unproductive_answers,
            timebox_ms=self.guard_state.timebox_ms,
            elapsed_ms=self.guard.elapsed_ms(self.guard_state, now),
            remaining_ms=remaining,
            countdown=format_countdown(remaining),
            turns_scored=self.turns_scored,
            latest_pillars=latest.as_mapping() if latest else None,
            latest_rationale=latest.rationale if latest else None,
            latest_rationales=latest.rationales() if latest else {},
        )

    # -------------------------------------------------------------------------
    # Configuration
    # -------------------------------------------------------------------------

    def start(self, candidate_name: str) -> None:
        """
        Configure the candidate for this session.

        Raises:
            ConfigurationError: If the name is blank
        """
        self.machine.start(candidate_name)
        self.event_bus.emit(SessionStartedEvent(
            self.session_id, self.clock(), self.machine.candidate_name, self.timebox_ms
        ))

    def set_expected_background_question(self, question: str) -> None:
        self.machine.set_expected_background_question(question)

    def expect_followup(self, followup: Optional[str]) -> None:
        """Register the exact next follow-up line, or None to accept any follow-up."""
        self.machine.expect_followup(followup)

    # -------------------------------------------------------------------------
    # Dialogue events
    # -------------------------------------------------------------------------

    def on_assistant_utterance_finalized(self, text: str) -> ConversationStage:
        """
        Apply a finalized assistant utterance.

        At background_answered this is the decision point: the guard is
        consulted with the scorer's readiness and a clock sample taken now.

        Raises:
            ConfigurationError: If the greeting is checked before a candidate is configured
        """
        now = self.clock()

        def decide() -> Optional[ExitReason]:
            return self.guard.decide(self.guard_state, self.gate_ready, now)

        transition = self.machine.on_assistant_utterance_finalized(text, decide=decide)
        self._after_transition(transition, now, text)
        return self.stage

    def on_user_utterance_finalized(self) -> ConversationStage:
        now = self.clock()
        transition = self.machine.on_user_utterance_finalized()
        self._after_transition(transition, now)
        return self.stage

    def _after_transition(self, transition: Transition, now: int, text: Optional[str] = None) -> None:
        if transition.check in (UtteranceCheck.DRIFT, UtteranceCheck.NOT_CONFIGURED):
            self.event_bus.emit(UtteranceMismatchEvent(
                self.session_id, now, transition.state.stage.value, transition.check.value,
                transition.expected, (text or "").strip()
            ))

        if not transition.changed:
            return

        self.event_bus.emit(StageChangedEvent(
            self.session_id, now, transition.previous.stage.value, transition.state.stage.value
        ))

        if transition.state.stage in _TIMER_STAGES:
            self.guard_state = self.guard.ensure_timer_started(self.guard_state, now)

        if transition.exit_reason is not None:
            self.guard_state = self.guard.record_exit(self.guard_state, transition.exit_reason)
            elapsed = self.guard.elapsed_ms(self.guard_state, now)
            logger.info("Background phase exited: %s after %d ms", transition.exit_reason.value, elapsed)
            self.event_bus.emit(PhaseExitedEvent(
                self.session_id, now, transition.exit_reason.value, elapsed
            ))

    # -------------------------------------------------------------------------
    # Judge results
    # -------------------------------------------------------------------------

    def record_judge_result(self, result: Any, answer_text: Optional[str] = None) -> List[TraitObservation]:
        """
        Fold one turn's judge result into the scorer and the guard.

        Args:
            result: JudgeResult, mapping or JSON text; None or malformed input
                counts as a turn without evidence
            answer_text: The candidate's answer, when known. A blank answer is
                scored 0/0/0 whatever the judge said.

        Returns:
            The observations applied for this turn, one per trait
        """
        if self.stage not in BACKGROUND_STAGES:
            logger.warning("Judge result ignored outside the background phase (stage %s)", self.stage.value)
            return []

        parsed = parse_judge_result(result)
        if answer_text is not None and not answer_text.strip():
            if parsed is not None and not parsed.is_zero_triplet:
                logger.warning("Judge rated a blank answer %s; forcing 0/0/0", parsed.as_mapping())
            parsed = JudgeResult.zero("Blank response provided - no evidence to evaluate.")

        observations = self.scorer.observations_from_pillars(parsed.as_mapping() if parsed else None)
        self.scorer_state = self.scorer.update_many(self.scorer_state, observations)

        unproductive = all_traits_zero_weight(observations)
        self.guard_state = self.guard.record_turn_outcome(self.guard_state, unproductive)
        self.turns_scored += 1
        self.latest_judge_result = parsed

        self.event_bus.emit(TurnScoredEvent(
            self.session_id, self.clock(),
            ratings={o.trait.value: o.normalized_rating for o in observations},
            weights={o.trait.value: o.weight for o in observations},
            unproductive=unproductive,
            streak=self.guard_state.consecutive_unproductive_answers,
            gate_ready=self.gate_ready,
            pillars=parsed.as_mapping() if parsed else None,
            rationale=parsed.rationale if parsed else None,
            rationales=parsed.rationales() if parsed else None,
        ))
        return observations

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    def end(self) -> None:
        previous = self.stage
        self.machine.end()
        now = self.clock()
        if previous != ConversationStage.ENDED:
            self.event_bus.emit(StageChangedEvent(self.session_id, now, previous.value, self.stage.value))
            self.event_bus.emit(SessionEndedEvent(self.session_id, now, previous.value))

    def reset(self) -> None:
        """Return to idle and discard guard and scorer state. Always safe to call."""
        previous = self.stage
        self.machine.reset()
        self._fresh_phase_state()
        self.event_bus.emit(SessionResetEvent(self.session_id, self.clock(), previous.value))
