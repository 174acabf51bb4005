"""
State machine for the scripted interview dialogue.

The pure reducers in this module take the current MachineState and an event
and return a Transition; ConversationStateMachine holds the current value for
callers that prefer an object.

Assistant lines are script-driven, so a stage only advances when the finalized
assistant text equals the expected line for that stage (after trimming). A
mismatch never raises; it is reported through the Transition's check so that
"the script has not run yet" can be told apart from "the script drifted".
"""
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, replace
from enum import Enum
from typing import Callable, Optional

from .models import ConversationStage, ExitReason, USER_ANSWER_TRANSITIONS
from .prompts import InterviewPrompts
from ..config import INTERVIEWER_NAME
from ..errors import ConfigurationError

logger = logging.getLogger("state_machine")

DecideFn = Callable[[], Optional[ExitReason]]


class UtteranceCheck(str, Enum):
    """Outcome of comparing an assistant utterance with the script."""
    MATCHED = "matched"
    NOT_CONFIGURED = "not_configured"
    DRIFT = "drift"
    IGNORED = "ignored"


class ExpectedUtterance(ABC):
    """What the assistant is expected to say at a given stage."""

    @abstractmethod
    def matches(self, text: Optional[str]) -> bool:
        ...

    @abstractmethod
    def describe(self) -> str:
        ...


@dataclass(frozen=True)
class ExactUtterance(ExpectedUtterance):
    """Character-exact match after trimming surrounding whitespace."""
    text: str

    def matches(self, text: Optional[str]) -> bool:
        return (text or "").strip() == self.text.strip()

    def describe(self) -> str:
        return repr(self.text.strip())


@dataclass(frozen=True)
class AnyUtterance(ExpectedUtterance):
    """Any non-blank utterance, used for unscripted follow-up questions."""

    def matches(self, text: Optional[str]) -> bool:
        return bool((text or "").strip())

    def describe(self) -> str:
        return "<any non-blank utterance>"


@dataclass(frozen=True)
class MachineState:
    """Current dialogue stage plus the script it is checked against."""
    stage: ConversationStage = ConversationStage.IDLE
    candidate_name: Optional[str] = None
    interviewer_name: str = INTERVIEWER_NAME
    expected_background_question: Optional[ExactUtterance] = None
    expected_followup: Optional[ExpectedUtterance] = None
    last_exit_reason: Optional[ExitReason] = None


@dataclass(frozen=True)
class Transition:
    """Result of applying one event to a MachineState."""
    previous: MachineState
    state: MachineState
    check: UtteranceCheck
    exit_reason: Optional[ExitReason] = None
    expected: Optional[str] = None

    @property
    def changed(self) -> bool:
        return self.previous.stage != self.state.stage


# =============================================================================
# Pure reducers
# =============================================================================

def apply_start(state: MachineState, candidate_name: str) -> MachineState:
    """Configure the candidate name used to render the greeting."""
    if not candidate_name or not candidate_name.strip():
        raise ConfigurationError("candidate_name is required to start an interview")
    return replace(state, candidate_name=candidate_name.strip())


def apply_expected_background_question(state: MachineState, question: str) -> MachineState:
    if not question or not question.strip():
        raise ConfigurationError("background question must be a non-blank string")
    return replace(state, expected_background_question=ExactUtterance(question.strip()))


def apply_expected_followup(state: MachineState, followup: Optional[str]) -> MachineState:
    """Register an exact follow-up line, or None to accept any non-blank follow-up."""
    expected = ExactUtterance(followup.strip()) if followup and followup.strip() else None
    return replace(state, expected_followup=expected)


def expected_greeting(state: MachineState) -> ExactUtterance:
    if not state.candidate_name:
        raise ConfigurationError(
            "candidate_name must be configured before the greeting can be checked"
        )
    return ExactUtterance(InterviewPrompts.greeting(state.candidate_name, state.interviewer_name))


def _checked(state: MachineState, expected: Optional[ExpectedUtterance], text: str,
             target: ConversationStage) -> Transition:
    if expected is None:
        return Transition(previous=state, state=state, check=UtteranceCheck.NOT_CONFIGURED)
    if expected.matches(text):
        return Transition(previous=state, state=replace(state, stage=target),
                          check=UtteranceCheck.MATCHED, expected=expected.describe())
    return Transition(previous=state, state=state, check=UtteranceCheck.DRIFT,
                      expected=expected.describe())


def apply_assistant_final(state: MachineState, text: str, decide: Optional[DecideFn] = None) -> Transition:
    """
    Apply an "assistant utterance finalized" event.

    Args:
        state: Current machine state
        text: Finalized assistant text
        decide: Called at the background_answered decision point; returns an
            ExitReason to end the background phase or None to continue

    Returns:
        Transition describing the outcome

    Raises:
        ConfigurationError: If the greeting is checked without a candidate name
    """
    stage = state.stage

    if stage == ConversationStage.IDLE:
        return _checked(state, expected_greeting(state), text, ConversationStage.GREETING_ACKNOWLEDGED)

    if stage == ConversationStage.GREETING_ANSWERED:
        return _checked(state, state.expected_background_question, text, ConversationStage.BACKGROUND_ASKED)

    if stage == ConversationStage.BACKGROUND_ANSWERED:
        reason = decide() if decide is not None else None
        if reason is not None:
            exited = replace(state, stage=ConversationStage.CODING_SESSION,
                             last_exit_reason=reason, expected_followup=None)
            return Transition(previous=state, state=exited, check=UtteranceCheck.MATCHED, exit_reason=reason)

        question = state.expected_background_question
        if question is not None and question.matches(text):
            return Transition(previous=state, state=replace(state, stage=ConversationStage.BACKGROUND_ASKED),
                              check=UtteranceCheck.MATCHED, expected=question.describe())

        followup = state.expected_followup or AnyUtterance()
        transition = _checked(state, followup, text, ConversationStage.FOLLOWUP_ASKED)
        if transition.changed:
            # A registered follow-up is consumed once it has been said
            transition = replace(transition, state=replace(transition.state, expected_followup=None))
        return transition

    return Transition(previous=state, state=state, check=UtteranceCheck.IGNORED)


def apply_user_final(state: MachineState) -> Transition:
    """Apply a "user utterance finalized" event; content is never inspected."""
    target = USER_ANSWER_TRANSITIONS.get(state.stage)
    if target is None:
        return Transition(previous=state, state=state, check=UtteranceCheck.IGNORED)
    return Transition(previous=state, state=replace(state, stage=target), check=UtteranceCheck.MATCHED)


def apply_end(state: MachineState) -> MachineState:
    return replace(state, stage=ConversationStage.ENDED)


def apply_reset(state: MachineState) -> MachineState:
    """Back to idle with no candidate, no script and no exit reason."""
    return MachineState(interviewer_name=state.interviewer_name)


# =============================================================================
# Stateful wrapper
# =============================================================================

class ConversationStateMachine:
    """Holds the current MachineState and applies events to it."""

    def __init__(self, interviewer_name: str = INTERVIEWER_NAME, candidate_name: Optional[str] = None):
        self.state = MachineState(interviewer_name=interviewer_name)
        if candidate_name is not None:
            self.start(candidate_name)

    @property
    def stage(self) -> ConversationStage:
        return self.state.stage

    @property
    def last_exit_reason(self) -> Optional[ExitReason]:
        return self.state.last_exit_reason

    @property
    def candidate_name(self) -> Optional[str]:
        return self.state.candidate_name

    def start(self, candidate_name: str) -> None:
        self.state = apply_start(self.state, candidate_name)
        logger.info("Interview configured for candidate %s", self.state.candidate_name)

    def set_expected_background_question(self, question: str) -> None:
        self.state = apply_expected_background_question(self.state, question)
        logger.debug("Expected background question set")

    def expect_followup(self, followup: Optional[str]) -> None:
        self.state = apply_expected_followup(self.state, followup)

    def on_assistant_utterance_finalized(self, text: str, decide: Optional[DecideFn] = None) -> Transition:
        transition = apply_assistant_final(self.state, text, decide)
        self.state = transition.state
        self._log_transition("assistant", transition, text)
        return transition

    def on_user_utterance_finalized(self) -> Transition:
        transition = apply_user_final(self.state)
        self.state = transition.state
        self._log_transition("user", transition)
        return transition

    def end(self) -> None:
        if self.state.stage != ConversationStage.ENDED:
            logger.info("Interview ended from stage %s", self.state.stage.value)
        self.state = apply_end(self.state)

    def reset(self) -> None:
        self.state = apply_reset(self.state)
        logger.info("State machine reset to idle")

    def _log_transition(self, source: str, transition: Transition, text: Optional[str] = None) -> None:
        if transition.changed:
            logger.info(
                "%s: %s -> %s%s", source, transition.previous.stage.value, transition.state.stage.value,
                f" ({transition.exit_reason.value})" if transition.exit_reason else ""
            )
        elif transition.check == UtteranceCheck.DRIFT:
            logger.warning(
                "Scripted line drift at %s: expected %s, got %r",
                transition.state.stage.value, transition.expected, (text or "").strip()
            )
        elif transition.check == UtteranceCheck.NOT_CONFIGURED:
            logger.info("No scripted line configured yet at %s; utterance ignored", transition.state.stage.value)
        else:
            logger.debug("%s event ignored at %s", source, transition.state.stage.value)
