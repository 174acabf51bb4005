"""Interview progression components.

This module contains the dialogue state machine, the stopping guard, the trait
scorer and the session object that ties them together.
"""

# Session
from .session import InterviewSession

# Data models
from .models import (
    ConversationStage, ExitReason, Trait, TRAITS,
    TraitObservation, TraitState, CoverageSet, ScorerState, GuardState
)

# Structured schemas
from .schemas import (
    JudgeResult, Pillars, PillarRationales, parse_judge_result,
    TraitSnapshot, ScorerSnapshot, SessionSnapshot
)

# Engine parts
from .state_machine import (
    ConversationStateMachine, MachineState, Transition, UtteranceCheck,
    ExactUtterance, AnyUtterance
)
from .guard import StoppingGuard, format_countdown
from .scorer import TraitScorer, compute_weight, normalize_rating, all_traits_zero_weight
from .prompts import InterviewPrompts

# Event system
from .events import (
    InterviewEventBus, EventLogger, SessionMetrics,
    EventType, InterviewEvent, SessionStartedEvent, StageChangedEvent,
    UtteranceMismatchEvent, TurnScoredEvent, PhaseExitedEvent,
    SessionEndedEvent, SessionResetEvent
)

__all__ = [
    # Session
    "InterviewSession",

    # Data models
    "ConversationStage", "ExitReason", "Trait", "TRAITS",
    "TraitObservation", "TraitState", "CoverageSet", "ScorerState", "GuardState",

    # Schemas
    "JudgeResult", "Pillars", "PillarRationales", "parse_judge_result",
    "TraitSnapshot", "ScorerSnapshot", "SessionSnapshot",

    # Engine parts
    "ConversationStateMachine", "MachineState", "Transition", "UtteranceCheck",
    "ExactUtterance", "AnyUtterance",
    "StoppingGuard", "format_countdown",
    "TraitScorer", "compute_weight", "normalize_rating", "all_traits_zero_weight",
    "InterviewPrompts",

    # Events
    "InterviewEventBus", "EventLogger", "SessionMetrics",
    "EventType", "InterviewEvent", "SessionStartedEvent", "StageChangedEvent",
    "UtteranceMismatchEvent", "TurnScoredEvent", "PhaseExitedEvent",
    "SessionEndedEvent", "SessionResetEvent",
]
