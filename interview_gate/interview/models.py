"""
Data models for the interview progression engine.

All state values are frozen dataclasses; every transition returns a new value.
"""
import math
from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Dict, Mapping, Optional

from ..errors import ConfigurationError


class ConversationStage(str, Enum):
    """Stages of the scripted interview dialogue."""
    IDLE = "idle"
    GREETING_ACKNOWLEDGED = "greeting_acknowledged"
    GREETING_ANSWERED = "greeting_answered"
    BACKGROUND_ASKED = "background_asked"
    BACKGROUND_ANSWERED = "background_answered"
    FOLLOWUP_ASKED = "followup_asked"
    CODING_SESSION = "coding_session"
    ENDED = "ended"


# Assistant-just-spoke stage -> user-just-answered stage
USER_ANSWER_TRANSITIONS: Dict[ConversationStage, ConversationStage] = {
    ConversationStage.GREETING_ACKNOWLEDGED: ConversationStage.GREETING_ANSWERED,
    ConversationStage.BACKGROUND_ASKED: ConversationStage.BACKGROUND_ANSWERED,
    ConversationStage.FOLLOWUP_ASKED: ConversationStage.BACKGROUND_ANSWERED,
}

BACKGROUND_STAGES = frozenset({
    ConversationStage.BACKGROUND_ASKED,
    ConversationStage.BACKGROUND_ANSWERED,
    ConversationStage.FOLLOWUP_ASKED,
})


class ExitReason(str, Enum):
    """Why the background phase ended."""
    TIMEBOX = "timebox"
    UNPRODUCTIVE_STREAK = "unproductive-streak"
    SCORER_READY = "scorer-ready"


class Trait(str, Enum):
    """Dimensions scored on every background turn."""
    ADAPTABILITY = "adaptability"
    CREATIVITY = "creativity"
    REASONING = "reasoning"


TRAITS = (Trait.ADAPTABILITY, Trait.CREATIVITY, Trait.REASONING)


@dataclass(frozen=True)
class TraitObservation:
    """One weighted rating for one trait, produced once per turn."""
    trait: Trait
    normalized_rating: float
    weight: float


@dataclass(frozen=True)
class TraitState:
    """Running weighted aggregate for a single trait."""
    weighted_sum: float = 0.0
    total_weight: float = 0.0
    sample_count: int = 0

    @property
    def mean(self) -> Optional[float]:
        """Weighted mean, or None when no evidence has been accepted."""
        if self.total_weight > 0:
            return self.weighted_sum / self.total_weight
        return None


@dataclass(frozen=True)
class CoverageSet:
    """Which traits have received at least one nonzero-weight observation."""
    adaptability: bool = False
    creativity: bool = False
    reasoning: bool = False

    def is_covered(self, trait: Trait) -> bool:
        return getattr(self, trait.value)

    def mark(self, trait: Trait) -> "CoverageSet":
        """Return a copy with `trait` marked covered. Never clears a flag."""
        flags = self.as_dict()
        flags[trait.value] = True
        return CoverageSet(**flags)

    def union(self, other: "CoverageSet") -> "CoverageSet":
        return CoverageSet(**{t.value: self.is_covered(t) or other.is_covered(t) for t in TRAITS})

    @property
    def complete(self) -> bool:
        return all(self.is_covered(t) for t in TRAITS)

    def as_dict(self) -> Dict[str, bool]:
        return {t.value: self.is_covered(t) for t in TRAITS}


def _empty_traits() -> Dict[Trait, TraitState]:
    return {t: TraitState() for t in TRAITS}


@dataclass(frozen=True)
class ScorerState:
    """Per-session scorer state: trait aggregates plus coverage."""
    traits: Mapping[Trait, TraitState] = field(default_factory=_empty_traits)
    coverage: CoverageSet = field(default_factory=CoverageSet)

    def __post_init__(self):
        # Aggregates are exposed read-only
        object.__setattr__(self, "traits", MappingProxyType(dict(self.traits)))

    def __getitem__(self, trait: Trait) -> TraitState:
        return self.traits[trait]


@dataclass(frozen=True)
class GuardState:
    """Stopping-guard state for one background phase."""
    timebox_ms: int
    started_at_ms: Optional[int] = None
    consecutive_unproductive_answers: int = 0
    last_exit_reason: Optional[ExitReason] = None

    def __post_init__(self):
        timebox = self.timebox_ms
        if timebox is None or isinstance(timebox, bool) or not isinstance(timebox, (int, float)):
            raise ConfigurationError("timebox_ms is required and must be a number of milliseconds")
        if not math.isfinite(timebox) or timebox <= 0:
            raise ConfigurationError(f"timebox_ms must be a positive finite duration, got {timebox!r}")
        if self.consecutive_unproductive_answers < 0:
            raise ValueError("consecutive_unproductive_answers cannot be negative")
