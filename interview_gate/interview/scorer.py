"""
Online multi-trait scorer for the background phase.

Each turn contributes at most one weighted observation per trait. Only
observations with positive weight enter the running mean, so an absent signal
never drags a trait toward zero.
"""
import logging
import math
from typing import Callable, Dict, Iterable, List, Mapping, Optional

from .models import (
    TRAITS, CoverageSet, ScorerState, Trait, TraitObservation, TraitState
)
from .schemas import ScorerSnapshot, TraitSnapshot
from ..config import RATING_SCALE, ScorerConfig
from ..errors import InvalidInputError

logger = logging.getLogger("scorer")

WeightFn = Callable[[Trait, float], float]


def _clip01(x: Optional[float], label: str = "value") -> float:
    if x is None or isinstance(x, bool) or math.isnan(x):
        raise InvalidInputError(f"{label} is NaN/undefined")
    if x < 0:
        return 0.0
    if x > 1:
        return 1.0
    return float(x)


def normalize_rating(raw: Optional[float]) -> float:
    """Map a 0-100 judge rating onto [0, 1]. Missing or NaN ratings count as 0."""
    if raw is None or isinstance(raw, bool) or not isinstance(raw, (int, float)) or math.isnan(raw):
        return 0.0
    return min(1.0, max(0.0, raw / RATING_SCALE))


def compute_weight(depth: float,
                   quality: float,
                   independence: float,
                   recency: float,
                   max_weight: float = ScorerConfig.max_weight) -> float:
    """
    Compose and cap a single-sample weight.

    w = min(clip(depth) * clip(quality) * ((clip(independence) + clip(recency)) / 2), max_weight)

    Args:
        depth: How specific the answer was, in [0, 1]
        quality: Rating quality proxy, in [0, 1]
        independence: Independence of the evidence from earlier turns, in [0, 1]
        recency: Recency factor, in [0, 1]
        max_weight: Upper bound for the composed weight

    Returns:
        Non-negative weight

    Raises:
        InvalidInputError: If any input is NaN/undefined
    """
    d = _clip01(depth, "depth")
    q = _clip01(quality, "quality")
    wi = _clip01(independence, "independence")
    wr = _clip01(recency, "recency")
    composed = d * q * ((wi + wr) / 2)
    weight = min(max(0.0, composed), max_weight)
    if not math.isfinite(weight):
        raise InvalidInputError("weight must be finite")
    return weight


def default_weight(trait: Trait, normalized_rating: float) -> float:
    """Unit depth, independence and recency: the weight equals the rating."""
    return compute_weight(1.0, normalized_rating, 1.0, 1.0, 1.0)


def all_traits_zero_weight(observations: Iterable[TraitObservation]) -> bool:
    """True when no observation in the turn carries attributable evidence."""
    return not any(obs.weight > 0 for obs in observations)


class TraitScorer:
    """Weighted running mean per trait with coverage and a readiness rule."""

    def __init__(self, config: Optional[ScorerConfig] = None, weight_fn: Optional[WeightFn] = None):
        self.config = config or ScorerConfig()
        self.weight_fn = weight_fn or default_weight

    def init_state(self) -> ScorerState:
        """Fresh state with zero evidence for every trait."""
        return ScorerState()

    def update(self, state: ScorerState, observation: TraitObservation) -> ScorerState:
        """
        Fold one observation into the aggregate.

        Args:
            state: Current scorer state
            observation: Rating in [0, 1] (clamped) and non-negative weight

        Returns:
            New scorer state; `state` itself when the weight is not positive

        Raises:
            InvalidInputError: If the rating or weight is NaN/undefined
        """
        rating = _clip01(observation.normalized_rating, "normalized_rating")
        weight = observation.weight
        if weight is None or isinstance(weight, bool) or math.isnan(weight):
            raise InvalidInputError("weight is NaN/undefined")
        if math.isinf(weight):
            raise InvalidInputError("weight must be finite")

        if weight <= 0:
            return state

        prev = state.traits[observation.trait]
        updated = TraitState(
            weighted_sum=prev.weighted_sum + rating * weight,
            total_weight=prev.total_weight + weight,
            sample_count=prev.sample_count + 1,
        )
        traits = dict(state.traits)
        traits[observation.trait] = updated

        logger.debug(
            "%s: r=%.3f w=%.3f W %.3f -> %.3f n=%d",
            observation.trait.value, rating, weight,
            prev.total_weight, updated.total_weight, updated.sample_count
        )
        return ScorerState(traits=traits, coverage=state.coverage.mark(observation.trait))

    def update_many(self, state: ScorerState, observations: Iterable[TraitObservation]) -> ScorerState:
        for observation in observations:
            state = self.update(state, observation)
        return state

    def observations_from_pillars(self, pillars: Optional[Mapping[str, float]]) -> List[TraitObservation]:
        """
        Turn one judge result (0-100 per trait) into one observation per trait.

        A missing result or a missing trait yields a zero-rating, zero-weight
        observation.
        """
        pillars = pillars or {}
        observations = []
        for trait in TRAITS:
            rating = normalize_rating(pillars.get(trait.value))
            weight = self.weight_fn(trait, rating)
            if weight is None or math.isnan(weight) or weight < 0:
                raise InvalidInputError(f"weight function returned {weight!r} for {trait.value}")
            observations.append(TraitObservation(trait=trait, normalized_rating=rating, weight=weight))
        return observations

    def stop_check(self, state: ScorerState, coverage: Optional[CoverageSet] = None) -> bool:
        """Ready once every trait has at least one nonzero-weight observation."""
        coverage = coverage if coverage is not None else state.coverage
        return coverage.complete

    def confidences(self, state: ScorerState) -> Dict[Trait, float]:
        """Confidence per trait: W / (W + c). Display only; never gates the phase."""
        c = self.config.confidence_shape
        return {t: state.traits[t].total_weight / (state.traits[t].total_weight + c) for t in TRAITS}

    def merge(self, a: ScorerState, b: ScorerState) -> ScorerState:
        """Combine two states as if all their observations had been applied to one."""
        traits = {
            t: TraitState(
                weighted_sum=a.traits[t].weighted_sum + b.traits[t].weighted_sum,
                total_weight=a.traits[t].total_weight + b.traits[t].total_weight,
                sample_count=a.traits[t].sample_count + b.traits[t].sample_count,
            )
            for t in TRAITS
        }
        return ScorerState(traits=traits, coverage=a.coverage.union(b.coverage))

    def snapshot(self, state: ScorerState) -> ScorerSnapshot:
        """Read-only projection for display."""
        conf = self.confidences(state)
        return ScorerSnapshot(
            traits={
                t.value: TraitSnapshot(
                    mean=state.traits[t].mean,
                    covered=state.coverage.is_covered(t),
                    sample_count=state.traits[t].sample_count,
                    total_weight=state.traits[t].total_weight,
                    confidence=conf[t],
                )
                for t in TRAITS
            },
            ready=self.stop_check(state),
        )
