"""
Structured schemas for judge results and read-only engine snapshots.
"""
import json
import logging
import math
from dataclasses import dataclass, field
from typing import Any, Dict, Mapping, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

logger = logging.getLogger("schemas")


class Pillars(BaseModel):
    """Per-trait ratings on the judge's 0-100 scale."""
    model_config = ConfigDict(extra="ignore")

    adaptability: float
    creativity: float
    reasoning: float

    @field_validator("adaptability", "creativity", "reasoning")
    @classmethod
    def _finite(cls, value: float) -> float:
        if not math.isfinite(value):
            raise ValueError("rating must be a finite number")
        return value


class PillarRationales(BaseModel):
    model_config = ConfigDict(extra="ignore")

    adaptability: Optional[str] = None
    creativity: Optional[str] = None
    reasoning: Optional[str] = None

    @field_validator("adaptability", "creativity", "reasoning", mode="before")
    @classmethod
    def _text_or_none(cls, value: Any) -> Optional[str]:
        return value if isinstance(value, str) else None


class JudgeResult(BaseModel):
    """One turn's evaluation as produced by the external judge."""
    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    pillars: Pillars
    rationale: Optional[str] = None
    pillar_rationales: Optional[PillarRationales] = Field(default=None, alias="pillarRationales")

    @field_validator("rationale", mode="before")
    @classmethod
    def _rationale_text(cls, value: Any) -> Optional[str]:
        return value if isinstance(value, str) else None

    @field_validator("pillar_rationales", mode="before")
    @classmethod
    def _rationales_object(cls, value: Any) -> Any:
        return value if isinstance(value, (dict, PillarRationales)) else None

    @classmethod
    def zero(cls, rationale: str = "No evidence provided.") -> "JudgeResult":
        """A result carrying no evidence for any trait."""
        return cls(
            pillars=Pillars(adaptability=0, creativity=0, reasoning=0),
            rationale=rationale,
        )

    def as_mapping(self) -> Dict[str, float]:
        return self.pillars.model_dump()

    def rationales(self) -> Dict[str, Optional[str]]:
        """Per-trait rationale text; None where the judge gave none."""
        if self.pillar_rationales is None:
            return {name: None for name in Pillars.model_fields}
        return self.pillar_rationales.model_dump()

    @property
    def is_zero_triplet(self) -> bool:
        p = self.pillars
        return p.adaptability == 0 and p.creativity == 0 and p.reasoning == 0


def _extract_json_object(raw_text: str) -> Optional[Dict[str, Any]]:
    try:
        data = json.loads(raw_text)
    except json.JSONDecodeError:
        # Judges sometimes wrap the object in prose or code fences
        start = raw_text.find("{")
        end = raw_text.rfind("}")
        if start == -1 or end <= start:
            return None
        try:
            data = json.loads(raw_text[start:end + 1])
        except json.JSONDecodeError:
            return None
    return data if isinstance(data, dict) else None


def parse_judge_result(raw: Union[None, str, bytes, Mapping[str, Any], JudgeResult]) -> Optional[JudgeResult]:
    """
    Parse a judge payload into a JudgeResult.

    Args:
        raw: JSON text, a decoded mapping, an existing JudgeResult, or None

    Returns:
        JudgeResult, or None when the payload is absent or malformed. Callers
        treat None as a turn without evidence.
    """
    if raw is None:
        logger.warning("Judge result missing")
        return None
    if isinstance(raw, JudgeResult):
        return raw

    if isinstance(raw, (bytes, bytearray)):
        raw = raw.decode("utf-8", errors="replace")
    if isinstance(raw, str):
        if not raw.strip():
            logger.warning("Judge result empty")
            return None
        data = _extract_json_object(raw)
        if data is None:
            logger.warning("Judge result is not a JSON object: %.200s", raw)
            return None
    elif isinstance(raw, Mapping):
        data = dict(raw)
    else:
        logger.warning("Unsupported judge result type: %s", type(raw).__name__)
        return None

    try:
        return JudgeResult.model_validate(data)
    except ValidationError as e:
        logger.warning("Malformed judge result: %s", e.errors(include_url=False))
        return None


# =============================================================================
# Read-only projections
# =============================================================================

@dataclass(frozen=True)
class TraitSnapshot:
    """Display view of one trait."""
    mean: Optional[float]
    covered: bool
    sample_count: int
    total_weight: float
    confidence: float

    def to_dict(self) -> Dict[str, Any]:
        return {
            "mean": self.mean,
            "covered": self.covered,
            "sample_count": self.sample_count,
            "total_weight": self.total_weight,
            "confidence": self.confidence,
        }


@dataclass(frozen=True)
class ScorerSnapshot:
    """Display view of the whole scorer."""
    traits: Dict[str, TraitSnapshot] = field(default_factory=dict)
    ready: bool = False

    @property
    def coverage(self) -> Dict[str, bool]:
        return {name: t.covered for name, t in self.traits.items()}

    def to_dict(self) -> Dict[str, Any]:
        return {
            "traits": {name: t.to_dict() for name, t in self.traits.items()},
            "ready": self.ready,
        }


@dataclass(frozen=True)
class SessionSnapshot:
    """Everything a debug panel may show about a running session."""
    session_id: str
    stage: str
    last_exit_reason: Optional[str]
    scorer: ScorerSnapshot
    consecutive_unproductive_answers: int
    timebox_ms: int
    elapsed_ms: int
    remaining_ms: int
    countdown: str
    turns_scored: int = 0
    # Most recent judge result, raw 0-100 scale; None before the first turn
    # or when the last result was malformed
    latest_pillars: Optional[Dict[str, float]] = None
    latest_rationale: Optional[str] = None
    latest_rationales: Dict[str, Optional[str]] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "session_id": self.session_id,
            "stage": self.stage,
            "last_exit_reason": self.last_exit_reason,
            "scorer": self.scorer.to_dict(),
            "consecutive_unproductive_answers": self.consecutive_unproductive_answers,
            "timebox_ms": self.timebox_ms,
            "elapsed_ms": self.elapsed_ms,
            "remaining_ms": self.remaining_ms,
            "countdown": self.countdown,
            "turns_scored": self.turns_scored,
            "latest_pillars": dict(self.latest_pillars) if self.latest_pillars is not None else None,
            "latest_rationale": self.latest_rationale,
            "latest_rationales": dict(self.latest_rationales),
        }
