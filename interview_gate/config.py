"""
Interview Gate Configuration
============================

This file contains ALL configuration for the interview progression engine.
- User settings at the top (things operators might want to change)
- Internal constants at the bottom (technical defaults)
"""
import math
import os
from dataclasses import dataclass, field
from typing import Optional

from .errors import ConfigurationError


# =============================================================================
# USER SETTINGS - Edit these to customize the interview flow
# =============================================================================

# REQUIRED: time budget for the background phase, in milliseconds.
# No fallback: set INTERVIEW_TIMEBOX_MS or pass it explicitly.
TIMEBOX_MS: Optional[int] = None

# Consecutive answers without attributable evidence before the phase ends
UNPRODUCTIVE_LIMIT = 2

# Persona name used in the scripted greeting
INTERVIEWER_NAME = "Carrie"

# Logging
LOG_FILE = "./_interview/interview_gate.log"
LOG_LEVEL = "INFO"


# =============================================================================
# INTERNAL CONSTANTS - Don't change these unless you know what you're doing
# =============================================================================

# Scripted lines
GREETING_TEMPLATE = "Hi {name}, I'm {interviewer}. I'll be the one interviewing today!"
CLOSING_TEMPLATE = "Thank you so much {name}, the next steps will be shared with you shortly."
CLOSING_NAME_FALLBACK = "there"

# Judge ratings arrive on a 0-100 scale
RATING_SCALE = 100.0

# Scorer
MAX_OBSERVATION_WEIGHT = 1.0
CONFIDENCE_SHAPE = 2.0


@dataclass(frozen=True)
class ScorerConfig:
    """Tuning for the trait scorer."""
    # Cap for a single composed weight (compute_weight)
    max_weight: float = MAX_OBSERVATION_WEIGHT
    # Confidence per trait is W / (W + confidence_shape)
    confidence_shape: float = CONFIDENCE_SHAPE


# =============================================================================
# MAIN CONFIG OBJECT
# =============================================================================

@dataclass
class Config:
    """Main configuration object."""
    timebox_ms: int
    unproductive_limit: int = UNPRODUCTIVE_LIMIT
    interviewer_name: str = INTERVIEWER_NAME
    log_file: str = LOG_FILE
    log_level: str = LOG_LEVEL
    scorer: ScorerConfig = field(default_factory=ScorerConfig)

    def __post_init__(self):
        self.timebox_ms = validate_timebox_ms(self.timebox_ms)
        self.unproductive_limit = validate_unproductive_limit(self.unproductive_limit)


def validate_timebox_ms(value) -> int:
    """Return `value` as a positive whole number of milliseconds or raise ConfigurationError."""
    if value is None:
        raise ConfigurationError("timebox_ms is required (set INTERVIEW_TIMEBOX_MS)")
    if isinstance(value, str):
        try:
            value = float(value.strip())
        except ValueError:
            raise ConfigurationError(f"timebox_ms must be numeric, got {value!r}")
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ConfigurationError(f"timebox_ms must be numeric, got {value!r}")
    if not math.isfinite(value) or value != int(value):
        raise ConfigurationError(f"timebox_ms must be a whole number of milliseconds, got {value!r}")
    timebox_ms = int(value)
    if timebox_ms <= 0:
        raise ConfigurationError(f"timebox_ms must be a positive duration, got {value!r}")
    return timebox_ms


def validate_unproductive_limit(value) -> int:
    if isinstance(value, str):
        try:
            value = int(value.strip())
        except ValueError:
            raise ConfigurationError(f"unproductive_limit must be an integer, got {value!r}")
    if isinstance(value, bool) or not isinstance(value, int) or value < 1:
        raise ConfigurationError(f"unproductive_limit must be an integer >= 1, got {value!r}")
    return value


def get_config(**overrides) -> Config:
    """
    Load configuration from the environment.

    Args:
        **overrides: Config fields that take precedence over the environment;
            None values are skipped

    Raises:
        ConfigurationError: If the timebox is unset or any value is invalid
    """
    values = {
        "timebox_ms": os.getenv("INTERVIEW_TIMEBOX_MS") or TIMEBOX_MS,
        "unproductive_limit": os.getenv("INTERVIEW_UNPRODUCTIVE_LIMIT") or UNPRODUCTIVE_LIMIT,
        "interviewer_name": os.getenv("INTERVIEWER_NAME") or INTERVIEWER_NAME,
        "log_file": os.getenv("INTERVIEW_LOG_FILE") or LOG_FILE,
        "log_level": os.getenv("INTERVIEW_LOG_LEVEL") or LOG_LEVEL,
    }
    values.update({key: value for key, value in overrides.items() if value is not None})

    if values["timebox_ms"] is None:
        raise ConfigurationError("Please set INTERVIEW_TIMEBOX_MS in config.py or as environment variable")

    return Config(**values)
