"""
Interview Gate: progression engine for scripted, AI-led interviews.

Tracks the dialogue stage of a voice interview, scores background answers on
adaptability, creativity and reasoning, and decides when the background phase
hands over to the coding session.
"""

__version__ = "1.0.0"

# Main entry points
from .config import Config, get_config
from .errors import ConfigurationError, InterviewGateError, InvalidInputError
from .interview.session import InterviewSession
from .interview.models import ConversationStage, ExitReason, Trait

__all__ = [
    "Config", "get_config",
    "ConfigurationError", "InterviewGateError", "InvalidInputError",
    "InterviewSession",
    "ConversationStage", "ExitReason", "Trait",
]
