"""
Testing infrastructure for the interview progression engine.
"""
import json
from typing import Any, Dict, List, Optional, Union

from .prompts import InterviewPrompts
from .schemas import JudgeResult, Pillars
from .session import InterviewSession

DEFAULT_CANDIDATE = "Ada Lovelace"
DEFAULT_BACKGROUND_QUESTION = "Tell me about a project you are proud of."
DEFAULT_TIMEBOX_MS = 240_000


class ManualClock:
    """Clock that only moves when told to."""

    def __init__(self, start_ms: int = 0):
        self.now_ms = start_ms

    def __call__(self) -> int:
        return self.now_ms

    def advance(self, delta_ms: int) -> int:
        self.now_ms += delta_ms
        return self.now_ms

    def set(self, now_ms: int) -> None:
        self.now_ms = now_ms


class MockJudge:
    """
    Scripted stand-in for the external judge.

    Each response is a (adaptability, creativity, reasoning) triple on the
    0-100 scale, a raw string returned as-is, or None for a missing result.
    """

    def __init__(self, responses: List[Union[None, str, tuple]]):
        self.responses = responses
        self.current_response_idx = 0
        self.request_history: List[Optional[str]] = []

    def evaluate(self, answer_text: Optional[str] = None) -> Union[None, str, JudgeResult]:
        """Return the next scripted result."""
        self.request_history.append(answer_text)

        if self.current_response_idx >= len(self.responses):
            # Out of script: behave like a judge that found nothing
            return JudgeResult.zero("Mock fallback")

        response = self.responses[self.current_response_idx]
        self.current_response_idx += 1
        if response is None or isinstance(response, str):
            return response
        adaptability, creativity, reasoning = response
        return JudgeResult(
            pillars=Pillars(adaptability=adaptability, creativity=creativity, reasoning=reasoning),
            rationale="Mock rationale",
        )


def judge_payload(adaptability: float, creativity: float, reasoning: float, **extra: Any) -> str:
    """JSON text shaped like a judge response."""
    payload: Dict[str, Any] = {
        "pillars": {"adaptability": adaptability, "creativity": creativity, "reasoning": reasoning},
        "rationale": "Scripted",
    }
    payload.update(extra)
    return json.dumps(payload)


def create_scripted_session(candidate_name: str = DEFAULT_CANDIDATE,
                            background_question: str = DEFAULT_BACKGROUND_QUESTION,
                            timebox_ms: int = DEFAULT_TIMEBOX_MS,
                            advance_to_background: bool = False,
                            **kwargs: Any) -> Dict[str, Any]:
    """
    Create a configured session on a manual clock.

    Args:
        advance_to_background: Play the greeting exchange and the background
            question so the session starts at background_asked

    Returns:
        Dict with "session", "clock" and the scripted lines
    """
    clock = kwargs.pop("clock", None) or ManualClock()
    session = InterviewSession(
        timebox_ms=timebox_ms,
        candidate_name=candidate_name,
        background_question=background_question,
        clock=clock,
        **kwargs
    )
    greeting = InterviewPrompts.greeting(candidate_name, session.machine.state.interviewer_name)

    if advance_to_background:
        session.on_assistant_utterance_finalized(greeting)
        session.on_user_utterance_finalized()
        session.on_assistant_utterance_finalized(background_question)

    return {
        "session": session,
        "clock": clock,
        "greeting": greeting,
        "background_question": background_question,
    }
