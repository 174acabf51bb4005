"""
Replay a recorded interview transcript through a session.

A transcript is a JSON document:

    {
      "candidate_name": "Ada Lovelace",
      "background_question": "Tell me about a project you are proud of.",
      "timebox_ms": 240000,
      "unproductive_limit": 2,
      "events": [
        {"kind": "assistant", "at_ms": 0, "text": "Hi Ada Lovelace, ..."},
        {"kind": "user", "at_ms": 4000, "text": "Hello!"},
        {"kind": "judge", "at_ms": 9000, "result": {"pillars": {...}}},
        {"kind": "end", "at_ms": 60000}
      ]
    }

Timestamps drive the session clock, so a replay is deterministic.
"""
import json
import logging
from typing import Any, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

from .schemas import SessionSnapshot
from .session import InterviewSession
from ..config import Config, get_config

logger = logging.getLogger("replay")


class ReplayEvent(BaseModel):
    """One recorded event."""
    model_config = ConfigDict(extra="forbid")

    kind: Literal["assistant", "user", "judge", "end"]
    at_ms: int = Field(ge=0)
    text: Optional[str] = None
    # Judge payload: object or raw JSON text; left unvalidated so malformed
    # judge output replays exactly as it was recorded
    result: Any = None
    answer_text: Optional[str] = None

    @model_validator(mode="after")
    def _assistant_has_text(self) -> "ReplayEvent":
        if self.kind == "assistant" and self.text is None:
            raise ValueError("assistant events need a text")
        return self


class ReplayScript(BaseModel):
    """A whole recorded interview."""
    model_config = ConfigDict(extra="forbid")

    candidate_name: str = Field(min_length=1)
    background_question: str = Field(min_length=1)
    # Unset values fall back to the environment (see config.get_config)
    timebox_ms: Optional[int] = Field(default=None, gt=0)
    unproductive_limit: Optional[int] = Field(default=None, ge=1)
    interviewer_name: Optional[str] = None
    events: List[ReplayEvent] = Field(default_factory=list)

    @model_validator(mode="after")
    def _events_in_order(self) -> "ReplayScript":
        for prev, event in zip(self.events, self.events[1:]):
            if event.at_ms < prev.at_ms:
                raise ValueError(f"events out of order: {event.at_ms} after {prev.at_ms}")
        return self


class ReplayClock:
    """Clock that reports the timestamp of the event being replayed."""

    def __init__(self, start_ms: int = 0):
        self.now_ms = start_ms

    def __call__(self) -> int:
        return self.now_ms


def load_script(path: str) -> ReplayScript:
    """
    Read and validate a transcript file.

    Raises:
        pydantic.ValidationError: If the transcript does not match the format
    """
    with open(path, "r", encoding="utf-8") as f:
        return ReplayScript.model_validate(json.load(f))


def script_config(script: ReplayScript, **overrides) -> Config:
    """
    Configuration for replaying `script`.

    The environment supplies defaults, values recorded in the script override
    them, and keyword arguments override both.

    Raises:
        ConfigurationError: If no timebox is available or a value is invalid
    """
    values = {
        "timebox_ms": script.timebox_ms,
        "unproductive_limit": script.unproductive_limit,
        "interviewer_name": script.interviewer_name,
    }
    values.update({key: value for key, value in overrides.items() if value is not None})
    return get_config(**values)


def replay(script: ReplayScript,
           session: Optional[InterviewSession] = None,
           config: Optional[Config] = None) -> SessionSnapshot:
    """
    Feed every event of `script` into a session and return its final snapshot.

    Args:
        script: Validated transcript
        session: Optional session to drive; its clock must be a ReplayClock.
            A new session is created when omitted.
        config: Configuration for a new session; defaults to script_config(script)
    """
    if session is None:
        config = config or script_config(script)
        start = script.events[0].at_ms if script.events else 0
        session = InterviewSession.from_config(
            config,
            candidate_name=script.candidate_name,
            background_question=script.background_question,
            clock=ReplayClock(start),
        )
    clock = session.clock
    if not isinstance(clock, ReplayClock):
        raise TypeError("replay needs a session driven by a ReplayClock")

    last_answer: Optional[str] = None
    for event in script.events:
        clock.now_ms = event.at_ms
        if event.kind == "assistant":
            session.on_assistant_utterance_finalized(event.text)
        elif event.kind == "user":
            last_answer = event.text
            session.on_user_utterance_finalized()
        elif event.kind == "judge":
            answer = event.answer_text if event.answer_text is not None else last_answer
            session.record_judge_result(event.result, answer_text=answer)
        else:
            session.end()

    snapshot = session.snapshot()
    logger.info("Replayed %d events: stage=%s exit=%s", len(script.events),
                snapshot.stage, snapshot.last_exit_reason)
    return snapshot
