import pytest

from interview_gate.errors import ConfigurationError
from interview_gate.interview.events import EventType
from interview_gate.interview.models import ConversationStage, ExitReason, Trait
from interview_gate.interview.prompts import InterviewPrompts
from interview_gate.interview.session import InterviewSession
from interview_gate.interview.testing import (
    ManualClock, MockJudge, create_scripted_session, judge_payload
)

CLOSING = InterviewPrompts.closing_line("Ada Lovelace")


def _answer(session, judge_result, answer_text="I rebuilt our billing pipeline."):
    session.on_user_utterance_finalized()
    return session.record_judge_result(judge_result, answer_text=answer_text)


@pytest.mark.session
def test_timer_starts_when_background_question_is_asked(scripted):
    session = scripted["session"]
    assert session.stage == ConversationStage.BACKGROUND_ASKED
    assert session.guard_state.started_at_ms == 0


@pytest.mark.session
def test_scorer_ready_exit(scripted):
    session, clock = scripted["session"], scripted["clock"]
    exits = []
    session.event_bus.subscribe(EventType.PHASE_EXITED, exits.append)

    clock.advance(30_000)
    _answer(session, judge_payload(80, 70, 60))
    assert session.gate_ready
    assert session.pending_exit_reason() == ExitReason.SCORER_READY

    session.on_assistant_utterance_finalized(CLOSING)
    assert session.stage == ConversationStage.CODING_SESSION
    assert session.last_exit_reason == ExitReason.SCORER_READY
    assert session.guard_state.last_exit_reason == ExitReason.SCORER_READY
    assert exits[0].data == {"reason": "scorer-ready", "elapsed_ms": 30_000}
    assert session.metrics.get_metrics()["exits_by_reason"] == {"scorer-ready": 1}


@pytest.mark.session
def test_followups_until_every_trait_is_covered(scripted):
    session = scripted["session"]
    judge = MockJudge([(80, 0, 0), (0, 50, 50)])

    _answer(session, judge.evaluate())
    assert session.pending_exit_reason() is None
    session.on_assistant_utterance_finalized("What did you try first?")
    assert session.stage == ConversationStage.FOLLOWUP_ASKED

    _answer(session, judge.evaluate())
    assert session.stage == ConversationStage.BACKGROUND_ANSWERED
    session.on_assistant_utterance_finalized(CLOSING)
    assert session.last_exit_reason == ExitReason.SCORER_READY
    assert session.scorer_state[Trait.ADAPTABILITY].mean == pytest.approx(0.8)


@pytest.mark.session
def test_unproductive_streak_exit(scripted):
    session = scripted["session"]

    _answer(session, None)
    assert session.guard_state.consecutive_unproductive_answers == 1
    session.on_assistant_utterance_finalized("Could you give a concrete example?")
    assert session.stage == ConversationStage.FOLLOWUP_ASKED

    _answer(session, "the judge timed out")
    assert session.guard_state.consecutive_unproductive_answers == 2
    session.on_assistant_utterance_finalized(CLOSING)
    assert session.stage == ConversationStage.CODING_SESSION
    assert session.last_exit_reason == ExitReason.UNPRODUCTIVE_STREAK
    assert session.metrics.get_metrics()["unproductive_turns"] == 2


@pytest.mark.session
def test_timebox_wins_over_readiness(scripted):
    session, clock = scripted["session"], scripted["clock"]
    _answer(session, judge_payload(90, 90, 90))
    clock.advance(240_000)
    assert session.pending_exit_reason() == ExitReason.TIMEBOX
    session.on_assistant_utterance_finalized(CLOSING)
    assert session.last_exit_reason == ExitReason.TIMEBOX


@pytest.mark.session
def test_blank_answer_is_scored_zero(scripted):
    session = scripted["session"]
    observations = _answer(session, judge_payload(90, 90, 90), answer_text="   ")
    assert all(o.weight == 0 for o in observations)
    assert session.guard_state.consecutive_unproductive_answers == 1
    assert not session.scorer_state.coverage.adaptability


@pytest.mark.session
def test_productive_answer_resets_streak(scripted):
    session = scripted["session"]
    _answer(session, None)
    session.on_assistant_utterance_finalized("Tell me more.")
    _answer(session, judge_payload(0, 40, 0))
    assert session.guard_state.consecutive_unproductive_answers == 0
    assert session.pending_exit_reason() is None


@pytest.mark.session
def test_judge_result_outside_background_phase_is_ignored():
    session = create_scripted_session()["session"]
    assert session.record_judge_result(judge_payload(90, 90, 90)) == []
    assert session.turns_scored == 0
    assert session.pending_exit_reason() is None


@pytest.mark.session
def test_mismatch_events():
    clock = ManualClock()
    session = InterviewSession(timebox_ms=60_000, candidate_name="Gal", clock=clock)
    mismatches = []
    session.event_bus.subscribe(EventType.UTTERANCE_MISMATCH, mismatches.append)

    session.on_assistant_utterance_finalized("Hello Gal!")
    greeting = InterviewPrompts.greeting("Gal")
    session.on_assistant_utterance_finalized(greeting)
    session.on_user_utterance_finalized()
    session.on_assistant_utterance_finalized("Tell me about yourself.")

    assert [m.data["kind"] for m in mismatches] == ["drift", "not_configured"]
    assert mismatches[0].data["received"] == "Hello Gal!"
    assert session.stage == ConversationStage.GREETING_ANSWERED
    assert session.guard_state.started_at_ms is None


@pytest.mark.session
def test_missing_configuration_fails_fast():
    with pytest.raises(ConfigurationError):
        InterviewSession(timebox_ms=None)

    session = InterviewSession(timebox_ms=1_000, clock=ManualClock())
    with pytest.raises(ConfigurationError):
        session.on_assistant_utterance_finalized("Hi, I'm Carrie.")
    with pytest.raises(ConfigurationError):
        session.start("")


@pytest.mark.session
def test_snapshot(scripted):
    session, clock = scripted["session"], scripted["clock"]
    _answer(session, judge_payload(60, 0, 0))
    clock.set(61_000)

    snapshot = session.snapshot()
    assert snapshot.stage == "background_answered"
    assert snapshot.elapsed_ms == 61_000
    assert snapshot.remaining_ms == 179_000
    assert snapshot.countdown == "2:59"
    assert snapshot.turns_scored == 1
    assert snapshot.scorer.coverage == {"adaptability": True, "creativity": False, "reasoning": False}

    data = snapshot.to_dict()
    assert data["last_exit_reason"] is None
    assert data["scorer"]["traits"]["adaptability"]["mean"] == pytest.approx(0.6)


@pytest.mark.session
def test_end_and_reset(scripted):
    session = scripted["session"]
    resets = []
    session.event_bus.subscribe(EventType.SESSION_RESET, resets.append)
    _answer(session, judge_payload(50, 50, 50))

    session.end()
    assert session.stage == ConversationStage.ENDED

    session.reset()
    assert session.stage == ConversationStage.IDLE
    assert session.turns_scored == 0
    assert session.guard_state.started_at_ms is None
    assert session.guard_state.consecutive_unproductive_answers == 0
    assert not session.gate_ready
    assert resets[0].data == {"from_stage": "ended"}

    session.start("Grace Hopper")
    session.on_assistant_utterance_finalized(InterviewPrompts.greeting("Grace Hopper"))
    assert session.stage == ConversationStage.GREETING_ACKNOWLEDGED


@pytest.mark.session
def test_sessions_are_independent():
    first = create_scripted_session(advance_to_background=True)["session"]
    second = create_scripted_session(advance_to_background=True)["session"]

    _answer(first, judge_payload(90, 90, 90))
    assert first.gate_ready
    assert not second.gate_ready
    assert second.stage == ConversationStage.BACKGROUND_ASKED
    assert first.session_id != second.session_id


@pytest.mark.session
def test_closing_instruction_uses_first_name(scripted):
    assert scripted["session"].closing_instruction() == (
        'Say exactly: "Thank you so much Ada, the next steps will be shared with you shortly."'
    )


@pytest.mark.session
def test_latest_judge_scores_and_rationales_are_exposed(scripted):
    session = scripted["session"]
    scored = []
    session.event_bus.subscribe(EventType.TURN_SCORED, scored.append)

    _answer(session, {
        "pillars": {"adaptability": 70, "creativity": 10, "reasoning": 40},
        "rationale": "Concrete example with numbers",
        "pillarRationales": {"reasoning": "walked through trade-offs"},
    })

    data = session.snapshot().to_dict()
    assert data["latest_pillars"] == {"adaptability": 70.0, "creativity": 10.0, "reasoning": 40.0}
    assert data["latest_rationale"] == "Concrete example with numbers"
    assert data["latest_rationales"] == {
        "adaptability": None, "creativity": None, "reasoning": "walked through trade-offs",
    }
    assert scored[0].data["pillars"]["adaptability"] == 70.0
    assert scored[0].data["rationales"]["reasoning"] == "walked through trade-offs"


@pytest.mark.session
def test_malformed_judge_result_clears_latest_scores(scripted):
    session = scripted["session"]
    _answer(session, judge_payload(70, 0, 40))
    assert session.snapshot().latest_pillars is not None
    session.on_assistant_utterance_finalized("Anything else?")
    _answer(session, "not json")

    snapshot = session.snapshot()
    assert snapshot.latest_pillars is None
    assert snapshot.latest_rationales == {}

    session.reset()
    assert session.latest_judge_result is None
