import pytest

from interview_gate.errors import ConfigurationError
from interview_gate.interview.guard import StoppingGuard, format_countdown
from interview_gate.interview.models import ExitReason, GuardState

START = 1_000


def _started(guard, timebox_ms=240_000):
    return guard.ensure_timer_started(guard.new_state(timebox_ms), START)


@pytest.mark.guard
def test_timebox_boundary(guard):
    state = _started(guard)
    assert guard.decide(state, gate_ready=False, now_ms=START + 239_999) is None
    assert guard.decide(state, gate_ready=False, now_ms=START + 240_000) == ExitReason.TIMEBOX


@pytest.mark.guard
def test_two_unproductive_turns_end_the_phase(guard):
    state = _started(guard)
    state = guard.record_turn_outcome(state, all_traits_zero_weight=True)
    assert guard.decide(state, False, START + 5_000) is None
    state = guard.record_turn_outcome(state, all_traits_zero_weight=True)
    assert state.consecutive_unproductive_answers == 2
    assert guard.decide(state, False, START + 5_000) == ExitReason.UNPRODUCTIVE_STREAK


@pytest.mark.guard
def test_productive_turn_resets_streak(guard):
    state = _started(guard)
    state = guard.record_turn_outcome(state, True)
    state = guard.record_turn_outcome(state, False)
    assert state.consecutive_unproductive_answers == 0
    state = guard.record_turn_outcome(state, True)
    assert guard.decide(state, False, START + 5_000) is None


@pytest.mark.guard
def test_rule_priority(guard):
    state = _started(guard)
    state = guard.record_turn_outcome(state, True)
    state = guard.record_turn_outcome(state, True)

    assert guard.decide(state, True, START + 240_000) == ExitReason.TIMEBOX
    assert guard.decide(state, True, START + 10) == ExitReason.UNPRODUCTIVE_STREAK
    assert guard.decide(_started(guard), True, START + 10) == ExitReason.SCORER_READY


@pytest.mark.guard
def test_timer_starts_once(guard):
    state = _started(guard)
    again = guard.ensure_timer_started(state, START + 50_000)
    assert again.started_at_ms == START
    assert guard.elapsed_ms(again, START + 50_000) == 50_000


@pytest.mark.guard
def test_unstarted_timer_reports_nothing_elapsed(guard):
    state = guard.new_state(240_000)
    assert guard.elapsed_ms(state, 10_000_000) == 0
    assert guard.remaining_ms(state, 10_000_000) == 240_000
    assert guard.decide(state, False, 10_000_000) is None


@pytest.mark.guard
def test_clock_going_backwards_is_clamped(guard):
    state = _started(guard)
    assert guard.elapsed_ms(state, START - 500) == 0


@pytest.mark.guard
def test_record_exit(guard):
    state = guard.record_exit(_started(guard), ExitReason.TIMEBOX)
    assert state.last_exit_reason == ExitReason.TIMEBOX


@pytest.mark.guard
@pytest.mark.parametrize("remaining,expected", [
    (240_000, "4:00"),
    (61_500, "1:01"),
    (999, "0:00"),
    (-5, "0:00"),
])
def test_format_countdown(remaining, expected):
    assert format_countdown(remaining) == expected


@pytest.mark.guard
@pytest.mark.parametrize("timebox", [None, 0, -1, float("nan"), float("inf"), "soon"])
def test_invalid_timebox_rejected(guard, timebox):
    with pytest.raises(ConfigurationError):
        guard.new_state(timebox)


@pytest.mark.guard
def test_guard_state_validates_directly():
    with pytest.raises(ConfigurationError):
        GuardState(timebox_ms=0)
    with pytest.raises(ValueError):
        GuardState(timebox_ms=1_000, consecutive_unproductive_answers=-1)


@pytest.mark.guard
@pytest.mark.parametrize("limit", [0, -3, "x", True])
def test_invalid_unproductive_limit_rejected(limit):
    with pytest.raises(ConfigurationError):
        StoppingGuard(unproductive_limit=limit)
