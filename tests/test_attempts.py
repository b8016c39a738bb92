import pytest

from osskit.attempts import (
    AttemptStrategy,
    get_attempt_strategy,
    get_list_multi_max,
    get_list_parts_max,
    set_attempt_strategy,
    set_list_multi_max,
    set_list_parts_max,
)


class FakeClock:
    def __init__(self):
        self.now = 0.0
        self.sleeps = []

    def __call__(self):
        return self.now

    def sleep(self, duration):
        self.sleeps.append(duration)
        self.now += duration


@pytest.fixture(autouse=True)
def _restore_defaults():
    yield
    set_attempt_strategy(None)
    set_list_parts_max(1000)
    set_list_multi_max(1000)


def _strategy(clock, total, delay, min_attempts):
    return AttemptStrategy(
        total=total, delay=delay, min_attempts=min_attempts, clock=clock, sleep=clock.sleep
    )


def test_minimum_attempts_made_without_time_budget():
    clock = FakeClock()
    attempt = _strategy(clock, 0.0, 0.2, 5).start()
    assert list(attempt) == [1, 2, 3, 4, 5]
    assert attempt.count == 5


def test_sleeps_between_attempts_only():
    clock = FakeClock()
    attempt = _strategy(clock, 0.0, 0.2, 5).start()
    made = sum(1 for _ in attempt)
    assert len(clock.sleeps) == made - 1
    assert all(d == pytest.approx(0.2) for d in clock.sleeps)


def test_time_budget_limits_attempts():
    clock = FakeClock()
    attempt = _strategy(clock, 1.0, 0.3, 0).start()
    assert sum(1 for _ in attempt) == 4
    assert clock.now < 1.0


def test_first_attempt_always_allowed():
    clock = FakeClock()
    attempt = _strategy(clock, 0.0, 0.0, 0).start()
    assert attempt.has_next() is True
    assert attempt.next() is True
    assert attempt.next() is False


def test_has_next_false_when_exhausted():
    clock = FakeClock()
    attempt = _strategy(clock, 0.0, 0.1, 2).start()
    assert attempt.next() is True
    assert attempt.has_next() is True
    assert attempt.next() is True
    assert attempt.has_next() is False
    assert attempt.next() is False


def test_has_next_forces_following_attempt():
    clock = FakeClock()
    attempt = _strategy(clock, 1.0, 0.1, 0).start()
    assert attempt.next() is True
    assert attempt.has_next() is True
    clock.now = 5.0
    assert attempt.next() is True


def test_no_sleep_when_delay_already_elapsed():
    clock = FakeClock()
    attempt = _strategy(clock, 10.0, 0.2, 0).start()
    assert attempt.next() is True
    clock.now += 0.5
    assert attempt.next() is True
    assert clock.sleeps == []


def test_default_strategy():
    assert get_attempt_strategy() == AttemptStrategy(total=5.0, delay=0.2, min_attempts=5)


def test_set_and_reset_strategy():
    custom = AttemptStrategy(total=1.0, delay=0.0, min_attempts=1)
    set_attempt_strategy(custom)
    assert get_attempt_strategy() is custom
    set_attempt_strategy(None)
    assert get_attempt_strategy() == AttemptStrategy(total=5.0, delay=0.2, min_attempts=5)


def test_list_limits():
    assert get_list_parts_max() == 1000
    assert get_list_multi_max() == 1000
    set_list_parts_max(2)
    set_list_multi_max(3)
    assert get_list_parts_max() == 2
    assert get_list_multi_max() == 3