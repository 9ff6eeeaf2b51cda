"""Tests for streak, success-rate and history computation."""
from datetime import date, datetime, timedelta

import pytest

from app.services.stats_engine import StatsEngine, percentage, trailing_days
from conftest import TODAY, days_before

engine = StatsEngine(lookback_days=365)


def test_daily_streak_counts_consecutive_days_up_to_today(repo):
    rule = repo.add_rule()
    completed = set(days_before(TODAY, 0, 1, 2, 3))
    assert engine.current_streak(rule, completed, TODAY) == 4


def test_missed_yesterday_stops_the_walk(repo):
    rule = repo.add_rule()
    completed = {TODAY} | set(days_before(TODAY, 2, 3, 4))
    assert engine.current_streak(rule, completed, TODAY) == 1


def test_due_today_but_not_done_means_no_current_streak(repo):
    rule = repo.add_rule()
    completed = set(days_before(TODAY, 1, 2, 3))
    assert engine.current_streak(rule, completed, TODAY) == 0


def test_non_due_days_are_skipped(repo):
    # Mondays only; TODAY is a Monday
    rule = repo.add_rule(frequency="weekly", day_of_week=1)
    completed = set(days_before(TODAY, 0, 7, 14))
    assert engine.current_streak(rule, completed, TODAY) == 3

    # a completion on a non-due day neither extends nor breaks the streak
    assert engine.current_streak(rule, completed | {TODAY - timedelta(days=3)}, TODAY) == 3


def test_current_streak_is_bounded_by_lookback(repo):
    rule = repo.add_rule(created_at=datetime(2020, 1, 1))
    completed = set(days_before(TODAY, *range(0, 1000)))
    assert StatsEngine(lookback_days=10).current_streak(rule, completed, TODAY) == 10


def test_current_streak_stops_at_rule_creation(repo):
    rule = repo.add_rule(created_at=datetime(2026, 10, 17, 9, 0))
    completed = set(days_before(TODAY, 0, 1, 2))
    assert engine.current_streak(rule, completed, TODAY) == 3


def test_longest_streak_tracks_best_run_in_window(repo):
    rule = repo.add_rule()
    completed = set(days_before(TODAY, 0, 1)) | set(days_before(TODAY, 10, 11, 12, 13, 14))
    assert engine.longest_streak(rule, completed, TODAY, 30) == 5
    assert engine.current_streak(rule, completed, TODAY) == 2


def test_longest_streak_ignores_runs_outside_window(repo):
    rule = repo.add_rule()
    completed = set(days_before(TODAY, 0)) | set(days_before(TODAY, 40, 41, 42, 43))
    assert engine.longest_streak(rule, completed, TODAY, 30) == 1


def test_longest_never_below_current(repo):
    rule = repo.add_rule()
    completed = set(days_before(TODAY, *range(0, 45)))
    stats = engine.task_stats(rule, completed, TODAY, window_days=30)
    assert stats.current_streak == 45
    assert stats.longest_streak == 45
    assert stats.success_rate == 100


def test_weekly_success_rate_over_four_mondays(repo):
    sunday = date(2026, 10, 18)
    rule = repo.add_rule(frequency="weekly", day_of_week=1)
    # window Sep 19 - Oct 18 holds Mondays Sep 21, Sep 28, Oct 5, Oct 12
    completed = {date(2026, 9, 28), date(2026, 10, 5), date(2026, 10, 12)}
    assert engine.success_rate(rule, completed, sunday, 30) == 75


def test_success_rate_rounds_half_up(repo):
    rule = repo.add_rule()
    # one completed out of eight due days
    assert engine.success_rate(rule, {TODAY}, TODAY, 8) == 13
    assert percentage(1, 8) == 13
    assert percentage(2, 3) == 67
    assert percentage(1, 3) == 33


def test_success_rate_zero_when_nothing_is_due(repo):
    rule = repo.add_rule(frequency="monthly", day_of_month=1)
    # Oct 10 - Oct 19 contains no 1st of the month
    assert engine.success_rate(rule, set(), TODAY, 10) == 0
    assert percentage(0, 0) == 0


def test_days_before_creation_are_not_counted_as_missed(repo):
    rule = repo.add_rule(created_at=datetime(2026, 10, 15, 6, 0))
    completed = set(days_before(TODAY, 0, 1, 2, 3, 4))
    stats = engine.task_stats(rule, completed, TODAY, window_days=30)
    assert stats.success_rate == 100
    assert stats.longest_streak == 5


def test_empty_log_gives_zero_stats(repo):
    rule = repo.add_rule()
    stats = engine.task_stats(rule, set(), TODAY, window_days=30)
    assert (stats.current_streak, stats.longest_streak, stats.success_rate) == (0, 0, 0)


@pytest.mark.parametrize("frequency, days", [
    ("daily", {}),
    ("weekly", {"day_of_week": 4}),
    ("monthly", {"day_of_month": 31}),
])
def test_stats_invariants_hold_for_sparse_logs(repo, frequency, days):
    rule = repo.add_rule(frequency=frequency, **days)
    for stride in (1, 2, 3, 5, 7):
        completed = set(days_before(TODAY, *range(0, 120, stride)))
        stats = engine.task_stats(rule, completed, TODAY, window_days=30)
        assert 0 <= stats.success_rate <= 100
        assert stats.current_streak <= stats.longest_streak


def test_completion_history_has_fixed_length_ending_today():
    completed = {TODAY, TODAY - timedelta(days=2), TODAY - timedelta(days=30)}
    history = StatsEngine.completion_history(completed, TODAY, 7)

    assert len(history) == 7
    assert [entry.date for entry in history] == trailing_days(TODAY, 7)
    assert history[-1].date == TODAY
    assert all(a.date < b.date for a, b in zip(history, history[1:]))
    assert [entry.completed for entry in history] == [False, False, False, False, True, False, True]


def test_completion_history_for_empty_log_is_all_false():
    history = StatsEngine.completion_history(set(), TODAY, 14)
    assert len(history) == 14
    assert not any(entry.completed for entry in history)


def test_non_positive_windows_are_rejected(repo):
    rule = repo.add_rule()
    with pytest.raises(ValueError):
        engine.success_rate(rule, set(), TODAY, 0)
    with pytest.raises(ValueError):
        StatsEngine.completion_history(set(), TODAY, 0)
