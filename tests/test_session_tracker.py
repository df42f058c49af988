"""Tests for batch session statistics."""

import pytest

from bga_tm_stats.session_tracker import SessionTracker


def test_outcomes_are_counted():
    session = SessionTracker()
    session.record_game_outcome("parsed", rows=12)
    session.record_game_outcome("parsed", rows=3)
    session.record_game_outcome("failed", "game_1.json: bad replay_id")
    session.record_game_outcome("skipped")

    stats = session.get_session_stats()
    assert stats["games_processed"] == 4
    assert stats["successful_parses"] == 2
    assert stats["failed_parses"] == 1
    assert stats["skipped_games"] == 1
    assert stats["rows_written"] == 15
    assert stats["total_errors"] == 1
    assert stats["parse_success_rate"] == 50.0
    assert session.has_failures


def test_unknown_outcome_rejected():
    with pytest.raises(ValueError):
        SessionTracker().record_game_outcome("scraped")


def test_summary_string_and_end():
    session = SessionTracker()
    session.record_game_outcome("parsed", rows=1)
    session.end_session()
    assert session.end_time is not None
    assert not session.has_failures
    assert "1 games processed" in session.get_summary_string()
