"""
Session Statistics Tracker for replay log parsing runs

Tracks how many replay logs were parsed, failed or skipped during one run
"""

from datetime import datetime
from typing import Dict, Any
import logging

logger = logging.getLogger(__name__)


class SessionTracker:
    """Tracks statistics during a parsing session"""

    def __init__(self):
        self.start_time = datetime.now()
        self.end_time = None

        # Session counters
        self.games_processed = 0
        self.successful_parses = 0
        self.failed_parses = 0
        self.skipped_games = 0
        self.rows_written = 0
        self.errors = []

        logger.info(f"Session tracking started at {self.start_time}")

    def add_error(self, error_message: str, context: str = None):
        """Add an error to the tracking"""
        error_entry = {
            'timestamp': datetime.now(),
            'message': error_message,
            'context': context
        }
        self.errors.append(error_entry)
        logger.error(f"Session error recorded: {error_message} (Context: {context})")

    def record_game_outcome(self, outcome: str, details: str = None, rows: int = 0):
        """
        Record the outcome of processing a single replay log

        Args:
            outcome: One of 'parsed', 'failed', 'skipped'
            details: Error message or file name for failures
            rows: Number of rows exported for a parsed game
        """
        self.games_processed += 1

        if outcome == 'parsed':
            self.successful_parses += 1
            self.rows_written += rows
        elif outcome == 'failed':
            self.failed_parses += 1
            if details:
                self.add_error(f"Replay parsing failed: {details}")
        elif outcome == 'skipped':
            self.skipped_games += 1
        else:
            raise ValueError(f"Unknown outcome: {outcome}")

    def end_session(self):
        """Mark the session as ended"""
        self.end_time = datetime.now()
        duration = self.end_time - self.start_time
        logger.info(f"Session ended at {self.end_time} (Duration: {duration})")

    @property
    def has_failures(self) -> bool:
        return self.failed_parses > 0

    def get_session_stats(self) -> Dict[str, Any]:
        """Get session statistics"""
        current_time = self.end_time or datetime.now()
        duration = current_time - self.start_time

        return {
            'start_time': self.start_time,
            'end_time': self.end_time,
            'duration_seconds': duration.total_seconds(),
            'games_processed': self.games_processed,
            'successful_parses': self.successful_parses,
            'failed_parses': self.failed_parses,
            'skipped_games': self.skipped_games,
            'rows_written': self.rows_written,
            'total_errors': len(self.errors),
            'parse_success_rate': (self.successful_parses / max(1, self.games_processed)) * 100,
        }

    def get_summary_string(self) -> str:
        """Get a brief summary string for logging"""
        stats = self.get_session_stats()
        return (f"Session Summary: {stats['games_processed']} games processed, "
                f"{stats['successful_parses']} parsed ({stats['parse_success_rate']:.1f}%), "
                f"{stats['failed_parses']} failed, {stats['skipped_games']} skipped, "
                f"{stats['rows_written']} rows written")
