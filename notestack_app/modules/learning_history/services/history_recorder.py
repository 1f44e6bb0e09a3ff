# File: notestack_app/modules/learning_history/services/history_recorder.py
from datetime import datetime
from typing import Any, Dict
from notestack_app.core.extensions import db
from ..models import ReviewLog


class HistoryRecorder:
    """
    Scribe service dedicated to recording review history.
    Never commits: the caller owns the transaction.
    """

    @staticmethod
    def record_review(
        card_state_id: int,
        user_id: int,
        rating: int,
        pre_review: Dict[str, Any],
        reviewed_at: datetime,
    ) -> ReviewLog:
        """
        Append a ReviewLog for a review that is being applied.

        Args:
            card_state_id: reviewed CardState
            user_id: owner of the CardState
            rating: 1-4
            pre_review: {state, scheduled_days, elapsed_days, stability, difficulty}
                captured before the scheduler ran
            reviewed_at: review time (naive UTC)
        """
        log = ReviewLog(
            card_state_id=card_state_id,
            user_id=user_id,
            rating=rating,
            reviewed_at=reviewed_at,
            state=pre_review['state'],
            scheduled_days=pre_review.get('scheduled_days') or 0.0,
            elapsed_days=pre_review.get('elapsed_days') or 0.0,
            stability=pre_review.get('stability') or 0.0,
            difficulty=pre_review.get('difficulty') or 0.0,
        )
        db.session.add(log)
        db.session.flush()
        return log
