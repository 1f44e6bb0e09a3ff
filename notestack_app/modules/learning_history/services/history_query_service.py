# File: notestack_app/modules/learning_history/services/history_query_service.py
from datetime import datetime
from typing import Dict, Iterable, List, Optional
from notestack_app.core.extensions import db
from ..models import ReviewLog


class HistoryQueryService:
    """Read and cleanup queries over the review log store."""

    @staticmethod
    def get_log(log_id: int) -> Optional[ReviewLog]:
        return db.session.get(ReviewLog, log_id)

    @staticmethod
    def get_current_log(card_state_id: int) -> Optional[ReviewLog]:
        """Latest log of a card; ties on reviewed_at go to the later insert."""
        return (
            ReviewLog.query
            .filter(ReviewLog.card_state_id == card_state_id)
            .order_by(ReviewLog.reviewed_at.desc(), ReviewLog.log_id.desc())
            .first()
        )

    @staticmethod
    def get_user_logs_between(user_id: int, start: datetime, end: datetime) -> List[ReviewLog]:
        """Logs of a user with ``start <= reviewed_at < end``."""
        return (
            ReviewLog.query
            .filter(
                ReviewLog.user_id == user_id,
                ReviewLog.reviewed_at >= start,
                ReviewLog.reviewed_at < end,
            )
            .order_by(ReviewLog.reviewed_at)
            .all()
        )

    @staticmethod
    def get_recent_logs_by_card(user_id: int, window: int) -> Dict[int, List[ReviewLog]]:
        """
        Group a user's logs per card, keeping the ``window`` most recent of each.
        One query for the whole user.
        """
        logs = (
            ReviewLog.query
            .filter(ReviewLog.user_id == user_id)
            .order_by(ReviewLog.card_state_id, ReviewLog.reviewed_at.desc(), ReviewLog.log_id.desc())
            .all()
        )
        grouped: Dict[int, List[ReviewLog]] = {}
        for log in logs:
            bucket = grouped.setdefault(log.card_state_id, [])
            if len(bucket) < window:
                bucket.append(log)
        return grouped

    @staticmethod
    def delete_log(log: ReviewLog) -> None:
        """Remove one log inside the caller's transaction."""
        db.session.delete(log)

    @staticmethod
    def delete_for_card_states(card_state_ids: Iterable[int]) -> int:
        """Remove every log of the given cards inside the caller's transaction."""
        ids = list(card_state_ids)
        if not ids:
            return 0
        return (
            ReviewLog.query
            .filter(ReviewLog.card_state_id.in_(ids))
            .delete(synchronize_session=False)
        )
