from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional
from .models import ReviewLog
from .services.history_recorder import HistoryRecorder
from .services.history_query_service import HistoryQueryService


class LearningHistoryInterface:
    """
    Public gateway for recording and querying review history.
    Other modules go through here instead of touching ReviewLog directly.
    """

    @staticmethod
    def record_review(
        card_state_id: int,
        user_id: int,
        rating: int,
        pre_review: Dict[str, Any],
        reviewed_at: datetime,
    ) -> ReviewLog:
        """Append a review log inside the caller's transaction."""
        return HistoryRecorder.record_review(card_state_id, user_id, rating, pre_review, reviewed_at)

    @staticmethod
    def get_log(log_id: int) -> Optional[ReviewLog]:
        return HistoryQueryService.get_log(log_id)

    @staticmethod
    def get_current_log(card_state_id: int) -> Optional[ReviewLog]:
        """The undo conflict token of a card."""
        return HistoryQueryService.get_current_log(card_state_id)

    @staticmethod
    def get_user_logs_between(user_id: int, start: datetime, end: datetime) -> List[ReviewLog]:
        return HistoryQueryService.get_user_logs_between(user_id, start, end)

    @staticmethod
    def get_recent_logs_by_card(user_id: int, window: int) -> Dict[int, List[ReviewLog]]:
        return HistoryQueryService.get_recent_logs_by_card(user_id, window)

    @staticmethod
    def delete_log(log: ReviewLog) -> None:
        HistoryQueryService.delete_log(log)

    @staticmethod
    def delete_for_card_states(card_state_ids: Iterable[int]) -> int:
        return HistoryQueryService.delete_for_card_states(card_state_ids)
