# File: notestack_app/modules/fsrs/interface.py
import datetime
from typing import Any, Dict, Iterable, List, Mapping, Optional
from .models import CardState
from .schemas import BulkSuspendResult, ReviewResultDTO
from .services.card_state_service import CardStateService
from .services.leech_service import FSRSLeechService
from .services.queue_service import QueueService
from .services.scheduler_service import SchedulerService
from .services.undo_service import UndoService


class FSRSInterface:
    """Public API for FSRS module."""

    # --- Card states ---

    @staticmethod
    def create_or_get_card_state(user_id: int, block_id: int, direction: str, now: Optional[datetime.datetime] = None) -> CardState:
        return CardStateService.create_or_get(user_id, block_id, direction, now)

    @staticmethod
    def ensure_card_states(user_id: int, block_id: int, directions: Iterable[str], now: Optional[datetime.datetime] = None) -> List[int]:
        return CardStateService.ensure(user_id, block_id, directions, now)

    @staticmethod
    def initialize_card_states_for_document(user_id: int, document_id: int, now: Optional[datetime.datetime] = None) -> Dict[str, int]:
        return CardStateService.initialize_document(user_id, document_id, now)

    @staticmethod
    def delete_card_states_for_content_unit(user_id: int, block_id: int) -> int:
        """Called by the content owner when a unit is deleted."""
        return CardStateService.delete_for_content_unit(user_id, block_id)

    # --- Review / undo ---

    @staticmethod
    def submit_review(user_id: int, card_state_id: int, rating: int, now: Optional[datetime.datetime] = None) -> ReviewResultDTO:
        return SchedulerService.submit_review(user_id, card_state_id, rating, now)

    @staticmethod
    def undo_review(
        user_id: int,
        card_state_id: int,
        previous_state: Mapping[str, Any],
        review_log_id: Optional[int] = None,
    ) -> Dict[str, Any]:
        return UndoService.undo_review(user_id, card_state_id, previous_state, review_log_id)

    @staticmethod
    def preview_intervals(user_id: int, card_state_id: int, now: Optional[datetime.datetime] = None) -> Dict[str, Dict[str, Any]]:
        return SchedulerService.get_preview_intervals(user_id, card_state_id, now)

    # --- Queues ---

    @staticmethod
    def get_due_cards(user_id: int, limit: Optional[int] = None, now: Optional[datetime.datetime] = None) -> List[Dict[str, Any]]:
        return QueueService.get_due_cards(user_id, limit, now)

    @staticmethod
    def get_new_cards(user_id: int, limit: Optional[int] = None, now: Optional[datetime.datetime] = None) -> List[Dict[str, Any]]:
        return QueueService.get_new_cards(user_id, limit, now)

    @staticmethod
    def get_learn_session(
        user_id: int,
        new_limit: Optional[int] = None,
        review_limit: Optional[int] = None,
        now: Optional[datetime.datetime] = None,
    ) -> Dict[str, Any]:
        return QueueService.get_learn_session(user_id, new_limit, review_limit, now)

    @staticmethod
    def get_document_learn_session(
        user_id: int,
        document_id: int,
        new_limit: Optional[int] = None,
        review_limit: Optional[int] = None,
        now: Optional[datetime.datetime] = None,
    ) -> Dict[str, Any]:
        return QueueService.get_document_learn_session(user_id, document_id, new_limit, review_limit, now)

    @staticmethod
    def list_cards_by_difficulty_bucket(user_id: int, label: str, limit: Optional[int] = None) -> Dict[str, Any]:
        return QueueService.list_cards_by_difficulty_bucket(user_id, label, limit)

    # --- Leeches ---

    @staticmethod
    def list_leech_cards(user_id: int) -> List[Dict[str, Any]]:
        return FSRSLeechService.list_leech_cards(user_id)

    @staticmethod
    def get_leech_stats(user_id: int) -> Dict[str, int]:
        return FSRSLeechService.get_leech_stats(user_id)

    @staticmethod
    def bulk_suspend_cards(user_id: int, card_state_ids: Iterable[Any], suspend: bool) -> BulkSuspendResult:
        return FSRSLeechService.bulk_suspend_cards(user_id, card_state_ids, suspend)

    # --- Aggregates ---

    @staticmethod
    def get_card_state_counts(user_id: int, now: datetime.datetime) -> Dict[str, int]:
        return CardStateService.count_by_state(user_id, now)

    @staticmethod
    def get_reviewed_difficulties(user_id: int) -> List[float]:
        return CardStateService.get_reviewed_difficulties(user_id)
