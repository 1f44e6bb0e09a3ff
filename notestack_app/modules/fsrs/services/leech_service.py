# File: notestack_app/modules/fsrs/services/leech_service.py
from __future__ import annotations
import logging
from typing import Any, Dict, Iterable, List, Optional, Sequence
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm.exc import StaleDataError
from notestack_app.core.error_handlers import StorageError, ValidationError
from notestack_app.core.extensions import db
from notestack_app.core.signals import cards_suspended
from notestack_app.modules.content.interface import ContentInterface
from notestack_app.modules.learning_history.interface import LearningHistoryInterface
from ..exceptions import ConcurrentModificationError
from ..models import CardState
from ..schemas import BulkSuspendResult, Rating
from .settings_service import FSRSSettingsService

logger = logging.getLogger(__name__)


class FSRSLeechService:
    """Centralized service for leech detection using lapses and recent retention."""

    @staticmethod
    def _get_lapse_threshold() -> int:
        return int(FSRSSettingsService.get('LEECH_LAPSE_THRESHOLD', 5))

    @staticmethod
    def _get_retention_threshold() -> float:
        return float(FSRSSettingsService.get('LEECH_RETENTION_THRESHOLD', 40))

    @staticmethod
    def _get_min_reviews() -> int:
        return int(FSRSSettingsService.get('LEECH_MIN_REVIEWS', 5))

    @staticmethod
    def _get_window() -> int:
        return int(FSRSSettingsService.get('LEECH_RETENTION_WINDOW', 20))

    @staticmethod
    def compute_retention(logs: Sequence[Any], min_reviews: int = 5) -> Optional[int]:
        """Percent of logs rated Good or Easy; None with fewer than ``min_reviews`` logs."""
        if len(logs) < min_reviews or not logs:
            return None
        successful = sum(1 for log in logs if log.rating >= Rating.Good)
        return round(100 * successful / len(logs))

    @classmethod
    def has_high_lapses(cls, card_state) -> bool:
        return (card_state.lapses or 0) > cls._get_lapse_threshold()

    @classmethod
    def has_low_retention(cls, retention: Optional[float]) -> bool:
        return retention is not None and retention < cls._get_retention_threshold()

    @classmethod
    def is_leech(cls, card_state, retention: Optional[float]) -> bool:
        return cls.has_high_lapses(card_state) or cls.has_low_retention(retention)

    @classmethod
    def leech_reason(cls, card_state, retention: Optional[float], review_count: int = 0) -> Optional[str]:
        """Human-readable explanation; both reasons are joined when both apply."""
        reasons = []
        if cls.has_high_lapses(card_state):
            reasons.append(f"High lapse count (forgotten {card_state.lapses} times)")
        if cls.has_low_retention(retention):
            reasons.append(f"Low retention ({retention}% over the last {review_count} reviews)")
        return '; '.join(reasons) or None

    @classmethod
    def _classify(cls, user_id: int) -> List[Dict[str, Any]]:
        """One pass over the user's cards and logs."""
        window = cls._get_window()
        min_reviews = cls._get_min_reviews()
        logs_by_card = LearningHistoryInterface.get_recent_logs_by_card(user_id, window)

        leeches = []
        card_states = (
            CardState.query
            .filter(CardState.user_id == user_id)
            .order_by(CardState.lapses.desc(), CardState.card_state_id)
            .all()
        )
        for card_state in card_states:
            logs = logs_by_card.get(card_state.card_state_id, [])
            retention = cls.compute_retention(logs, min_reviews)
            if not cls.is_leech(card_state, retention):
                continue
            leeches.append({
                'card_state': card_state,
                'retention': retention,
                'high_lapses': cls.has_high_lapses(card_state),
                'low_retention': cls.has_low_retention(retention),
                'reason': cls.leech_reason(card_state, retention, len(logs)),
            })
        return leeches

    @classmethod
    def list_leech_cards(cls, user_id: int) -> List[Dict[str, Any]]:
        leeches = cls._classify(user_id)
        units = ContentInterface.get_units(item['card_state'].block_id for item in leeches)
        results = []
        for item in leeches:
            card_state = item['card_state']
            unit = units.get(card_state.block_id)
            results.append({
                'card_state': card_state.to_dict(),
                'block': unit.to_dict() if unit else None,
                'retention': item['retention'],
                'leech_reason': item['reason'],
                'suspended': bool(card_state.suspended),
            })
        return results

    @classmethod
    def get_leech_stats(cls, user_id: int) -> Dict[str, int]:
        leeches = cls._classify(user_id)
        return {
            'total_leeches': len(leeches),
            'suspended_count': sum(1 for item in leeches if item['card_state'].suspended),
            'high_lapses_count': sum(1 for item in leeches if item['high_lapses']),
            'low_retention_count': sum(1 for item in leeches if item['low_retention']),
        }

    @staticmethod
    def bulk_suspend_cards(user_id: int, card_state_ids: Iterable[Any], suspend: bool) -> BulkSuspendResult:
        """
        Set ``suspended`` on every owned id. Unknown, foreign or malformed ids
        are skipped; the rest are written in one transaction.
        """
        if not isinstance(suspend, bool):
            raise ValidationError('suspend must be a boolean')

        result = BulkSuspendResult(suspend=suspend)
        requested: List[int] = []
        for raw_id in card_state_ids:
            if isinstance(raw_id, bool) or not isinstance(raw_id, int):
                result.skipped.append(raw_id)
            elif raw_id not in requested:
                requested.append(raw_id)

        owned = {}
        if requested:
            owned = {
                cs.card_state_id: cs
                for cs in CardState.query.filter(
                    CardState.card_state_id.in_(requested),
                    CardState.user_id == user_id,
                ).all()
            }

        for card_state_id in requested:
            card_state = owned.get(card_state_id)
            if card_state is None:
                result.skipped.append(card_state_id)
                continue
            if card_state.suspended != suspend:
                card_state.suspended = suspend
            result.succeeded.append(card_state_id)

        try:
            db.session.commit()
        except StaleDataError as e:
            db.session.rollback()
            logger.warning(f"[LEECH] Concurrent update during bulk suspend for user {user_id}: {e}")
            raise ConcurrentModificationError() from e
        except SQLAlchemyError as e:
            db.session.rollback()
            logger.error(f"[LEECH] Bulk suspend failed for user {user_id}: {e}")
            raise StorageError('Could not update suspended cards') from e

        logger.info(
            f"[LEECH] User {user_id} {'suspended' if suspend else 'unsuspended'} "
            f"{result.count} cards, skipped {len(result.skipped)}"
        )
        cards_suspended.send(
            FSRSLeechService,
            user_id=user_id,
            suspend=suspend,
            succeeded=list(result.succeeded),
            skipped=list(result.skipped),
        )
        return result
