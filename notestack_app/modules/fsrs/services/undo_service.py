# File: notestack_app/modules/fsrs/services/undo_service.py
"""
Single-step undo of the most recent review on a card.

The id of the card's current ReviewLog acts as an optimistic-concurrency
token: a review that lands between the caller's snapshot and the undo makes
the undo fail with a conflict instead of discarding the newer review.
"""
from __future__ import annotations
import logging
from typing import Any, Dict, Mapping, Optional
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm.exc import StaleDataError
from notestack_app.core.error_handlers import StorageError
from notestack_app.core.extensions import db
from notestack_app.core.signals import review_undone
from notestack_app.modules.learning_history.interface import LearningHistoryInterface
from ..exceptions import (
    ConcurrentModificationError,
    InvalidSnapshotError,
    ReviewLogMismatchError,
    StaleReviewLogError,
)
from ..schemas import PreviousStateSchema
from .card_state_service import CardStateService

logger = logging.getLogger(__name__)


def parse_snapshot(raw: Mapping[str, Any]) -> Dict[str, Any]:
    """Normalize a pre-review snapshot into the nine CardState fields."""
    schema = PreviousStateSchema()
    errors = schema.validate(raw)
    if errors:
        raise InvalidSnapshotError('Invalid snapshot', errors)
    return schema.load(raw)


class UndoService:

    @staticmethod
    def undo_review(
        user_id: int,
        card_state_id: int,
        previous_state: Mapping[str, Any],
        review_log_id: Optional[int] = None,
    ) -> Dict[str, Any]:
        """
        Restore ``previous_state`` verbatim and delete the card's current log.

        With ``review_log_id`` the undo only applies when that log is still the
        card's latest one. Without it the current log, if any, is removed
        unconditionally.
        """
        snapshot = parse_snapshot(previous_state)
        card_state = CardStateService.get_owned(
            card_state_id, user_id, 'Not authorized to undo this review', for_update=True
        )

        current_log = LearningHistoryInterface.get_current_log(card_state_id)
        if review_log_id is not None:
            supplied_log = LearningHistoryInterface.get_log(review_log_id)
            if supplied_log is not None and supplied_log.card_state_id != card_state_id:
                logger.warning(
                    f"[UNDO] Log {review_log_id} belongs to card state {supplied_log.card_state_id}, "
                    f"not {card_state_id}"
                )
                raise ReviewLogMismatchError()
            if current_log is None or current_log.log_id != review_log_id:
                logger.warning(
                    f"[UNDO] Stale undo on card state {card_state_id}: expected log {review_log_id}, "
                    f"current is {current_log.log_id if current_log else None}"
                )
                raise StaleReviewLogError()

        for key, value in snapshot.items():
            setattr(card_state, key, value)

        deleted_log_id = current_log.log_id if current_log else None
        try:
            if current_log is not None:
                LearningHistoryInterface.delete_log(current_log)
            db.session.commit()
        except StaleDataError as e:
            db.session.rollback()
            logger.warning(f"[UNDO] Card state {card_state_id} changed during undo: {e}")
            raise ConcurrentModificationError() from e
        except SQLAlchemyError as e:
            db.session.rollback()
            logger.error(f"[UNDO] Undo transaction failed for card state {card_state_id}: {e}")
            raise StorageError('Could not undo review') from e

        logger.info(f"[UNDO] User {user_id} reverted card state {card_state_id} (log {deleted_log_id})")
        review_undone.send(
            UndoService,
            user_id=user_id,
            card_state_id=card_state_id,
            review_log_id=deleted_log_id,
        )
        return {
            'card_state': card_state.to_dict(),
            'deleted_review_log_id': deleted_log_id,
        }
