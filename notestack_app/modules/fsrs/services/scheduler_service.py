# File: notestack_app/modules/fsrs/services/scheduler_service.py
from typing import Dict, Any, Optional
import datetime
import logging
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm.exc import StaleDataError
from notestack_app.core.error_handlers import StorageError
from notestack_app.core.extensions import db
from notestack_app.core.signals import card_reviewed
from notestack_app.modules.learning_history.interface import LearningHistoryInterface
from notestack_app.utils.time_utils import to_naive_utc, utcnow
from ..engine.core import format_interval
from ..engine.transitions import is_lapse, is_legal_transition
from ..exceptions import ConcurrentModificationError, EngineCalculationError
from ..schemas import ReviewResultDTO
from .card_state_service import CardStateService
from .settings_service import FSRSSettingsService

logger = logging.getLogger(__name__)


class SchedulerService:
    """
    Orchestrator for FSRS scheduling.
    Handles DB interactions, Engine calls, and Signal emission.
    """

    @staticmethod
    def submit_review(
        user_id: int,
        card_state_id: int,
        rating: int,
        now: Optional[datetime.datetime] = None,
    ) -> ReviewResultDTO:
        """
        Apply one review as a single transaction.

        The CardState update and its ReviewLog commit together; on any storage
        failure both are rolled back.
        """
        now = to_naive_utc(now) or utcnow()
        engine = FSRSSettingsService.build_engine()
        # Rating is validated before any row is touched
        engine.validate_rating(rating)
        rating = int(rating)

        # 1. Fetch Data
        card_state = CardStateService.get_owned(
            card_state_id, user_id, 'Not authorized to review this card', for_update=True
        )
        card_dto = CardStateService.to_dto(card_state)
        pre_review = card_state.snapshot()

        # 2. Call Engine
        next_dto = engine.schedule(card_dto, rating, now)
        if not is_legal_transition(card_dto.state, next_dto.state):
            raise EngineCalculationError(
                f"Illegal transition {card_dto.state} -> {next_dto.state}"
            )

        # 3. Update DB Model
        card_state.state = next_dto.state
        card_state.stability = next_dto.stability
        card_state.difficulty = next_dto.difficulty
        card_state.due = next_dto.due
        card_state.scheduled_days = next_dto.scheduled_days
        card_state.elapsed_days = next_dto.elapsed_days
        card_state.last_review = now
        card_state.reps = (card_state.reps or 0) + 1
        if is_lapse(card_dto.state, next_dto.state):
            card_state.lapses = (card_state.lapses or 0) + 1

        # 4. Append log + Commit
        try:
            log = LearningHistoryInterface.record_review(
                card_state_id=card_state.card_state_id,
                user_id=user_id,
                rating=rating,
                pre_review=pre_review,
                reviewed_at=now,
            )
            db.session.commit()
        except StaleDataError as e:
            db.session.rollback()
            logger.warning(f"[SCHEDULER] Concurrent review on card state {card_state_id}: {e}")
            raise ConcurrentModificationError() from e
        except SQLAlchemyError as e:
            db.session.rollback()
            logger.error(f"[SCHEDULER] Review transaction failed for card state {card_state_id}: {e}")
            raise StorageError('Could not save review') from e

        logger.info(
            f"[SCHEDULER] User {user_id} rated card state {card_state_id} {rating}: "
            f"{pre_review['state']} -> {card_state.state}, due {card_state.due.isoformat()}"
        )

        # 5. Prepare Result & Emit Signal
        result = ReviewResultDTO(
            card_state_id=card_state.card_state_id,
            review_log_id=log.log_id,
            state=card_state.state,
            previous_state=pre_review['state'],
            due=card_state.due,
            scheduled_days=card_state.scheduled_days,
            stability=card_state.stability,
            difficulty=card_state.difficulty,
            retrievability=engine.retrievability(CardStateService.to_dto(card_state), now),
            reps=card_state.reps,
            lapses=card_state.lapses,
        )

        card_reviewed.send(
            SchedulerService,
            user_id=user_id,
            card_state_id=card_state.card_state_id,
            rating=rating,
            review_log_id=log.log_id,
            previous_state=pre_review['state'],
            new_state=card_state.state,
        )
        return result

    @staticmethod
    def get_preview_intervals(
        user_id: int,
        card_state_id: int,
        now: Optional[datetime.datetime] = None,
    ) -> Dict[str, Dict[str, Any]]:
        """
        Get preview intervals for all ratings (1-4).
        """
        now = to_naive_utc(now) or utcnow()
        card_state = CardStateService.get_owned(card_state_id, user_id, 'Not authorized to view this card')
        engine = FSRSSettingsService.build_engine()
        preview = engine.preview_intervals(CardStateService.to_dto(card_state), now)
        return SchedulerService.format_preview(preview.as_dict())

    @staticmethod
    def format_preview(intervals: Dict[str, float]) -> Dict[str, Dict[str, Any]]:
        return {
            name: {'days': round(days, 4), 'interval': format_interval(days)}
            for name, days in intervals.items()
        }
