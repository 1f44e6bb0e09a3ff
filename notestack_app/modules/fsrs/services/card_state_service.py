# File: notestack_app/modules/fsrs/services/card_state_service.py
"""CardState lifecycle: lazy creation, lookup with ownership, cascade delete."""
from __future__ import annotations
import datetime
import logging
from typing import Iterable, List, Optional
from sqlalchemy import case, func
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from notestack_app.core.error_handlers import StorageError
from notestack_app.core.extensions import db
from notestack_app.core.signals import card_states_deleted
from notestack_app.modules.auth.interface import AuthInterface
from notestack_app.modules.content.interface import ContentInterface
from notestack_app.modules.learning_history.interface import LearningHistoryInterface
from notestack_app.utils.time_utils import to_naive_utc, utcnow
from ..exceptions import (
    CardStateNotFoundError,
    ContentUnitNotFoundError,
    DirectionDisabledError,
    InvalidDirectionError,
)
from ..models import CardState
from ..schemas import CardStateEnum, CardStateDTO, Direction

logger = logging.getLogger(__name__)


class CardStateService:

    @staticmethod
    def to_dto(card_state: CardState) -> CardStateDTO:
        return CardStateDTO(
            stability=card_state.stability or 0.0,
            difficulty=card_state.difficulty or 0.0,
            elapsed_days=card_state.elapsed_days or 0.0,
            scheduled_days=card_state.scheduled_days or 0.0,
            reps=card_state.reps or 0,
            lapses=card_state.lapses or 0,
            state=card_state.state or CardStateEnum.NEW,
            last_review=card_state.last_review,
            due=card_state.due,
        )

    @staticmethod
    def get_owned(card_state_id: int, user_id: int, message: str, for_update: bool = False) -> CardState:
        """Load a CardState the caller owns; NotFound before Unauthorized."""
        query = CardState.query.filter_by(card_state_id=card_state_id)
        if for_update:
            query = query.populate_existing().with_for_update()
        card_state = query.first()
        if card_state is None:
            raise CardStateNotFoundError()
        AuthInterface.require_owner(card_state.user_id, user_id, message)
        return card_state

    @staticmethod
    def _require_unit(block_id: int, user_id: int, message: str):
        unit = ContentInterface.get_unit(block_id)
        if unit is None:
            raise ContentUnitNotFoundError()
        AuthInterface.require_owner(unit.user_id, user_id, message)
        return unit

    @staticmethod
    def _new_card_state(block_id: int, user_id: int, direction: str, now: datetime.datetime) -> CardState:
        return CardState(
            block_id=block_id,
            user_id=user_id,
            direction=direction,
            state=CardStateEnum.NEW,
            stability=0.0,
            difficulty=0.0,
            due=now,
            last_review=None,
            reps=0,
            lapses=0,
            scheduled_days=0.0,
            elapsed_days=0.0,
            suspended=False,
        )

    @staticmethod
    def _check_directions(unit, directions: Iterable[str]) -> List[str]:
        """All directions must be known and enabled on the unit before any row is added."""
        directions = list(directions)
        for direction in directions:
            if direction not in Direction.ALL:
                raise InvalidDirectionError(direction)
            if not ContentInterface.is_direction_enabled(unit, direction):
                raise DirectionDisabledError(direction)
        return directions

    @classmethod
    def _get_or_add(cls, block_id: int, user_id: int, direction: str, now: datetime.datetime):
        existing = CardState.query.filter_by(block_id=block_id, direction=direction).first()
        if existing is not None:
            return existing, False
        card_state = cls._new_card_state(block_id, user_id, direction, now)
        db.session.add(card_state)
        return card_state, True

    @classmethod
    def _commit(cls, action: str) -> None:
        try:
            db.session.commit()
        except IntegrityError as e:
            # A concurrent request created the same (block, direction) pair
            db.session.rollback()
            logger.warning(f"[CardState] {action} lost a creation race: {e}")
            raise
        except SQLAlchemyError as e:
            db.session.rollback()
            logger.error(f"[CardState] {action} failed: {e}")
            raise StorageError(f"Could not {action}") from e

    @classmethod
    def create_or_get(cls, user_id: int, block_id: int, direction: str, now: Optional[datetime.datetime] = None) -> CardState:
        """Return the CardState of (block, direction), creating a New one on first access."""
        unit = cls._require_unit(block_id, user_id, 'Not authorized to create card state for this block')
        cls._check_directions(unit, [direction])
        now = to_naive_utc(now) or utcnow()
        card_state, created = cls._get_or_add(block_id, user_id, direction, now)
        if created:
            try:
                cls._commit('create card state')
            except IntegrityError:
                return CardState.query.filter_by(block_id=block_id, direction=direction).one()
            logger.info(f"[CardState] Created card state {card_state.card_state_id} for block {block_id} ({direction})")
        return card_state

    @classmethod
    def ensure(cls, user_id: int, block_id: int, directions: Iterable[str], now: Optional[datetime.datetime] = None) -> List[int]:
        """Ids of the CardStates for each direction, creating missing ones in one transaction."""
        unit = cls._require_unit(block_id, user_id, 'Not authorized to create card state for this block')
        directions = cls._check_directions(unit, directions)
        now = to_naive_utc(now) or utcnow()
        results = []
        for direction in directions:
            card_state, _ = cls._get_or_add(block_id, user_id, direction, now)
            results.append(card_state)
        try:
            cls._commit('ensure card states')
        except IntegrityError:
            return [
                CardState.query.filter_by(block_id=block_id, direction=d).one().card_state_id
                for d in directions
            ]
        return [card_state.card_state_id for card_state in results]

    @classmethod
    def initialize_document(cls, user_id: int, document_id: int, now: Optional[datetime.datetime] = None) -> dict:
        """Create missing CardStates for every owned, enabled unit of a document."""
        now = to_naive_utc(now) or utcnow()
        created_count = 0
        for unit in ContentInterface.get_document_units(document_id):
            if unit.user_id != user_id:
                continue
            for direction in unit.enabled_directions:
                _, created = cls._get_or_add(unit.block_id, user_id, direction, now)
                created_count += int(created)
        cls._commit('initialize document card states')
        logger.info(f"[CardState] Initialized {created_count} card states for document {document_id}")
        return {'created_count': created_count}

    @classmethod
    def delete_for_content_unit(cls, user_id: int, block_id: int) -> int:
        """Cascade: remove a unit's CardStates and all their ReviewLogs atomically."""
        cls._require_unit(block_id, user_id, 'Not authorized to delete card states for this block')
        card_state_ids = [
            row.card_state_id
            for row in CardState.query.with_entities(CardState.card_state_id).filter_by(block_id=block_id).all()
        ]
        try:
            LearningHistoryInterface.delete_for_card_states(card_state_ids)
            if card_state_ids:
                CardState.query.filter(CardState.card_state_id.in_(card_state_ids)).delete(synchronize_session=False)
            db.session.commit()
        except SQLAlchemyError as e:
            db.session.rollback()
            logger.error(f"[CardState] Cascade delete for block {block_id} failed: {e}")
            raise StorageError('Could not delete card states') from e

        logger.info(f"[CardState] Deleted {len(card_state_ids)} card states for block {block_id}")
        card_states_deleted.send(
            CardStateService,
            user_id=user_id,
            block_id=block_id,
            deleted_count=len(card_state_ids),
        )
        return len(card_state_ids)

    @staticmethod
    def count_by_state(user_id: int, now: datetime.datetime) -> dict:
        """Per-state totals and how many non-new cards are due at ``now``."""
        rows = (
            db.session.query(
                CardState.state,
                func.count(CardState.card_state_id),
                func.sum(case((CardState.due <= now, 1), else_=0)),
            )
            .filter(CardState.user_id == user_id)
            .group_by(CardState.state)
            .all()
        )
        counts = {state: 0 for state in CardStateEnum.ALL}
        due_now = 0
        for state, total, due in rows:
            counts[state] = total
            if state != CardStateEnum.NEW:
                due_now += int(due or 0)
        counts['due_now'] = due_now
        return counts

    @staticmethod
    def get_reviewed_difficulties(user_id: int) -> List[float]:
        rows = (
            CardState.query
            .with_entities(CardState.difficulty)
            .filter(CardState.user_id == user_id, CardState.state != CardStateEnum.NEW)
            .all()
        )
        return [row.difficulty for row in rows]
