# File: notestack_app/modules/fsrs/services/queue_service.py
"""Due-set selection: ranked due cards, new cards, learn sessions, difficulty buckets."""
from __future__ import annotations
import datetime
import logging
from typing import Any, Dict, Iterable, List, Optional
from notestack_app.core.error_handlers import ValidationError
from notestack_app.modules.content.interface import ContentInterface
from notestack_app.utils.time_utils import to_naive_utc, utcnow
from ..engine.core import FSRSEngine, format_interval
from ..exceptions import InvalidBucketError
from ..models import CardState
from ..schemas import CardStateEnum, DIFFICULTY_BUCKETS_BY_LABEL
from .card_state_service import CardStateService
from .exam_signal import annotate_entries
from .settings_service import FSRSSettingsService

logger = logging.getLogger(__name__)


def _resolve_limit(limit: Optional[int], default_key: str) -> int:
    if limit is None:
        return int(FSRSSettingsService.get(default_key))
    if isinstance(limit, bool) or not isinstance(limit, int) or limit < 0:
        raise ValidationError(f"Limit must be a non-negative integer, got {limit}")
    return limit


class QueueService:

    @staticmethod
    def _base_query(user_id: int, block_ids: Optional[Iterable[int]] = None):
        query = CardState.query.filter(
            CardState.user_id == user_id,
            CardState.suspended.is_(False),
        )
        if block_ids is not None:
            query = query.filter(CardState.block_id.in_(list(block_ids)))
        return query

    @staticmethod
    def _reviewable(card_states: List[CardState]):
        """Pair each CardState with its unit, dropping missing units and disabled directions."""
        units = ContentInterface.get_units(cs.block_id for cs in card_states)
        pairs = []
        for card_state in card_states:
            unit = units.get(card_state.block_id)
            if not unit or not unit.is_card:
                continue
            if not ContentInterface.is_direction_enabled(unit, card_state.direction):
                continue
            pairs.append((card_state, unit))
        return pairs

    @staticmethod
    def _entry(engine: FSRSEngine, card_state: CardState, unit, retrievability: float, now) -> Dict[str, Any]:
        preview = engine.preview_intervals(CardStateService.to_dto(card_state), now)
        return {
            'card_state': card_state.to_dict(),
            'block': unit.to_dict(),
            'retrievability': round(retrievability, 4),
            'interval_previews': {name: format_interval(days) for name, days in preview.as_dict().items()},
            'exam_priority': False,
            'exam': None,
        }

    @classmethod
    def _rank_due(cls, user_id: int, now: datetime.datetime, limit: int, block_ids=None) -> List[Dict[str, Any]]:
        engine = FSRSSettingsService.build_engine()
        candidates = (
            cls._base_query(user_id, block_ids)
            .filter(CardState.state != CardStateEnum.NEW, CardState.due <= now)
            .all()
        )
        scored = []
        for card_state, unit in cls._reviewable(candidates):
            retrievability = engine.retrievability(CardStateService.to_dto(card_state), now)
            scored.append((retrievability, card_state, unit))

        # Lowest recall first; ties go to the less stable, then the longer overdue
        scored.sort(key=lambda item: (item[0], item[1].stability, item[1].due, item[1].card_state_id))
        return [cls._entry(engine, cs, unit, r, now) for r, cs, unit in scored[:limit]]

    @classmethod
    def _list_new(cls, user_id: int, now: datetime.datetime, limit: int, block_ids=None) -> List[Dict[str, Any]]:
        engine = FSRSSettingsService.build_engine()
        candidates = (
            cls._base_query(user_id, block_ids)
            .filter(CardState.state == CardStateEnum.NEW)
            .order_by(CardState.card_state_id)
            .all()
        )
        pairs = cls._reviewable(candidates)[:limit]
        return [cls._entry(engine, cs, unit, 0.0, now) for cs, unit in pairs]

    @classmethod
    def get_due_cards(cls, user_id: int, limit: Optional[int] = None, now: Optional[datetime.datetime] = None) -> List[Dict[str, Any]]:
        """Due, non-new cards ranked by live retrievability (lowest first)."""
        now = to_naive_utc(now) or utcnow()
        entries = cls._rank_due(user_id, now, _resolve_limit(limit, 'QUEUE_DUE_LIMIT'))
        return annotate_entries(user_id, entries)

    @classmethod
    def get_new_cards(cls, user_id: int, limit: Optional[int] = None, now: Optional[datetime.datetime] = None) -> List[Dict[str, Any]]:
        """Never-reviewed cards in creation order."""
        now = to_naive_utc(now) or utcnow()
        entries = cls._list_new(user_id, now, _resolve_limit(limit, 'QUEUE_NEW_LIMIT'))
        return annotate_entries(user_id, entries)

    @classmethod
    def _session(cls, user_id, now, new_limit, review_limit, block_ids=None) -> Dict[str, Any]:
        due = cls._rank_due(user_id, now, _resolve_limit(review_limit, 'QUEUE_REVIEW_LIMIT'), block_ids)
        new = cls._list_new(user_id, now, _resolve_limit(new_limit, 'QUEUE_NEW_LIMIT'), block_ids)
        # Due strictly precede new
        cards = annotate_entries(user_id, due + new)
        return {
            'cards': cards,
            'due_count': len(due),
            'new_count': len(new),
        }

    @classmethod
    def get_learn_session(
        cls,
        user_id: int,
        new_limit: Optional[int] = None,
        review_limit: Optional[int] = None,
        now: Optional[datetime.datetime] = None,
    ) -> Dict[str, Any]:
        now = to_naive_utc(now) or utcnow()
        session = cls._session(user_id, now, new_limit, review_limit)
        logger.info(
            f"[QUEUE] Learn session for user {user_id}: "
            f"{session['due_count']} due, {session['new_count']} new"
        )
        return session

    @classmethod
    def get_document_learn_session(
        cls,
        user_id: int,
        document_id: int,
        new_limit: Optional[int] = None,
        review_limit: Optional[int] = None,
        now: Optional[datetime.datetime] = None,
    ) -> Dict[str, Any]:
        """Learn session restricted to the units of one document."""
        now = to_naive_utc(now) or utcnow()
        block_ids = [
            unit.block_id
            for unit in ContentInterface.get_document_units(document_id)
            if unit.user_id == user_id
        ]
        session = cls._session(user_id, now, new_limit, review_limit, block_ids)
        session['document_id'] = document_id
        return session

    @staticmethod
    def list_cards_by_difficulty_bucket(user_id: int, label: str, limit: Optional[int] = None) -> Dict[str, Any]:
        """
        Cards whose difficulty falls in the bucket ``label``.

        Sorted by lapses desc, due asc, difficulty desc; ``total_matching``
        counts every match regardless of ``limit``.
        """
        bucket = DIFFICULTY_BUCKETS_BY_LABEL.get(label)
        if bucket is None:
            raise InvalidBucketError(label)
        limit = _resolve_limit(limit, 'QUEUE_BUCKET_LIMIT')

        upper = CardState.difficulty <= bucket.upper if bucket.upper_inclusive else CardState.difficulty < bucket.upper
        query = CardState.query.filter(
            CardState.user_id == user_id,
            CardState.suspended.is_(False),
            CardState.difficulty >= bucket.lower,
            upper,
        )
        total = query.count()
        card_states = (
            query
            .order_by(
                CardState.lapses.desc(),
                CardState.due.asc(),
                CardState.difficulty.desc(),
                CardState.card_state_id.asc(),
            )
            .limit(limit)
            .all()
        )
        units = ContentInterface.get_units(cs.block_id for cs in card_states)
        return {
            'label': bucket.label,
            'total_matching': total,
            'cards': [
                {
                    'card_state': cs.to_dict(),
                    'block': units[cs.block_id].to_dict() if cs.block_id in units else None,
                }
                for cs in card_states
            ],
        }
