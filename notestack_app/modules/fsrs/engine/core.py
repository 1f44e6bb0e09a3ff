from __future__ import annotations
import datetime
import logging
from typing import Optional, List
from fsrs_rs_python import FSRS, DEFAULT_PARAMETERS, MemoryState
from notestack_app.utils.time_utils import days_between, to_naive_utc
from ..exceptions import EngineCalculationError, InvalidRatingError
from ..schemas import Rating, CardStateEnum, CardStateDTO, IntervalPreviewDTO
from .transitions import next_card_state

logger = logging.getLogger(__name__)

DECAY_BASE = 0.9


class FSRSEngine:
    """
    Scheduler adapter over fsrs-rs-python.
    Pure Logic Layer: No Database, No Flask Context, no randomness.
    """

    def __init__(
        self,
        custom_weights: Optional[List[float]] = None,
        desired_retention: float = 0.9,
        max_interval: float = 730,
        learning_floor_minutes: float = 1,
    ):
        params = custom_weights if custom_weights else list(DEFAULT_PARAMETERS)
        self.fsrs = FSRS(parameters=params)
        self.desired_retention = desired_retention
        self.max_interval = float(max_interval)
        self.learning_floor_days = float(learning_floor_minutes) / 1440.0

    def _to_memory_state(self, card_state: CardStateDTO):
        if card_state.state == CardStateEnum.NEW or card_state.stability <= 0:
            return None
        return MemoryState(
            stability=max(0.1, float(card_state.stability)),
            difficulty=max(1.0, min(10.0, float(card_state.difficulty)))
        )

    def _next_states(self, card_state: CardStateDTO, days_elapsed: float):
        try:
            return self.fsrs.next_states(
                self._to_memory_state(card_state),
                self.desired_retention,
                max(0, int(round(days_elapsed)))
            )
        except Exception as e:
            logger.error(f"[FSRS ENGINE] next_states error: {e}")
            raise EngineCalculationError(f"FSRS engine failed: {e}") from e

    def _bounded_interval(self, raw_interval: float, target_state: str) -> float:
        """Graduated cards wait at least a day; learning steps at least the floor."""
        interval = min(self.max_interval, raw_interval)
        if target_state == CardStateEnum.REVIEW:
            return max(1.0, interval)
        return max(self.learning_floor_days, interval)

    @staticmethod
    def validate_rating(rating) -> int:
        if isinstance(rating, bool) or rating not in Rating.ALL:
            raise InvalidRatingError(rating)
        return int(rating)

    def schedule(self, card_state: CardStateDTO, rating: int, now: datetime.datetime) -> CardStateDTO:
        """
        One FSM step. Returns the next scheduling parameters and FSM position.

        ``reps`` and ``lapses`` are copied through unchanged; counting reviews is
        the orchestrator's job.
        """
        rating = self.validate_rating(rating)
        now = to_naive_utc(now)
        days_elapsed = max(0.0, days_between(card_state.last_review, now))

        next_states = self._next_states(card_state, days_elapsed)
        rating_map = {
            Rating.Again: next_states.again,
            Rating.Hard: next_states.hard,
            Rating.Good: next_states.good,
            Rating.Easy: next_states.easy
        }
        selected = rating_map[rating]
        target_state = next_card_state(card_state.state, rating)
        interval = self._bounded_interval(float(selected.interval), target_state)

        return CardStateDTO(
            stability=float(selected.memory.stability),
            difficulty=float(selected.memory.difficulty),
            elapsed_days=days_elapsed,
            scheduled_days=interval,
            reps=card_state.reps,
            lapses=card_state.lapses,
            state=target_state,
            last_review=now,
            due=now + datetime.timedelta(days=interval)
        )

    def retrievability(self, card_state: CardStateDTO, now: datetime.datetime) -> float:
        """Probability of recall at ``now``; never increases as time passes."""
        # A NEW card has 0 retrievability until first review
        if card_state.state == CardStateEnum.NEW:
            return 0.0

        if card_state.stability <= 0:
            return 1.0 if card_state.reps > 0 else 0.0

        if not card_state.last_review:
            return 1.0

        elapsed = days_between(card_state.last_review, now)
        if elapsed <= 0:
            return 1.0

        try:
            return DECAY_BASE ** (elapsed / card_state.stability)
        except (ZeroDivisionError, OverflowError):
            return 0.0

    def preview_intervals(self, card_state: CardStateDTO, now: datetime.datetime) -> IntervalPreviewDTO:
        """Projected interval for each rating, nothing committed. again <= hard <= good <= easy."""
        intervals = []
        floor = 0.0
        for rating in Rating.ALL:
            interval = self.schedule(card_state, rating, now).scheduled_days
            floor = max(floor, interval)
            intervals.append(floor)
        return IntervalPreviewDTO(*intervals)


def format_interval(days: float) -> str:
    """Human-readable interval such as '10m', '3h', '4d', '2w', '5mo', '1.5y'."""
    days = float(days)
    if days < 1:
        minutes = round(days * 24 * 60)
        if minutes < 60:
            return f"{minutes}m"
        return f"{round(minutes / 60)}h"
    if days < 7:
        return f"{round(days)}d"
    if days < 30:
        return f"{round(days / 7)}w"
    if days < 365:
        return f"{round(days / 30)}mo"
    return f"{round(days / 365, 1)}y"
