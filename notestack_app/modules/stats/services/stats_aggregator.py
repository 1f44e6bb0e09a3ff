# File: notestack_app/modules/stats/services/stats_aggregator.py
"""
Stats Aggregator Service
========================
Aggregates review statistics from the fsrs and learning_history modules.

- DOES NOT import models from other modules
- ONLY calls module interfaces
"""

from datetime import datetime
from typing import Any, Dict, Optional
from notestack_app.modules.fsrs.interface import FSRSInterface
from notestack_app.modules.fsrs.schemas import CardStateEnum, DIFFICULTY_BUCKETS, Rating
from notestack_app.modules.learning_history.interface import LearningHistoryInterface
from notestack_app.utils.time_utils import to_naive_utc, utcnow
from ..logics.time_logic import TimeLogic


class StatsAggregator:

    @staticmethod
    def get_stats(user_id: int, now: Optional[datetime] = None) -> Dict[str, Any]:
        """
        Card counts by state plus today's review activity.

        "Today" is the UTC calendar day containing ``now``. ``retention_rate``
        is the percent of today's reviews rated Good or Easy, or None when
        nothing was reviewed today.
        """
        now = to_naive_utc(now) or utcnow()
        counts = FSRSInterface.get_card_state_counts(user_id, now)

        day_start, day_end = TimeLogic.get_day_bounds(now)
        today_logs = LearningHistoryInterface.get_user_logs_between(user_id, day_start, day_end)
        reviewed_today = len(today_logs)
        retention_rate = None
        if reviewed_today:
            correct = sum(1 for log in today_logs if log.rating >= Rating.Good)
            retention_rate = round(100 * correct / reviewed_today)

        return {
            'total_cards': sum(counts[state] for state in CardStateEnum.ALL),
            'new_cards': counts[CardStateEnum.NEW],
            'learning_cards': counts[CardStateEnum.LEARNING] + counts[CardStateEnum.RELEARNING],
            'review_cards': counts[CardStateEnum.REVIEW],
            'due_now': counts['due_now'],
            'reviewed_today': reviewed_today,
            'retention_rate': retention_rate,
        }

    @staticmethod
    def get_difficulty_distribution(user_id: int) -> Dict[str, int]:
        """Reviewed cards per difficulty bucket label."""
        distribution = {bucket.label: 0 for bucket in DIFFICULTY_BUCKETS}
        for difficulty in FSRSInterface.get_reviewed_difficulties(user_id):
            for bucket in DIFFICULTY_BUCKETS:
                if bucket.contains(difficulty):
                    distribution[bucket.label] += 1
                    break
        return distribution
