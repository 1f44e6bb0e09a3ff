from datetime import datetime
from typing import Any, Dict, Optional
from .services.stats_aggregator import StatsAggregator


def get_stats(user_id: int, now: Optional[datetime] = None) -> Dict[str, Any]:
    """Public API: today's review summary for a user."""
    return StatsAggregator.get_stats(user_id, now)


def get_difficulty_distribution(user_id: int) -> Dict[str, int]:
    return StatsAggregator.get_difficulty_distribution(user_id)
