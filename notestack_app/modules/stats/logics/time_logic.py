from datetime import datetime, timedelta
from typing import Optional, Tuple
from notestack_app.utils.time_utils import to_naive_utc, utcnow

class TimeLogic:
    @staticmethod
    def get_day_bounds(now: Optional[datetime] = None) -> Tuple[datetime, datetime]:
        """
        [start, end) of the UTC calendar day containing ``now``.
        Pure logic, no DB or Flask context.
        """
        now = to_naive_utc(now) or utcnow()
        today_start = now.replace(hour=0, minute=0, second=0, microsecond=0)
        return today_start, today_start + timedelta(days=1)
