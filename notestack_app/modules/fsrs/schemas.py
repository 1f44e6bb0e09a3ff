# File: notestack_app/modules/fsrs/schemas.py
import datetime
from dataclasses import dataclass, field, asdict
from typing import Optional, Dict, Any, List, Mapping
from marshmallow import EXCLUDE, Schema, fields, pre_load, validate
from notestack_app.utils.time_utils import parse_timestamp

# Standard FSRS Rating (1-4)
class Rating:
    Again = 1
    Hard = 2
    Good = 3
    Easy = 4

    ALL = (Again, Hard, Good, Easy)

# Card FSM positions, stored as strings
class CardStateEnum:
    NEW = 'new'
    LEARNING = 'learning'
    REVIEW = 'review'
    RELEARNING = 'relearning'

    ALL = (NEW, LEARNING, REVIEW, RELEARNING)

class Direction:
    FORWARD = 'forward'
    REVERSE = 'reverse'

    ALL = (FORWARD, REVERSE)

# Fields an undo restores verbatim
SNAPSHOT_FIELDS = (
    'state', 'stability', 'difficulty', 'due', 'last_review',
    'reps', 'lapses', 'scheduled_days', 'elapsed_days',
)

@dataclass
class CardStateDTO:
    """DTO bridging the CardState row and the FSRS engine."""
    stability: float = 0.0      # FSRS S (days)
    difficulty: float = 0.0     # FSRS D (1-10)
    elapsed_days: float = 0.0
    scheduled_days: float = 0.0 # Interval in days
    reps: int = 0
    lapses: int = 0
    state: str = CardStateEnum.NEW
    last_review: Optional[datetime.datetime] = None
    due: Optional[datetime.datetime] = None

    def to_snapshot(self) -> Dict[str, Any]:
        return {key: getattr(self, key) for key in SNAPSHOT_FIELDS}

@dataclass
class IntervalPreviewDTO:
    """Projected next interval (days) for each rating."""
    again: float
    hard: float
    good: float
    easy: float

    def as_dict(self) -> Dict[str, float]:
        return asdict(self)

@dataclass
class ReviewResultDTO:
    """Outcome of one committed review."""
    card_state_id: int
    review_log_id: int
    state: str
    previous_state: str
    due: datetime.datetime
    scheduled_days: float
    stability: float
    difficulty: float
    retrievability: float
    reps: int
    lapses: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            'card_state_id': self.card_state_id,
            'review_log_id': self.review_log_id,
            'state': self.state,
            'previous_state': self.previous_state,
            'next_due': self.due.isoformat() if self.due else None,
            'scheduled_days': self.scheduled_days,
            'stability': round(self.stability, 4),
            'difficulty': round(self.difficulty, 4),
            'retrievability': round(self.retrievability, 4),
            'reps': self.reps,
            'lapses': self.lapses,
        }

@dataclass
class BulkSuspendResult:
    """Partial-success outcome of a bulk (un)suspend."""
    suspend: bool
    succeeded: List[int] = field(default_factory=list)
    skipped: List[int] = field(default_factory=list)

    @property
    def count(self) -> int:
        return len(self.succeeded)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'suspend': self.suspend,
            'count': self.count,
            'succeeded': list(self.succeeded),
            'skipped': list(self.skipped),
        }

@dataclass(frozen=True)
class DifficultyBucket:
    label: str
    lower: float
    upper: float
    upper_inclusive: bool = False

    def contains(self, difficulty: float) -> bool:
        if difficulty is None or difficulty < self.lower:
            return False
        if self.upper_inclusive:
            return difficulty <= self.upper
        return difficulty < self.upper

# Continuous ranges: each label covers [lower, next lower); the top one is closed.
DIFFICULTY_BUCKETS = (
    DifficultyBucket('1-2', 1.0, 3.0),
    DifficultyBucket('3-4', 3.0, 5.0),
    DifficultyBucket('5-6', 5.0, 7.0),
    DifficultyBucket('7-8', 7.0, 9.0),
    DifficultyBucket('9-10', 9.0, 10.0, upper_inclusive=True),
)

DIFFICULTY_BUCKETS_BY_LABEL = {bucket.label: bucket for bucket in DIFFICULTY_BUCKETS}

# --- Request Schemas ---

class TimestampField(fields.Field):
    """ISO-8601 string, epoch milliseconds or datetime, loaded as naive UTC."""

    default_error_messages = {'invalid': 'Not a valid timestamp.'}

    def _deserialize(self, value, attr, data, **kwargs):
        try:
            return parse_timestamp(value)
        except (TypeError, ValueError):
            raise self.make_error('invalid')

class RequestSchema(Schema):
    """Base for API payloads; unknown keys are dropped."""

    class Meta:
        unknown = EXCLUDE

# camelCase spellings accepted alongside the stored names
_SNAPSHOT_CAMEL_KEYS = {
    'lastReview': 'last_review',
    'scheduledDays': 'scheduled_days',
    'elapsedDays': 'elapsed_days',
}

class PreviousStateSchema(RequestSchema):
    """Pre-review snapshot a client sends back to undo its last review."""
    state = fields.Str(required=True, validate=validate.OneOf(CardStateEnum.ALL))
    stability = fields.Float(required=True, allow_nan=False, validate=validate.Range(min=0))
    difficulty = fields.Float(required=True, allow_nan=False, validate=validate.Range(min=0))
    due = TimestampField(required=True)
    last_review = TimestampField(required=True, allow_none=True)
    reps = fields.Int(required=True, strict=True, validate=validate.Range(min=0))
    lapses = fields.Int(required=True, strict=True, validate=validate.Range(min=0))
    scheduled_days = fields.Float(required=True, allow_nan=False, validate=validate.Range(min=0))
    elapsed_days = fields.Float(required=True, allow_nan=False, validate=validate.Range(min=0))

    @pre_load
    def accept_camel_case(self, data, **kwargs):
        if not isinstance(data, Mapping):
            return data
        return {_SNAPSHOT_CAMEL_KEYS.get(key, key): value for key, value in data.items()}

class CardStateRequestSchema(RequestSchema):
    block_id = fields.Int(required=True, strict=True)
    direction = fields.Str(load_default=Direction.FORWARD)

class EnsureCardStatesSchema(RequestSchema):
    block_id = fields.Int(required=True, strict=True)
    directions = fields.List(fields.Str(), required=True, validate=validate.Length(min=1))

class ReviewRequestSchema(RequestSchema):
    rating = fields.Int(required=True, strict=True, validate=validate.OneOf(Rating.ALL))

class UndoRequestSchema(RequestSchema):
    previous_state = fields.Nested(PreviousStateSchema, required=True)
    review_log_id = fields.Int(strict=True, allow_none=True, load_default=None)

class BulkSuspendSchema(RequestSchema):
    # Ids are kept raw: unusable ones are reported as skipped, not rejected
    card_state_ids = fields.List(fields.Raw(allow_none=True), required=True)
    suspend = fields.Bool(load_default=True)

class QueueQuerySchema(RequestSchema):
    limit = fields.Int(load_default=None, validate=validate.Range(min=0))
    new_limit = fields.Int(load_default=None, validate=validate.Range(min=0))
    review_limit = fields.Int(load_default=None, validate=validate.Range(min=0))
