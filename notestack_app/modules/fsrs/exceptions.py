from notestack_app.core.error_handlers import (
    ConflictError,
    NoteStackError,
    NotFoundError,
    ValidationError,
)


class CardStateNotFoundError(NotFoundError):
    """Raised when a CardState id does not exist."""

    def __init__(self, message: str = 'Card state not found'):
        super().__init__(message, resource='card_state')


class ContentUnitNotFoundError(NotFoundError):
    """Raised when a content unit (block) id does not exist."""

    def __init__(self, message: str = 'Block not found'):
        super().__init__(message, resource='block')


class InvalidRatingError(ValidationError):
    """Raised when the provided rating is not valid (must be 1-4)."""

    def __init__(self, rating):
        super().__init__(f"Rating must be 1-4, got {rating}")


class InvalidDirectionError(ValidationError):
    def __init__(self, direction):
        super().__init__(f"Direction must be 'forward' or 'reverse', got {direction}")


class DirectionDisabledError(ValidationError):
    """The content unit does not study this direction (cloze reverse, disabled card)."""

    def __init__(self, direction):
        super().__init__(f"Direction '{direction}' is not enabled for this block")


class InvalidBucketError(ValidationError):
    def __init__(self, label):
        super().__init__(f"Unknown difficulty bucket: {label}")


class InvalidSnapshotError(ValidationError):
    """Raised when an undo snapshot is missing fields or carries bad values."""


class StaleReviewLogError(ConflictError):
    """A newer review landed after the undo snapshot was taken."""

    def __init__(self, message: str = 'Review log does not match latest review'):
        super().__init__(message, reason='stale_log')


class ReviewLogMismatchError(ConflictError):
    """The review log given to undo belongs to another card."""

    def __init__(self, message: str = 'Review log does not match card state'):
        super().__init__(message, reason='mismatch')


class ConcurrentModificationError(ConflictError):
    """Another transaction updated the card first."""

    def __init__(self, message: str = 'Card state was modified by another request'):
        super().__init__(message, reason='concurrent_update')


class EngineCalculationError(NoteStackError):
    """Raised when the FSRS engine fails to calculate next states."""

    def __init__(self, message: str):
        super().__init__(message, code='ENGINE_ERROR', status_code=500)
