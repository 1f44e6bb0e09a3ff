from datetime import datetime, timezone
from notestack_app.core.extensions import db


class ContentUnit(db.Model):
    """
    A flashcard-bearing block of a note document.
    Owned by the editor; the review engine only reads it.
    """
    __tablename__ = 'blocks'

    CARD_TYPE_BASIC = 'basic'
    CARD_TYPE_CLOZE = 'cloze'

    DIRECTION_FORWARD = 'forward'
    DIRECTION_REVERSE = 'reverse'
    DIRECTION_BIDIRECTIONAL = 'bidirectional'
    DIRECTION_DISABLED = 'disabled'

    block_id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey('users.user_id'), nullable=False, index=True)
    document_id = db.Column(db.Integer, nullable=True, index=True)

    front_text = db.Column(db.Text, nullable=False, default='')
    back_text = db.Column(db.Text, nullable=False, default='')
    card_type = db.Column(db.String(20), nullable=False, default=CARD_TYPE_BASIC)
    card_direction = db.Column(db.String(20), nullable=False, default=DIRECTION_BIDIRECTIONAL)
    is_card = db.Column(db.Boolean, nullable=False, default=True)
    position = db.Column(db.Integer, nullable=False, default=0)

    created_at = db.Column(db.DateTime, default=lambda: datetime.now(timezone.utc).replace(tzinfo=None))

    __table_args__ = (
        db.Index('ix_blocks_document_position', 'document_id', 'position'),
    )

    @property
    def enabled_directions(self) -> list:
        """Directions that may be scheduled for this unit."""
        if not self.is_card or self.card_direction == self.DIRECTION_DISABLED:
            return []
        if self.card_type == self.CARD_TYPE_CLOZE:
            return [self.DIRECTION_FORWARD]
        if self.card_direction == self.DIRECTION_BIDIRECTIONAL:
            return [self.DIRECTION_FORWARD, self.DIRECTION_REVERSE]
        return [self.card_direction]

    @property
    def disabled_directions(self) -> list:
        enabled = self.enabled_directions
        return [d for d in (self.DIRECTION_FORWARD, self.DIRECTION_REVERSE) if d not in enabled]

    def to_dict(self):
        return {
            'block_id': self.block_id,
            'document_id': self.document_id,
            'front_text': self.front_text,
            'back_text': self.back_text,
            'card_type': self.card_type,
            'card_direction': self.card_direction,
            'disabled_directions': self.disabled_directions,
        }
