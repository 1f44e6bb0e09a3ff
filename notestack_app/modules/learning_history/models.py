from datetime import datetime, timezone
from notestack_app.core.extensions import db


class ReviewLog(db.Model):
    """
    Append-only record of one review.
    Holds the card's pre-review snapshot so a review can be undone.
    """
    __tablename__ = 'review_logs'

    log_id = db.Column(db.Integer, primary_key=True)

    card_state_id = db.Column(
        db.Integer,
        db.ForeignKey('card_states.card_state_id', ondelete='CASCADE'),
        nullable=False,
        index=True,
    )
    user_id = db.Column(db.Integer, db.ForeignKey('users.user_id'), nullable=False, index=True)

    rating = db.Column(db.Integer, nullable=False)  # 1-4 (Again, Hard, Good, Easy)
    reviewed_at = db.Column(db.DateTime, nullable=False, index=True)

    # Pre-review snapshot
    state = db.Column(db.String(20), nullable=False)
    scheduled_days = db.Column(db.Float, nullable=False, default=0.0)
    elapsed_days = db.Column(db.Float, nullable=False, default=0.0)
    stability = db.Column(db.Float, nullable=False, default=0.0)
    difficulty = db.Column(db.Float, nullable=False, default=0.0)

    created_at = db.Column(db.DateTime, default=lambda: datetime.now(timezone.utc).replace(tzinfo=None))

    __table_args__ = (
        db.Index('ix_review_logs_user_reviewed_at', 'user_id', 'reviewed_at'),
        db.Index('ix_review_logs_card_reviewed_at', 'card_state_id', 'reviewed_at'),
        db.CheckConstraint('rating BETWEEN 1 AND 4', name='ck_review_logs_rating'),
    )

    def to_dict(self):
        return {
            'log_id': self.log_id,
            'card_state_id': self.card_state_id,
            'rating': self.rating,
            'reviewed_at': self.reviewed_at.isoformat() if self.reviewed_at else None,
            'state': self.state,
            'scheduled_days': self.scheduled_days,
            'elapsed_days': self.elapsed_days,
            'stability': self.stability,
            'difficulty': self.difficulty,
        }
