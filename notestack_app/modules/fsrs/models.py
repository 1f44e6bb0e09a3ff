from datetime import datetime, timezone
from notestack_app.core.extensions import db
from .schemas import CardStateEnum, SNAPSHOT_FIELDS


class CardState(db.Model):
    """
    Scheduling record of one direction of one content unit for its owner.
    Scheduling fields are written only from scheduler output or an undo snapshot.
    """
    __tablename__ = 'card_states'

    card_state_id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey('users.user_id'), nullable=False, index=True)
    block_id = db.Column(
        db.Integer,
        db.ForeignKey('blocks.block_id', ondelete='CASCADE'),
        nullable=False,
        index=True,
    )
    direction = db.Column(db.String(10), nullable=False)

    # FSRS State
    state = db.Column(db.String(20), nullable=False, default=CardStateEnum.NEW)
    stability = db.Column(db.Float, nullable=False, default=0.0)
    difficulty = db.Column(db.Float, nullable=False, default=0.0)

    # Scheduling
    due = db.Column(db.DateTime, nullable=False, index=True)
    last_review = db.Column(db.DateTime, nullable=True)
    scheduled_days = db.Column(db.Float, nullable=False, default=0.0)
    elapsed_days = db.Column(db.Float, nullable=False, default=0.0)

    # Metrics
    reps = db.Column(db.Integer, nullable=False, default=0)
    lapses = db.Column(db.Integer, nullable=False, default=0)

    suspended = db.Column(db.Boolean, nullable=False, default=False)

    # Optimistic concurrency counter, bumped on every UPDATE
    version = db.Column(db.Integer, nullable=False)

    created_at = db.Column(db.DateTime, default=lambda: datetime.now(timezone.utc).replace(tzinfo=None))

    __mapper_args__ = {'version_id_col': version}

    __table_args__ = (
        db.UniqueConstraint('block_id', 'direction', name='uq_card_state_block_direction'),
        db.Index('ix_card_states_user_due', 'user_id', 'due'),
        db.Index('ix_card_states_user_state', 'user_id', 'state'),
        db.CheckConstraint('reps >= 0', name='ck_card_states_reps'),
        db.CheckConstraint('lapses >= 0', name='ck_card_states_lapses'),
    )

    def snapshot(self) -> dict:
        """The nine fields an undo restores."""
        return {key: getattr(self, key) for key in SNAPSHOT_FIELDS}

    def to_dict(self):
        return {
            'card_state_id': self.card_state_id,
            'user_id': self.user_id,
            'block_id': self.block_id,
            'direction': self.direction,
            'state': self.state,
            'stability': self.stability,
            'difficulty': self.difficulty,
            'due': self.due.isoformat() if self.due else None,
            'last_review': self.last_review.isoformat() if self.last_review else None,
            'reps': self.reps,
            'lapses': self.lapses,
            'scheduled_days': self.scheduled_days,
            'elapsed_days': self.elapsed_days,
            'suspended': bool(self.suspended),
        }
