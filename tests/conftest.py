import datetime

import pytest

from notestack_app import create_app, db
from notestack_app.core.config import Config
from notestack_app.modules.auth.models import User
from notestack_app.modules.content.models import ContentUnit
from notestack_app.modules.fsrs.models import CardState
from notestack_app.modules.learning_history.models import ReviewLog


class TestConfig(Config):
    TESTING = True
    SQLALCHEMY_DATABASE_URI = 'sqlite://'
    SQLALCHEMY_ENGINE_OPTIONS = {
        'connect_args': {'check_same_thread': False}
    }
    WTF_CSRF_ENABLED = False
    LOG_DIR = None


NOW = datetime.datetime(2024, 5, 15, 12, 0, 0)


@pytest.fixture
def app():
    app = create_app(TestConfig)
    with app.app_context():
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def now():
    return NOW


@pytest.fixture
def make_user(app):
    def _make_user(username='learner'):
        user = User(username=username, email=f'{username}@example.com')
        user.set_password('password123')
        db.session.add(user)
        db.session.commit()
        return user
    return _make_user


@pytest.fixture
def user(make_user):
    return make_user()


@pytest.fixture
def other_user(make_user):
    return make_user('intruder')


@pytest.fixture
def make_unit(app):
    def _make_unit(owner, document_id=1, card_direction='bidirectional', card_type='basic', position=0, is_card=True):
        unit = ContentUnit(
            user_id=owner.user_id,
            document_id=document_id,
            front_text=f'Front {position}',
            back_text=f'Back {position}',
            card_type=card_type,
            card_direction=card_direction,
            is_card=is_card,
            position=position,
        )
        db.session.add(unit)
        db.session.commit()
        return unit
    return _make_unit


@pytest.fixture
def make_card_state(app):
    """Insert a CardState with explicit scheduling fields."""
    def _make_card_state(owner, unit, direction='forward', **fields):
        values = {
            'state': 'new',
            'stability': 0.0,
            'difficulty': 0.0,
            'due': NOW,
            'last_review': None,
            'reps': 0,
            'lapses': 0,
            'scheduled_days': 0.0,
            'elapsed_days': 0.0,
            'suspended': False,
        }
        values.update(fields)
        card_state = CardState(user_id=owner.user_id, block_id=unit.block_id, direction=direction, **values)
        db.session.add(card_state)
        db.session.commit()
        return card_state
    return _make_card_state


@pytest.fixture
def make_log(app):
    def _make_log(card_state, rating, reviewed_at, state='review'):
        log = ReviewLog(
            card_state_id=card_state.card_state_id,
            user_id=card_state.user_id,
            rating=rating,
            reviewed_at=reviewed_at,
            state=state,
        )
        db.session.add(log)
        db.session.commit()
        return log
    return _make_log
