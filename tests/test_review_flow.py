import datetime

import pytest
from sqlalchemy.exc import OperationalError

from notestack_app import db
from notestack_app.core.error_handlers import AuthorizationError, StorageError
from notestack_app.core.signals import card_reviewed
from notestack_app.modules.fsrs.exceptions import (
    CardStateNotFoundError,
    InvalidRatingError,
)
from notestack_app.modules.fsrs.models import CardState
from notestack_app.modules.fsrs.services import scheduler_service
from notestack_app.modules.fsrs.services.card_state_service import CardStateService
from notestack_app.modules.fsrs.services.scheduler_service import SchedulerService
from notestack_app.modules.learning_history.models import ReviewLog


@pytest.fixture
def new_card(user, make_unit, now):
    unit = make_unit(user)
    return CardStateService.create_or_get(user.user_id, unit.block_id, 'forward', now=now)


@pytest.fixture
def review_card(user, make_unit, make_card_state, now):
    unit = make_unit(user)
    return make_card_state(
        user, unit,
        state='review',
        stability=10.0,
        difficulty=5.0,
        reps=4,
        lapses=1,
        last_review=now - datetime.timedelta(days=10),
        due=now,
        scheduled_days=10.0,
    )


def _logs(card_state_id):
    return ReviewLog.query.filter_by(card_state_id=card_state_id).all()


@pytest.mark.parametrize('rating,expected_state', [
    (1, 'learning'),
    (2, 'learning'),
    (3, 'learning'),
    (4, 'review'),
])
def test_first_review_of_new_card(user, new_card, now, rating, expected_state):
    result = SchedulerService.submit_review(user.user_id, new_card.card_state_id, rating, now=now)

    card_state = db.session.get(CardState, new_card.card_state_id)
    assert card_state.reps == 1
    assert card_state.state == expected_state
    assert card_state.lapses == 0
    assert card_state.last_review == now
    assert result.state == expected_state
    assert result.previous_state == 'new'
    assert result.reps == 1


def test_each_review_appends_one_log_with_pre_review_state(user, new_card, now):
    first = SchedulerService.submit_review(user.user_id, new_card.card_state_id, 3, now=now)
    second = SchedulerService.submit_review(
        user.user_id, new_card.card_state_id, 3, now=now + datetime.timedelta(days=2)
    )

    logs = sorted(_logs(new_card.card_state_id), key=lambda log: log.log_id)
    assert [log.log_id for log in logs] == [first.review_log_id, second.review_log_id]
    assert logs[0].state == 'new'
    assert logs[0].stability == 0.0
    assert logs[1].state == first.state
    assert logs[1].stability == pytest.approx(first.stability)
    assert logs[1].rating == 3
    assert logs[1].reviewed_at == now + datetime.timedelta(days=2)


def test_reps_increase_by_one_per_review(user, review_card, now):
    for offset in range(3):
        SchedulerService.submit_review(
            user.user_id, review_card.card_state_id, 3, now=now + datetime.timedelta(days=offset)
        )
    assert db.session.get(CardState, review_card.card_state_id).reps == 7


def test_again_on_review_card_is_a_lapse(user, review_card, now):
    result = SchedulerService.submit_review(user.user_id, review_card.card_state_id, 1, now=now)

    assert result.state == 'relearning'
    assert result.lapses == 2

    # Forgetting again while relearning is not another lapse
    SchedulerService.submit_review(
        user.user_id, review_card.card_state_id, 1, now=now + datetime.timedelta(minutes=10)
    )
    card_state = db.session.get(CardState, review_card.card_state_id)
    assert card_state.state == 'relearning'
    assert card_state.lapses == 2


@pytest.mark.parametrize('rating', [2, 3, 4])
def test_passing_review_card_keeps_lapses(user, review_card, now, rating):
    result = SchedulerService.submit_review(user.user_id, review_card.card_state_id, rating, now=now)

    assert result.state == 'review'
    assert result.lapses == 1
    assert result.scheduled_days >= 1.0


def test_relearning_graduates_on_good(user, review_card, now):
    SchedulerService.submit_review(user.user_id, review_card.card_state_id, 1, now=now)
    result = SchedulerService.submit_review(
        user.user_id, review_card.card_state_id, 3, now=now + datetime.timedelta(minutes=10)
    )
    assert result.state == 'review'


def test_review_bumps_version(user, new_card, now):
    version = new_card.version
    SchedulerService.submit_review(user.user_id, new_card.card_state_id, 3, now=now)
    assert db.session.get(CardState, new_card.card_state_id).version == version + 1


@pytest.mark.parametrize('rating', [0, 5, None, '3'])
def test_invalid_rating_changes_nothing(user, new_card, now, rating):
    with pytest.raises(InvalidRatingError):
        SchedulerService.submit_review(user.user_id, new_card.card_state_id, rating, now=now)

    assert db.session.get(CardState, new_card.card_state_id).reps == 0
    assert _logs(new_card.card_state_id) == []


def test_review_of_foreign_card_is_rejected(other_user, new_card, now):
    with pytest.raises(AuthorizationError) as exc_info:
        SchedulerService.submit_review(other_user.user_id, new_card.card_state_id, 3, now=now)
    assert exc_info.value.message == 'Not authorized to review this card'
    assert _logs(new_card.card_state_id) == []


def test_review_of_missing_card(user, now):
    with pytest.raises(CardStateNotFoundError) as exc_info:
        SchedulerService.submit_review(user.user_id, 9999, 3, now=now)
    assert exc_info.value.message == 'Card state not found'


def test_failed_log_write_rolls_back_card_state(user, new_card, now, monkeypatch):
    def broken_record_review(*args, **kwargs):
        raise OperationalError('INSERT INTO review_logs', {}, Exception('disk I/O error'))

    monkeypatch.setattr(
        scheduler_service.LearningHistoryInterface, 'record_review', staticmethod(broken_record_review)
    )

    with pytest.raises(StorageError):
        SchedulerService.submit_review(user.user_id, new_card.card_state_id, 3, now=now)

    card_state = db.session.get(CardState, new_card.card_state_id)
    assert card_state.state == 'new'
    assert card_state.reps == 0
    assert card_state.stability == 0.0
    assert _logs(new_card.card_state_id) == []


def test_review_emits_signal(user, new_card, now):
    received = []

    def receiver(sender, **kwargs):
        received.append(kwargs)

    with card_reviewed.connected_to(receiver):
        result = SchedulerService.submit_review(user.user_id, new_card.card_state_id, 4, now=now)

    assert received == [{
        'user_id': user.user_id,
        'card_state_id': new_card.card_state_id,
        'rating': 4,
        'review_log_id': result.review_log_id,
        'previous_state': 'new',
        'new_state': 'review',
    }]


def test_preview_intervals_are_formatted(user, review_card, now):
    previews = SchedulerService.get_preview_intervals(user.user_id, review_card.card_state_id, now=now)

    assert set(previews) == {'again', 'hard', 'good', 'easy'}
    days = [previews[name]['days'] for name in ('again', 'hard', 'good', 'easy')]
    assert days == sorted(days)
    assert all(isinstance(previews[name]['interval'], str) for name in previews)


def test_preview_of_foreign_card_is_rejected(other_user, review_card, now):
    with pytest.raises(AuthorizationError):
        SchedulerService.get_preview_intervals(other_user.user_id, review_card.card_state_id, now=now)
