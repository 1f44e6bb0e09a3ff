import pytest

from notestack_app import db
from notestack_app.core.error_handlers import AuthorizationError
from notestack_app.core.signals import card_states_deleted
from notestack_app.modules.fsrs.exceptions import (
    ContentUnitNotFoundError,
    DirectionDisabledError,
    InvalidDirectionError,
)
from notestack_app.modules.fsrs.interface import FSRSInterface
from notestack_app.modules.fsrs.models import CardState
from notestack_app.modules.fsrs.services.scheduler_service import SchedulerService
from notestack_app.modules.learning_history.models import ReviewLog
from notestack_app.modules.stats import interface as stats_interface


def test_create_or_get_starts_new(user, make_unit, now):
    unit = make_unit(user)

    card_state = FSRSInterface.create_or_get_card_state(user.user_id, unit.block_id, 'forward', now=now)

    assert card_state.state == 'new'
    assert card_state.stability == 0.0
    assert card_state.reps == 0
    assert card_state.due == now
    assert card_state.last_review is None
    assert card_state.suspended is False


def test_create_or_get_is_idempotent(user, make_unit, now):
    unit = make_unit(user)
    first = FSRSInterface.create_or_get_card_state(user.user_id, unit.block_id, 'reverse', now=now)
    second = FSRSInterface.create_or_get_card_state(user.user_id, unit.block_id, 'reverse', now=now)

    assert first.card_state_id == second.card_state_id
    assert CardState.query.count() == 1


def test_directions_are_independent(user, make_unit, now):
    unit = make_unit(user)
    forward = FSRSInterface.create_or_get_card_state(user.user_id, unit.block_id, 'forward', now=now)
    reverse = FSRSInterface.create_or_get_card_state(user.user_id, unit.block_id, 'reverse', now=now)

    assert forward.card_state_id != reverse.card_state_id


def test_create_for_foreign_block(other_user, user, make_unit):
    unit = make_unit(user)
    with pytest.raises(AuthorizationError):
        FSRSInterface.create_or_get_card_state(other_user.user_id, unit.block_id, 'forward')


def test_create_for_missing_block(user):
    with pytest.raises(ContentUnitNotFoundError):
        FSRSInterface.create_or_get_card_state(user.user_id, 404, 'forward')


def test_invalid_direction(user, make_unit):
    unit = make_unit(user)
    with pytest.raises(InvalidDirectionError):
        FSRSInterface.create_or_get_card_state(user.user_id, unit.block_id, 'sideways')


@pytest.mark.parametrize('unit_fields,direction', [
    ({'card_type': 'cloze'}, 'reverse'),
    ({'card_direction': 'forward'}, 'reverse'),
    ({'card_direction': 'disabled'}, 'forward'),
    ({'is_card': False}, 'forward'),
])
def test_disabled_direction_is_rejected(user, make_unit, now, unit_fields, direction):
    unit = make_unit(user, **unit_fields)

    with pytest.raises(DirectionDisabledError):
        FSRSInterface.create_or_get_card_state(user.user_id, unit.block_id, direction, now=now)

    assert CardState.query.count() == 0
    assert stats_interface.get_stats(user.user_id, now=now)['total_cards'] == 0


def test_cloze_forward_is_allowed(user, make_unit, now):
    unit = make_unit(user, card_type='cloze')
    card_state = FSRSInterface.create_or_get_card_state(user.user_id, unit.block_id, 'forward', now=now)
    assert card_state.direction == 'forward'


def test_ensure_checks_every_direction_before_creating(user, make_unit, now):
    unit = make_unit(user)

    with pytest.raises(InvalidDirectionError):
        FSRSInterface.ensure_card_states(user.user_id, unit.block_id, ['forward', 'sideways'], now=now)
    db.session.commit()

    assert CardState.query.count() == 0


def test_ensure_rejects_disabled_direction(user, make_unit, now):
    unit = make_unit(user, card_type='cloze')

    with pytest.raises(DirectionDisabledError):
        FSRSInterface.ensure_card_states(user.user_id, unit.block_id, ['forward', 'reverse'], now=now)
    db.session.commit()

    assert CardState.query.count() == 0


def test_ensure_card_states(user, make_unit, now):
    unit = make_unit(user)
    existing = FSRSInterface.create_or_get_card_state(user.user_id, unit.block_id, 'forward', now=now)

    ids = FSRSInterface.ensure_card_states(user.user_id, unit.block_id, ['forward', 'reverse'], now=now)

    assert ids[0] == existing.card_state_id
    assert len(set(ids)) == 2
    assert FSRSInterface.ensure_card_states(user.user_id, unit.block_id, ['forward', 'reverse'], now=now) == ids


def test_initialize_document(user, other_user, make_unit, now):
    make_unit(user, document_id=3, position=0)
    make_unit(user, document_id=3, card_type='cloze', position=1)
    make_unit(user, document_id=3, card_direction='reverse', position=2)
    make_unit(user, document_id=3, card_direction='disabled', position=3)
    make_unit(user, document_id=3, is_card=False, position=4)
    make_unit(other_user, document_id=3, position=5)
    make_unit(user, document_id=4, position=0)

    result = FSRSInterface.initialize_card_states_for_document(user.user_id, 3, now=now)

    assert result == {'created_count': 4}
    assert CardState.query.filter_by(user_id=user.user_id).count() == 4
    assert FSRSInterface.initialize_card_states_for_document(user.user_id, 3, now=now) == {'created_count': 0}


def test_delete_cascades_to_logs(user, make_unit, now):
    unit = make_unit(user)
    keep_unit = make_unit(user, position=1)
    ids = FSRSInterface.ensure_card_states(user.user_id, unit.block_id, ['forward', 'reverse'], now=now)
    kept = FSRSInterface.create_or_get_card_state(user.user_id, keep_unit.block_id, 'forward', now=now)
    for card_state_id in ids + [kept.card_state_id]:
        SchedulerService.submit_review(user.user_id, card_state_id, 3, now=now)

    received = []

    def receiver(sender, **kwargs):
        received.append(kwargs)

    with card_states_deleted.connected_to(receiver):
        deleted = FSRSInterface.delete_card_states_for_content_unit(user.user_id, unit.block_id)

    db.session.expire_all()
    assert deleted == 2
    assert CardState.query.filter(CardState.card_state_id.in_(ids)).count() == 0
    assert ReviewLog.query.filter(ReviewLog.card_state_id.in_(ids)).count() == 0
    assert ReviewLog.query.filter_by(card_state_id=kept.card_state_id).count() == 1
    assert received == [{'user_id': user.user_id, 'block_id': unit.block_id, 'deleted_count': 2}]


def test_delete_for_foreign_block(user, other_user, make_unit, now):
    unit = make_unit(user)
    FSRSInterface.create_or_get_card_state(user.user_id, unit.block_id, 'forward', now=now)

    with pytest.raises(AuthorizationError):
        FSRSInterface.delete_card_states_for_content_unit(other_user.user_id, unit.block_id)
    assert CardState.query.count() == 1
