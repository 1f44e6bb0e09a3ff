from typing import Any, Dict
from flask import request, jsonify
from flask_login import login_required, current_user
from marshmallow import Schema
from notestack_app.core.error_handlers import ValidationError, success_response
from .. import fsrs_bp
from ..exceptions import InvalidRatingError, InvalidSnapshotError
from ..interface import FSRSInterface
from ..schemas import (
    BulkSuspendSchema,
    CardStateRequestSchema,
    EnsureCardStatesSchema,
    QueueQuerySchema,
    ReviewRequestSchema,
    UndoRequestSchema,
)


def _json_body() -> Dict[str, Any]:
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        raise ValidationError('No input data provided')
    return data


def _load(schema: Schema, data: Dict[str, Any]) -> Dict[str, Any]:
    errors = schema.validate(data)
    if errors:
        raise ValidationError('Invalid request data', errors)
    return schema.load(data)


def _query_args() -> Dict[str, Any]:
    # Blank parameters mean "use the default"
    args = {key: value for key, value in request.args.items() if value != ''}
    return _load(QueueQuerySchema(), args)


@fsrs_bp.route('/states', methods=['POST'])
@login_required
def create_or_get_card_state():
    """
    Input: {"block_id": int, "direction": "forward" | "reverse"}
    """
    data = _load(CardStateRequestSchema(), _json_body())
    card_state = FSRSInterface.create_or_get_card_state(current_user.user_id, data['block_id'], data['direction'])
    return jsonify(success_response(card_state.to_dict())), 200


@fsrs_bp.route('/states/ensure', methods=['POST'])
@login_required
def ensure_card_states():
    """
    Input: {"block_id": int, "directions": ["forward", "reverse"]}
    """
    data = _load(EnsureCardStatesSchema(), _json_body())
    ids = FSRSInterface.ensure_card_states(current_user.user_id, data['block_id'], data['directions'])
    return jsonify(success_response({'card_state_ids': ids})), 200


@fsrs_bp.route('/states/<int:card_state_id>/review', methods=['POST'])
@login_required
def submit_review(card_state_id):
    """
    Input: {"rating": int (1-4)}
    """
    data = _json_body()
    schema = ReviewRequestSchema()
    if schema.validate(data):
        raise InvalidRatingError(data.get('rating'))
    rating = schema.load(data)['rating']
    result = FSRSInterface.submit_review(current_user.user_id, card_state_id, rating)
    return jsonify(success_response(result.to_dict(), 'Review processed successfully')), 200


@fsrs_bp.route('/states/<int:card_state_id>/undo', methods=['POST'])
@login_required
def undo_review(card_state_id):
    """
    Input: {"previous_state": {...nine fields...}, "review_log_id": int (optional)}
    """
    data = _json_body()
    schema = UndoRequestSchema()
    errors = schema.validate(data)
    if 'previous_state' in errors:
        raise InvalidSnapshotError('Invalid snapshot', errors['previous_state'])
    if errors:
        raise ValidationError('Invalid request data', errors)
    data = schema.load(data)
    result = FSRSInterface.undo_review(
        current_user.user_id,
        card_state_id,
        data['previous_state'],
        data['review_log_id'],
    )
    return jsonify(success_response(result, 'Review undone')), 200


@fsrs_bp.route('/states/<int:card_state_id>/preview', methods=['GET'])
@login_required
def preview_intervals(card_state_id):
    previews = FSRSInterface.preview_intervals(current_user.user_id, card_state_id)
    return jsonify(success_response({'card_state_id': card_state_id, 'previews': previews})), 200


@fsrs_bp.route('/due', methods=['GET'])
@login_required
def get_due_cards():
    cards = FSRSInterface.get_due_cards(current_user.user_id, _query_args()['limit'])
    return jsonify(success_response(cards)), 200


@fsrs_bp.route('/new', methods=['GET'])
@login_required
def get_new_cards():
    cards = FSRSInterface.get_new_cards(current_user.user_id, _query_args()['limit'])
    return jsonify(success_response(cards)), 200


@fsrs_bp.route('/session', methods=['GET'])
@login_required
def get_learn_session():
    args = _query_args()
    session = FSRSInterface.get_learn_session(
        current_user.user_id,
        new_limit=args['new_limit'],
        review_limit=args['review_limit'],
    )
    return jsonify(success_response(session)), 200


@fsrs_bp.route('/documents/<int:document_id>/session', methods=['GET'])
@login_required
def get_document_learn_session(document_id):
    args = _query_args()
    session = FSRSInterface.get_document_learn_session(
        current_user.user_id,
        document_id,
        new_limit=args['new_limit'],
        review_limit=args['review_limit'],
    )
    return jsonify(success_response(session)), 200


@fsrs_bp.route('/documents/<int:document_id>/initialize', methods=['POST'])
@login_required
def initialize_document(document_id):
    result = FSRSInterface.initialize_card_states_for_document(current_user.user_id, document_id)
    return jsonify(success_response(result)), 200


@fsrs_bp.route('/buckets/<label>', methods=['GET'])
@login_required
def list_cards_by_difficulty_bucket(label):
    result = FSRSInterface.list_cards_by_difficulty_bucket(current_user.user_id, label, _query_args()['limit'])
    return jsonify(success_response(result)), 200


@fsrs_bp.route('/leeches', methods=['GET'])
@login_required
def list_leech_cards():
    return jsonify(success_response(FSRSInterface.list_leech_cards(current_user.user_id))), 200


@fsrs_bp.route('/leeches/stats', methods=['GET'])
@login_required
def get_leech_stats():
    return jsonify(success_response(FSRSInterface.get_leech_stats(current_user.user_id))), 200


@fsrs_bp.route('/suspend', methods=['POST'])
@login_required
def bulk_suspend_cards():
    """
    Input: {"card_state_ids": [int], "suspend": bool}
    """
    data = _load(BulkSuspendSchema(), _json_body())
    result = FSRSInterface.bulk_suspend_cards(current_user.user_id, data['card_state_ids'], data['suspend'])
    return jsonify(success_response(result.to_dict())), 200


@fsrs_bp.route('/blocks/<int:block_id>/states', methods=['DELETE'])
@login_required
def delete_card_states_for_block(block_id):
    deleted = FSRSInterface.delete_card_states_for_content_unit(current_user.user_id, block_id)
    return jsonify(success_response({'deleted_count': deleted})), 200
