from flask import jsonify
from flask_login import login_required, current_user
from notestack_app.core.error_handlers import success_response
from .. import stats_bp
from .. import interface as stats_interface


@stats_bp.route('/summary', methods=['GET'])
@login_required
def get_summary():
    return jsonify(success_response(stats_interface.get_stats(current_user.user_id))), 200


@stats_bp.route('/difficulty', methods=['GET'])
@login_required
def get_difficulty_distribution():
    return jsonify(success_response(stats_interface.get_difficulty_distribution(current_user.user_id))), 200
