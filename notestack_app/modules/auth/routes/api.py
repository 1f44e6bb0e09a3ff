# File: notestack_app/modules/auth/routes/api.py
import logging
from flask import jsonify
from flask_login import login_user, logout_user, login_required, current_user
from notestack_app.core.error_handlers import AuthorizationError, ValidationError, success_response
from .. import auth_bp as blueprint
from ..forms import LoginForm
from ..services.auth_service import AuthService

logger = logging.getLogger(__name__)


@blueprint.route('/login', methods=['POST'])
def login():
    """
    Input: {"username": str, "password": str, "remember_me": bool}
    """
    # JSON clients authenticate by session cookie; no form token here
    form = LoginForm(meta={'csrf': False})
    if not form.validate_on_submit():
        raise ValidationError('Invalid login payload', errors=form.errors)

    user = AuthService.authenticate_user(form.username.data, form.password.data)
    if user is None:
        logger.info(f"[AUTH] Failed login for {form.username.data}")
        raise AuthorizationError('Invalid username or password')

    login_user(user, remember=form.remember_me.data)
    return jsonify(success_response({'user_id': user.user_id, 'username': user.username})), 200


@blueprint.route('/logout', methods=['POST'])
@login_required
def logout():
    logout_user()
    return jsonify(success_response(message='Logged out')), 200


@blueprint.route('/me', methods=['GET'])
@login_required
def me():
    return jsonify(success_response({'user_id': current_user.user_id, 'username': current_user.username})), 200
