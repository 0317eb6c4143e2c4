"""
Auth API blueprint.

Routes:
- POST /api/v1/auth/signup
- POST /api/v1/auth/login
- GET  /api/v1/auth/logout
- GET  /api/v1/auth/me
"""

from flask import Blueprint, g, jsonify, request

from storefront.auth import get_services, login_required
from storefront.models import serialize_user

auth_bp = Blueprint('auth', __name__)


def _payload() -> dict:
    if request.is_json:
        return request.get_json(silent=True) or {}
    return request.form.to_dict()


def _send_token(user, token, status_code):
    """Token goes both in the body and in the HTTP-only cookie."""
    response = jsonify({
        'success': True,
        'token': token,
        'user': serialize_user(user)
    })
    response.set_cookie(**get_services().auth.session_cookie(token))
    return response, status_code


@auth_bp.route('/signup', methods=['POST'])
def signup():
    payload = _payload()
    user, token = get_services().auth.signup(
        payload.get('username'), payload.get('email'), payload.get('password'))
    return _send_token(user, token, 201)


@auth_bp.route('/login', methods=['POST'])
def login():
    payload = _payload()
    user, token = get_services().auth.login(payload.get('email'), payload.get('password'))
    return _send_token(user, token, 200)


@auth_bp.route('/logout', methods=['GET'])
def logout():
    response = jsonify({'success': True, 'message': 'Logged out successfully'})
    response.set_cookie(**get_services().auth.logout_cookie())
    return response


@auth_bp.route('/me', methods=['GET'])
@login_required
def me():
    return jsonify({'success': True, 'user': serialize_user(g.current_user)})
