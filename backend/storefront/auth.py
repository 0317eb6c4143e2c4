"""
访问控制 - 受保护路由的 login_required 装饰器
"""

from functools import wraps
from typing import Optional

from flask import current_app, g, request


def get_services():
    """Services wired up by create_app."""
    return current_app.extensions['storefront']


def extract_token() -> Optional[str]:
    """Bearer header first, then the session cookie."""
    header = request.headers.get('Authorization', '')
    if header.startswith('Bearer'):
        parts = header.split(' ', 1)
        return parts[1].strip() if len(parts) > 1 else ''
    auth = get_services().auth
    return request.cookies.get(auth.settings.cookie_name)


def login_required(view):
    """Reject the request with 401 unless it carries a valid token.

    The resolved user document is available as ``g.current_user``.
    """
    @wraps(view)
    def wrapper(*args, **kwargs):
        g.current_user = get_services().auth.verify_token(extract_token())
        return view(*args, **kwargs)
    return wrapper
