"""
认证服务 - 注册、登录、令牌签发与校验

Tokens are stateless JWTs signed by flask_jwt_extended, so issuing and decoding
them needs an application context. Logging out only replaces the client's
cookie; there is no server-side session to invalidate.
"""

import logging
from dataclasses import dataclass
from datetime import timedelta
from typing import Dict, Optional, Tuple

import bcrypt
from flask_jwt_extended import create_access_token, decode_token
from flask_jwt_extended.exceptions import JWTExtendedException
from jwt import PyJWTError

from ..errors import (
    DuplicateEmail,
    InvalidCredentials,
    InvalidToken,
    MissingCredentials,
    NoToken,
    StaleUser,
    ValidationError,
)
from ..models import SchemaError, UserSignup, schema_errors

logger = logging.getLogger(__name__)

# Cookie value written on logout; never a valid token
LOGGED_OUT = 'loggedout'


@dataclass
class AuthSettings:
    token_ttl: timedelta = timedelta(hours=1)
    bcrypt_rounds: int = 12
    cookie_name: str = 'jwt'
    cookie_secure: bool = False

    @classmethod
    def from_config(cls, config) -> 'AuthSettings':
        return cls(
            token_ttl=timedelta(seconds=int(config['JWT_EXPIRES_IN'])),
            bcrypt_rounds=int(config['BCRYPT_ROUNDS']),
            cookie_secure=config.get('FLASK_ENV') == 'production',
        )


class AuthService:
    """认证服务"""

    def __init__(self, users, settings: Optional[AuthSettings] = None):
        self.users = users
        self.settings = settings or AuthSettings()

    # ========== 密码 ==========

    def hash_password(self, password: str) -> str:
        salt = bcrypt.gensalt(rounds=self.settings.bcrypt_rounds)
        return bcrypt.hashpw(password.encode('utf-8'), salt).decode('utf-8')

    @staticmethod
    def password_matches(password: str, stored_hash: Optional[str]) -> bool:
        if not stored_hash:
            return False
        try:
            return bcrypt.checkpw(password.encode('utf-8'), stored_hash.encode('utf-8'))
        except ValueError:
            # Stored value is not a bcrypt hash
            return False

    # ========== 注册 / 登录 / 登出 ==========

    def signup(self, username: Optional[str], email: Optional[str],
               password: Optional[str]) -> Tuple[Dict, str]:
        payload = {'username': username, 'email': email, 'password': password}
        try:
            data = UserSignup.model_validate({k: v for k, v in payload.items() if v is not None})
        except SchemaError as e:
            raise ValidationError(schema_errors(e))

        if self.users.find_by_email(data.email):
            raise DuplicateEmail()

        user = self.users.insert(data.username, data.email, self.hash_password(data.password))
        logger.info('User signed up: %s', user['_id'])
        return user, self.issue_token(user)

    def login(self, email: Optional[str], password: Optional[str]) -> Tuple[Dict, str]:
        email = str(email or '').strip()
        if not email or not password:
            raise MissingCredentials()

        user = self.users.find_by_email(email)
        if not user or not self.password_matches(str(password), user.get('password')):
            raise InvalidCredentials()
        return user, self.issue_token(user)

    def session_cookie(self, token: str) -> Dict:
        """Keyword arguments for ``response.set_cookie``."""
        return {
            'key': self.settings.cookie_name,
            'value': token,
            'max_age': int(self.settings.token_ttl.total_seconds()),
            'httponly': True,
            'secure': self.settings.cookie_secure,
            'samesite': 'Strict',
        }

    def logout_cookie(self) -> Dict:
        """Already-expired replacement cookie that tells the client to drop its token."""
        return {
            'key': self.settings.cookie_name,
            'value': LOGGED_OUT,
            'max_age': 0,
            'httponly': True,
            'secure': self.settings.cookie_secure,
            'samesite': 'Strict',
        }

    # ========== 令牌 ==========

    def issue_token(self, user: Dict) -> str:
        return create_access_token(
            identity=str(user['_id']),
            expires_delta=self.settings.token_ttl,
        )

    def verify_token(self, token: Optional[str]) -> Dict:
        """Resolve a token to its user or raise NoToken / InvalidToken / StaleUser."""
        if not token or not token.strip() or token == LOGGED_OUT:
            raise NoToken()
        try:
            claims = decode_token(token)
        except (PyJWTError, JWTExtendedException) as e:
            logger.info('Rejected token: %s', e)
            raise InvalidToken()

        user_id = claims.get('sub')
        if not user_id:
            raise InvalidToken()
        user = self.users.find_by_id(user_id)
        if user is None:
            raise StaleUser()
        return user
