"""
错误类型 - service 层抛出，由 app factory 统一转换为 JSON 响应
"""

from typing import List, Optional


class ShopError(Exception):
    """Base error carrying the HTTP status the ingress layer should answer with."""

    status_code = 500
    message = 'Server error'

    def __init__(self, message: Optional[str] = None, status_code: Optional[int] = None):
        if message is not None:
            self.message = message
        if status_code is not None:
            self.status_code = status_code
        super().__init__(self.message)

    def to_dict(self):
        return {'success': False, 'message': self.message}


class ValidationError(ShopError):
    status_code = 400
    message = 'Invalid input'

    def __init__(self, fields: List[str], message: Optional[str] = None):
        self.fields = list(fields)
        super().__init__(message or '; '.join(self.fields) or self.message)

    def to_dict(self):
        data = super().to_dict()
        data['errors'] = self.fields
        return data


class DuplicateEmail(ShopError):
    status_code = 400
    message = 'Email already exists'


class DuplicateSku(ShopError):
    status_code = 400
    message = 'A product with this SKU already exists'


class MissingCredentials(ShopError):
    status_code = 400
    message = 'Please provide email and password'


class InvalidCredentials(ShopError):
    # Same text for unknown email and wrong password
    status_code = 401
    message = 'Incorrect email or password'


class NotFound(ShopError):
    status_code = 404
    message = 'Not found'


class EmptyQuery(ShopError):
    status_code = 400
    message = 'Query cannot be empty'


class NoToken(ShopError):
    status_code = 401
    message = 'You are not logged in! Please log in to get access.'


class InvalidToken(ShopError):
    status_code = 401
    message = 'Invalid or expired token. Please log in again.'


class StaleUser(ShopError):
    status_code = 401
    message = 'The user belonging to this token does no longer exist.'


class UnsupportedFileType(ShopError):
    status_code = 400
    message = 'Images only! Upload JPEG or PNG files.'


class StorageError(ShopError):
    """Filesystem failure. Usually logged by the caller instead of surfaced."""

    status_code = 500
    message = 'Image storage error'

    def __init__(self, path: str, message: Optional[str] = None):
        self.path = path
        super().__init__(message or f'{self.message}: {path}')


class PersistenceError(ShopError):
    status_code = 500
    message = 'Database error'
