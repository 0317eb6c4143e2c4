from datetime import datetime
from typing import Annotated

from pydantic import BaseModel, Field, StringConstraints, field_validator

EMAIL_PATTERN = r'^[^@\s]+@[^@\s]+\.[^@\s]+$'
MIN_PASSWORD_LENGTH = 6
# bcrypt only looks at the first 72 bytes and newer releases refuse longer input
MAX_PASSWORD_BYTES = 72

Trimmed = Annotated[str, StringConstraints(strip_whitespace=True)]


class UserSignup(BaseModel):
    """注册请求 schema（明文密码只在这里出现，原样保留，不去空格）"""

    username: Trimmed = Field(..., min_length=1)
    email: Trimmed = Field(..., pattern=EMAIL_PATTERN)
    password: str = Field(..., min_length=MIN_PASSWORD_LENGTH)

    @field_validator('password')
    @classmethod
    def password_fits_bcrypt(cls, value: str) -> str:
        if len(value.encode('utf-8')) > MAX_PASSWORD_BYTES:
            raise ValueError(f'must be at most {MAX_PASSWORD_BYTES} bytes')
        return value


def serialize_user(doc: dict) -> dict:
    """Public user representation: never includes the password hash."""
    data = {
        '_id': str(doc['_id']),
        'username': doc.get('username'),
        'email': doc.get('email'),
    }
    created_at = doc.get('createdAt')
    if isinstance(created_at, datetime):
        data['createdAt'] = created_at.isoformat()
    return data
