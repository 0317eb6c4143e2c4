"""
用户数据仓库
"""

from datetime import datetime, timezone
from typing import Any, Dict, Optional

from pymongo import ASCENDING
from pymongo.errors import DuplicateKeyError, PyMongoError

from ..errors import DuplicateEmail, PersistenceError
from .product_repository import to_object_id


class UserRepository:
    """Persistence for user documents. ``password`` holds the bcrypt hash."""

    def __init__(self, db, collection_name: str = 'users'):
        self.collection = db[collection_name]

    def ensure_indexes(self) -> None:
        self.collection.create_index([('email', ASCENDING)], unique=True)

    def find_by_email(self, email: str) -> Optional[Dict]:
        try:
            return self.collection.find_one({'email': email})
        except PyMongoError as e:
            raise PersistenceError(f'Failed to load user: {e}')

    def find_by_id(self, user_id: Any) -> Optional[Dict]:
        oid = to_object_id(user_id)
        if oid is None:
            return None
        try:
            return self.collection.find_one({'_id': oid})
        except PyMongoError as e:
            raise PersistenceError(f'Failed to load user: {e}')

    def insert(self, username: str, email: str, password_hash: str) -> Dict:
        doc = {
            'username': username,
            'email': email,
            'password': password_hash,
            'createdAt': datetime.now(timezone.utc),
        }
        try:
            result = self.collection.insert_one(doc)
        except DuplicateKeyError:
            raise DuplicateEmail()
        except PyMongoError as e:
            raise PersistenceError(f'Failed to save user: {e}')
        doc['_id'] = result.inserted_id
        return doc
