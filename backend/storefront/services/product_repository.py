"""
商品数据仓库 - 负责 MongoDB 读写、索引和错误转换

Uniqueness of ``sku`` and the text index over name/description/sku are owned by
MongoDB; this module only translates driver errors into shop errors.
"""

import logging
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Optional, Set

from bson import ObjectId
from bson.errors import InvalidId
from pymongo import ASCENDING, TEXT, ReturnDocument
from pymongo.errors import DuplicateKeyError, PyMongoError

from ..errors import DuplicateSku, PersistenceError

logger = logging.getLogger(__name__)


def to_object_id(value: Any) -> Optional[ObjectId]:
    """Parse an id from a URL; malformed ids resolve to None."""
    if isinstance(value, ObjectId):
        return value
    try:
        return ObjectId(str(value))
    except (InvalidId, TypeError):
        return None


class ProductRepository:
    """Persistence for product documents."""

    def __init__(self, db, collection_name: str = 'products'):
        self.collection = db[collection_name]

    def ensure_indexes(self) -> None:
        self.collection.create_index([('sku', ASCENDING)], unique=True)
        self.collection.create_index(
            [('name', TEXT), ('description', TEXT), ('sku', TEXT)],
            name='product_text',
        )

    # ========== 读取 ==========

    def find_all(self) -> List[Dict]:
        try:
            return list(self.collection.find())
        except PyMongoError as e:
            raise PersistenceError(f'Failed to load products: {e}')

    def find_by_id(self, product_id: Any) -> Optional[Dict]:
        oid = to_object_id(product_id)
        if oid is None:
            return None
        try:
            return self.collection.find_one({'_id': oid})
        except PyMongoError as e:
            raise PersistenceError(f'Failed to load product: {e}')

    def search(self, query: str) -> List[Dict]:
        """Full-text match, best textScore first."""
        try:
            cursor = self.collection.find(
                {'$text': {'$search': query}},
                {'score': {'$meta': 'textScore'}},
            ).sort([('score', {'$meta': 'textScore'})])
            return list(cursor)
        except PyMongoError as e:
            raise PersistenceError(f'Search error: {e}')

    def find_referenced(self, references: Iterable[str],
                        exclude_id: Optional[ObjectId] = None) -> Set[str]:
        """Which of ``references`` are still used by some other product."""
        references = [r for r in references if r]
        if not references:
            return set()
        query: Dict[str, Any] = {
            '$or': [
                {'images': {'$in': references}},
                {'mainImage': {'$in': references}},
            ]
        }
        if exclude_id is not None:
            query['_id'] = {'$ne': exclude_id}
        wanted = set(references)
        used: Set[str] = set()
        try:
            for doc in self.collection.find(query, {'images': 1, 'mainImage': 1}):
                used.update(wanted.intersection(doc.get('images') or []))
                if doc.get('mainImage') in wanted:
                    used.add(doc['mainImage'])
        except PyMongoError as e:
            raise PersistenceError(f'Failed to check image references: {e}')
        return used

    def all_image_references(self) -> Set[str]:
        used: Set[str] = set()
        try:
            for doc in self.collection.find({}, {'images': 1, 'mainImage': 1}):
                used.update(doc.get('images') or [])
                if doc.get('mainImage'):
                    used.add(doc['mainImage'])
        except PyMongoError as e:
            raise PersistenceError(f'Failed to collect image references: {e}')
        return used

    # ========== 写入 ==========

    def insert(self, document: Dict) -> Dict:
        now = datetime.now(timezone.utc)
        doc = dict(document, createdAt=now, updatedAt=now)
        try:
            result = self.collection.insert_one(doc)
        except DuplicateKeyError:
            raise DuplicateSku()
        except PyMongoError as e:
            raise PersistenceError(f'Failed to save product: {e}')
        doc['_id'] = result.inserted_id
        return doc

    def update(self, product_id: ObjectId, fields: Dict) -> Optional[Dict]:
        """Set ``fields`` and return the updated document (None if it vanished)."""
        changes = dict(fields, updatedAt=datetime.now(timezone.utc))
        try:
            return self.collection.find_one_and_update(
                {'_id': product_id},
                {'$set': changes},
                return_document=ReturnDocument.AFTER,
            )
        except DuplicateKeyError:
            raise DuplicateSku()
        except PyMongoError as e:
            raise PersistenceError(f'Failed to update product: {e}')

    def delete(self, product_id: ObjectId) -> bool:
        try:
            result = self.collection.delete_one({'_id': product_id})
        except PyMongoError as e:
            raise PersistenceError(f'Failed to delete product: {e}')
        return result.deleted_count > 0
