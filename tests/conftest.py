"""
Shared fixtures: in-memory repositories standing in for MongoDB, an app wired
to them and a temporary upload folder.
"""

import copy
import io
import os
import re
import sys
from datetime import datetime, timezone
from typing import Dict, List, Optional

import pytest
from bson import ObjectId

# ---------------------------------------------------------------------------
# Ensure project paths are importable
# ---------------------------------------------------------------------------
PROJECT_ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
sys.path.insert(0, os.path.join(PROJECT_ROOT, 'backend'))

from storefront import create_app  # noqa: E402
from storefront.errors import DuplicateEmail, DuplicateSku, PersistenceError  # noqa: E402
from storefront.services.product_repository import to_object_id  # noqa: E402


class InMemoryProductRepository:
    """Same surface as ProductRepository, backed by a dict."""

    def __init__(self):
        self.docs: Dict[ObjectId, Dict] = {}
        self.fail_writes = False

    def ensure_indexes(self):
        pass

    def _check_writable(self):
        if self.fail_writes:
            raise PersistenceError('simulated database outage')

    def find_all(self) -> List[Dict]:
        return [copy.deepcopy(d) for d in self.docs.values()]

    def find_by_id(self, product_id) -> Optional[Dict]:
        oid = to_object_id(product_id)
        doc = self.docs.get(oid) if oid else None
        return copy.deepcopy(doc) if doc else None

    def search(self, query: str) -> List[Dict]:
        terms = [t for t in re.split(r'\W+', query.lower()) if t]
        results = []
        for doc in self.docs.values():
            words = re.split(r'\W+', ' '.join(
                str(doc.get(f, '')) for f in ('name', 'description', 'sku')).lower())
            score = sum(words.count(term) for term in terms)
            if score:
                results.append(dict(copy.deepcopy(doc), score=score))
        return sorted(results, key=lambda d: d['score'], reverse=True)

    def find_referenced(self, references, exclude_id=None):
        wanted = set(references)
        used = set()
        for oid, doc in self.docs.items():
            if oid == exclude_id:
                continue
            used.update(wanted.intersection(doc.get('images') or []))
            if doc.get('mainImage') in wanted:
                used.add(doc['mainImage'])
        return used

    def all_image_references(self):
        used = set()
        for doc in self.docs.values():
            used.update(doc.get('images') or [])
            used.add(doc.get('mainImage'))
        return used

    def _sku_taken(self, sku, exclude_id=None):
        return any(d['sku'] == sku for oid, d in self.docs.items() if oid != exclude_id)

    def insert(self, document):
        self._check_writable()
        if self._sku_taken(document['sku']):
            raise DuplicateSku()
        now = datetime.now(timezone.utc)
        doc = dict(copy.deepcopy(document), _id=ObjectId(), createdAt=now, updatedAt=now)
        self.docs[doc['_id']] = doc
        return copy.deepcopy(doc)

    def update(self, product_id, fields):
        self._check_writable()
        if product_id not in self.docs:
            return None
        if 'sku' in fields and self._sku_taken(fields['sku'], exclude_id=product_id):
            raise DuplicateSku()
        self.docs[product_id].update(copy.deepcopy(fields), updatedAt=datetime.now(timezone.utc))
        return copy.deepcopy(self.docs[product_id])

    def delete(self, product_id):
        self._check_writable()
        return self.docs.pop(product_id, None) is not None


class InMemoryUserRepository:
    """Same surface as UserRepository, backed by a dict."""

    def __init__(self):
        self.docs: Dict[ObjectId, Dict] = {}

    def ensure_indexes(self):
        pass

    def find_by_email(self, email):
        for doc in self.docs.values():
            if doc['email'] == email:
                return dict(doc)
        return None

    def find_by_id(self, user_id):
        oid = to_object_id(user_id)
        doc = self.docs.get(oid) if oid else None
        return dict(doc) if doc else None

    def insert(self, username, email, password_hash):
        if self.find_by_email(email):
            raise DuplicateEmail()
        doc = {
            '_id': ObjectId(),
            'username': username,
            'email': email,
            'password': password_hash,
            'createdAt': datetime.now(timezone.utc),
        }
        self.docs[doc['_id']] = doc
        return dict(doc)


def image_upload(name='photo.png', mimetype='image/png', content=b'\x89PNG\r\n\x1a\nfake'):
    """A (stream, filename, content type) tuple for the Flask test client."""
    return (io.BytesIO(content), name, mimetype)


TEST_CONFIG = {
    'TESTING': True,
    'JWT_SECRET_KEY': 'test-secret-key-that-is-long-enough-for-hs256',
    'BCRYPT_ROUNDS': 4,
}


@pytest.fixture
def product_repo():
    return InMemoryProductRepository()


@pytest.fixture
def user_repo():
    return InMemoryUserRepository()


@pytest.fixture
def upload_dir(tmp_path):
    return tmp_path / 'uploads'


@pytest.fixture
def app(upload_dir, user_repo, product_repo):
    config = dict(TEST_CONFIG, UPLOAD_FOLDER=str(upload_dir))
    return create_app(config, users=user_repo, products=product_repo)


@pytest.fixture
def services(app):
    return app.extensions['storefront']


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def auth_headers(app):
    """Bearer header for a freshly signed-up user (uses its own client)."""
    response = app.test_client().post('/api/v1/auth/signup', json={
        'username': 'admin',
        'email': 'admin@shop.io',
        'password': 'secret1',
    })
    assert response.status_code == 201
    return {'Authorization': f"Bearer {response.get_json()['token']}"}
