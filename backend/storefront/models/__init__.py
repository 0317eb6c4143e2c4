from typing import List

from pydantic import ValidationError as SchemaError

from .product import Product, SCALAR_FIELDS, serialize_product
from .user import UserSignup, serialize_user


def schema_errors(exc: SchemaError) -> List[str]:
    """Flatten a pydantic error into ``'<field>: <message>'`` strings."""
    messages = []
    for error in exc.errors():
        field = '.'.join(str(part) for part in error.get('loc', ())) or 'body'
        messages.append(f"{field}: {error.get('msg', 'invalid value')}")
    return messages


__all__ = [
    'Product',
    'SCALAR_FIELDS',
    'SchemaError',
    'UserSignup',
    'schema_errors',
    'serialize_product',
    'serialize_user',
]
