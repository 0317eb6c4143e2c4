from datetime import datetime
from typing import List

from pydantic import BaseModel, ConfigDict, Field

# Scalar fields a client may set; images/mainImage go through the upload flow
SCALAR_FIELDS = ('sku', 'quantity', 'price', 'name', 'description')


class Product(BaseModel):
    """商品文档 schema

    Field names follow the stored document, so ``mainImage`` is accepted as the
    alias of ``main_image`` and written back under that name.
    """

    model_config = ConfigDict(populate_by_name=True, str_strip_whitespace=True)

    sku: str = Field(..., min_length=1)
    quantity: int = Field(..., ge=0)
    price: float = Field(..., ge=0)
    name: str = Field(..., min_length=1)
    description: str = Field(..., min_length=1)
    images: List[str] = Field(..., min_length=1)
    main_image: str = Field(..., alias='mainImage', min_length=1)

    def to_document(self) -> dict:
        """转换为 MongoDB 文档（不含 _id 和时间戳）"""
        return self.model_dump(by_alias=True)


def serialize_product(doc: dict) -> dict:
    """Make a stored product JSON friendly (ObjectId / datetime to strings)."""
    data = dict(doc)
    if '_id' in data:
        data['_id'] = str(data['_id'])
    for key in ('createdAt', 'updatedAt'):
        if isinstance(data.get(key), datetime):
            data[key] = data[key].isoformat()
    data.pop('score', None)
    return data
