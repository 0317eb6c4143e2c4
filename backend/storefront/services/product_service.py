"""
商品服务 - 商品文档与图片文件的生命周期

Documents (MongoDB) and image files (ImageStore) are two resources without a
joint commit. The rules kept here:

- a live document never references a file that is gone: documents are written
  before old files are deleted, and deleted before their files are;
- files uploaded for a request that then fails are deleted again before the
  error propagates;
- failures while deleting files are logged and never fail the request;
  leftovers are picked up later by ``reap_orphans``.
"""

import logging
import os
from datetime import datetime, timedelta
from typing import Any, Dict, Iterable, List, Optional, Sequence

from ..errors import EmptyQuery, NotFound, PersistenceError, ValidationError
from ..models import SCALAR_FIELDS, Product, SchemaError, schema_errors
from .image_store import ImageStore, StoredImage

logger = logging.getLogger(__name__)


def _present(value: Any) -> bool:
    if value is None:
        return False
    if isinstance(value, str):
        return bool(value.strip())
    return True


def _image_refs(product: Dict) -> List[str]:
    """images + mainImage, in order, without duplicates."""
    refs = list(product.get('images') or [])
    if product.get('mainImage'):
        refs.append(product['mainImage'])
    return list(dict.fromkeys(r for r in refs if r))


class ProductService:
    """商品服务类"""

    def __init__(self, products, images: ImageStore):
        self.products = products
        self.images = images

    # ========== 读取 ==========

    def get_all(self) -> List[Dict]:
        return self.products.find_all()

    def get_by_id(self, product_id: Any) -> Dict:
        product = self.products.find_by_id(product_id)
        if product is None:
            raise NotFound('Product not found')
        return product

    def search(self, query: Optional[str]) -> List[Dict]:
        """Relevance-ordered text search. No match is an empty list, not an error."""
        query = (query or '').strip()
        if not query:
            raise EmptyQuery()
        return self.products.search(query)

    # ========== 写入 ==========

    def create(self, fields: Dict[str, Any], uploaded: Sequence[StoredImage]) -> Dict:
        new_refs = [image.path for image in uploaded]
        try:
            data = {k: fields.get(k) for k in SCALAR_FIELDS if fields.get(k) is not None}
            data['images'] = new_refs
            main_image = self._resolve_main_image(fields.get('mainImage'), uploaded)
            if main_image:
                data['mainImage'] = main_image
            product = self._validate(data)
            created = self.products.insert(product.to_document())
        except Exception:
            self._rollback_uploads(new_refs, 'create')
            raise
        logger.info('Created product %s (%s) with %d images',
                    created['_id'], created['sku'], len(new_refs))
        return created

    def update(self, product_id: Any, fields: Dict[str, Any],
               uploaded: Sequence[StoredImage]) -> Dict:
        """Merge present fields into the product.

        New uploads replace the whole image set; without uploads the stored
        image references stay as they are.
        """
        new_refs = [image.path for image in uploaded]
        try:
            current = self.products.find_by_id(product_id)
            if current is None:
                raise NotFound('Product not found')

            changes = {k: fields[k] for k in SCALAR_FIELDS if _present(fields.get(k))}
            if uploaded:
                changes['images'] = new_refs
                changes['mainImage'] = self._resolve_main_image(
                    fields.get('mainImage'), uploaded, replaced=current.get('images') or [])
            elif _present(fields.get('mainImage')):
                changes['mainImage'] = self._resolve_main_image(fields['mainImage'], [])

            merged = {k: current.get(k) for k in SCALAR_FIELDS + ('images', 'mainImage')}
            merged.update(changes)
            product = self._validate(merged)
            updated = self.products.update(current['_id'], product.to_document())
            if updated is None:
                raise NotFound('Product not found')
        except Exception:
            self._rollback_uploads(new_refs, 'update')
            raise

        kept = set(_image_refs(updated))
        stale = [ref for ref in _image_refs(current) if ref not in kept]
        if stale:
            self._discard_unreferenced(stale, exclude_id=current['_id'])
        return updated

    def delete(self, product_id: Any) -> None:
        product = self.get_by_id(product_id)
        if not self.products.delete(product['_id']):
            raise NotFound('Product not found')
        logger.info('Deleted product %s (%s)', product['_id'], product.get('sku'))
        self._discard_unreferenced(_image_refs(product), exclude_id=product['_id'])

    # ========== 孤儿文件 ==========

    def reap_orphans(self, grace: timedelta = timedelta(hours=1), dry_run: bool = False,
                     now: Optional[datetime] = None) -> List[str]:
        """Delete stored files no product references.

        Files newer than ``grace`` are skipped so uploads still in flight are
        not reaped. Returns the orphans found (dry run) or actually deleted.
        """
        referenced = self.products.all_image_references()
        cutoff = (now or datetime.now()) - grace
        orphans = [
            ref for ref, modified in self.images.list_images()
            if ref not in referenced and modified <= cutoff
        ]
        if dry_run or not orphans:
            return orphans
        failed = set(self.images.discard(orphans))
        reaped = [ref for ref in orphans if ref not in failed]
        logger.info('Reaped %d orphan images (%d failed)', len(reaped), len(failed))
        return reaped

    # ========== 内部方法 ==========

    @staticmethod
    def _validate(data: Dict[str, Any]) -> Product:
        try:
            return Product.model_validate(data)
        except SchemaError as e:
            raise ValidationError(schema_errors(e))

    def _resolve_main_image(self, value: Optional[str], uploaded: Sequence[StoredImage],
                            replaced: Iterable[str] = ()) -> Optional[str]:
        """Turn the client's mainImage value into a stored reference.

        Accepts the original filename of an image from this request, or a
        stored reference/name that exists and is not about to be replaced.
        Defaults to the first uploaded image.
        """
        value = str(value or '').strip()
        if not value:
            return uploaded[0].path if uploaded else None

        for image in uploaded:
            if value in (image.original_name, os.path.basename(image.original_name), image.path):
                return image.path

        reference = value if value.startswith(ImageStore.URL_PREFIX) else self.images.reference_for(value)
        if reference not in set(replaced) and self.images.exists(reference):
            return reference
        raise ValidationError(
            ['mainImage'],
            'mainImage must be one of the uploaded images or an existing image',
        )

    def _rollback_uploads(self, refs: List[str], operation: str) -> None:
        if not refs:
            return
        logger.warning('Product %s failed, removing %d uploaded images', operation, len(refs))
        self.images.discard(refs)

    def _discard_unreferenced(self, refs: List[str], exclude_id=None) -> None:
        """Delete files unless another product still references them."""
        try:
            shared = self.products.find_referenced(refs, exclude_id=exclude_id)
        except PersistenceError as e:
            logger.error('Could not check image references, keeping %s: %s', refs, e.message)
            return
        for ref in refs:
            if ref in shared:
                logger.info('Keeping image still used by another product: %s', ref)
        self.images.discard([ref for ref in refs if ref not in shared])
