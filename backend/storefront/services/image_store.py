"""
图片存储 - 上传图片的文件系统存储

Files live flat inside one directory and are referenced by documents as
``/uploads/images/<stored name>``, which is also the URL the app serves them from.
"""

import logging
import os
from collections import namedtuple
from datetime import datetime
from pathlib import Path
from typing import Iterable, List, Optional, Tuple
from uuid import uuid4

from werkzeug.utils import secure_filename

from ..errors import StorageError, UnsupportedFileType, ValidationError

logger = logging.getLogger(__name__)

# original_name: filename the client sent, path: reference stored in documents
StoredImage = namedtuple('StoredImage', ['original_name', 'path'])


class ImageStore:
    """Filesystem-backed image storage."""

    URL_PREFIX = '/uploads/images/'
    ALLOWED_EXTENSIONS = {'.jpg', '.jpeg', '.png'}
    ALLOWED_MIMETYPES = {'image/jpeg', 'image/png'}

    def __init__(self, root: str, max_files: int = 5):
        self.root = Path(root)
        self.max_files = max_files

    def ensure_root(self) -> None:
        self.root.mkdir(parents=True, exist_ok=True)

    # ========== 上传 ==========

    @classmethod
    def check_upload(cls, file_storage) -> str:
        """Validate one upload, return its sanitized filename.

        Both the declared MIME type and the extension must be JPEG/PNG.
        """
        filename = secure_filename(getattr(file_storage, 'filename', '') or '')
        if not filename:
            raise UnsupportedFileType('Please choose a valid file name.')
        extension = os.path.splitext(filename)[1].lower()
        mimetype = (getattr(file_storage, 'mimetype', '') or '').lower()
        if extension not in cls.ALLOWED_EXTENSIONS or mimetype not in cls.ALLOWED_MIMETYPES:
            raise UnsupportedFileType()
        return filename

    def save_all(self, files: Iterable) -> List[StoredImage]:
        """Validate every upload first, then persist them.

        Nothing is written unless all files pass validation. If writing fails
        half way, the files already written are removed again.
        """
        uploads = [f for f in files if f and getattr(f, 'filename', '')]
        if len(uploads) > self.max_files:
            raise ValidationError(
                ['images'], f'You can upload at most {self.max_files} images per product'
            )
        checked = [(f, self.check_upload(f)) for f in uploads]

        saved: List[StoredImage] = []
        for file_storage, filename in checked:
            try:
                saved.append(self._save(file_storage, filename))
            except StorageError:
                self.discard([image.path for image in saved])
                raise
        return saved

    def _save(self, file_storage, filename: str) -> StoredImage:
        self.ensure_root()
        extension = os.path.splitext(filename)[1].lower()
        stored_name = f'{uuid4().hex}{extension}'
        destination = self.root / stored_name
        try:
            file_storage.save(str(destination))
        except OSError as e:
            raise StorageError(str(destination), f'Could not store uploaded image: {e}')
        logger.info('Saved image %s as %s', file_storage.filename, stored_name)
        return StoredImage(file_storage.filename, self.URL_PREFIX + stored_name)

    # ========== 引用 <-> 路径 ==========

    def reference_for(self, name: str) -> str:
        return self.URL_PREFIX + name

    def path_for(self, reference: str) -> Optional[Path]:
        """Map a stored reference (or bare stored name) to a file path.

        Returns None when the reference cannot point inside the store.
        """
        if not reference:
            return None
        name = reference[len(self.URL_PREFIX):] if reference.startswith(self.URL_PREFIX) else reference
        if not name or name in ('.', '..') or os.path.basename(name) != name:
            return None
        return self.root / name

    def exists(self, reference: str) -> bool:
        path = self.path_for(reference)
        return path is not None and path.is_file()

    # ========== 删除 ==========

    def delete(self, reference: str) -> None:
        path = self.path_for(reference)
        if path is None:
            raise StorageError(reference, f'Not a stored image reference: {reference}')
        try:
            path.unlink()
        except OSError as e:
            raise StorageError(reference, f'Failed to delete image {reference}: {e}')
        logger.info('Deleted image: %s', reference)

    def discard(self, references: Iterable[str]) -> List[str]:
        """Delete every reference, logging failures instead of raising.

        Returns the references that could not be deleted.
        """
        failed = []
        for reference in references:
            try:
                self.delete(reference)
            except StorageError as e:
                logger.error('Failed to delete image: %s (%s)', e.path, e.message)
                failed.append(reference)
        return failed

    def list_images(self) -> List[Tuple[str, datetime]]:
        """All stored files as (reference, modified time)."""
        if not self.root.is_dir():
            return []
        images = []
        for entry in sorted(self.root.iterdir()):
            if entry.is_file():
                modified = datetime.fromtimestamp(entry.stat().st_mtime)
                images.append((self.reference_for(entry.name), modified))
        return images
