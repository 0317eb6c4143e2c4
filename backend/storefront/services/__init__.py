# Services package
#
# Module structure:
# - product_service.py: product + image lifecycle (main API for product routes)
# - product_repository.py: MongoDB persistence for products
# - user_repository.py: MongoDB persistence for users
# - auth_service.py: signup / login / token verification
# - image_store.py: filesystem storage for uploaded images

from .auth_service import AuthService, AuthSettings
from .image_store import ImageStore, StoredImage
from .product_repository import ProductRepository
from .product_service import ProductService
from .user_repository import UserRepository

__all__ = [
    'AuthService',
    'AuthSettings',
    'ImageStore',
    'ProductRepository',
    'ProductService',
    'StoredImage',
    'UserRepository',
]
