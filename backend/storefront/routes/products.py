from flask import Blueprint, jsonify, request

from storefront.auth import get_services, login_required
from storefront.models import serialize_product

products_bp = Blueprint('products', __name__)


def _request_fields() -> dict:
    """Scalar fields from a multipart form or a JSON body."""
    if request.is_json:
        return request.get_json(silent=True) or {}
    return request.form.to_dict()


def _save_uploads():
    """Validate and persist the ``images`` files before the service runs."""
    return get_services().images.save_all(request.files.getlist('images'))


@products_bp.route('', methods=['POST'])
@login_required
def create_product():
    """新增商品

    multipart/form-data:
    - sku, quantity, price, name, description
    - images: 最多 5 张 JPEG/PNG
    - mainImage: 主图（上传文件名或已存储路径，默认第一张）
    """
    uploaded = _save_uploads()
    product = get_services().products.create(_request_fields(), uploaded)
    return jsonify({
        'success': True,
        'product': serialize_product(product)
    }), 201


@products_bp.route('', methods=['GET'])
def get_products():
    """获取全部商品"""
    products = get_services().products.get_all()
    return jsonify({
        'success': True,
        'products': [serialize_product(p) for p in products]
    })


@products_bp.route('/<product_id>', methods=['GET'])
def get_product_detail(product_id):
    """获取商品详情"""
    product = get_services().products.get_by_id(product_id)
    return jsonify({
        'success': True,
        'product': serialize_product(product)
    })


@products_bp.route('/<product_id>', methods=['PUT'])
@login_required
def update_product(product_id):
    """更新商品

    所有字段可选；空字段保留原值。上传新图片时整体替换旧图片，
    不上传则保留原图片。
    """
    uploaded = _save_uploads()
    product = get_services().products.update(product_id, _request_fields(), uploaded)
    return jsonify({
        'success': True,
        'product': serialize_product(product)
    })


@products_bp.route('/<product_id>', methods=['DELETE'])
@login_required
def delete_product(product_id):
    """删除商品及其图片"""
    get_services().products.delete(product_id)
    return jsonify({
        'success': True,
        'message': 'Product removed'
    })
