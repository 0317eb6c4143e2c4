from flask import Blueprint, jsonify, request

from storefront.auth import get_services
from storefront.models import serialize_product

search_bp = Blueprint('search', __name__)


@search_bp.route('', methods=['GET'])
def search_products():
    """
    搜索商品（按相关度降序）

    Query Parameters:
    - query: 搜索关键词（匹配 name / description / sku），也接受 q

    没有结果时仍返回 200 和空列表。
    """
    keyword = request.args.get('query', request.args.get('q', ''))
    products = get_services().products.search(keyword)

    response = {
        'success': True,
        'products': [serialize_product(p) for p in products],
    }
    if not products:
        response['message'] = 'No products found matching your search'
    return jsonify(response)
