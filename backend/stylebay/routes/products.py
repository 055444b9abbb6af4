from flask import Blueprint, jsonify, request, current_app

from ..services.product_filters import FilterOptions
from ._helpers import request_data, request_images, services

products_bp = Blueprint('products', __name__)


@products_bp.route('', methods=['GET'])
def list_products():
    """获取商品列表

    Query参数:
    - category / size / condition: 精确匹配, 'all' 表示不过滤
    - minPrice / maxPrice: 价格区间 (闭区间)
    - search: 名称/描述/分类/颜色 关键词
    - location: 地区关键词
    - sortBy: price-low / price-high / newest (默认)
    """
    options = FilterOptions.from_mapping(request.args)
    current_app.logger.debug('filter_request %s sortBy=%s', options.active(), options.sort_by)
    products = services()['products'].list_products(options)
    current_app.logger.debug('filter_result count=%d', len(products))
    return jsonify(products)


@products_bp.route('', methods=['POST'])
def create_product():
    """发布商品 (multipart, 最多5张图片)"""
    product = services()['products'].create_product(request_data(), request_images())
    current_app.logger.info('product_created id=%s seller=%s', product['id'], product['sellerId'])
    return jsonify({'message': 'Product listed successfully!', 'product': product}), 201


@products_bp.route('/<product_id>', methods=['GET'])
def get_product(product_id):
    """获取商品详情"""
    return jsonify(services()['products'].get_product(product_id))


@products_bp.route('/<product_id>', methods=['PUT'])
def update_product(product_id):
    """编辑商品 (空字段保留原值)"""
    product = services()['products'].update_product(product_id, request_data(), request_images())
    return jsonify({'message': 'Product updated!', 'product': product})


@products_bp.route('/<product_id>/status', methods=['PATCH'])
def set_status(product_id):
    """标记 已售 / 在售"""
    status = request_data().get('status')
    product = services()['products'].set_status(product_id, status)
    return jsonify({'message': f'Item marked as {product["status"]}!', 'product': product})


@products_bp.route('/<product_id>', methods=['DELETE'])
def delete_product(product_id):
    services()['products'].delete_product(product_id)
    current_app.logger.info('product_deleted id=%s', product_id)
    return jsonify({'message': 'Product deleted successfully!'})


@products_bp.route('/<product_id>/view', methods=['POST'])
def increment_views(product_id):
    """浏览量 +1 (未知ID也返回成功)"""
    services()['products'].increment_views(product_id)
    return jsonify({'success': True})


@products_bp.route('/<product_id>/contact', methods=['GET'])
def get_contact(product_id):
    """WhatsApp 联系链接"""
    return jsonify(services()['products'].get_contact(product_id))
