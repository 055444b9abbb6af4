from flask import Blueprint, jsonify

from ..models import Product
from ._helpers import services

catalog_bp = Blueprint('catalog', __name__)


@catalog_bp.route('/sellers/<seller_id>/products', methods=['GET'])
def get_seller_products(seller_id):
    """卖家的全部商品 (不过滤状态)"""
    return jsonify(services()['products'].list_by_seller(seller_id))


@catalog_bp.route('/categories', methods=['GET'])
def get_categories():
    """获取所有分类"""
    return jsonify(Product.CATEGORIES)


@catalog_bp.route('/stats', methods=['GET'])
def get_stats():
    return jsonify(services()['products'].get_stats())


@catalog_bp.route('/health', methods=['GET'])
def health():
    return jsonify({'status': 'ok', 'storage': services()['storage'].name})
