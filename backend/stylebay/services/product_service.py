"""
商品服务 - 高级业务逻辑层

本模块只包含业务规则，底层实现委托给:
- storage: 记录持久化 (file / mongo / memory)
- image_store: 图片上传与清理
- product_filters / product_sorting: 列表查询
"""

from typing import List, Dict, Any, Optional

from ..errors import NotFoundError, ValidationError
from ..models import Product, User, utc_now_iso, view_count
from . import contact
from . import product_filters as filters
from . import product_sorting as sorting
from .product_filters import FilterOptions

REQUIRED_FIELDS = ('name', 'category', 'price', 'sellerId')


def _is_blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def _clean(value: Any) -> Any:
    return value.strip() if isinstance(value, str) else value


def parse_price(raw: Any) -> float:
    """价格必须是非负数"""
    price = filters.parse_price_bound(raw)
    if price is None:
        raise ValidationError('Price must be a number')
    if price < 0:
        raise ValidationError('Price cannot be negative')
    return price


def parse_condition(raw: Any) -> str:
    condition = str(raw or '').strip().lower()
    if condition not in Product.CONDITIONS:
        raise ValidationError(f"Condition must be one of: {', '.join(Product.CONDITIONS)}")
    return condition


class ProductService:
    """商品服务类 - 每个应用实例一个，持有注入的存储"""

    def __init__(self, storage, image_store, country_code: str = '256'):
        self.storage = storage
        self.image_store = image_store
        self.country_code = country_code

    # ========== 查询 ==========

    def list_products(self, options: Optional[FilterOptions] = None) -> List[Dict]:
        """过滤 + 排序"""
        options = options or FilterOptions()
        products = filters.filter_products(self.storage.list_products(), options)
        return sorting.sort_products(products, options.sort_by)

    def get_product(self, product_id: str) -> Dict:
        """根据ID获取商品，附带卖家信息"""
        product = self.storage.get_product(product_id)
        if product is None:
            raise NotFoundError('Product not found')
        seller = self.storage.get_user(product.get('sellerId')) if product.get('sellerId') else None
        if seller:
            product['seller'] = User.seller_summary(seller)
        return product

    def list_by_seller(self, seller_id: str) -> List[Dict]:
        return self.storage.list_products_by_seller(seller_id)

    def get_stats(self) -> Dict[str, int]:
        products = self.storage.list_products()
        return {
            'totalProducts': len(products),
            'totalSellers': self.storage.count_users(),
            'totalViews': sum(view_count(p.get('views')) for p in products),
        }

    def get_contact(self, product_id: str) -> Dict[str, str]:
        """WhatsApp 联系方式: 商品号码优先，其次卖家号码"""
        product = self.get_product(product_id)
        seller = product.get('seller') or {}
        phone = (
            product.get('whatsapp') or product.get('phone')
            or seller.get('whatsapp') or seller.get('phone') or ''
        )
        number = contact.format_phone_for_whatsapp(phone, self.country_code)
        if not number:
            raise NotFoundError('No WhatsApp number for this listing')
        return {
            'whatsapp': number,
            'url': contact.whatsapp_link(number, contact.listing_message(product), self.country_code),
        }

    # ========== 写操作 ==========

    def create_product(self, data, images=None) -> Dict:
        """发布商品: 先上传图片，再一次性写入记录"""
        missing = [field for field in REQUIRED_FIELDS if _is_blank(data.get(field))]
        if missing:
            raise ValidationError('Please fill all required fields')

        price = parse_price(data.get('price'))
        condition = parse_condition(data.get('condition')) if not _is_blank(data.get('condition')) else 'new'

        image_urls = self.image_store.save_all(images) if images else []

        product = Product(
            name=_clean(data.get('name')),
            category=_clean(data.get('category')),
            price=price,
            seller_id=_clean(data.get('sellerId')),
            size=_clean(data.get('size')) or 'M',
            color=_clean(data.get('color')) or 'Various',
            condition=condition,
            description=_clean(data.get('description')) or '',
            location=_clean(data.get('location')) or 'Uganda',
            images=image_urls,
            phone=_clean(data.get('phone')) or '',
            whatsapp=_clean(data.get('whatsapp')) or '',
        )
        try:
            return self.storage.insert_product(product.to_dict())
        except Exception:
            self.image_store.delete(image_urls)
            raise

    def update_product(self, product_id: str, data, images=None) -> Dict:
        """编辑商品: 只覆盖非空字段"""
        if self.storage.get_product(product_id) is None:
            raise NotFoundError('Product not found')

        changes: Dict[str, Any] = {}
        for field in Product.EDITABLE_FIELDS:
            value = data.get(field)
            if _is_blank(value):
                continue
            if field == 'price':
                value = parse_price(value)
            elif field == 'condition':
                value = parse_condition(value)
            changes[field] = _clean(value)

        new_images = self.image_store.save_all(images) if images else None
        if new_images:
            changes['images'] = new_images
        changes['updatedAt'] = utc_now_iso()

        try:
            previous, updated = self.storage.update_product_with_previous(product_id, changes)
        except Exception:
            self.image_store.delete(new_images or [])
            raise
        if updated is None:
            self.image_store.delete(new_images or [])
            raise NotFoundError('Product not found')

        if new_images:
            # images as they were when this update was applied
            replaced = [url for url in previous.get('images') or [] if url not in new_images]
            self.image_store.delete(replaced)
        return updated

    def delete_product(self, product_id: str) -> Dict:
        removed = self.storage.delete_product(product_id)
        if removed is None:
            raise NotFoundError('Product not found')
        self.image_store.delete(removed.get('images') or [])
        return removed

    def set_status(self, product_id: str, status: str) -> Dict:
        """标记 已售 / 在售"""
        normalized = str(status or '').strip().lower()
        if normalized not in Product.STATUSES:
            raise ValidationError(f"Status must be one of: {', '.join(Product.STATUSES)}")
        updated = self.storage.update_product(
            product_id, {'status': normalized, 'updatedAt': utc_now_iso()}
        )
        if updated is None:
            raise NotFoundError('Product not found')
        return updated

    def increment_views(self, product_id: str) -> Optional[Dict]:
        """浏览量 +1; 未知ID静默忽略"""
        return self.storage.increment_views(product_id)
