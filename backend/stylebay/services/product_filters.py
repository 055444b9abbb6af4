"""
商品过滤器 - 负责列表查询的过滤逻辑

All predicates are pure: they return new lists and never touch the records.
"""

import math
from dataclasses import dataclass
from typing import List, Dict, Any, Optional, Mapping

# "所有" 选项: 前端下拉框的默认值
ALL_VALUES = {'', 'all'}


def _norm(value: Any) -> str:
    return str(value or '').strip().lower()


def _is_unset(value: Optional[str]) -> bool:
    return _norm(value) in ALL_VALUES


def parse_price_bound(raw: Any) -> Optional[float]:
    """Parse a price bound from a query param; None when unusable."""
    if raw is None or isinstance(raw, bool):
        return None
    if isinstance(raw, str):
        raw = raw.strip()
        if not raw:
            return None
    try:
        value = float(raw)
    except (TypeError, ValueError):
        return None
    if not math.isfinite(value):
        return None
    return value


@dataclass
class FilterOptions:
    """商品列表查询参数"""
    category: str = ''
    size: str = ''
    condition: str = ''
    min_price: Optional[float] = None
    max_price: Optional[float] = None
    search: str = ''
    location: str = ''
    sort_by: str = 'newest'

    @classmethod
    def from_mapping(cls, args: Mapping[str, Any]) -> 'FilterOptions':
        """Build options from query args using the public camelCase names."""
        return cls(
            category=str(args.get('category') or ''),
            size=str(args.get('size') or ''),
            condition=str(args.get('condition') or ''),
            min_price=parse_price_bound(args.get('minPrice')),
            max_price=parse_price_bound(args.get('maxPrice')),
            search=str(args.get('search') or ''),
            location=str(args.get('location') or ''),
            sort_by=str(args.get('sortBy') or 'newest'),
        )

    def active(self) -> Dict[str, Any]:
        """Only the criteria that will actually filter (for logging)."""
        active = {}
        for key in ('category', 'size', 'condition'):
            value = getattr(self, key)
            if not _is_unset(value):
                active[key] = value
        if self.min_price is not None:
            active['minPrice'] = self.min_price
        if self.max_price is not None:
            active['maxPrice'] = self.max_price
        if self.search.strip():
            active['search'] = self.search.strip()
        if self.location:
            active['location'] = self.location
        return active


def filter_by_category(products: List[Dict], category: str) -> List[Dict]:
    """按分类筛选 (大小写不敏感的精确匹配)"""
    if _is_unset(category):
        return products
    target = _norm(category)
    return [p for p in products if p.get('category') and _norm(p['category']) == target]


def filter_by_size(products: List[Dict], size: str) -> List[Dict]:
    """按尺码筛选"""
    if _is_unset(size):
        return products
    target = _norm(size)
    return [p for p in products if p.get('size') and _norm(p['size']) == target]


def filter_by_condition(products: List[Dict], condition: str) -> List[Dict]:
    """按成色筛选

    Exact match only: 'new' does not match 'like-new'.
    """
    if _is_unset(condition):
        return products
    target = _norm(condition)
    return [p for p in products if p.get('condition') and _norm(p['condition']) == target]


def filter_by_location(products: List[Dict], location: str) -> List[Dict]:
    """按地区筛选 (子串匹配)"""
    if not location:
        return products
    target = location.lower()
    return [p for p in products if p.get('location') and target in str(p['location']).lower()]


def _price_of(product: Dict[str, Any]) -> Optional[float]:
    price = product.get('price')
    if price is None or isinstance(price, bool):
        return None
    try:
        return float(price)
    except (TypeError, ValueError):
        return None


def filter_by_price(products: List[Dict], min_price: Optional[float] = None,
                    max_price: Optional[float] = None) -> List[Dict]:
    """按价格区间筛选 (闭区间)"""
    if min_price is None and max_price is None:
        return products
    filtered = []
    for product in products:
        price = _price_of(product)
        if price is None:
            continue
        if min_price is not None and price < min_price:
            continue
        if max_price is not None and price > max_price:
            continue
        filtered.append(product)
    return filtered


SEARCH_FIELDS = ('name', 'description', 'category', 'color')


def filter_by_keyword(products: List[Dict], keyword: str) -> List[Dict]:
    """按关键词筛选 (名称/描述/分类/颜色 任一命中)"""
    keyword_lower = (keyword or '').strip().lower()
    if not keyword_lower:
        return products
    return [
        p for p in products
        if any(keyword_lower in str(p.get(field) or '').lower() for field in SEARCH_FIELDS)
    ]


def filter_products(products: List[Dict], options: FilterOptions) -> List[Dict]:
    """Apply every active criterion (AND); returns a new list."""
    result = list(products)
    result = filter_by_category(result, options.category)
    result = filter_by_size(result, options.size)
    result = filter_by_condition(result, options.condition)
    result = filter_by_location(result, options.location)
    result = filter_by_price(result, options.min_price, options.max_price)
    result = filter_by_keyword(result, options.search)
    return result
