"""
商品排序工具

Python's sort is stable (also with reverse=True), so equal keys keep the
order the storage returned them in.
"""

from datetime import datetime, timezone
from typing import List, Dict, Any, Optional

EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)

SORT_ALIASES = {
    'price-low': 'price-low',
    'price_asc': 'price-low',
    'price-high': 'price-high',
    'price_desc': 'price-high',
    'newest': 'newest',
    'latest': 'newest',
    'recency': 'newest',
}


def resolve_sort(sort_by: Optional[str]) -> str:
    """Resolve sort mode; anything unknown falls back to newest."""
    normalized = (sort_by or 'newest').strip().lower()
    return SORT_ALIASES.get(normalized, 'newest')


def parse_date(value: Any) -> Optional[datetime]:
    """Parse ISO timestamps (with or without Z) into aware UTC datetimes."""
    if not value:
        return None
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, str):
        try:
            parsed = datetime.fromisoformat(value.strip().replace('Z', '+00:00'))
        except ValueError:
            return None
    else:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _to_float(value: Any) -> float:
    """Safely coerce numeric-like values (missing price sorts as 0)."""
    try:
        return float(value or 0)
    except (TypeError, ValueError):
        return 0.0


def sort_by_price_low(products: List[Dict]) -> List[Dict]:
    """价格从低到高"""
    return sorted(products, key=lambda p: _to_float(p.get('price')))


def sort_by_price_high(products: List[Dict]) -> List[Dict]:
    """价格从高到低"""
    return sorted(products, key=lambda p: _to_float(p.get('price')), reverse=True)


def sort_by_newest(products: List[Dict]) -> List[Dict]:
    """按发布时间，最新在前"""
    return sorted(
        products,
        key=lambda p: parse_date(p.get('createdAt')) or EPOCH,
        reverse=True
    )


def sort_products(products: List[Dict], sort_by: str = 'newest') -> List[Dict]:
    """统一排序入口"""
    mode = resolve_sort(sort_by)
    if mode == 'price-low':
        return sort_by_price_low(products)
    if mode == 'price-high':
        return sort_by_price_high(products)
    return sort_by_newest(products)
