"""
WhatsApp 联系方式工具
"""

import re
from typing import Optional
from urllib.parse import quote

WA_ME_URL = 'https://wa.me/'


def format_phone_for_whatsapp(phone: str, country_code: str = '256') -> str:
    """Normalize a phone number to the digits-only form wa.me expects.

    0700123456 -> 256700123456, +256 700 123456 -> 256700123456
    """
    cleaned = re.sub(r'[^\d+]', '', str(phone or ''))
    if cleaned.startswith('0'):
        cleaned = f"{country_code}{cleaned[1:]}"
    if cleaned.startswith('+'):
        cleaned = cleaned[1:]
    # A '+' anywhere else is noise
    return cleaned.replace('+', '')


def whatsapp_link(phone: str, message: Optional[str] = None, country_code: str = '256') -> str:
    """Build a click-to-chat link, empty when there is no usable number."""
    number = format_phone_for_whatsapp(phone, country_code)
    if not number:
        return ''
    url = f"{WA_ME_URL}{number}"
    if message:
        url = f"{url}?text={quote(message)}"
    return url


def listing_message(product: dict) -> str:
    """Prefilled chat text for a listing."""
    name = product.get('name') or 'your item'
    price = product.get('price')
    if price is None:
        return f"Hi! I'm interested in {name} on StyleBay."
    return f"Hi! I'm interested in {name} (UGX {float(price):,.0f}) on StyleBay."
