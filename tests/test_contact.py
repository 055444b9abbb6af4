"""
WhatsApp number formatting tests.
"""

import os
import sys

PROJECT_ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
sys.path.insert(0, os.path.join(PROJECT_ROOT, "backend"))

from stylebay.services import contact  # noqa: E402


def test_format_phone_for_whatsapp():
    assert contact.format_phone_for_whatsapp("0700 123-456") == "256700123456"
    assert contact.format_phone_for_whatsapp("+256 (772) 000111") == "256772000111"
    assert contact.format_phone_for_whatsapp("256700123456") == "256700123456"
    assert contact.format_phone_for_whatsapp("0712345678", country_code="254") == "254712345678"
    assert contact.format_phone_for_whatsapp(None) == ""


def test_whatsapp_link_encodes_message():
    url = contact.whatsapp_link("0700123456", "Hi! Is it available?")
    assert url == "https://wa.me/256700123456?text=Hi%21%20Is%20it%20available%3F"
    assert contact.whatsapp_link("0700123456") == "https://wa.me/256700123456"
    assert contact.whatsapp_link("n/a") == ""


def test_listing_message_mentions_item_and_price():
    message = contact.listing_message({"name": "Gomesi", "price": 100000})
    assert "Gomesi" in message
    assert "100,000" in message
    assert "your item" in contact.listing_message({})
