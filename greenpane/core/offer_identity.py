from __future__ import annotations

import hashlib

import base58


def offer_hash(offer_text: str) -> str:
    """Content hash MintGarden uses to key offers: base58(sha256(utf-8 text))."""
    digest = hashlib.sha256(offer_text.encode("utf-8")).digest()
    return base58.b58encode(digest).decode("ascii")
