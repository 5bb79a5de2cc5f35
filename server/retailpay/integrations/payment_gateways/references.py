"""Merchant-side payment reference helpers."""

import hashlib
from typing import Optional

from retailpay.schemas.order import Order

REFERENCE_SEPARATOR = "_"
SUFFIX_LENGTH = 8


def generate_reference(identifier: str, order: Order) -> str:
    """
    Build the merchant reference for an order.

    The reference is derived only from the order, so initiate, verify and
    webhook calls for the same order agree on it.
    """
    seed = f"{order.tenant_id}:{order.id}:{order.order_number}".encode("utf-8")
    suffix = hashlib.sha256(seed).hexdigest()[:SUFFIX_LENGTH]
    return REFERENCE_SEPARATOR.join((identifier, order.order_number, suffix)).upper()


def order_number_from_reference(reference: str) -> Optional[str]:
    """Recover the order number embedded in a generated reference."""
    parts = (reference or "").split(REFERENCE_SEPARATOR)
    if len(parts) < 3:
        return None
    order_number = REFERENCE_SEPARATOR.join(parts[1:-1])
    return order_number or None
