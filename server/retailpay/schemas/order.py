"""
Order-shaped records consumed by the payment gateway layer.

These mirror the fields the surrounding order management code hands to
gateway adapters; they are not persisted here.
"""

import json
from decimal import Decimal
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field

DEFAULT_CURRENCY = "NGN"
FALLBACK_CUSTOMER_EMAIL = "customer@example.com"


class Customer(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None


class Shop(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    name: Optional[str] = None
    currency: str = Field(default=DEFAULT_CURRENCY, min_length=3, max_length=3)


class Order(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    order_number: str
    total_amount: Decimal = Field(ge=0)
    currency: Optional[str] = Field(default=None, min_length=3, max_length=3)
    tenant_id: str
    shop_id: str
    shop: Optional[Shop] = None
    customer: Optional[Customer] = None
    billing_email: Optional[str] = None

    @property
    def payment_currency(self) -> str:
        """Currency the order is charged in: shop currency first."""
        if self.shop is not None and self.shop.currency:
            return self.shop.currency.upper()
        if self.currency:
            return self.currency.upper()
        return DEFAULT_CURRENCY

    @property
    def customer_email(self) -> str:
        if self.customer is not None and self.customer.email:
            return self.customer.email
        return self.billing_email or FALLBACK_CUSTOMER_EMAIL


class OrderPayment(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: Optional[str] = None
    reference_number: str
    amount: Decimal
    currency: Optional[str] = None
    notes: Optional[str] = None
    gateway_reference: Optional[str] = None
    order: Optional[Order] = None

    def resolve_gateway_reference(self) -> Optional[str]:
        """
        Provider-side transaction id for this payment.

        Prefers the structured ``gateway_reference`` field and falls back to
        the JSON map older records stored in ``notes``.
        """
        if self.gateway_reference:
            return self.gateway_reference

        notes = self._parse_notes()
        value = notes.get("gateway_reference")
        if value in (None, ""):
            return None
        return str(value)

    def _parse_notes(self) -> dict[str, Any]:
        if not self.notes:
            return {}
        try:
            decoded = json.loads(self.notes)
        except ValueError:
            return {}
        return decoded if isinstance(decoded, dict) else {}
