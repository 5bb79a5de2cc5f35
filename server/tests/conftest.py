"""
Shared test configuration and fixtures for the RetailPay test suite.
"""

import json
from decimal import Decimal

import pytest

from retailpay.core.config import (
    CryptoConfig,
    FlutterwaveConfig,
    OpayConfig,
    PaystackConfig,
    Settings,
)
from retailpay.schemas.order import Customer, Order, OrderPayment, Shop

from tests.helpers import (
    CRYPTO_IPN_SECRET,
    FLUTTERWAVE_SECRET_HASH,
    OPAY_WEBHOOK_SECRET,
    PAYSTACK_WEBHOOK_SECRET,
)


@pytest.fixture
def test_settings() -> Settings:
    return Settings(
        app_name="RetailPay Test",
        app_url="https://shop.example.com",
        environment="testing",
        paystack=PaystackConfig(
            secret_key="sk_test_paystack",
            public_key="pk_test_paystack",
            webhook_secret=PAYSTACK_WEBHOOK_SECRET,
        ),
        flutterwave=FlutterwaveConfig(
            secret_key="FLWSECK_TEST-123",
            public_key="FLWPUBK_TEST-123",
            webhook_secret=FLUTTERWAVE_SECRET_HASH,
        ),
        opay=OpayConfig(
            secret_key="OPAYPRV_test",
            public_key="OPAYPUB_test",
            webhook_secret=OPAY_WEBHOOK_SECRET,
            merchant_id="256612345678901",
        ),
        crypto=CryptoConfig(
            api_key="nowpayments-api-key",
            ipn_secret=CRYPTO_IPN_SECRET,
        ),
    )


@pytest.fixture
def unconfigured_settings() -> Settings:
    return Settings(
        app_name="RetailPay Test",
        app_url="https://shop.example.com",
        environment="testing",
        paystack=PaystackConfig(),
        flutterwave=FlutterwaveConfig(),
        opay=OpayConfig(),
        crypto=CryptoConfig(),
    )


@pytest.fixture
def test_shop() -> Shop:
    return Shop(id="shop-1", name="Lekki Outlet", currency="NGN")


@pytest.fixture
def test_customer() -> Customer:
    return Customer(name="Ada Obi", email="ada@example.com", phone="+2348012345678")


@pytest.fixture
def test_order(test_shop, test_customer) -> Order:
    return Order(
        id="order-42",
        order_number="ORD-0042",
        total_amount=Decimal("5000.00"),
        currency="NGN",
        tenant_id="tenant-7",
        shop_id=test_shop.id,
        shop=test_shop,
        customer=test_customer,
    )


@pytest.fixture
def test_payment(test_order) -> OrderPayment:
    return OrderPayment(
        id="payment-1",
        reference_number="PAYSTACK_ORD-0042_ABCDEF12",
        amount=Decimal("5000.00"),
        currency="NGN",
        notes=json.dumps({"gateway": "paystack", "gateway_reference": "3049577215"}),
        order=test_order,
    )
