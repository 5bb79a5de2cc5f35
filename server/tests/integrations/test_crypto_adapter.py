"""
Cryptocurrency adapter tests.
"""

from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest

from retailpay.core.config import CryptoConfig
from retailpay.integrations.payment_gateways.base import (
    InitiationKind,
    VerificationStatus,
    WebhookRequest,
    WebhookStatus,
)
from retailpay.integrations.payment_gateways.crypto_adapter import CryptoAdapter, canonical_payload

from tests.helpers import (
    CRYPTO_IPN_SECRET,
    hmac_sha512,
    json_body,
    make_response,
    mock_http,
)


def _adapter(settings, *responses, config=None):
    return CryptoAdapter(config=config, http_client=mock_http(*responses), settings=settings)


def _ipn_payload(status="finished"):
    return {
        "payment_id": 5077125051,
        "payment_status": status,
        "pay_address": "bc1qexampleaddress",
        "price_amount": 50,
        "price_currency": "usd",
        "pay_amount": 0.00081,
        "actually_paid": 0.00081,
        "pay_currency": "btc",
        "order_id": "CRYPTO_ORD-0042_ABCDEF12",
        "order_description": "Order #ORD-0042",
        "outcome_amount": 0.0008,
        "outcome_currency": "btc",
        "fee": {"currency": "btc", "depositFee": 0, "withdrawalFee": 0, "serviceFee": 0},
    }


class TestCryptoInitialize:

    @pytest.mark.asyncio
    async def test_initialize_returns_crypto_variant(self, test_settings, test_order):
        adapter = _adapter(
            test_settings,
            make_response({
                "payment_id": "5745459419",
                "payment_status": "waiting",
                "pay_address": "0x9a3B5fBe4E0e2D1e7a1E4bD5aC1e0F0B6aBcDeF1",
                "pay_amount": 0.0231,
                "pay_currency": "eth",
                "invoice_url": "https://nowpayments.io/payment/?iid=5745459419",
                "expiration_estimate_date": "2024-05-01T10:20:00.000Z",
            }),
        )

        result = await adapter.initialize_payment(test_order, {"pay_currency": "ETH", "metadata": {"till": "3"}})

        assert result.kind is InitiationKind.CRYPTO
        assert result.is_crypto
        assert not result.requires_redirect
        assert result.wallet_address == "0x9a3B5fBe4E0e2D1e7a1E4bD5aC1e0F0B6aBcDeF1"
        assert result.crypto_amount == Decimal("0.0231")
        assert result.crypto_currency == "ETH"
        assert result.expires_at == datetime(2024, 5, 1, 10, 20, tzinfo=timezone.utc)
        assert result.metadata == {
            "payment_id": "5745459419",
            "payment_url": "https://nowpayments.io/payment/?iid=5745459419",
            "till": "3",
        }

        method, endpoint = adapter.http.request.call_args.args
        payload = adapter.http.request.call_args.kwargs["json"]
        assert (method, endpoint) == ("POST", "/payment")
        assert payload == {
            "price_amount": 5000.0,
            "price_currency": "ngn",
            "pay_currency": "eth",
            "ipn_callback_url": "https://shop.example.com/webhooks/crypto",
            "order_id": result.reference,
            "order_description": "Order #ORD-0042",
        }

    @pytest.mark.asyncio
    async def test_defaults_to_btc_and_thirty_minute_window(self, test_settings, test_order):
        adapter = _adapter(test_settings, make_response({"pay_address": "bc1q", "pay_amount": "0.001"}))

        before = datetime.now(timezone.utc)
        result = await adapter.initialize_payment(test_order)

        assert result.crypto_currency == "BTC"
        assert adapter.http.request.call_args.kwargs["json"]["pay_currency"] == "btc"
        assert before + timedelta(minutes=29) < result.expires_at < before + timedelta(minutes=31)

    @pytest.mark.asyncio
    async def test_initialize_failure(self, test_settings, test_order):
        adapter = _adapter(
            test_settings,
            make_response({"message": "Currency ngn is not supported"}, success=False, status=400),
        )

        result = await adapter.initialize_payment(test_order)

        assert result.kind is InitiationKind.FAILED
        assert result.message == "Currency ngn is not supported"

    def test_api_key_header(self, test_settings):
        adapter = CryptoAdapter(settings=test_settings)

        assert adapter.http.default_headers["x-api-key"] == "nowpayments-api-key"
        assert "Authorization" not in adapter.http.default_headers


class TestCryptoVerify:

    @pytest.mark.asyncio
    @pytest.mark.parametrize("status", ["finished", "confirmed"])
    async def test_verify_success(self, test_settings, status):
        adapter = _adapter(
            test_settings,
            make_response({
                "payment_id": 5077125051,
                "payment_status": status,
                "price_amount": 50,
                "price_currency": "usd",
                "pay_currency": "usdttrc20",
            }),
        )

        result = await adapter.verify_payment("5077125051")

        assert result.status is VerificationStatus.SUCCESS
        assert result.amount == Decimal("50")
        assert result.currency == "USD"
        assert result.gateway_reference == "5077125051"
        assert result.payment_method.startswith("crypto_")
        assert result.payment_method == "crypto_usdttrc20"
        assert adapter.http.request.call_args.args == ("GET", "/payment/5077125051")

    @pytest.mark.asyncio
    @pytest.mark.parametrize("status", ["waiting", "confirming", "sending"])
    async def test_verify_pending_names_the_status(self, test_settings, status):
        adapter = _adapter(test_settings, make_response({"payment_status": status}))

        result = await adapter.verify_payment("5077125051")

        assert result.is_pending
        assert status in result.message

    @pytest.mark.asyncio
    async def test_verify_expired(self, test_settings):
        adapter = _adapter(test_settings, make_response({"payment_status": "expired"}))

        result = await adapter.verify_payment("5077125051")

        assert result.is_failed
        assert result.message == "Payment expired"


    @pytest.mark.asyncio
    async def test_verify_escapes_reference_in_path(self, test_settings):
        adapter = _adapter(test_settings, make_response({"payment_status": "waiting"}))

        await adapter.verify_payment("../admin?x=1")

        assert adapter.http.request.call_args.args == ("GET", "/payment/..%2Fadmin%3Fx%3D1")


class TestCryptoRefund:

    @pytest.mark.asyncio
    async def test_refund_is_manual(self, test_settings, test_payment):
        adapter = _adapter(test_settings, make_response({}))

        result = await adapter.refund(test_payment, Decimal("10"))

        assert adapter.supports_refunds() is False
        assert not result.success
        assert result.message == (
            "Cryptocurrency payments cannot be refunded automatically. Please process manually."
        )
        adapter.http.request.assert_not_called()


class TestCryptoWebhook:

    def test_signature_over_sorted_keys(self, test_settings):
        adapter = _adapter(test_settings)
        payload = _ipn_payload()
        signature = hmac_sha512(CRYPTO_IPN_SECRET, canonical_payload(payload))

        # Body arrives with keys in provider order.
        request = WebhookRequest({"x-nowpayments-sig": signature}, json_body(payload))

        assert adapter.validate_webhook(request) is True

    def test_canonical_payload_sorts_nested_keys(self):
        assert canonical_payload({"b": 1, "a": {"d": 2, "c": "x/y"}}) == b'{"a":{"c":"x/y","d":2},"b":1}'

    def test_signature_over_raw_body_order_is_rejected(self, test_settings):
        adapter = _adapter(test_settings)
        body = json_body(_ipn_payload())
        request = WebhookRequest({"x-nowpayments-sig": hmac_sha512(CRYPTO_IPN_SECRET, body)}, body)

        assert adapter.validate_webhook(request) is False

    def test_falls_back_to_webhook_secret(self, test_settings):
        config = CryptoConfig(api_key="key", webhook_secret="fallback-secret")
        adapter = _adapter(test_settings, config=config)
        payload = _ipn_payload()
        signature = hmac_sha512("fallback-secret", canonical_payload(payload))

        assert adapter.validate_webhook(WebhookRequest.from_json(payload, {"x-nowpayments-sig": signature}))

    def test_no_secret_configured(self, test_settings):
        adapter = _adapter(test_settings, config=CryptoConfig(api_key="key"))
        payload = _ipn_payload()
        signature = hmac_sha512("", canonical_payload(payload))

        assert adapter.validate_webhook(WebhookRequest.from_json(payload, {"x-nowpayments-sig": signature})) is False

    def test_parse_finished_payment(self, test_settings):
        adapter = _adapter(test_settings)
        event = adapter.parse_webhook(WebhookRequest.from_json(_ipn_payload()))

        assert event.type == "payment.success"
        assert event.status is WebhookStatus.SUCCESS
        assert event.reference == "CRYPTO_ORD-0042_ABCDEF12"
        assert event.gateway_reference == "5077125051"
        assert event.amount == Decimal("50")
        assert event.currency == "USD"
        assert event.metadata == {"pay_amount": 0.00081, "pay_currency": "btc", "actually_paid": 0.00081}

    @pytest.mark.parametrize(
        "status, expected",
        [
            ("confirming", WebhookStatus.PENDING),
            ("partially_paid", WebhookStatus.PENDING),
            ("expired", WebhookStatus.FAILED),
            ("refunded", WebhookStatus.FAILED),
        ],
    )
    def test_status_mapping(self, test_settings, status, expected):
        adapter = _adapter(test_settings)

        event = adapter.parse_webhook(WebhookRequest.from_json(_ipn_payload(status)))

        assert event.status is expected
        assert event.type == f"payment.{expected.value}"
