"""Tests for the payment gateway adapters."""

import base64
import hashlib
import hmac
import json
import time
from urllib.parse import parse_qs

import httpx
import pytest
from storefront.payments.gateway import get_gateway, reset_gateway
from storefront.payments.gateway.fake_adapter import FakeGateway
from storefront.payments.gateway.omise_adapter import OmiseGateway
from storefront.payments.gateway.port import GatewayUnavailable

WEBHOOK_SECRET = base64.b64encode(b"omise-webhook-secret").decode()


def _omise(handler):
    return OmiseGateway(
        secret_key="skey_test_123",
        webhook_secret=WEBHOOK_SECRET,
        transport=httpx.MockTransport(handler),
    )


class TestFakeGateway:
    def test_charge_succeeds_by_default(self):
        result = FakeGateway().create_charge(50000, "THB", "tokn_1", "ord-1")
        assert result.success
        assert result.charge_id.startswith("fake_chrg_")

    def test_configured_decline(self):
        gateway = FakeGateway()
        gateway.configure(should_succeed=False, failure_reason="Insufficient funds")
        result = gateway.create_charge(50000, "THB", "tokn_1", "ord-1")
        assert not result.success
        assert result.failure_reason == "Insufficient funds"

    def test_same_idempotency_key_returns_first_result(self):
        gateway = FakeGateway()
        first = gateway.create_charge(50000, "THB", "tokn_1", "ord-1")
        gateway.configure(should_succeed=False)
        second = gateway.create_charge(50000, "THB", "tokn_1", "ord-1")
        assert second == first

    def test_unavailable(self):
        gateway = FakeGateway()
        gateway.configure(should_succeed=True, available=False)
        with pytest.raises(GatewayUnavailable):
            gateway.create_charge(50000, "THB", "tokn_1", "ord-1")

    def test_source_has_scannable_image(self):
        source = FakeGateway().create_source(125000, "THB", "qr")
        assert source.source_id.startswith("fake_src_")
        assert "api.qrserver.com" in source.scannable_image_url
        assert "125000" in source.scannable_image_url

    def test_find_charge(self):
        gateway = FakeGateway()
        assert gateway.find_charge("ord-9") is None
        result = gateway.create_charge(100, "THB", "tokn_1", "ord-9")
        assert gateway.find_charge("ord-9") == result

    def test_webhook_signature(self):
        gateway = FakeGateway()
        assert gateway.verify_webhook_signature("{}", {"x-gateway-signature": "test-signature"})
        assert not gateway.verify_webhook_signature("{}", {"x-gateway-signature": "forged"})
        assert not gateway.verify_webhook_signature("{}", {})

    def test_charge_held_for_authorization(self):
        gateway = FakeGateway()
        gateway.configure(should_succeed=True, requires_authorization=True)
        result = gateway.create_charge(50000, "THB", "tokn_1", "ord-1")
        assert not result.success
        assert not result.declined
        assert result.gateway_status == "pending"
        assert result.charge_id in result.authorize_uri

    def test_parse_webhook(self):
        event = FakeGateway().parse_webhook(json.dumps({"status": "successful", "source_id": "src_1"}))
        assert event.status == "successful"
        assert event.source_id == "src_1"
        assert event.charge_id is None


class TestGatewayFactory:
    def test_defaults_to_fake(self, monkeypatch):
        monkeypatch.delenv("PAYMENT_GATEWAY", raising=False)
        reset_gateway()
        assert isinstance(get_gateway(), FakeGateway)

    def test_omise_from_environment(self, monkeypatch):
        monkeypatch.setenv("PAYMENT_GATEWAY", "omise")
        monkeypatch.setenv("OMISE_SECRET_KEY", "skey_test_123")
        monkeypatch.setenv("OMISE_WEBHOOK_SECRET", WEBHOOK_SECRET)
        reset_gateway()
        assert isinstance(get_gateway(), OmiseGateway)

    def test_gateway_is_cached(self):
        assert get_gateway() is get_gateway()


class TestOmiseGateway:
    def test_charge_sends_token_and_idempotency_key(self):
        seen = {}

        def handler(request):
            seen["headers"] = request.headers
            seen["form"] = parse_qs(request.content.decode())
            return httpx.Response(200, json={"object": "charge", "id": "chrg_test_1", "status": "successful"})

        result = _omise(handler).create_charge(125050, "THB", "tokn_test_1", "ord-42")

        assert result.success
        assert result.charge_id == "chrg_test_1"
        assert seen["headers"]["Idempotency-Key"] == "ord-42"
        assert seen["form"]["card"] == ["tokn_test_1"]
        assert seen["form"]["amount"] == ["125050"]
        assert seen["form"]["currency"] == ["thb"]

    def test_declined_charge(self):
        def handler(request):
            return httpx.Response(
                200,
                json={"object": "charge", "id": "chrg_test_2", "status": "failed", "failure_message": "insufficient fund"},
            )

        result = _omise(handler).create_charge(100, "THB", "tokn_test_1", "ord-43")
        assert not result.success
        assert result.declined
        assert result.failure_reason == "insufficient fund"

    @pytest.mark.parametrize("code", ["invalid_card", "used_token"])
    def test_card_error_is_a_declined_charge(self, code):
        def handler(request):
            return httpx.Response(400, json={"object": "error", "code": code, "message": "token was used"})

        result = _omise(handler).create_charge(100, "THB", "tokn_used", "ord-44")
        assert result.declined
        assert result.failure_reason == "token was used"

    @pytest.mark.parametrize(
        "status_code, code",
        [(401, "authentication_failure"), (400, "bad_request"), (404, "service_not_found")],
    )
    def test_error_unrelated_to_the_card_is_unavailable(self, status_code, code):
        def handler(request):
            return httpx.Response(status_code, json={"object": "error", "code": code, "message": "skey_test_123 is bad"})

        with pytest.raises(GatewayUnavailable) as exc_info:
            _omise(handler).create_charge(100, "THB", "tokn_test_1", "ord-47")
        assert "skey_test_123" not in str(exc_info.value)

    def test_charge_pending_three_d_secure(self):
        def handler(request):
            return httpx.Response(
                200,
                json={
                    "object": "charge",
                    "id": "chrg_test_3ds",
                    "status": "pending",
                    "authorize_uri": "https://api.omise.co/payments/paym_1/authorize",
                },
            )

        result = _omise(handler).create_charge(100, "THB", "tokn_test_1", "ord-48")
        assert not result.success
        assert not result.declined
        assert result.charge_id == "chrg_test_3ds"
        assert result.authorize_uri == "https://api.omise.co/payments/paym_1/authorize"

    def test_expired_charge_is_declined(self):
        def handler(request):
            return httpx.Response(200, json={"object": "charge", "id": "chrg_test_4", "status": "expired"})

        assert _omise(handler).create_charge(100, "THB", "tokn_test_1", "ord-49").declined

    def test_timeout_is_unavailable(self):
        def handler(request):
            raise httpx.ReadTimeout("timed out", request=request)

        with pytest.raises(GatewayUnavailable):
            _omise(handler).create_charge(100, "THB", "tokn_test_1", "ord-45")

    def test_server_error_is_unavailable(self):
        def handler(request):
            return httpx.Response(502, json={"object": "error"})

        with pytest.raises(GatewayUnavailable):
            _omise(handler).create_charge(100, "THB", "tokn_test_1", "ord-46")

    def test_promptpay_source(self):
        def handler(request):
            form = parse_qs(request.content.decode())
            assert form["source[type]"] == ["promptpay"]
            return httpx.Response(
                200,
                json={
                    "object": "charge",
                    "id": "chrg_test_3",
                    "status": "pending",
                    "source": {
                        "id": "src_test_1",
                        "scannable_code": {"image": {"download_uri": "https://api.omise.co/qr.png"}},
                    },
                },
            )

        source = _omise(handler).create_source(50000, "THB", "qr")
        assert source.source_id == "src_test_1"
        assert source.scannable_image_url == "https://api.omise.co/qr.png"

    def test_find_charge_matches_metadata(self):
        def handler(request):
            assert request.url.path == "/search"
            return httpx.Response(
                200,
                json={
                    "data": [
                        {"id": "chrg_other", "status": "successful", "metadata": {"idempotency_key": "ord-1"}},
                        {"id": "chrg_mine", "status": "successful", "metadata": {"idempotency_key": "ord-10"}},
                    ]
                },
            )

        result = _omise(handler).find_charge("ord-10")
        assert result.charge_id == "chrg_mine"

    def test_find_charge_none(self):
        def handler(request):
            return httpx.Response(200, json={"data": []})

        assert _omise(handler).find_charge("ord-11") is None

    def test_search_error_is_unavailable(self):
        def handler(request):
            return httpx.Response(401, json={"object": "error", "code": "authentication_failure"})

        with pytest.raises(GatewayUnavailable):
            _omise(handler).find_charge("ord-12")


def _signed(payload, timestamp, secret=b"omise-webhook-secret"):
    signature = hmac.new(secret, f"{timestamp}.{payload}".encode(), hashlib.sha256).hexdigest()
    return {"omise-signature": signature, "omise-signature-timestamp": str(timestamp)}


class TestOmiseWebhookSignature:
    @pytest.fixture()
    def gateway(self):
        return _omise(lambda request: httpx.Response(200, json={}))

    @pytest.fixture()
    def payload(self):
        return json.dumps({"key": "charge.complete", "data": {"id": "chrg_1", "status": "successful"}})

    def test_timestamped_signature(self, gateway, payload):
        assert gateway.verify_webhook_signature(payload, _signed(payload, int(time.time())))

    def test_any_of_several_signatures_during_rotation(self, gateway, payload):
        headers = _signed(payload, int(time.time()))
        headers["omise-signature"] = f"deadbeef,{headers['omise-signature']}"
        assert gateway.verify_webhook_signature(payload, headers)

    def test_body_only_signature_is_rejected(self, gateway, payload):
        body_only = hmac.new(b"omise-webhook-secret", payload.encode(), hashlib.sha256).hexdigest()
        headers = {"omise-signature": body_only, "omise-signature-timestamp": str(int(time.time()))}
        assert not gateway.verify_webhook_signature(payload, headers)

    def test_tampered_body_is_rejected(self, gateway, payload):
        headers = _signed(payload, int(time.time()))
        assert not gateway.verify_webhook_signature(payload.replace("successful", "failed"), headers)

    def test_wrong_secret_is_rejected(self, gateway, payload):
        assert not gateway.verify_webhook_signature(payload, _signed(payload, int(time.time()), secret=b"other"))

    def test_stale_timestamp_is_rejected(self, gateway, payload):
        assert not gateway.verify_webhook_signature(payload, _signed(payload, int(time.time()) - 3600))

    def test_missing_headers_are_rejected(self, gateway, payload):
        headers = _signed(payload, int(time.time()))
        assert not gateway.verify_webhook_signature(payload, {"omise-signature": headers["omise-signature"]})
        assert not gateway.verify_webhook_signature(payload, {})

    def test_parse_webhook(self, gateway):
        event = gateway.parse_webhook(
            json.dumps(
                {
                    "key": "charge.complete",
                    "data": {"id": "chrg_9", "status": "failed", "failure_message": "expired", "source": {"id": "src_9"}},
                }
            )
        )
        assert event.status == "failed"
        assert event.charge_id == "chrg_9"
        assert event.source_id == "src_9"
        assert event.failure_reason == "expired"
