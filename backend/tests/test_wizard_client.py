"""Tests for the wizard's HTTP client and its error mapping."""

import asyncio
import json

import httpx
import pytest

from app.services.protocol_wizard.client import AuthContext, ProtocolApiClient
from app.services.protocol_wizard.errors import (
    AuthError,
    InvalidInputError,
    NetworkError,
    PayloadTooLargeError,
    ServerError,
    WizardError,
)

CTX = AuthContext(token="tok-123")


def make_client(handler):
    return ProtocolApiClient(base_url="http://api.test", transport=httpx.MockTransport(handler))


def run(coro):
    return asyncio.run(coro)


class TestRequests:
    def test_login_returns_auth_context(self):
        def handler(request):
            assert request.url.path == "/api/auth/login"
            assert json.loads(request.content) == {"email": "t@example.com", "password": "pw"}
            return httpx.Response(200, json={"token": "abc", "user": {"id": "u1", "role": "trainer"}})

        ctx = run(make_client(handler).login("t@example.com", "pw"))
        assert ctx.token == "abc"
        assert ctx.user["role"] == "trainer"

    def test_bad_login_is_auth_error(self):
        client = make_client(lambda request: httpx.Response(401, json={"detail": "Incorrect email or password"}))
        with pytest.raises(AuthError):
            run(client.login("t@example.com", "wrong"))

    def test_bearer_token_is_sent(self):
        seen = {}

        def handler(request):
            seen["auth"] = request.headers.get("authorization")
            return httpx.Response(200, json=[])

        run(make_client(handler).list_customers(CTX))
        assert seen["auth"] == "Bearer tok-123"

    def test_templates_are_unwrapped(self):
        client = make_client(lambda request: httpx.Response(200, json={"success": True, "data": [{"id": "t1"}], "count": 1}))
        assert run(client.list_templates(CTX)) == [{"id": "t1"}]

    def test_create_sends_exact_bytes(self):
        body = b'{"name":"x"}'
        seen = {}

        def handler(request):
            seen["content"] = request.content
            seen["type"] = request.headers["content-type"]
            return httpx.Response(201, json={"id": "p1"})

        assert run(make_client(handler).create_protocol(CTX, body)) == {"id": "p1"}
        assert seen == {"content": body, "type": "application/json"}


class TestErrorMapping:
    @pytest.mark.parametrize("status,error", [
        (400, InvalidInputError),
        (404, InvalidInputError),
        (401, AuthError),
        (403, AuthError),
        (500, ServerError),
        (503, ServerError),
    ])
    def test_status_codes(self, status, error):
        client = make_client(lambda request: httpx.Response(status, json={"detail": "nope"}))
        with pytest.raises(error) as exc:
            run(client.create_protocol(CTX, b"{}"))
        assert exc.value.status_code == status

    def test_payload_too_large_reports_size(self):
        body = b"x" * 2048
        client = make_client(lambda request: httpx.Response(413, json={"detail": "too large", "limit": 1024, "received": 2048}))
        with pytest.raises(PayloadTooLargeError) as exc:
            run(client.create_protocol(CTX, body))
        assert exc.value.payload_bytes == 2048
        assert exc.value.limit == 1024
        assert exc.value.retryable is False

    def test_transport_failure_is_network_error(self):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        with pytest.raises(NetworkError) as exc:
            run(make_client(handler).create_protocol(CTX, b"{}"))
        assert exc.value.retryable is True

    def test_retryable_flags(self):
        assert ServerError("x").retryable is True
        assert NetworkError("x").retryable is True
        assert AuthError("x").retryable is False
        assert InvalidInputError("x").retryable is False
        assert issubclass(PayloadTooLargeError, WizardError)


class TestRetries:
    def test_fetch_retries_transient_failures(self, fast_retries):
        calls = []

        def handler(request):
            calls.append(request)
            if len(calls) == 1:
                raise httpx.ConnectError("flaky", request=request)
            if len(calls) == 2:
                return httpx.Response(502)
            return httpx.Response(200, json=[{"id": "c1"}])

        assert run(make_client(handler).list_customers(CTX)) == [{"id": "c1"}]
        assert len(calls) == 3

    def test_fetch_gives_up_after_retries(self, fast_retries):
        calls = []

        def handler(request):
            calls.append(request)
            return httpx.Response(500)

        with pytest.raises(ServerError):
            run(make_client(handler).list_customers(CTX))
        assert len(calls) == 3

    def test_auth_failure_is_not_retried(self, fast_retries):
        calls = []

        def handler(request):
            calls.append(request)
            return httpx.Response(401)

        with pytest.raises(AuthError):
            run(make_client(handler).list_templates(CTX))
        assert len(calls) == 1

    def test_create_is_never_retried(self):
        calls = []

        def handler(request):
            calls.append(request)
            return httpx.Response(500)

        with pytest.raises(ServerError):
            run(make_client(handler).create_protocol(CTX, b"{}"))
        assert len(calls) == 1


class TestResponseShapes:
    def test_non_json_success_is_server_error(self, fast_retries):
        client = make_client(lambda request: httpx.Response(200, text="<html>proxy login</html>"))
        with pytest.raises(ServerError):
            run(client.list_customers(CTX))
        with pytest.raises(ServerError):
            run(client.create_protocol(CTX, b"{}"))
        with pytest.raises(ServerError):
            run(client.login("t@example.com", "pw"))

    def test_non_json_fetch_is_retried(self, fast_retries):
        calls = []

        def handler(request):
            calls.append(request)
            if len(calls) == 1:
                return httpx.Response(200, text="<html>warming up</html>")
            return httpx.Response(200, json=[{"id": "c1"}])

        assert run(make_client(handler).list_customers(CTX)) == [{"id": "c1"}]
        assert len(calls) == 2

    @pytest.mark.parametrize("body", [{"customers": []}, [1, 2], "text"])
    def test_malformed_customer_list(self, body):
        client = make_client(lambda request: httpx.Response(200, json=body))
        with pytest.raises(ServerError):
            run(client.list_customers(CTX))

    def test_malformed_template_envelope(self):
        client = make_client(lambda request: httpx.Response(200, json={"success": True, "data": "none"}))
        with pytest.raises(ServerError):
            run(client.list_templates(CTX))

    def test_create_must_return_an_object(self):
        client = make_client(lambda request: httpx.Response(201, json=["p1"]))
        with pytest.raises(ServerError):
            run(client.create_protocol(CTX, b"{}"))

    def test_login_without_token(self):
        client = make_client(lambda request: httpx.Response(200, json={"user": {}}))
        with pytest.raises(ServerError):
            run(client.login("t@example.com", "pw"))


class TestSafetyCheck:
    def test_report_is_unwrapped(self):
        seen = {}

        def handler(request):
            seen["path"] = request.url.path
            seen["body"] = json.loads(request.content)
            return httpx.Response(200, json={"success": True, "data": {"safetyRating": "safe"}})

        report = run(make_client(handler).check_safety(CTX, {"medications": "", "conditions": []}))
        assert report == {"safetyRating": "safe"}
        assert seen == {"path": "/api/trainer/safety-check", "body": {"medications": "", "conditions": []}}

    def test_safety_check_is_retried(self, fast_retries):
        calls = []

        def handler(request):
            calls.append(request)
            if len(calls) == 1:
                return httpx.Response(503)
            return httpx.Response(200, json={"success": True, "data": {"safetyRating": "caution"}})

        assert run(make_client(handler).check_safety(CTX, {}))["safetyRating"] == "caution"
        assert len(calls) == 2

    def test_rejected_profile_is_invalid_input(self):
        client = make_client(lambda request: httpx.Response(422, json={"detail": [{"loc": ["body", "age"]}]}))
        with pytest.raises(InvalidInputError):
            run(client.check_safety(CTX, {"age": 500}))
