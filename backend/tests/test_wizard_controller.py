"""Tests for the wizard controller: fetch side effects and submission rules."""

import asyncio
import json

import httpx
import pytest

from app.services.protocol_wizard.client import AuthContext, ProtocolApiClient
from app.services.protocol_wizard.controller import ProtocolWizard
from app.services.protocol_wizard.errors import (
    InvalidInputError,
    InvalidTransitionError,
    PayloadTooLargeError,
    ServerError,
)
from app.services.protocol_wizard.state_machine import WizardStep

CUSTOMERS = [{"id": "c1", "email": "cam@example.com", "name": "Cam"}]
SAFETY_REPORT = {"safetyRating": "caution", "requiresHealthcareApproval": False}
TEMPLATES = {"success": True, "data": [{"id": "weight-loss", "name": "Sustainable Weight Loss", "protocolType": "longevity", "content": {}}], "count": 1}


class FakeBackend:
    """MockTransport handler with optional gates to hold responses open"""

    def __init__(self, create_status=201, create_body=None):
        self.create_status = create_status
        self.create_body = create_body if create_body is not None else {"id": "p1"}
        self.gates = {}
        self.requests = []

    def gate(self, path):
        self.gates[path] = asyncio.Event()
        return self.gates[path]

    def posts(self):
        return [r for r in self.requests if r.method == "POST"]

    async def __call__(self, request):
        self.requests.append(request)
        gate = self.gates.get(request.url.path)
        if gate is not None:
            await gate.wait()
        if request.url.path == "/api/trainer/customers":
            return httpx.Response(200, json=CUSTOMERS)
        if request.url.path == "/api/protocol-templates":
            return httpx.Response(200, json=TEMPLATES)
        if request.url.path == "/api/trainer/safety-check":
            return httpx.Response(200, json={"success": True, "data": SAFETY_REPORT})
        if request.url.path == "/api/trainer/health-protocols":
            return httpx.Response(self.create_status, json=self.create_body)
        return httpx.Response(404)


def make_wizard(backend, role="trainer"):
    api = ProtocolApiClient(base_url="http://api.test", transport=httpx.MockTransport(backend))
    return ProtocolWizard(api, AuthContext(token="tok"), role=role)


def walk_to_generation(wizard):
    if wizard.role == "trainer":
        wizard.select_client("c1")
        wizard.next()
    wizard.select_template("weight-loss")
    wizard.next()
    wizard.next()
    wizard.next()
    assert wizard.session.current_step == WizardStep.generation


class TestFetches:
    def test_open_fetches_customers_and_template_step_fetches_templates(self):
        async def scenario():
            backend = FakeBackend()
            wizard = make_wizard(backend)
            wizard.open()
            await wizard.wait_for_fetches()
            assert wizard.session.customers == tuple(CUSTOMERS)
            assert wizard.session.templates is None

            wizard.select_client("c1")
            wizard.next()
            await wizard.wait_for_fetches()
            assert wizard.session.templates[0]["id"] == "weight-loss"

            # cached: going back and forth does not fetch again
            wizard.back()
            wizard.next()
            await wizard.wait_for_fetches()
            paths = [r.url.path for r in backend.requests]
            assert paths.count("/api/trainer/customers") == 1
            assert paths.count("/api/protocol-templates") == 1

        asyncio.run(scenario())

    def test_admin_open_fetches_templates_only(self):
        async def scenario():
            backend = FakeBackend()
            wizard = make_wizard(backend, role="admin")
            wizard.open()
            await wizard.wait_for_fetches()
            assert [r.url.path for r in backend.requests] == ["/api/protocol-templates"]
            assert wizard.session.current_step == WizardStep.template_selection

        asyncio.run(scenario())

    def test_late_fetch_applies_after_user_moves_on(self):
        async def scenario():
            backend = FakeBackend()
            release = backend.gate("/api/trainer/customers")
            wizard = make_wizard(backend)
            wizard.open()
            wizard.select_client("c1")
            wizard.next()
            release.set()
            await wizard.wait_for_fetches()
            assert wizard.session.current_step == WizardStep.template_selection
            assert wizard.session.customers == tuple(CUSTOMERS)
            assert wizard.session.selected_client_id == "c1"

        asyncio.run(scenario())

    def test_fetch_after_cancel_is_discarded(self):
        async def scenario():
            backend = FakeBackend()
            release = backend.gate("/api/trainer/customers")
            wizard = make_wizard(backend)
            wizard.open()
            await asyncio.sleep(0)
            wizard.cancel()
            release.set()
            await wizard.wait_for_fetches()
            assert wizard.session is None

        asyncio.run(scenario())

    def test_fetch_failure_is_recorded(self, fast_retries):
        async def scenario():
            def handler(request):
                return httpx.Response(500)

            api = ProtocolApiClient(base_url="http://api.test", transport=httpx.MockTransport(handler))
            wizard = ProtocolWizard(api, AuthContext(token="tok"))
            wizard.open()
            await wizard.wait_for_fetches()
            assert isinstance(wizard.fetch_errors["customers"], ServerError)
            assert wizard.session.customers is None

        asyncio.run(scenario())


class TestCancel:
    def test_reopen_starts_empty(self):
        async def scenario():
            wizard = make_wizard(FakeBackend())
            first = wizard.open()
            wizard.select_client("c1")
            wizard.next()
            wizard.cancel()
            assert wizard.session is None

            second = wizard.open()
            assert second.session_id != first.session_id
            assert second.current_step == WizardStep.client_selection
            assert second.selected_client_id is None
            await wizard.wait_for_fetches()

        asyncio.run(scenario())


class TestSubmit:
    def test_successful_submit_discards_session(self):
        async def scenario():
            backend = FakeBackend()
            wizard = make_wizard(backend)
            wizard.open()
            walk_to_generation(wizard)
            created = await wizard.submit()
            assert created == {"id": "p1"}
            assert wizard.session is None
            body = json.loads(backend.posts()[0].content)
            assert body["targetCustomerId"] == "c1"
            assert body["duration"] == 30

        asyncio.run(scenario())

    def test_double_submit_makes_one_call(self):
        async def scenario():
            backend = FakeBackend()
            release = backend.gate("/api/trainer/health-protocols")
            wizard = make_wizard(backend)
            wizard.open()
            walk_to_generation(wizard)

            first = asyncio.create_task(wizard.submit())
            await asyncio.sleep(0)
            assert wizard.submitting is True
            assert await wizard.submit() is None

            release.set()
            assert await first == {"id": "p1"}
            assert len(backend.posts()) == 1
            assert wizard.submitting is False

        asyncio.run(scenario())

    def test_payload_too_large_keeps_session(self):
        async def scenario():
            backend = FakeBackend(create_status=413, create_body={"detail": "too large", "limit": 10, "received": 99})
            wizard = make_wizard(backend)
            wizard.open()
            walk_to_generation(wizard)
            await wizard.wait_for_fetches()
            before = wizard.session

            with pytest.raises(PayloadTooLargeError) as exc:
                await wizard.submit()
            assert exc.value.payload_bytes == len(backend.posts()[0].content)
            assert wizard.session is before
            assert wizard.session.current_step_index == 4

        asyncio.run(scenario())

    def test_rejected_submit_can_be_corrected_and_resent(self):
        async def scenario():
            backend = FakeBackend(create_status=400, create_body={"detail": {"message": "Invalid protocol data"}})
            wizard = make_wizard(backend)
            wizard.open()
            walk_to_generation(wizard)

            with pytest.raises(InvalidInputError):
                await wizard.submit()
            assert wizard.session.current_step == WizardStep.generation

            backend.create_status = 201
            backend.create_body = {"id": "p2"}
            assert await wizard.submit() == {"id": "p2"}
            assert len(backend.posts()) == 2

        asyncio.run(scenario())

    def test_submit_before_generation_makes_no_call(self):
        async def scenario():
            backend = FakeBackend()
            wizard = make_wizard(backend)
            wizard.open()
            with pytest.raises(InvalidTransitionError):
                await wizard.submit()
            await wizard.wait_for_fetches()
            assert backend.posts() == []

        asyncio.run(scenario())


class TestUndecodableResponses:
    def test_html_customer_page_is_recorded_as_server_error(self, fast_retries):
        async def scenario():
            def handler(request):
                return httpx.Response(200, text="<html>proxy login</html>")

            api = ProtocolApiClient(base_url="http://api.test", transport=httpx.MockTransport(handler))
            wizard = ProtocolWizard(api, AuthContext(token="tok"))
            wizard.open()
            await wizard.wait_for_fetches()
            assert isinstance(wizard.fetch_errors["customers"], ServerError)
            assert wizard.session.customers is None

        asyncio.run(scenario())

    def test_undecodable_create_response_keeps_session(self):
        async def scenario():
            backend = FakeBackend()
            wizard = make_wizard(backend)
            wizard.open()
            walk_to_generation(wizard)
            await wizard.wait_for_fetches()
            before = wizard.session

            async def html_create(request):
                if request.url.path == "/api/trainer/health-protocols":
                    backend.requests.append(request)
                    return httpx.Response(201, text="<html>oops</html>")
                return await backend(request)

            wizard.api = ProtocolApiClient(base_url="http://api.test", transport=httpx.MockTransport(html_create))
            with pytest.raises(ServerError):
                await wizard.submit()
            assert wizard.session is before
            assert wizard.submitting is False

        asyncio.run(scenario())


class TestSafetyCheck:
    def test_report_is_kept_and_submitted(self):
        async def scenario():
            backend = FakeBackend()
            wizard = make_wizard(backend)
            wizard.open()
            walk_to_generation(wizard)
            wizard.update_health_info(medications="metformin")
            await wizard.wait_for_fetches()

            assert await wizard.check_safety() == SAFETY_REPORT
            assert wizard.session.safety_report == SAFETY_REPORT
            check = json.loads(backend.posts()[0].content)
            assert check["medications"] == "metformin"
            assert check["protocolType"] == "longevity"

            await wizard.submit()
            body = json.loads(backend.posts()[-1].content)
            assert body["config"]["safetyValidation"] == SAFETY_REPORT

        asyncio.run(scenario())

    def test_report_for_changed_profile_is_discarded(self):
        async def scenario():
            backend = FakeBackend()
            release = backend.gate("/api/trainer/safety-check")
            wizard = make_wizard(backend)
            wizard.open()
            walk_to_generation(wizard)

            check = asyncio.create_task(wizard.check_safety())
            await asyncio.sleep(0)
            wizard.update_health_info(medications="warfarin")
            release.set()
            assert await check == SAFETY_REPORT
            assert wizard.session.safety_report is None
            await wizard.wait_for_fetches()

        asyncio.run(scenario())

    def test_report_after_cancel_is_discarded(self):
        async def scenario():
            backend = FakeBackend()
            release = backend.gate("/api/trainer/safety-check")
            wizard = make_wizard(backend)
            wizard.open()
            walk_to_generation(wizard)

            check = asyncio.create_task(wizard.check_safety())
            await asyncio.sleep(0)
            wizard.cancel()
            release.set()
            await check
            assert wizard.session is None
            await wizard.wait_for_fetches()

        asyncio.run(scenario())
