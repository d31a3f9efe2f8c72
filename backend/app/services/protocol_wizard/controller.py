"""
Protocol wizard controller

Owns the current ``WizardSession`` and its side effects: the customer and
template fetches triggered by entering a step, and the single in-flight
protocol submission. Transition methods must be called from a running event
loop because entering a step may schedule a fetch task.
"""

from typing import Any, Awaitable, Callable, Dict, Optional
import asyncio
import logging

from app.services.protocol_wizard import state_machine as sm
from app.services.protocol_wizard.client import AuthContext, ProtocolApiClient
from app.services.protocol_wizard.errors import InvalidTransitionError, WizardError
from app.services.protocol_wizard.serializer import build_protocol_request, build_safety_check, encode_request
from app.services.protocol_wizard.state_machine import WizardSession, WizardStep

logger = logging.getLogger(__name__)


class ProtocolWizard:
    def __init__(self, api: ProtocolApiClient, ctx: AuthContext, role: str = "trainer"):
        self.api = api
        self.ctx = ctx
        self.role = role
        self.session: Optional[WizardSession] = None
        self.fetch_errors: Dict[str, WizardError] = {}
        self._fetches: Dict[str, asyncio.Task] = {}
        self._in_flight = False

    @property
    def submitting(self) -> bool:
        return self._in_flight

    # ----- lifecycle -----

    def open(self) -> WizardSession:
        """Start a fresh session on the role's first step"""
        self.session = sm.new_session(self.role)
        self.fetch_errors = {}
        self._fetches = {}
        logger.info(f"Opened protocol wizard session {self.session.session_id} for {self.role}")
        self._on_enter(self.session.current_step)
        return self.session

    def cancel(self) -> None:
        """Discard the session. Fetches still running are dropped when they resolve."""
        if self.session is not None:
            logger.info(f"Cancelled protocol wizard session {self.session.session_id}")
        self.session = None

    async def wait_for_fetches(self) -> None:
        pending = [t for t in self._fetches.values() if not t.done()]
        if pending:
            await asyncio.gather(*pending)

    # ----- transitions -----

    def _require_session(self) -> WizardSession:
        if self.session is None:
            raise InvalidTransitionError("The wizard is not open")
        return self.session

    def _apply(self, transition: Callable[..., WizardSession], *args, **kwargs) -> WizardSession:
        self.session = transition(self._require_session(), *args, **kwargs)
        return self.session

    def next(self) -> WizardSession:
        session = self._apply(sm.next_step)
        self._on_enter(session.current_step)
        return session

    def back(self) -> WizardSession:
        session = self._apply(sm.go_back)
        self._on_enter(session.current_step)
        return session

    def select_client(self, client_id: Optional[str]) -> WizardSession:
        return self._apply(sm.select_client, client_id)

    def select_template(self, template_id: Optional[str]) -> WizardSession:
        return self._apply(sm.select_template, template_id)

    def use_custom_template(self) -> WizardSession:
        return self._apply(sm.use_custom_template)

    def update_health_info(self, **changes) -> WizardSession:
        return self._apply(sm.update_health_info, **changes)

    def toggle_condition(self, code: str) -> WizardSession:
        return self._apply(sm.toggle_condition, code)

    def update_customization(self, **changes) -> WizardSession:
        return self._apply(sm.update_customization, **changes)

    # ----- fetches -----

    def _on_enter(self, step: WizardStep) -> None:
        session = self._require_session()
        if step == WizardStep.client_selection and session.customers is None:
            self._start_fetch("customers", self.api.list_customers, sm.with_customers)
        elif step == WizardStep.template_selection and session.templates is None:
            self._start_fetch("templates", self.api.list_templates, sm.with_templates)

    def _start_fetch(
        self,
        key: str,
        fetch: Callable[[AuthContext], Awaitable[Any]],
        apply: Callable[[WizardSession, Any], WizardSession],
    ) -> None:
        task = self._fetches.get(key)
        if task is not None and not task.done():
            return
        self.fetch_errors.pop(key, None)
        session_id = self.session.session_id
        self._fetches[key] = asyncio.create_task(self._run_fetch(session_id, key, fetch, apply))

    async def _run_fetch(self, session_id: str, key: str, fetch, apply) -> None:
        try:
            result = await fetch(self.ctx)
        except WizardError as e:
            logger.warning(f"Fetching {key} for wizard session {session_id} failed: {e.message}")
            if self.session is not None and self.session.session_id == session_id:
                self.fetch_errors[key] = e
            return

        if self.session is None or self.session.session_id != session_id:
            logger.info(f"Discarding {key} fetched for closed wizard session {session_id}")
            return
        # Applied even when the user has already moved past the step
        self.session = apply(self.session, result)

    # ----- safety -----

    async def check_safety(self) -> Dict[str, Any]:
        """Screen the health profile before submitting.

        The report is kept on the session and sent with the protocol, unless
        the profile or template changed while the check was running.
        """
        session = self._require_session()
        profile = build_safety_check(session)
        report = await self.api.check_safety(self.ctx, profile)

        current = self.session
        if current is None or current.session_id != session.session_id:
            logger.info(f"Discarding safety report for closed wizard session {session.session_id}")
        elif build_safety_check(current) != profile:
            logger.info(f"Discarding stale safety report for wizard session {session.session_id}")
        else:
            self.session = sm.with_safety_report(current, report)
            if report.get("requiresHealthcareApproval"):
                logger.warning(
                    f"Wizard session {session.session_id} rated {report.get('safetyRating')}, "
                    f"healthcare approval required"
                )
        return report

    # ----- submission -----

    async def submit(self) -> Optional[Dict[str, Any]]:
        """Create the protocol. Returns None when a submission is already in flight.

        On failure the session is left exactly as it was and the typed
        ``WizardError`` propagates. On success the session is discarded.
        """
        session = self._require_session()
        if self._in_flight:
            logger.info(f"Ignoring repeated submit for wizard session {session.session_id}")
            return None

        sm.ensure_submittable(session)
        body = encode_request(build_protocol_request(session))

        self._in_flight = True
        try:
            created = await self.api.create_protocol(self.ctx, body)
        except WizardError as e:
            logger.warning(f"Protocol submission for wizard session {session.session_id} failed: {e.message}")
            raise
        finally:
            self._in_flight = False

        logger.info(f"Created protocol {created.get('id')} from wizard session {session.session_id}")
        if self.session is not None and self.session.session_id == session.session_id:
            self.session = None
        return created
