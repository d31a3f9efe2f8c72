"""
Protocol wizard state machine

The wizard is an immutable ``WizardSession`` value plus pure transition
functions. Every transition returns a new session; invalid transitions raise
and leave the caller's session untouched.

Trainer flow: client_selection -> template_selection -> health_information
-> customization -> generation. The admin flow has no client selection.
"""

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Dict, FrozenSet, Iterable, Optional, Tuple
import uuid

from app.services.protocols.ailments import ailment_catalog
from app.services.protocol_wizard.errors import InvalidTransitionError, StepValidationError

INTENSITIES = ("gentle", "moderate", "intensive")
DEFAULT_DURATION_DAYS = 30


class WizardStep(str, Enum):
    client_selection = "client_selection"
    template_selection = "template_selection"
    health_information = "health_information"
    customization = "customization"
    generation = "generation"


TRAINER_STEPS = (
    WizardStep.client_selection,
    WizardStep.template_selection,
    WizardStep.health_information,
    WizardStep.customization,
    WizardStep.generation,
)
ADMIN_STEPS = TRAINER_STEPS[1:]


def steps_for_role(role: str) -> Tuple[WizardStep, ...]:
    if role == "admin":
        return ADMIN_STEPS
    if role == "trainer":
        return TRAINER_STEPS
    raise ValueError(f"Role '{role}' cannot create protocols")


@dataclass(frozen=True)
class HealthInfo:
    age: Optional[float] = None
    weight: Optional[float] = None
    height: Optional[float] = None
    activity_level: Optional[str] = None
    health_goals: str = ""
    selected_conditions: FrozenSet[str] = frozenset()
    medications: str = ""


@dataclass(frozen=True)
class Customization:
    duration: Any = DEFAULT_DURATION_DAYS
    intensity: str = "moderate"
    tags: Tuple[str, ...] = ()
    protocol_name: Optional[str] = None
    description: Optional[str] = None
    notes: Optional[str] = None


@dataclass(frozen=True)
class WizardSession:
    session_id: str
    steps: Tuple[WizardStep, ...]
    current_step_index: int = 0
    selected_client_id: Optional[str] = None
    selected_template_id: Optional[str] = None
    use_custom_template: bool = False
    health_info: HealthInfo = field(default_factory=HealthInfo)
    customization: Customization = field(default_factory=Customization)
    customers: Optional[Tuple[Dict[str, Any], ...]] = None
    templates: Optional[Tuple[Dict[str, Any], ...]] = None
    # Last safety screening; cleared whenever the health profile or template changes
    safety_report: Optional[Dict[str, Any]] = None

    @property
    def current_step(self) -> WizardStep:
        return self.steps[self.current_step_index]

    @property
    def is_admin_flow(self) -> bool:
        return WizardStep.client_selection not in self.steps

    def selected_template(self) -> Optional[Dict[str, Any]]:
        if self.selected_template_id is None or not self.templates:
            return None
        for template in self.templates:
            if template.get("id") == self.selected_template_id:
                return template
        return None


def new_session(role: str = "trainer") -> WizardSession:
    return WizardSession(session_id=uuid.uuid4().hex, steps=steps_for_role(role))


# ----- completion predicates -----

def _is_positive_number(value) -> bool:
    if isinstance(value, bool):
        return False
    return isinstance(value, (int, float)) and value > 0


def step_errors(session: WizardSession, step: WizardStep) -> Dict[str, str]:
    """Field errors that keep ``step`` from being complete. Empty means complete."""
    errors: Dict[str, str] = {}

    if step == WizardStep.client_selection:
        if not session.selected_client_id:
            errors["selected_client_id"] = "Select a client"

    elif step == WizardStep.template_selection:
        if not session.selected_template_id and not session.use_custom_template:
            errors["selected_template_id"] = "Select a template or choose a custom protocol"

    elif step == WizardStep.health_information:
        info = session.health_info
        for name in ("age", "weight", "height"):
            value = getattr(info, name)
            if value is not None and not _is_positive_number(value):
                errors[name] = "Must be a positive number"
        # No conditions at all is a valid profile
        unknown = ailment_catalog.unknown_codes(info.selected_conditions)
        if unknown:
            errors["selected_conditions"] = f"Unknown conditions: {', '.join(unknown)}"

    elif step == WizardStep.customization:
        custom = session.customization
        duration = custom.duration
        if isinstance(duration, bool) or not isinstance(duration, int) or duration <= 0:
            errors["duration"] = "Must be a positive whole number of days"
        if custom.intensity not in INTENSITIES:
            errors["intensity"] = f"Must be one of {', '.join(INTENSITIES)}"

    return errors


def _require_complete(session: WizardSession, step: WizardStep) -> None:
    errors = step_errors(session, step)
    if errors:
        raise StepValidationError(step.value, errors)


# ----- transitions -----

def next_step(session: WizardSession) -> WizardSession:
    """Advance one step when the current step is complete"""
    step = session.current_step
    if step == WizardStep.generation:
        raise InvalidTransitionError("Generation is the last step")
    _require_complete(session, step)
    return replace(session, current_step_index=session.current_step_index + 1)


def go_back(session: WizardSession) -> WizardSession:
    if session.current_step_index == 0:
        raise InvalidTransitionError(f"Cannot go back from {session.current_step.value}")
    return replace(session, current_step_index=session.current_step_index - 1)


def select_client(session: WizardSession, client_id: Optional[str]) -> WizardSession:
    if session.is_admin_flow:
        raise InvalidTransitionError("Admin protocols are not created for a client")
    return replace(session, selected_client_id=client_id)


def select_template(session: WizardSession, template_id: Optional[str]) -> WizardSession:
    return replace(session, selected_template_id=template_id, use_custom_template=False, safety_report=None)


def use_custom_template(session: WizardSession) -> WizardSession:
    return replace(session, selected_template_id=None, use_custom_template=True, safety_report=None)


def update_health_info(session: WizardSession, **changes) -> WizardSession:
    if "selected_conditions" in changes:
        changes["selected_conditions"] = frozenset(changes["selected_conditions"] or ())
    return replace(session, health_info=replace(session.health_info, **changes), safety_report=None)


def toggle_condition(session: WizardSession, code: str) -> WizardSession:
    conditions = set(session.health_info.selected_conditions)
    conditions.symmetric_difference_update({code})
    return update_health_info(session, selected_conditions=conditions)


def update_customization(session: WizardSession, **changes) -> WizardSession:
    if "tags" in changes:
        changes["tags"] = tuple(changes["tags"] or ())
    return replace(session, customization=replace(session.customization, **changes))


def with_customers(session: WizardSession, customers: Iterable[Dict[str, Any]]) -> WizardSession:
    return replace(session, customers=tuple(customers))


def with_templates(session: WizardSession, templates: Iterable[Dict[str, Any]]) -> WizardSession:
    return replace(session, templates=tuple(templates))


def with_safety_report(session: WizardSession, report: Dict[str, Any]) -> WizardSession:
    return replace(session, safety_report=dict(report))


def can_submit(session: WizardSession) -> bool:
    if session.current_step != WizardStep.generation:
        return False
    return all(not step_errors(session, step) for step in session.steps[:-1])


def ensure_submittable(session: WizardSession) -> None:
    if session.current_step != WizardStep.generation:
        raise InvalidTransitionError("Protocols can only be submitted from the generation step")
    for step in session.steps[:-1]:
        _require_complete(session, step)
