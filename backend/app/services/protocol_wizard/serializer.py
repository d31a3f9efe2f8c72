"""
Wizard submission serializer

``build_protocol_request`` maps a finished wizard session to the body of
``POST /api/trainer/health-protocols``. It is pure: the same session always
encodes to the same bytes, so a retried submit carries an identical body.
"""

from typing import Any, Dict, Optional
import json

from app.services.protocols.ailments import ailment_catalog
from app.services.protocols.schemas import ProtocolCreationRequest
from app.services.protocols.template_engine import scale_phases
from app.services.protocol_wizard.state_machine import WizardSession

PROTOCOL_TYPES = ("longevity", "parasite_cleanse")
DEFAULT_PROTOCOL_TYPE = "longevity"


def _template_summary(session: WizardSession, template: Optional[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
    if session.selected_template_id is None:
        return None
    summary = {"id": session.selected_template_id}
    if template is not None:
        summary["name"] = template.get("name")
        summary["category"] = template.get("category")
    return summary


def _list(value) -> list:
    # Template content comes from the server; anything but a list is ignored
    return list(value) if isinstance(value, list) else []


def _default_name(template: Optional[Dict[str, Any]]) -> str:
    if template and isinstance(template.get("name"), str) and template["name"].strip():
        return template["name"]
    return "Custom Health Protocol"


def _protocol_type(template: Optional[Dict[str, Any]]) -> str:
    protocol_type = (template or {}).get("protocolType")
    if protocol_type not in PROTOCOL_TYPES:
        return DEFAULT_PROTOCOL_TYPE
    return protocol_type


def build_safety_check(session: WizardSession) -> Dict[str, Any]:
    """Body of ``POST /api/trainer/safety-check`` for the session's health profile"""
    info = session.health_info
    age = info.age
    if isinstance(age, float) and age.is_integer():
        age = int(age)
    return {
        "medications": info.medications or "",
        "conditions": sorted(info.selected_conditions),
        "age": age if isinstance(age, int) and not isinstance(age, bool) else None,
        "protocolType": _protocol_type(session.selected_template()),
    }


def build_protocol_request(session: WizardSession) -> ProtocolCreationRequest:
    template = session.selected_template()
    content = (template or {}).get("content")
    if not isinstance(content, dict):
        content = {}
    info = session.health_info
    custom = session.customization
    conditions = sorted(info.selected_conditions)

    protocol_type = _protocol_type(template)

    config = {
        "template": _template_summary(session, template),
        "customTemplate": session.use_custom_template,
        "healthProfile": {
            "age": info.age,
            "weight": info.weight,
            "height": info.height,
            "activityLevel": info.activity_level,
            "healthGoals": info.health_goals,
            "conditions": conditions,
            "medications": info.medications,
        },
        "phases": scale_phases(_list(content.get("phases")), custom.duration),
        "supplements": _list(content.get("supplements")),
        "nutritionalFocus": ailment_catalog.nutritional_focus(conditions),
    }
    if session.safety_report is not None:
        config["safetyValidation"] = session.safety_report
    if custom.notes:
        config["notes"] = custom.notes

    name = (custom.protocol_name or "").strip() or _default_name(template)
    description = custom.description
    if description is None and template is not None and isinstance(template.get("description"), str):
        description = template["description"]

    return ProtocolCreationRequest(
        name=name,
        description=description,
        type=protocol_type,
        duration=custom.duration,
        intensity=custom.intensity,
        config=config,
        tags=sorted(set(custom.tags) | set(conditions)),
        target_customer_id=None if session.is_admin_flow else session.selected_client_id,
    )


def encode_request(request: ProtocolCreationRequest) -> bytes:
    """Compact, key-sorted JSON body; its length is the payload size reported on 413"""
    payload = request.model_dump(mode="json", by_alias=True)
    return json.dumps(payload, sort_keys=True, separators=(",", ":"), ensure_ascii=False).encode("utf-8")
