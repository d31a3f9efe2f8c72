"""
Health Protocol Generation Service

Produces protocol content for a trainer request. The LLM is treated as an
opaque collaborator: it is asked for a JSON object with phases, supplements
and recommendations. When it is disabled, unreachable or answers with
something unusable, content comes from the closest built-in template.
"""

from typing import Dict, List, Any, Optional
import json
import logging
import httpx

from app.core.config import settings
from app.core.llm import LLMClient, llm_client
from app.services.protocols.ailments import ailment_catalog
from app.services.protocols.schemas import GenerateProtocolRequest
from app.services.protocols.template_engine import load_builtin_templates, scale_phases

logger = logging.getLogger(__name__)

SYSTEM_PROMPT = (
    "You are a nutrition and lifestyle protocol designer working for a certified trainer. "
    "Respond with a single JSON object with keys: name (string), description (string), "
    "phases (array of {name, days, focus}), supplements (array of {name, dosage, timing}), "
    "recommendations (array of strings). Never give medical diagnoses."
)

FALLBACK_TEMPLATE_BY_TYPE = {
    "longevity": "longevity-foundation",
    "parasite_cleanse": "parasite-cleanse-gentle",
}


class HealthProtocolGenerator:
    """LLM-backed protocol generation with template fallback"""

    def __init__(self, llm: Optional[LLMClient] = None):
        # Shares the process-wide client unless one is injected
        self.llm = llm or llm_client

    async def generate(self, request: GenerateProtocolRequest) -> Dict[str, Any]:
        conditions = sorted(set(request.health_conditions))
        content = None
        phases = None
        if settings.llm_enabled:
            try:
                content = await self.llm.complete_json(SYSTEM_PROMPT, self._build_prompt(request, conditions))
                content = self._validate_content(content)
                phases = scale_phases(content["phases"], request.duration)
            except (httpx.HTTPError, ValueError, TypeError, KeyError, IndexError) as e:
                logger.warning(f"LLM protocol generation failed, using template fallback: {e}")
                content = None

        source = "llm"
        if content is None:
            content = self._template_content(request)
            phases = scale_phases(content["phases"], request.duration)
            source = "template"

        return {
            "name": content.get("name") or f"{request.protocol_type.replace('_', ' ').title()} Protocol",
            "description": content.get("description") or "",
            "type": request.protocol_type,
            "duration": request.duration,
            "intensity": request.intensity,
            "config": {
                "source": source,
                "phases": phases,
                "supplements": content.get("supplements", []),
                "nutritionalFocus": ailment_catalog.nutritional_focus(conditions),
                "healthProfile": {
                    "age": request.user_age,
                    "conditions": conditions,
                    "medications": request.current_medications,
                    "goals": request.specific_goals,
                },
            },
            "tags": conditions or [request.protocol_type],
            "recommendations": content.get("recommendations", []),
        }

    def _build_prompt(self, request: GenerateProtocolRequest, conditions: List[str]) -> str:
        names = [ailment_catalog.get(c)["name"] for c in conditions if ailment_catalog.exists(c)]
        lines = [
            f"Protocol type: {request.protocol_type}",
            f"Intensity: {request.intensity}",
            f"Duration: {request.duration} days",
        ]
        if request.user_age:
            lines.append(f"Client age: {request.user_age}")
        if names:
            lines.append(f"Health conditions: {', '.join(names)}")
        if request.current_medications:
            lines.append(f"Current medications: {request.current_medications}")
        if request.specific_goals:
            lines.append(f"Goals: {request.specific_goals}")
        if request.natural_language_prompt:
            lines.append(f"Trainer notes: {request.natural_language_prompt}")
        return "\n".join(lines)

    def _validate_content(self, content: Dict[str, Any]) -> Dict[str, Any]:
        phases = content.get("phases")
        if not isinstance(phases, list) or not phases:
            raise ValueError("LLM response has no phases")
        for phase in phases:
            if not isinstance(phase, dict) or not isinstance(phase.get("name"), str):
                raise ValueError(f"Malformed phase in LLM response: {json.dumps(phase)[:200]}")
            days = phase.get("days")
            if days is not None and (isinstance(days, bool) or not isinstance(days, int) or days < 0):
                raise ValueError(f"Phase days must be a whole number: {json.dumps(phase)[:200]}")
        for key in ("name", "description"):
            if content.get(key) is not None and not isinstance(content[key], str):
                raise ValueError(f"LLM {key} must be a string")
        for key in ("supplements", "recommendations"):
            if not isinstance(content.get(key, []), list):
                raise ValueError(f"LLM {key} must be a list")
        return content

    def _template_content(self, request: GenerateProtocolRequest) -> Dict[str, Any]:
        wanted = request.template_id or FALLBACK_TEMPLATE_BY_TYPE[request.protocol_type]
        templates = {t["id"]: t for t in load_builtin_templates()}
        template = templates.get(wanted) or templates[FALLBACK_TEMPLATE_BY_TYPE[request.protocol_type]]
        body = template["content"]
        return {
            "name": template["name"],
            "description": template["description"],
            "phases": body["phases"],
            "supplements": body["supplements"],
            "recommendations": body.get("lifestyle", []),
        }
