"""
Protocol Template Engine

Built-in protocol templates, template queries and template-based protocol
generation. A template's ``content`` holds ordered ``phases`` (with a day
count each), ``supplements`` and ``lifestyle`` guidance; generating from a
template rescales the phases to the requested duration and merges the
nutritional focus of the client's conditions.
"""

from typing import Dict, List, Any, Optional
import copy
import logging
from sqlalchemy.orm import Session

from app.models.template import ProtocolTemplate
from app.services.protocols.ailments import ailment_catalog
from app.services.protocols.schemas import CreateProtocolTemplate, TemplateCustomization

logger = logging.getLogger(__name__)


def _phase_days(phase: Dict[str, Any]) -> int:
    """Day weight of a phase; anything that is not a non-negative number counts as 0"""
    days = phase.get("days")
    if isinstance(days, bool) or not isinstance(days, (int, float)) or days < 0:
        return 0
    return int(days)


def scale_phases(phases: List[Dict[str, Any]], duration: int) -> List[Dict[str, Any]]:
    """Stretch or shrink phase day counts so they add up to ``duration``.

    Every kept phase gets at least one day; when the duration is shorter than
    the number of phases the trailing phases are dropped. Entries that are not
    objects are skipped.
    """
    phases = [p for p in phases or [] if isinstance(p, dict)]
    if duration <= 0 or not phases:
        return []
    phases = phases[:duration]
    weights = [_phase_days(p) for p in phases]
    if not any(weights):
        # No usable day counts: split evenly
        weights = [1] * len(phases)
    total = sum(weights)
    scaled = []
    remaining = duration
    for index, phase in enumerate(phases):
        phases_left = len(phases) - index - 1
        if phases_left == 0:
            days = remaining
        else:
            days = max(1, weights[index] * duration // total)
            days = min(days, remaining - phases_left)
        item = copy.deepcopy(phase)
        item["days"] = days
        item["startDay"] = duration - remaining + 1
        scaled.append(item)
        remaining -= days
    return scaled


class ProtocolTemplateEngine:
    """Queries and generation over the protocol_templates table"""

    def __init__(self, db: Session):
        self.db = db

    # ----- seeding -----

    def seed_builtin_templates(self) -> int:
        """Insert built-in templates that are missing. Returns how many were added."""
        added = 0
        for data in load_builtin_templates():
            if self.db.query(ProtocolTemplate).filter(ProtocolTemplate.id == data["id"]).first():
                continue
            self.db.add(ProtocolTemplate(**data))
            added += 1
        if added:
            self.db.commit()
            logger.info(f"Seeded {added} built-in protocol templates")
        return added

    # ----- queries -----

    def list_templates(
        self,
        category: Optional[str] = None,
        protocol_type: Optional[str] = None,
        tags: Optional[List[str]] = None,
        is_active: bool = True,
    ) -> List[ProtocolTemplate]:
        q = self.db.query(ProtocolTemplate).filter(ProtocolTemplate.is_active == is_active)
        if category:
            q = q.filter(ProtocolTemplate.category == category)
        if protocol_type:
            q = q.filter(ProtocolTemplate.protocol_type == protocol_type)
        templates = q.order_by(ProtocolTemplate.popularity.desc(), ProtocolTemplate.name).all()
        if tags:
            wanted = set(tags)
            templates = [t for t in templates if wanted & set(t.tags or [])]
        return templates

    def get_template(self, template_id: str) -> Optional[ProtocolTemplate]:
        return self.db.query(ProtocolTemplate).filter(ProtocolTemplate.id == template_id).first()

    def categories(self) -> List[Dict[str, Any]]:
        counts: Dict[str, int] = {}
        for t in self.list_templates():
            counts[t.category] = counts.get(t.category, 0) + 1
        return [
            {"category": name, "templateCount": count}
            for name, count in sorted(counts.items(), key=lambda kv: (-kv[1], kv[0]))
        ]

    def search(self, query: str) -> List[ProtocolTemplate]:
        q = query.lower().strip()
        if not q:
            return []
        return [
            t for t in self.list_templates()
            if q in t.name.lower()
            or q in (t.description or "").lower()
            or any(q in tag.lower() for tag in (t.tags or []))
        ]

    def create_template(self, data: CreateProtocolTemplate, created_by: Optional[str]) -> ProtocolTemplate:
        template = ProtocolTemplate(
            name=data.name,
            description=data.description,
            category=data.category,
            protocol_type=data.protocol_type,
            content=data.content,
            tags=data.tags,
            created_by=created_by,
        )
        self.db.add(template)
        self.db.commit()
        self.db.refresh(template)
        logger.info(f"Created protocol template {template.id} ({template.name})")
        return template

    # ----- generation -----

    def generate_from_template(
        self,
        template: ProtocolTemplate,
        customization: TemplateCustomization,
        protocol_name: Optional[str] = None,
    ) -> Dict[str, Any]:
        """Build a customized protocol body from a template without persisting it"""
        content = template.content or {}
        base_duration = int(content.get("defaultDuration") or 30)
        duration = customization.duration or base_duration
        intensity = customization.intensity or content.get("defaultIntensity") or "moderate"

        personal = customization.personalizations
        conditions = sorted(set(personal.health_conditions)) if personal else []

        config = {
            "templateId": template.id,
            "phases": scale_phases(content.get("phases", []), duration),
            "supplements": copy.deepcopy(content.get("supplements", [])),
            "lifestyle": copy.deepcopy(content.get("lifestyle", [])),
            "nutritionalFocus": ailment_catalog.nutritional_focus(conditions),
        }
        if personal:
            config["personalization"] = {
                "age": personal.age,
                "experience": personal.experience,
                "goals": personal.goals,
                "healthConditions": conditions,
            }

        self._bump_popularity(template)
        return {
            "name": protocol_name or template.name,
            "description": template.description,
            "type": template.protocol_type,
            "duration": duration,
            "intensity": intensity,
            "config": config,
            "tags": sorted(set(template.tags or []) | set(conditions)),
        }

    def _bump_popularity(self, template: ProtocolTemplate) -> None:
        template.popularity = (template.popularity or 0) + 1
        self.db.commit()


def load_builtin_templates() -> List[Dict[str, Any]]:
    """Built-in protocol templates"""
    return [
        {
            "id": "longevity-foundation",
            "name": "Longevity Foundation",
            "description": "Whole-food, anti-inflammatory base protocol with time-restricted eating",
            "category": "Longevity",
            "protocol_type": "longevity",
            "popularity": 40,
            "tags": ["longevity", "anti-inflammatory"],
            "content": {
                "defaultDuration": 30,
                "defaultIntensity": "moderate",
                "phases": [
                    {"name": "Reset", "days": 7, "focus": "Remove processed foods and added sugar"},
                    {"name": "Build", "days": 14, "focus": "12:12 time-restricted eating, colorful plants"},
                    {"name": "Sustain", "days": 9, "focus": "14:10 eating window, weekly reflection"},
                ],
                "supplements": [
                    {"name": "Omega-3", "dosage": "1-2 g", "timing": "with breakfast"},
                    {"name": "Vitamin D3", "dosage": "2000 IU", "timing": "with a meal"},
                    {"name": "Magnesium glycinate", "dosage": "200-400 mg", "timing": "evening"},
                ],
                "lifestyle": ["7-9 hours of sleep", "Daily 30 minute walk", "Strength training 2x/week"],
            },
        },
        {
            "id": "weight-loss",
            "name": "Sustainable Weight Loss",
            "description": "Moderate calorie deficit with high protein and fiber",
            "category": "Weight Management",
            "protocol_type": "longevity",
            "popularity": 35,
            "tags": ["weight-loss", "metabolic"],
            "content": {
                "defaultDuration": 30,
                "defaultIntensity": "moderate",
                "phases": [
                    {"name": "Adaptation", "days": 10, "focus": "Track intake, protein at every meal"},
                    {"name": "Deficit", "days": 15, "focus": "15-20% calorie deficit, fiber 30 g/day"},
                    {"name": "Consolidation", "days": 5, "focus": "Find maintenance intake"},
                ],
                "supplements": [
                    {"name": "Psyllium husk", "dosage": "5 g", "timing": "before largest meal"},
                    {"name": "Chromium picolinate", "dosage": "200 mcg", "timing": "with breakfast"},
                ],
                "lifestyle": ["8000+ steps per day", "No eating 3 hours before bed"],
            },
        },
        {
            "id": "parasite-cleanse-gentle",
            "name": "Gentle Parasite Cleanse",
            "description": "Herbal anti-parasitic protocol with gut lining support",
            "category": "Parasite Cleanse",
            "protocol_type": "parasite_cleanse",
            "popularity": 20,
            "tags": ["parasite-cleanse", "detox", "gut-health"],
            "content": {
                "defaultDuration": 28,
                "defaultIntensity": "gentle",
                "phases": [
                    {"name": "Preparation", "days": 7, "focus": "Remove sugar and alcohol, add fiber"},
                    {"name": "Active cleanse", "days": 14, "focus": "Herbal protocol, garlic and pumpkin seeds daily"},
                    {"name": "Restoration", "days": 7, "focus": "Probiotics and bone broth"},
                ],
                "supplements": [
                    {"name": "Black walnut hull", "dosage": "500 mg", "timing": "twice daily, active phase"},
                    {"name": "Wormwood", "dosage": "200 mg", "timing": "twice daily, active phase"},
                    {"name": "Clove", "dosage": "500 mg", "timing": "with meals, active phase"},
                    {"name": "Probiotic", "dosage": "20B CFU", "timing": "morning, restoration phase"},
                ],
                "lifestyle": ["Hydrate 2-3 L/day", "Cook meat thoroughly"],
            },
        },
        {
            "id": "anti-inflammatory",
            "name": "Anti-Inflammatory Reset",
            "description": "Mediterranean-style elimination protocol for joint and systemic inflammation",
            "category": "Inflammation",
            "protocol_type": "longevity",
            "popularity": 25,
            "tags": ["anti-inflammatory", "joint-health"],
            "content": {
                "defaultDuration": 21,
                "defaultIntensity": "moderate",
                "phases": [
                    {"name": "Elimination", "days": 14, "focus": "Remove sugar, seed oils, alcohol, refined grains"},
                    {"name": "Reintroduction", "days": 7, "focus": "Reintroduce one food group every 2 days"},
                ],
                "supplements": [
                    {"name": "Curcumin", "dosage": "500 mg", "timing": "twice daily with fat"},
                    {"name": "Omega-3", "dosage": "2 g", "timing": "with meals"},
                ],
                "lifestyle": ["Mobility work 10 minutes daily"],
            },
        },
        {
            "id": "gut-restoration",
            "name": "Gut Restoration",
            "description": "Remove, replace, reinoculate, repair gut-health protocol",
            "category": "Digestive Health",
            "protocol_type": "longevity",
            "popularity": 15,
            "tags": ["gut-health", "digestive"],
            "content": {
                "defaultDuration": 28,
                "defaultIntensity": "gentle",
                "phases": [
                    {"name": "Remove", "days": 7, "focus": "Low-FODMAP, remove trigger foods"},
                    {"name": "Replace", "days": 7, "focus": "Digestive enzymes with meals"},
                    {"name": "Reinoculate", "days": 7, "focus": "Fermented foods and probiotics"},
                    {"name": "Repair", "days": 7, "focus": "Bone broth, L-glutamine"},
                ],
                "supplements": [
                    {"name": "Digestive enzymes", "dosage": "1 capsule", "timing": "with meals"},
                    {"name": "L-glutamine", "dosage": "5 g", "timing": "morning"},
                ],
                "lifestyle": ["Chew thoroughly", "Eat without screens"],
            },
        },
    ]
