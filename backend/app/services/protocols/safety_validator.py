"""
Medical Safety Validation

Rule-based screening of a client's medications, conditions and age against a
protocol. The result carries an overall rating (safe, caution, warning or
contraindicated), the interactions found and whether a healthcare provider
has to approve the protocol before the client starts it.

Conditions may be ailment catalog codes (``high_blood_pressure``) or free
text (``kidney disease``); both are matched by substring on a normalized form.
"""

from typing import Any, Dict, Iterable, List, Optional
import logging

from app.services.protocols.ailments import ailment_catalog

logger = logging.getLogger(__name__)

SAFETY_RATINGS = ("safe", "caution", "warning", "contraindicated")

GENERAL_RECOMMENDATIONS = [
    "Consult with your healthcare provider before starting this protocol",
    "Monitor for any unusual symptoms or side effects",
    "Inform your healthcare provider of any changes in medications",
]

DRUG_INTERACTIONS: Dict[str, Dict[str, Any]] = {
    "warfarin": {
        "interactions": [
            ("garlic", "medium", "Garlic may increase the anticoagulant effect of warfarin",
             "Monitor INR closely if consuming large amounts of garlic"),
            ("turmeric", "medium", "Turmeric may enhance the anticoagulant effect",
             "Avoid high doses of turmeric supplements"),
            ("ginger", "low", "Ginger may have mild anticoagulant effects",
             "Use moderate amounts, monitor for bleeding"),
        ],
        "contraindications": ["active bleeding", "liver disease"],
        "warnings": ["Monitor INR regularly", "Avoid alcohol excess", "Report unusual bleeding"],
    },
    "insulin": {
        "interactions": [
            ("chromium", "medium", "Chromium may enhance insulin sensitivity",
             "Monitor blood glucose closely"),
            ("cinnamon", "low", "Cinnamon may lower blood glucose",
             "Monitor blood sugar when using cinnamon supplements"),
        ],
        "contraindications": ["hypoglycemia"],
        "warnings": ["Monitor blood glucose regularly", "Adjust dosing as needed"],
    },
    "metformin": {
        "interactions": [
            ("berberine", "medium", "Berberine may enhance glucose-lowering effects",
             "Monitor blood glucose closely"),
        ],
        "contraindications": ["kidney disease", "liver disease"],
        "warnings": ["Monitor kidney function", "Stop before contrast procedures"],
    },
    "lisinopril": {
        "interactions": [
            ("potassium", "high", "ACE inhibitors can increase potassium levels",
             "Avoid high-potassium supplements and foods"),
        ],
        "contraindications": ["pregnancy", "angioedema"],
        "warnings": ["Monitor kidney function and potassium levels"],
    },
    "levothyroxine": {
        "interactions": [
            ("soy", "medium", "Soy may interfere with thyroid hormone absorption",
             "Take thyroid medication 4 hours before soy consumption"),
            ("calcium", "medium", "Calcium can reduce thyroid hormone absorption",
             "Take thyroid medication 4 hours before calcium supplements"),
        ],
        "contraindications": ["adrenal insufficiency"],
        "warnings": ["Take on empty stomach", "Monitor thyroid function"],
    },
}

# Brand and alternate names
DRUG_ALIASES = {
    "coumadin": "warfarin",
    "synthroid": "levothyroxine",
    "glucophage": "metformin",
    "zestril": "lisinopril",
}

CONDITION_CHECKS = [
    ("pregnancy", "high", "Many protocol components are not safe during pregnancy",
     "Avoid detox and cleanse protocols during pregnancy. Focus on gentle, pregnancy-safe nutrition."),
    ("breastfeeding", "high", "Cleanse protocols can affect breast milk quality",
     "Avoid intensive protocols while breastfeeding. Focus on gentle, nourishing foods."),
    ("kidney disease", "high", "Kidney disease requires careful monitoring of protein and electrolyte intake",
     "Require healthcare provider approval. Monitor kidney function closely."),
    ("liver disease", "high", "Liver disease affects detoxification and supplement metabolism",
     "Require healthcare provider approval. Avoid detox protocols."),
    ("diabetes", "medium", "Dietary changes can affect blood sugar control",
     "Monitor blood glucose closely. Adjust medications as needed with healthcare provider."),
    ("heart disease", "medium", "Heart conditions may be affected by dietary and supplement changes",
     "Monitor cardiovascular symptoms. Ensure adequate nutrition."),
    ("high blood pressure", "medium", "Some protocol components may affect blood pressure",
     "Monitor blood pressure regularly. Be cautious with sodium and supplements."),
]


def _normalize(text: str) -> str:
    return " ".join(text.lower().replace("_", " ").replace("-", " ").split())


def _condition_terms(condition: str) -> str:
    """Code plus catalog name, so both ``diabetes`` and ``Type 2 Diabetes`` match"""
    terms = [_normalize(condition)]
    ailment = ailment_catalog.get(condition)
    if ailment is not None:
        terms.append(_normalize(ailment["name"]))
    return " | ".join(terms)


def _worse(rating: str, other: str) -> str:
    return max(rating, other, key=SAFETY_RATINGS.index)


def validate_safety(
    medications: Iterable[str] = (),
    conditions: Iterable[str] = (),
    age: Optional[int] = None,
    protocol_type: Optional[str] = None,
    pregnancy: bool = False,
) -> Dict[str, Any]:
    """Screen a client profile and return the safety report (camelCase keys)"""
    medications = [m.strip() for m in medications if m and m.strip()]
    conditions = [c.strip() for c in conditions if c and c.strip()]
    condition_text = " | ".join(_condition_terms(c) for c in conditions)
    if pregnancy:
        condition_text = f"{condition_text} | pregnancy"

    interactions: List[Dict[str, Any]] = []
    contraindications: List[str] = []
    recommendations: List[str] = []
    rating = "safe"

    for medication in medications:
        key = _normalize(medication)
        key = DRUG_ALIASES.get(key, key)
        drug = DRUG_INTERACTIONS.get(key)
        if drug is None:
            continue
        for substance, severity, description, recommendation in drug["interactions"]:
            interactions.append({
                "type": "medication",
                "item": medication,
                "substance": substance,
                "severity": severity,
                "description": description,
                "recommendation": recommendation,
            })
        recommendations.extend(f"{medication}: {warning}" for warning in drug["warnings"])
        for contraindication in drug["contraindications"]:
            if contraindication in condition_text:
                contraindications.append(f"{medication} is contraindicated with {contraindication}")

    for term, severity, description, recommendation in CONDITION_CHECKS:
        if term in condition_text:
            interactions.append({
                "type": "condition",
                "item": term,
                "severity": severity,
                "description": description,
                "recommendation": recommendation,
            })

    severities = {i["severity"] for i in interactions}
    if "high" in severities:
        rating = "warning"
    elif interactions:
        rating = "caution"

    if age is not None:
        if age < 18:
            contraindications.append("Protocol not suitable for minors without medical supervision")
        elif age > 65:
            recommendations.append("Consult healthcare provider due to age considerations")
            if protocol_type == "parasite_cleanse":
                rating = _worse(rating, "warning")

    if pregnancy:
        contraindications.append("Protocol not recommended during pregnancy")

    if contraindications:
        rating = "contraindicated"
    requires_approval = rating in ("warning", "contraindicated")

    for recommendation in GENERAL_RECOMMENDATIONS:
        if recommendation not in recommendations:
            recommendations.append(recommendation)

    if requires_approval:
        logger.info(f"Safety screening rated {rating}: {len(interactions)} interactions, {len(contraindications)} contraindications")

    return {
        "safetyRating": rating,
        "interactions": interactions,
        "contraindications": contraindications,
        "generalRecommendations": recommendations,
        "requiresHealthcareApproval": requires_approval,
        "canProceedWithCaution": rating in ("safe", "caution"),
    }
