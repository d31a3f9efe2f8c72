"""Tests for rule-based medical safety screening."""

import pytest

from app.services.protocols.schemas import SafetyCheckRequest
from app.services.protocols.safety_validator import GENERAL_RECOMMENDATIONS, validate_safety


class TestRatings:
    def test_empty_profile_is_safe(self):
        report = validate_safety()
        assert report["safetyRating"] == "safe"
        assert report["interactions"] == []
        assert report["requiresHealthcareApproval"] is False
        assert report["canProceedWithCaution"] is True
        assert report["generalRecommendations"] == GENERAL_RECOMMENDATIONS

    def test_unknown_medication_is_ignored(self):
        assert validate_safety(medications=["vitamin D"])["safetyRating"] == "safe"

    def test_medium_interaction_is_caution(self):
        report = validate_safety(medications=["Metformin"])
        assert report["safetyRating"] == "caution"
        assert report["interactions"][0]["substance"] == "berberine"
        assert "Metformin: Monitor kidney function" in report["generalRecommendations"]
        assert report["requiresHealthcareApproval"] is False

    def test_high_interaction_is_warning(self):
        report = validate_safety(medications=["lisinopril"])
        assert report["safetyRating"] == "warning"
        assert report["requiresHealthcareApproval"] is True
        assert report["canProceedWithCaution"] is False

    def test_brand_name_is_resolved(self):
        report = validate_safety(medications=["Synthroid"])
        assert {i["substance"] for i in report["interactions"]} == {"soy", "calcium"}

    def test_medication_contraindicated_by_condition(self):
        report = validate_safety(medications=["metformin"], conditions=["Chronic kidney disease"])
        assert report["safetyRating"] == "contraindicated"
        assert report["contraindications"] == ["metformin is contraindicated with kidney disease"]
        assert report["requiresHealthcareApproval"] is True

    @pytest.mark.parametrize("condition", ["diabetes", "Type 2 Diabetes", "high_blood_pressure"])
    def test_catalog_codes_and_free_text_match(self, condition):
        report = validate_safety(conditions=[condition])
        assert report["safetyRating"] == "caution"
        assert report["interactions"][0]["type"] == "condition"

    def test_pregnancy_is_contraindicated(self):
        report = validate_safety(pregnancy=True)
        assert report["safetyRating"] == "contraindicated"
        assert "Protocol not recommended during pregnancy" in report["contraindications"]

    def test_lisinopril_in_pregnancy(self):
        report = validate_safety(medications=["lisinopril"], pregnancy=True)
        assert "lisinopril is contraindicated with pregnancy" in report["contraindications"]


class TestAge:
    def test_minor_requires_approval(self):
        report = validate_safety(age=16)
        assert report["safetyRating"] == "contraindicated"
        assert report["requiresHealthcareApproval"] is True

    def test_older_client_gets_recommendation(self):
        report = validate_safety(age=70, protocol_type="longevity")
        assert report["safetyRating"] == "safe"
        assert "Consult healthcare provider due to age considerations" in report["generalRecommendations"]

    def test_older_client_on_cleanse_needs_approval(self):
        report = validate_safety(age=70, protocol_type="parasite_cleanse")
        assert report["safetyRating"] == "warning"
        assert report["requiresHealthcareApproval"] is True


class TestSafetyCheckRequest:
    def test_medications_string_is_split(self):
        request = SafetyCheckRequest(medications="Warfarin, metformin\ninsulin,, ")
        assert request.medications == ["Warfarin", "metformin", "insulin"]

    def test_medications_list_is_kept(self):
        assert SafetyCheckRequest(medications=["insulin"]).medications == ["insulin"]

    def test_camel_case_protocol_type(self):
        assert SafetyCheckRequest.model_validate({"protocolType": "parasite_cleanse"}).protocol_type == "parasite_cleanse"
