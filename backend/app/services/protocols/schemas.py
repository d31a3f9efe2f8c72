from datetime import datetime
from typing import Any, Dict, List, Literal, Optional
from pydantic import BaseModel, ConfigDict, Field, field_validator

from app.core.config import settings


ProtocolType = Literal["longevity", "parasite_cleanse"]
Intensity = Literal["gentle", "moderate", "intensive"]
AssignmentStatus = Literal["active", "completed", "paused", "cancelled"]


class ProtocolCreationRequest(BaseModel):
    """Wire shape of ``POST /api/trainer/health-protocols`` (camelCase on the wire)"""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    name: str
    description: Optional[str] = None
    type: str
    duration: int
    intensity: str
    config: Dict[str, Any] = Field(default_factory=dict)
    tags: List[str] = Field(default_factory=list)
    target_customer_id: Optional[str] = Field(default=None, alias="targetCustomerId")


class CreateHealthProtocol(ProtocolCreationRequest):
    """Server-side validation of a creation request"""

    name: str = Field(min_length=1, max_length=255)
    type: ProtocolType
    duration: int = Field(ge=1, le=settings.max_protocol_duration_days)
    intensity: Intensity


class UpdateHealthProtocol(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=255)
    description: Optional[str] = None
    duration: Optional[int] = Field(default=None, ge=1, le=settings.max_protocol_duration_days)
    intensity: Optional[Intensity] = None
    config: Optional[Dict[str, Any]] = None
    tags: Optional[List[str]] = None
    is_template: Optional[bool] = Field(default=None, alias="isTemplate")

    model_config = ConfigDict(populate_by_name=True)


class AssignProtocol(BaseModel):
    client_ids: List[str] = Field(alias="clientIds", min_length=1)
    notes: Optional[str] = None
    start_date: Optional[datetime] = Field(default=None, alias="startDate")

    model_config = ConfigDict(populate_by_name=True)


class AssignmentStatusUpdate(BaseModel):
    status: AssignmentStatus
    notes: Optional[str] = None


class GenerateProtocolRequest(BaseModel):
    protocol_type: ProtocolType = Field(default="longevity", alias="protocolType")
    intensity: Intensity = "moderate"
    duration: int = Field(default=30, ge=1, le=settings.max_protocol_duration_days)
    user_age: Optional[int] = Field(default=None, alias="userAge", ge=1, le=120)
    health_conditions: List[str] = Field(default_factory=list, alias="healthConditions")
    current_medications: Optional[str] = Field(default=None, alias="currentMedications")
    specific_goals: Optional[str] = Field(default=None, alias="specificGoals")
    natural_language_prompt: Optional[str] = Field(default=None, alias="naturalLanguagePrompt")
    template_id: Optional[str] = Field(default=None, alias="templateId")

    model_config = ConfigDict(populate_by_name=True)


class SafetyCheckRequest(BaseModel):
    """Client profile to screen; medications may be a list or one comma separated string"""

    medications: List[str] = Field(default_factory=list)
    conditions: List[str] = Field(default_factory=list)
    age: Optional[int] = Field(default=None, ge=1, le=120)
    protocol_type: Optional[ProtocolType] = Field(default=None, alias="protocolType")
    pregnancy: bool = False

    model_config = ConfigDict(populate_by_name=True)

    @field_validator("medications", mode="before")
    @classmethod
    def _split_medications(cls, v: Any) -> Any:
        if v is None:
            return []
        if isinstance(v, str):
            return [m.strip() for m in v.replace("\n", ",").split(",") if m.strip()]
        return v


class TemplatePersonalization(BaseModel):
    age: Optional[int] = Field(default=None, ge=18, le=120)
    health_conditions: List[str] = Field(default_factory=list, alias="healthConditions")
    experience: Optional[Literal["beginner", "intermediate", "advanced"]] = None
    goals: List[str] = Field(default_factory=list)

    model_config = ConfigDict(populate_by_name=True)


class TemplateCustomization(BaseModel):
    duration: Optional[int] = Field(default=None, ge=7, le=settings.max_protocol_duration_days)
    intensity: Optional[Intensity] = None
    personalizations: Optional[TemplatePersonalization] = None


class GenerateFromTemplate(BaseModel):
    customization: TemplateCustomization = Field(default_factory=TemplateCustomization)
    protocol_name: Optional[str] = Field(default=None, alias="protocolName")

    model_config = ConfigDict(populate_by_name=True)


class CreateProtocolTemplate(BaseModel):
    name: str = Field(min_length=1, max_length=255)
    description: str = ""
    category: str = Field(min_length=1, max_length=100)
    protocol_type: ProtocolType = Field(default="longevity", alias="protocolType")
    content: Dict[str, Any] = Field(default_factory=dict)
    tags: List[str] = Field(default_factory=list)

    model_config = ConfigDict(populate_by_name=True)
