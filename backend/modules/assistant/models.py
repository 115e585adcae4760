"""
Assistant data models.

LLM responses are parsed into these models. The prompts ask for camelCase
keys, so response models accept both camelCase and snake_case input and
always serialize as snake_case.
"""

from enum import Enum
from typing import Annotated, Any, Optional

from pydantic import AliasChoices, BaseModel, BeforeValidator, ConfigDict, Field, field_validator

# Categorization results at or above this confidence update the contact
AUTO_APPLY_CONFIDENCE = 0.7

MAX_HISTORY_MESSAGES = 20
MAX_CONTEXT_CONTACTS = 50

INDUSTRY_CATEGORIES = (
    "Technology & IT",
    "Finance & Banking",
    "Healthcare & Medical",
    "Property & Real Estate",
    "Manufacturing",
    "Retail & Consumer",
    "F&B & Hospitality",
    "Education",
    "Professional Services",
    "Government & GLC",
    "Construction & Engineering",
    "Media & Entertainment",
    "Other",
)


def _clamp_confidence(value: Any) -> float:
    try:
        number = float(value)
    except (TypeError, ValueError):
        return 0.0
    return min(1.0, max(0.0, number))


Confidence = Annotated[float, BeforeValidator(_clamp_confidence)]


def _either(snake: str, camel: str) -> AliasChoices:
    return AliasChoices(snake, camel)


class ChatRole(str, Enum):
    USER = "user"
    ASSISTANT = "assistant"


class ChatTurn(BaseModel):
    """One stored message of a conversation."""

    model_config = ConfigDict(extra="ignore")

    role: ChatRole
    content: str


class ChatContext(BaseModel):
    """Tenant data attached to a chat prompt."""

    contacts: list[dict[str, Any]] = Field(default_factory=list)
    stats: Optional[dict[str, Any]] = None
    recent_interactions: list[dict[str, Any]] = Field(default_factory=list)

    def used(self) -> list[str]:
        return [name for name in ("contacts", "stats", "recent_interactions") if getattr(self, name)]


class Completion(BaseModel):
    """Text reply of whichever provider answered first."""

    text: str
    model: str
    usage: dict[str, int] = Field(default_factory=dict)


class ColumnAnalysis(BaseModel):
    """Suggested spreadsheet column mapping."""

    model_config = ConfigDict(extra="ignore")

    column_mappings: dict[str, Optional[str]] = Field(
        default_factory=dict, validation_alias=_either("column_mappings", "columnMappings")
    )
    phone_format: Optional[str] = Field(
        None, validation_alias=_either("phone_format", "phoneFormat")
    )
    data_quality_issues: list[str] = Field(
        default_factory=list, validation_alias=_either("data_quality_issues", "dataQualityIssues")
    )
    suggested_cleanups: list[str] = Field(
        default_factory=list, validation_alias=_either("suggested_cleanups", "suggestedCleanups")
    )
    confidence: Confidence = 0.0

    @field_validator("column_mappings", mode="before")
    @classmethod
    def _drop_null_strings(cls, value: Any) -> Any:
        # Models sometimes answer "null" instead of null
        if isinstance(value, dict):
            return {
                k: (None if v in (None, "", "null", "None") else str(v)) for k, v in value.items()
            }
        return value


class NamecardData(BaseModel):
    """Fields read off a business card. Unreadable fields are None."""

    model_config = ConfigDict(extra="ignore")

    name: Optional[str] = None
    position: Optional[str] = None
    company: Optional[str] = None
    phone: Optional[str] = None
    email: Optional[str] = None
    address: Optional[str] = None
    website: Optional[str] = None
    additional_phones: list[str] = Field(
        default_factory=list, validation_alias=_either("additional_phones", "additionalPhones")
    )
    raw_text: Optional[str] = Field(None, validation_alias=_either("raw_text", "rawText"))
    confidence: Confidence = 0.0
    language: Optional[str] = None

    @field_validator("additional_phones", mode="before")
    @classmethod
    def _none_to_empty(cls, value: Any) -> Any:
        return value or []


class FollowUpSuggestion(BaseModel):
    model_config = ConfigDict(extra="ignore")

    action: str
    type: Optional[str] = None
    suggested_date: Optional[str] = Field(
        None, validation_alias=_either("suggested_date", "suggestedDate")
    )
    suggested_time: Optional[str] = Field(
        None, validation_alias=_either("suggested_time", "suggestedTime")
    )
    priority: Optional[str] = None
    message_template: Optional[str] = Field(
        None, validation_alias=_either("message_template", "messageTemplate")
    )


class Categorization(BaseModel):
    model_config = ConfigDict(extra="ignore")

    category: str
    confidence: Confidence = 0.0
    reasoning: Optional[str] = None

    @property
    def applicable(self) -> bool:
        return self.confidence >= AUTO_APPLY_CONFIDENCE


# -----------------------------------------------------------------------------
# Request models
# -----------------------------------------------------------------------------


class ChatRequest(BaseModel):
    """Request body for POST /api/chat."""

    model_config = ConfigDict(populate_by_name=True)

    message: str = Field(..., max_length=4000)
    conversation_id: Optional[str] = Field(None, alias="conversationId")
    include_context: bool = Field(True, alias="includeContext")

    @field_validator("message")
    @classmethod
    def _not_blank(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("Message is required")
        return value


class ContactReference(BaseModel):
    """Request body naming one contact."""

    model_config = ConfigDict(populate_by_name=True)

    contact_id: str = Field(..., min_length=1, alias="contactId")
