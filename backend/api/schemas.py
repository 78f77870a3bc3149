"""
Pydantic schemas for API request/response validation

Wire names follow the client contract (isPolicy, policyName, documentDataUri, ...)
while Python attributes stay snake_case. Models accept either form on input.
"""
import re
from datetime import datetime
from enum import Enum
from typing import List, Literal, Optional

from pydantic import AnyHttpUrl, BaseModel, ConfigDict, Field, field_validator, model_validator

from core.exceptions import MissingInputError


class WireModel(BaseModel):
    """Base model: populate by attribute name or by wire alias."""
    model_config = ConfigDict(populate_by_name=True)


class VerdictCategory(str, Enum):
    """Fixed verdict labels the UI classifies on."""
    SAFE = "Safe Choice"
    RISKY = "Risky Option"
    NEUTRAL = "Neutral Policy"


_VERDICT_RE = re.compile(
    r"^(?P<label>" + "|".join(re.escape(v.value) for v in VerdictCategory) + r"):\s*(?P<reasoning>\S.*)$",
    re.DOTALL,
)


def _require_text(value: Optional[str]) -> Optional[str]:
    """Collapse blank strings to None."""
    if value is None:
        return None
    value = value.strip()
    return value or None


class AnalysisRequest(WireModel):
    """Document to analyze: raw text or a base64 data URI, never both."""
    document_text: Optional[str] = Field(
        default=None,
        alias="documentText",
        description="The text content of the insurance policy document to be analyzed.",
    )
    document_data_uri: Optional[str] = Field(
        default=None,
        alias="documentDataUri",
        description="The policy document as a data URI: 'data:<mimetype>;base64,<encoded_data>'.",
    )

    @field_validator("document_text", "document_data_uri")
    @classmethod
    def _blank_is_absent(cls, value: Optional[str]) -> Optional[str]:
        return _require_text(value)

    def ensure_input(self) -> None:
        """Raise MissingInputError unless exactly one input is present."""
        if self.document_text is None and self.document_data_uri is None:
            raise MissingInputError()
        if self.document_text is not None and self.document_data_uri is not None:
            raise MissingInputError(
                message="Provide either document text or a document file, not both.",
                detail="documentText and documentDataUri are mutually exclusive",
            )


class ProsCons(WireModel):
    pros: List[str] = Field(default_factory=list, description="Clear advantages of this policy.")
    cons: List[str] = Field(default_factory=list, description="Clear disadvantages of this policy.")


class AnalysisResult(WireModel):
    """Structured policy analysis returned by the model."""
    is_policy: bool = Field(alias="isPolicy", description="Whether the document is an insurance policy.")
    policy_name: Optional[str] = Field(default=None, alias="policyName")
    policy_number: Optional[str] = Field(default=None, alias="policyNumber")
    overview: str = Field(description="Plain English summary, 2-3 sentences.")
    benefits: List[str] = Field(default_factory=list)
    risks: List[str] = Field(default_factory=list, description="Exclusions, hidden clauses and penalties.")
    future_problems: List[str] = Field(default_factory=list)
    pros_cons: ProsCons = Field(default_factory=ProsCons)
    final_verdict: str = Field(description='"<Safe Choice|Risky Option|Neutral Policy>: <reasoning>"')
    recommendation: Optional[str] = Field(
        default=None,
        description="A personalized recommendation for the user based on their context.",
    )

    @model_validator(mode="after")
    def _check_verdict(self) -> "AnalysisResult":
        # Non-policy results carry placeholder text instead of a verdict
        if self.is_policy and _VERDICT_RE.match(self.final_verdict) is None:
            raise ValueError(
                "final_verdict must start with 'Safe Choice:', 'Risky Option:' or 'Neutral Policy:' followed by reasoning"
            )
        return self

    @property
    def verdict_category(self) -> Optional[VerdictCategory]:
        match = _VERDICT_RE.match(self.final_verdict)
        return VerdictCategory(match.group("label")) if match else None

    @property
    def verdict_reasoning(self) -> str:
        match = _VERDICT_RE.match(self.final_verdict)
        return match.group("reasoning").strip() if match else self.final_verdict


class UserContext(WireModel):
    age: int = Field(ge=0, le=130, description="The age of the user.")
    annual_salary: int = Field(ge=0, alias="annualSalary", description="Annual salary in USD.")
    investment_goal: str = Field(
        min_length=1,
        alias="investmentGoal",
        description="Primary financial goal (e.g. retirement, education, wealth growth).",
    )


class RecommendationRequest(WireModel):
    analysis: AnalysisResult
    user_context: UserContext = Field(alias="userContext")


class RecommendationOutput(WireModel):
    """Raw model output for the recommendation prompt."""
    recommendation: str = Field(min_length=1)


class ChatMessage(WireModel):
    role: Literal["user", "bot"]
    content: str


class ChatRequest(WireModel):
    """Full analysis plus the entire conversation so far; the server keeps no memory."""
    analysis: AnalysisResult
    chat_history: List[ChatMessage] = Field(alias="chatHistory")

    model_config = ConfigDict(
        populate_by_name=True,
        json_schema_extra={
            "examples": [
                {
                    "analysis": {"isPolicy": True, "overview": "...", "final_verdict": "Neutral Policy: ..."},
                    "chatHistory": [
                        {"role": "bot", "content": "Hi"},
                        {"role": "user", "content": "What is the deductible?"},
                    ],
                }
            ]
        },
    )


class ChatOutput(WireModel):
    """Raw model output for the chat prompt."""
    response: str


class CompareRequest(WireModel):
    policy1_data_uri: str = Field(alias="policy1DataUri")
    policy2_data_uri: str = Field(alias="policy2DataUri")


class ComparisonResult(WireModel):
    comparison_summary: str = Field(
        alias="comparisonSummary",
        description="A summary of the key differences between the two policies.",
    )


class PrivacyPolicySummaryRequest(WireModel):
    url: AnyHttpUrl


class TermsSummaryRequest(WireModel):
    terms_and_conditions_url: AnyHttpUrl = Field(alias="termsAndConditionsUrl")


class SummaryResult(WireModel):
    summary: str


class JargonRequest(WireModel):
    document_text: str = Field(alias="documentText")


class JargonExplanation(WireModel):
    simplified_explanation: str = Field(alias="simplifiedExplanation")


class AuthUser(WireModel):
    """Identity resolved from a verified Firebase ID token."""
    uid: str
    email: Optional[str] = None
    display_name: Optional[str] = Field(default=None, alias="displayName")
    photo_url: Optional[str] = Field(default=None, alias="photoURL")


class SavedAnalysis(AnalysisResult):
    """A persisted AnalysisResult under a user's account."""
    id: str
    saved_at: Optional[datetime] = Field(default=None, alias="savedAt")


class HealthResponse(BaseModel):
    """Health check response."""
    status: str
    version: str
    model: str
    store_backend: str


class ErrorResponse(BaseModel):
    """Standard error response."""
    error: str
    message: str
    detail: Optional[str] = None
    recovery: Optional[str] = None

    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "error": "missing_input",
                    "message": "Please provide a document to analyze.",
                    "detail": "Either documentText or documentDataUri must be provided.",
                },
                {
                    "error": "upstream_error",
                    "message": "The AI service failed to respond.",
                    "detail": "503 UNAVAILABLE",
                },
            ]
        }
    }
