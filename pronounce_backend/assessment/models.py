from __future__ import annotations

"""
Typed request/response contracts for the /pronounce endpoint.

Design intent:
- Keep the wire format camelCase as browsers send it.
- Validate field types at the boundary; required-field presence is checked
  by the handler first so the caller gets the required set back.
"""

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, StrictBool, StrictStr


Grade = Literal["excellent", "good", "needs_practice", "poor"]


class AssessmentRequest(BaseModel):
    model_config = ConfigDict(extra="ignore")

    targetText: StrictStr = Field(min_length=1)
    language: StrictStr = Field(min_length=1)
    audioBase64: StrictStr = Field(min_length=1)
    enableMiscue: StrictBool = True
    audioMime: StrictStr | None = None


class AssessmentScores(BaseModel):
    pronScore: float | None = None
    accuracyScore: float | None = None
    fluencyScore: float | None = None
    completenessScore: float | None = None
    prosodyScore: float | None = None


class AssessmentDetails(BaseModel):
    targetText: str
    language: str
    enableMiscue: bool = True
    audioMime: str = ""
    recognizedText: str = ""
    scores: AssessmentScores = Field(default_factory=AssessmentScores)
    words: list[Any] = Field(default_factory=list)
    recognitionStatus: str | None = None


class AssessmentResult(BaseModel):
    ok: bool = True
    overallScore: int = Field(default=0, ge=0, le=100)
    grade: Grade
    details: AssessmentDetails


class HealthResponse(BaseModel):
    ok: bool = True
    service: str
    hasSecret: bool
    hasAzureKey: bool
    hasAzureRegion: bool
    allowedOrigins: list[str] = Field(default_factory=list)
