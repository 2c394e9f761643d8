from __future__ import annotations

"""
Upstream recognition schema and score/grade shaping.

The detailed recognition body is untyped JSON. It is read once into frozen
dataclasses where every field is optional, so shaping code never has to
guess whether a key exists.
"""

import math
from dataclasses import dataclass, field
from typing import Any

from pronounce_backend.assessment.models import (
    AssessmentDetails,
    AssessmentResult,
    AssessmentScores,
    Grade,
)


GRADE_THRESHOLDS: tuple[tuple[int, Grade], ...] = (
    (90, "excellent"),
    (80, "good"),
    (70, "needs_practice"),
)
LOWEST_GRADE: Grade = "poor"

_SCORE_KEYS: dict[str, str] = {
    "pron": "PronScore",
    "accuracy": "AccuracyScore",
    "fluency": "FluencyScore",
    "completeness": "CompletenessScore",
    "prosody": "ProsodyScore",
}


@dataclass(frozen=True)
class UpstreamScores:
    pron: float | None = None
    accuracy: float | None = None
    fluency: float | None = None
    completeness: float | None = None
    prosody: float | None = None


@dataclass(frozen=True)
class RecognitionCandidate:
    lexical: str | None = None
    display: str | None = None
    scores: UpstreamScores = field(default_factory=UpstreamScores)
    words: tuple[Any, ...] = ()


@dataclass(frozen=True)
class RecognitionPayload:
    recognition_status: str | None = None
    display_text: str | None = None
    n_best: tuple[RecognitionCandidate | None, ...] = ()

    @property
    def best(self) -> RecognitionCandidate | None:
        return self.n_best[0] if self.n_best else None


def _opt_str(value: Any) -> str | None:
    return value if isinstance(value, str) else None


def _opt_number(value: Any) -> float | None:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    number = float(value)
    if math.isnan(number) or math.isinf(number):
        return None
    return number


def _parse_scores(candidate: dict[str, Any]) -> UpstreamScores:
    nested = candidate.get("PronunciationAssessment")
    nested = nested if isinstance(nested, dict) else {}
    values: dict[str, float | None] = {}
    for attr, key in _SCORE_KEYS.items():
        # Older API versions put the scores directly on the candidate.
        value = _opt_number(nested.get(key))
        if value is None:
            value = _opt_number(candidate.get(key))
        values[attr] = value
    return UpstreamScores(**values)


def _parse_candidate(raw: Any) -> RecognitionCandidate | None:
    if not isinstance(raw, dict):
        return None
    words = raw.get("Words")
    return RecognitionCandidate(
        lexical=_opt_str(raw.get("Lexical")),
        display=_opt_str(raw.get("Display")),
        scores=_parse_scores(raw),
        words=tuple(words) if isinstance(words, list) else (),
    )


def parse_recognition_payload(body: Any) -> RecognitionPayload:
    if not isinstance(body, dict):
        return RecognitionPayload()
    raw_n_best = body.get("NBest")
    candidates: list[RecognitionCandidate | None] = []
    if isinstance(raw_n_best, list):
        candidates = [_parse_candidate(item) for item in raw_n_best]
    return RecognitionPayload(
        recognition_status=_opt_str(body.get("RecognitionStatus")),
        display_text=_opt_str(body.get("DisplayText")),
        n_best=tuple(candidates),
    )


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def overall_score(scores: UpstreamScores | None) -> int:
    raw = None
    if scores is not None:
        raw = scores.pron if scores.pron is not None else scores.accuracy
    if raw is None:
        return 0
    return max(0, min(100, round_half_up(raw)))


def grade_for_score(score: int) -> Grade:
    for threshold, grade in GRADE_THRESHOLDS:
        if score >= threshold:
            return grade
    return LOWEST_GRADE


def recognized_text(payload: RecognitionPayload) -> str:
    best = payload.best
    if best is not None:
        if best.lexical:
            return best.lexical
        if best.display:
            return best.display
    return payload.display_text or ""


def build_assessment_result(
    body: Any,
    *,
    target_text: str,
    language: str,
    enable_miscue: bool = True,
    audio_mime: str = "",
) -> AssessmentResult:
    payload = parse_recognition_payload(body)
    best = payload.best
    scores = best.scores if best is not None else None
    score = overall_score(scores)
    return AssessmentResult(
        overallScore=score,
        grade=grade_for_score(score),
        details=AssessmentDetails(
            targetText=target_text,
            language=language,
            enableMiscue=enable_miscue,
            audioMime=audio_mime,
            recognizedText=recognized_text(payload),
            scores=AssessmentScores(
                pronScore=scores.pron if scores else None,
                accuracyScore=scores.accuracy if scores else None,
                fluencyScore=scores.fluency if scores else None,
                completenessScore=scores.completeness if scores else None,
                prosodyScore=scores.prosody if scores else None,
            ),
            words=list(best.words) if best is not None else [],
            recognitionStatus=payload.recognition_status,
        ),
    )
