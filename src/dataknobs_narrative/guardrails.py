"""Deterministic content guardrails applied to generated scene text.

Each check returns a list of ``GuardrailFinding`` with a severity:

- ``critical``: harmful content, SSN / credit-card numbers, near-copies
  of a reference text
- ``error``: stereotypes, e-mail addresses, phone numbers
- ``warning``: clichés, close similarity to a reference text
- ``info``: repeated phrases

A report's status is the worst severity found: critical rejects, error
fails, warning warns; info findings never change the status.

Example:
    >>> report = run_guardrails("Contact me at test@example.com", policies=["pii"])
    >>> report.status.value
    'fail'
"""

from __future__ import annotations

import re
from collections import Counter
from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Iterable, Sequence

from .embedding import DEFAULT_DIM, DEFAULT_SEED, HashedVectorBackend

DEFAULT_POLICIES = ("bias", "originality", "pii", "harmful", "repetition")

SIMILARITY_WARNING = 0.85
SIMILARITY_CRITICAL = 0.95


class Severity(str, Enum):
    CRITICAL = "critical"
    ERROR = "error"
    WARNING = "warning"
    INFO = "info"


class GuardrailStatus(str, Enum):
    PASS = "pass"
    WARN = "warn"
    FAIL = "fail"
    REJECT = "reject"


CLICHES = (
    "it was a dark and stormy night",
    "once upon a time",
    "the best of times",
    "the worst of times",
    "little did they know",
    "suddenly everything changed",
    "in the nick of time",
    "all hell broke loose",
    "at the end of the day",
    "a sight for sore eyes",
    "dead as a doornail",
    "the calm before the storm",
    "time stood still",
    "their eyes met across the room",
    "love at first sight",
    "a blood-curdling scream",
    "with bated breath",
    "a diamond in the rough",
    "leave no stone unturned",
    "the writing on the wall",
    "a blessing in disguise",
    "when all is said and done",
    "burning the midnight oil",
    "read between the lines",
    "the tip of the iceberg",
    "thinking outside the box",
    "at the crack of dawn",
    "scared out of their wits",
    "crystal clear",
    "easier said than done",
)

_I = re.IGNORECASE

STEREOTYPE_PATTERNS = (
    (re.compile(r"\b(dumb|stupid)\s+(blonde|jock)", _I), "appearance"),
    (re.compile(r"\b(angry|aggressive)\s+black\s+(man|woman|person)", _I), "race"),
    (re.compile(r"\b(lazy|drunk)\s+(mexican|irish)", _I), "ethnicity"),
    (re.compile(r"\b(terrorist|extremist)\s+(arab|muslim)", _I), "religion"),
    (re.compile(r"\b(submissive|docile)\s+asian\s+(woman|girl)", _I), "gender-ethnicity"),
    (re.compile(r"\b(emotional|hysterical)\s+woman", _I), "gender"),
    (re.compile(r"\b(nerdy|antisocial)\s+(programmer|developer|engineer)", _I), "profession"),
    (re.compile(r"\b(greedy|stingy)\s+(jew|jewish)", _I), "religion"),
    (re.compile(r"\bwomen\s+(can't|cannot)\s+(drive|math|science)", _I), "gender"),
    (re.compile(r"\bmen\s+(don't|cannot)\s+(cry|feel|emotions)", _I), "gender"),
    (re.compile(r"\bold\s+people\s+(are|always)\s+(confused|senile|slow)", _I), "age"),
    (re.compile(r"\byoung\s+people\s+(are|always)\s+(lazy|entitled|naive)", _I), "age"),
)

HARMFUL_PATTERNS = (
    (re.compile(r"\b(kill|murder|assassinate)\s+(yourself|himself|herself|themselves)", _I), "self-harm"),
    (re.compile(r"\bhow\s+to\s+(make|build)\s+(bomb|explosive|weapon)", _I), "violence"),
    (re.compile(r"\b(hate|death\s+to)\s+(jews|muslims|christians|blacks|whites|asians)", _I), "hate-speech"),
)

PII_PATTERNS = (
    (re.compile(r"\b[A-Z][a-z]+\s+[A-Z][a-z]+\s+\d{3}-\d{2}-\d{4}\b"), "ssn", Severity.CRITICAL),
    (re.compile(r"\b\d{3}-\d{2}-\d{4}\b"), "ssn", Severity.CRITICAL),
    (re.compile(r"\b[A-Za-z0-9._%+-]+@[A-Za-z0-9.-]+\.[A-Za-z]{2,}\b"), "email", Severity.ERROR),
    (re.compile(r"\b\d{4}[\s-]?\d{4}[\s-]?\d{4}[\s-]?\d{4}\b"), "credit-card", Severity.CRITICAL),
    (re.compile(r"\b\d{3}[-.\s]?\d{3}[-.\s]?\d{4}\b"), "phone", Severity.ERROR),
)

# n-grams starting with these are too common to flag as repetition
COMMON_PHRASES = (
    "in the", "of the", "to the", "and the", "on the", "at the",
    "it is", "there is", "there are", "this is", "that is",
    "he was", "she was", "they were", "i was", "we were",
)

MAX_REPETITION_FINDINGS = 10


@dataclass
class GuardrailFinding:
    """One guardrail hit.

    Attributes:
        type: Check that produced it (``cliche``, ``pii``...).
        severity: How serious the hit is.
        match: Matched text (redacted for PII).
        category: Sub-category, e.g. the PII kind or stereotype axis.
        suggestion: Remediation hint for authors.
        extra: Check-specific data (similarity, counts, reference id).
    """

    type: str
    severity: Severity
    match: str | None = None
    category: str | None = None
    suggestion: str = ""
    extra: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {"type": self.type, "severity": self.severity.value}
        if self.match is not None:
            result["match"] = self.match
        if self.category is not None:
            result["category"] = self.category
        if self.suggestion:
            result["suggestion"] = self.suggestion
        result.update(self.extra)
        return result


@dataclass
class GuardrailReport:
    status: GuardrailStatus
    summary: dict[str, int]
    findings: list[GuardrailFinding] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "status": self.status.value,
            "summary": dict(self.summary),
            "findings": [f.to_dict() for f in self.findings],
        }


def check_cliches(text: str) -> list[GuardrailFinding]:
    lower = text.lower()
    return [
        GuardrailFinding(
            type="cliche",
            severity=Severity.WARNING,
            match=cliche,
            suggestion="Consider using more original phrasing",
        )
        for cliche in CLICHES
        if cliche in lower
    ]


def _pattern_findings(
    text: str, patterns: Sequence[tuple[re.Pattern, str]], kind: str, severity: Severity, suggestion: str
) -> list[GuardrailFinding]:
    findings = []
    for pattern, category in patterns:
        for m in pattern.finditer(text):
            findings.append(GuardrailFinding(
                type=kind, severity=severity, match=m.group(0), category=category, suggestion=suggestion,
            ))
    return findings


def check_stereotypes(text: str) -> list[GuardrailFinding]:
    return _pattern_findings(
        text, STEREOTYPE_PATTERNS, "stereotype", Severity.ERROR,
        "Avoid stereotypical characterizations",
    )


def check_harmful_content(text: str) -> list[GuardrailFinding]:
    return _pattern_findings(
        text, HARMFUL_PATTERNS, "harmful-content", Severity.CRITICAL,
        "Content may be harmful or dangerous",
    )


def redact(value: str) -> str:
    return value[:4] + "****"


def check_pii(text: str) -> list[GuardrailFinding]:
    findings = []
    for pattern, pii_type, severity in PII_PATTERNS:
        for m in pattern.finditer(text):
            findings.append(GuardrailFinding(
                type="pii",
                severity=severity,
                match=redact(m.group(0)),
                category=pii_type,
                suggestion="Remove or redact personally identifiable information",
            ))
    return findings


def _reference_text(ref: Any) -> tuple[str, str]:
    if isinstance(ref, Mapping):
        return str(ref.get("id") or "unknown"), str(ref.get("text") or "")
    return "unknown", str(ref or "")


def check_originality(
    text: str,
    references: Iterable[Any],
    threshold: float = SIMILARITY_WARNING,
    dim: int = DEFAULT_DIM,
    seed: int | float = DEFAULT_SEED,
) -> list[GuardrailFinding]:
    """Flag reference texts whose hashed-vector cosine exceeds ``threshold``."""
    backend = HashedVectorBackend(dim=dim, seed=seed)
    emb = backend.embed(text)
    findings = []
    for ref in references or []:
        ref_id, ref_text = _reference_text(ref)
        similarity = backend.cosine(emb, backend.embed(ref_text))
        if similarity > threshold:
            findings.append(GuardrailFinding(
                type="similarity",
                severity=Severity.CRITICAL if similarity > SIMILARITY_CRITICAL else Severity.WARNING,
                suggestion="High similarity with reference text detected",
                extra={"reference": ref_id, "similarity": similarity},
            ))
    return findings


def is_common_phrase(phrase: str) -> bool:
    return phrase.startswith(COMMON_PHRASES)


def check_repetition(text: str, phrase_length: int = 4, min_repetitions: int = 2) -> list[GuardrailFinding]:
    """Report up to ten word n-grams repeated at least ``min_repetitions`` times."""
    words = text.lower().split()
    counts = Counter(
        " ".join(words[i:i + phrase_length]) for i in range(len(words) - phrase_length + 1)
    )
    findings = []
    for phrase, count in counts.items():
        if count >= min_repetitions and not is_common_phrase(phrase):
            findings.append(GuardrailFinding(
                type="repetition",
                severity=Severity.INFO,
                suggestion="Consider varying your language",
                extra={"phrase": phrase, "count": count},
            ))
    return findings[:MAX_REPETITION_FINDINGS]


POLICY_CHECKS = {
    "bias": check_stereotypes,
    "originality": check_cliches,
    "pii": check_pii,
    "harmful": check_harmful_content,
    "repetition": check_repetition,
}


def summarize_findings(findings: Iterable[GuardrailFinding]) -> tuple[GuardrailStatus, dict[str, int]]:
    summary = {s.value: 0 for s in Severity}
    for finding in findings:
        summary[finding.severity.value] += 1
    if summary[Severity.CRITICAL.value]:
        status = GuardrailStatus.REJECT
    elif summary[Severity.ERROR.value]:
        status = GuardrailStatus.FAIL
    elif summary[Severity.WARNING.value]:
        status = GuardrailStatus.WARN
    else:
        status = GuardrailStatus.PASS
    return status, summary


def run_guardrails(
    text: str,
    policies: Iterable[str] | None = None,
    references: Sequence[Any] | None = None,
) -> GuardrailReport:
    """Run the selected policies (unknown names are ignored) plus reference originality."""
    findings: list[GuardrailFinding] = []
    for policy in DEFAULT_POLICIES if policies is None else policies:
        check = POLICY_CHECKS.get(str(policy).lower())
        if check is not None:
            findings.extend(check(text))
    if references:
        findings.extend(check_originality(text, references))
    status, summary = summarize_findings(findings)
    return GuardrailReport(status=status, summary=summary, findings=findings)
