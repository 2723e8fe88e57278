"""
Domain detection. Decides whether an upload looks like healthcare, finance,
ecommerce, hr or general data.

An external classifier (GPT-4o by default) is tried first when one is
configured.  Whenever it is unavailable, fails, or answers with something
unrecognisable, the deterministic keyword / regex scorer below decides.
"""

from __future__ import annotations

import json
import logging
import re
from functools import lru_cache
from typing import Any, Callable, Mapping, Optional, Sequence

from openai import OpenAI

from prepcast.config import settings
from prepcast.schemas.analysis import DomainDetection
from prepcast.schemas.cleaning import CleaningConfig
from prepcast.services.rules import Domain, get_domain_patterns

logger = logging.getLogger(__name__)

SAMPLE_ROWS = 5
KEYWORD_WEIGHT = 2

DomainClassifier = Callable[[Sequence[str], Sequence[Mapping[str, Any]]], Optional[str]]


# ─────────────────────────────────────────────────────────────────────────────
# Rule-based fallback
# ─────────────────────────────────────────────────────────────────────────────

def tokenize(text: str) -> list[str]:
    return re.findall(r"\b[a-z_]+\b", text.lower())


def _sample_text(columns: Sequence[str], sample: Sequence[Mapping[str, Any]]) -> str:
    parts = [" ".join(str(c) for c in columns)]
    for row in list(sample)[:SAMPLE_ROWS]:
        parts.append(" ".join("" if v is None else str(v) for v in row.values()))
    return " ".join(parts)


def score_domains(columns: Sequence[str], sample: Sequence[Mapping[str, Any]]) -> dict[str, float]:
    text = _sample_text(columns, sample)
    tokens = tokenize(text)

    scores: dict[str, float] = {}
    for domain, pattern in get_domain_patterns().items():
        if domain is Domain.GENERAL:
            continue
        score = 0.0
        for keyword in pattern.keywords:
            score += tokens.count(keyword) * KEYWORD_WEIGHT
        for regex in pattern.context_patterns:
            score += len(re.findall(regex, text, flags=re.IGNORECASE))
        scores[domain.value] = score
    return scores


def detect_domain_by_rules(columns: Sequence[str], sample: Sequence[Mapping[str, Any]]) -> DomainDetection:
    """Highest keyword/regex score wins; no signal or a tie at the top means general."""
    scores = score_domains(columns, sample)
    best = max(scores.values(), default=0.0)
    leaders = [name for name, score in scores.items() if score == best]

    domain = leaders[0] if best > 0 and len(leaders) == 1 else Domain.GENERAL.value
    return DomainDetection(domain=domain, source="rules", scores=scores)


# ─────────────────────────────────────────────────────────────────────────────
# External classifier
# ─────────────────────────────────────────────────────────────────────────────

@lru_cache()
def _openai_client() -> OpenAI:
    return OpenAI(api_key=settings.OPENAI_API_KEY)


def parse_domain_answer(text: Optional[str]) -> Optional[str]:
    """Map a free-text model answer onto a known domain name."""
    if not text:
        return None
    answer = text.strip().lower()
    if "healthcare" in answer:
        return Domain.HEALTHCARE.value
    if "finance" in answer:
        return Domain.FINANCE.value
    if "ecommerce" in answer or "e-commerce" in answer:
        return Domain.ECOMMERCE.value
    if re.search(r"\bhr\b", answer) or "human resources" in answer:
        return Domain.HR.value
    if "general" in answer:
        return Domain.GENERAL.value
    return None


def classify_with_openai(columns: Sequence[str], sample: Sequence[Mapping[str, Any]]) -> Optional[str]:
    """Ask GPT for the dataset's domain; None when no API key is configured."""
    if not settings.OPENAI_API_KEY:
        return None

    rows = list(sample)[:2]
    prompt = f"""Analyze the following dataset structure and determine its domain.

Columns: {", ".join(columns)}

Sample Row 1: {json.dumps(rows[0] if rows else {}, default=str)}
Sample Row 2: {json.dumps(rows[1] if len(rows) > 1 else {}, default=str)}

Possible domains: healthcare, finance, ecommerce, hr, general.

Return ONLY the domain name in lowercase."""

    response = _openai_client().chat.completions.create(
        model=settings.OPENAI_MODEL,
        messages=[{"role": "user", "content": prompt}],
        temperature=0,
        max_tokens=10,
    )
    return parse_domain_answer(response.choices[0].message.content)


def classify_domain(
    columns: Sequence[str],
    sample: Sequence[Mapping[str, Any]],
    classifier: Optional[DomainClassifier] = classify_with_openai,
) -> DomainDetection:
    if classifier is not None:
        try:
            answer = classifier(columns, sample)
        except Exception as exc:
            logger.warning("Domain classifier failed, using keyword rules: %s", exc)
            answer = None
        domain = Domain.parse(answer)
        if domain is not None:
            return DomainDetection(domain=domain.value, source="ai")

    return detect_domain_by_rules(columns, sample)


def recommended_cleaning_config(domain: Optional[str]) -> CleaningConfig:
    """Default cleaning settings for a domain (general when unknown)."""
    patterns = get_domain_patterns()
    parsed = Domain.parse(domain) or Domain.GENERAL
    return patterns[parsed].cleaning_config
