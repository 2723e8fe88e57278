"""
Rule registries — public population rules, per-domain hard bounds and the
domain keyword patterns.

The tables live as JSON under prepcast/rules/ and are validated into frozen
pydantic models on first use.  Each loader is cached, so every caller shares
one immutable copy for the life of the process.
"""

from __future__ import annotations

import json
from enum import Enum
from functools import lru_cache
from pathlib import Path
from types import MappingProxyType
from typing import Mapping, Optional

from pydantic import BaseModel

from prepcast.schemas.cleaning import CleaningConfig

RULES_DIR = Path(__file__).resolve().parent.parent / "rules"


class Domain(str, Enum):
    HEALTHCARE = "healthcare"
    FINANCE = "finance"
    ECOMMERCE = "ecommerce"
    HR = "hr"
    GENERAL = "general"

    @classmethod
    def parse(cls, value: Optional[str]) -> Optional["Domain"]:
        """Lenient lookup: None for unknown or empty names."""
        if not value:
            return None
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            return None


class _Frozen(BaseModel):
    model_config = {"frozen": True}


class AgeRange(_Frozen):
    min: float
    max: float
    confidence: float


class AgeRules(_Frozen):
    min: float
    max: float
    implausible_ranges: tuple[AgeRange, ...] = ()

    def implausible_band(self, age: float) -> Optional[AgeRange]:
        """Band containing `age`; half-open except the highest band, which is closed."""
        if not self.implausible_ranges:
            return None
        top = max(self.implausible_ranges, key=lambda band: band.max)
        for band in self.implausible_ranges:
            if band.min <= age < band.max or (band is top and age == band.max):
                return band
        return None


class OccupationAgeRule(_Frozen):
    occupation: str
    min_age: Optional[float] = None
    max_age: Optional[float] = None


class PublicRules(_Frozen):
    age: AgeRules
    occupation_age_rules: tuple[OccupationAgeRule, ...] = ()

    def occupation_rule(self, occupation: str) -> Optional[OccupationAgeRule]:
        wanted = occupation.strip().lower()
        for rule in self.occupation_age_rules:
            if rule.occupation.lower() == wanted:
                return rule
        return None


class FieldBounds(_Frozen):
    min: float
    max: float


class DomainRuleSet(_Frozen):
    domain: Domain
    # Ordered (key, bounds) pairs; the first key contained in a column name wins
    fields: tuple[tuple[str, FieldBounds], ...] = ()

    def match(self, normalized_column: str) -> Optional[tuple[str, FieldBounds]]:
        for key, bounds in self.fields:
            if key in normalized_column:
                return key, bounds
        return None


class DomainPattern(_Frozen):
    description: str = ""
    keywords: tuple[str, ...] = ()
    semantic_terms: tuple[str, ...] = ()
    context_patterns: tuple[str, ...] = ()
    cleaning_config: CleaningConfig


def _read(name: str) -> dict:
    with open(RULES_DIR / name, encoding="utf-8") as fh:
        return json.load(fh)


@lru_cache()
def get_public_rules() -> PublicRules:
    return PublicRules.model_validate(_read("public_rules.json"))


@lru_cache()
def get_domain_rules() -> Mapping[Domain, DomainRuleSet]:
    raw = _read("domain_rules.json")
    registry = {}
    for name, fields in raw.items():
        domain = Domain(name)
        registry[domain] = DomainRuleSet(
            domain=domain,
            fields=tuple((key, FieldBounds(**bounds)) for key, bounds in fields.items()),
        )
    return MappingProxyType(registry)


@lru_cache()
def get_domain_patterns() -> Mapping[Domain, DomainPattern]:
    raw = _read("domain_patterns.json")
    return MappingProxyType(
        {Domain(name): DomainPattern.model_validate(body) for name, body in raw.items()}
    )
