"""
Plausibility engine (PDAE) — rule-based, per-cell validation against public
population rules and per-domain hard bounds.

This engine NEVER corrects values.  It only flags, explains and suggests;
the table it inspects is left exactly as it was.

Checks, in order, for one (row, column, value):
  1. Universal age bounds, then the implausible age bands
  2. Occupation ↔ age cross-check (needs an `occupation` field in the row)
  3. Domain hard bounds (substring match of a rule key in the column name)
  4. Source-trust nudge of ±0.05 on every issue, clamped to [0, 1]
"""

from __future__ import annotations

import math
from typing import Any, Iterable, Mapping, Optional

import pandas as pd

from prepcast.schemas.analysis import PlausibilityFlag, PlausibilityReport, PlausibilityStatus
from prepcast.services import stats
from prepcast.services.rules import Domain, get_domain_rules, get_public_rules

TRUST_ADJUSTMENT = {"low": 0.05, "medium": 0.0, "high": -0.05}
TRUST_SCORE_PENALTY = 500

SUGGESTED_ACTIONS = {
    PlausibilityStatus.IMPOSSIBLE: ["Mark as missing", "Exclude from analysis"],
    PlausibilityStatus.IMPLAUSIBLE: ["Review manually", "Replace using median", "Exclude from analysis"],
}


def _issue(status: PlausibilityStatus, reason: str, confidence: float) -> dict:
    return {"status": status, "reason": reason, "confidence": confidence}


def _age_issues(age: float) -> list[dict]:
    rules = get_public_rules().age
    if age < rules.min or age > rules.max:
        return [_issue(PlausibilityStatus.IMPOSSIBLE, "Age violates basic human age constraints", 0.95)]

    band = rules.implausible_band(age)
    if band is None:
        return []
    return [_issue(
        PlausibilityStatus.IMPLAUSIBLE,
        "Age is statistically uncommon in public population patterns",
        band.confidence,
    )]


def _occupation_issues(occupation: Any, age: float) -> list[dict]:
    if stats.is_missing(occupation):
        return []
    rule = get_public_rules().occupation_rule(str(occupation))
    if rule is None:
        return []

    issues = []
    if rule.min_age is not None and age < rule.min_age:
        issues.append(_issue(
            PlausibilityStatus.IMPLAUSIBLE,
            f'Age does not align with typical age for occupation "{occupation}"',
            0.85,
        ))
    if rule.max_age is not None and age > rule.max_age:
        issues.append(_issue(
            PlausibilityStatus.IMPLAUSIBLE,
            f'Age is unusually high for typical "{occupation}"',
            0.80,
        ))
    return issues


def _domain_issues(domain: Optional[str], normalized_col: str, value: float) -> list[dict]:
    parsed = Domain.parse(domain)
    if parsed is None:
        return []
    rule_set = get_domain_rules().get(parsed)
    if rule_set is None:
        return []
    match = rule_set.match(normalized_col)
    if match is None:
        return []

    key, bounds = match
    if value < bounds.min or value > bounds.max:
        return [_issue(
            PlausibilityStatus.IMPOSSIBLE,
            f"Violates {parsed.value} domain constraints for {key}",
            0.9,
        )]
    return []


def run_plausibility_check(
    row: Mapping[str, Any],
    column: str,
    value: Any,
    domain: Optional[str] = None,
    source_trust: str = "medium",
    row_index: Optional[int] = None,
) -> list[PlausibilityFlag]:
    """Flags for a single cell; an empty list means nothing looked wrong."""
    normalized_col = column.lower().strip()
    number = stats.to_number(value)
    if number is None:
        # Every rule is a numeric bound; text cells have nothing to check.
        return []

    issues: list[dict] = []
    if normalized_col == "age":
        issues.extend(_age_issues(number))
        issues.extend(_occupation_issues(row.get("occupation"), number))
    issues.extend(_domain_issues(domain, normalized_col, number))

    adjustment = TRUST_ADJUSTMENT.get(source_trust, 0.0)
    return [
        PlausibilityFlag(
            row=row_index,
            column=column,
            value=value,
            status=issue["status"],
            reason=issue["reason"],
            confidence=min(max(issue["confidence"] + adjustment, 0.0), 1.0),
            suggested_actions=list(SUGGESTED_ACTIONS.get(issue["status"], [])),
        )
        for issue in issues
    ]


def generate_plausibility_report(
    df: pd.DataFrame,
    columns: Iterable[str],
    domain: Optional[str] = "general",
    source_trust: str = "medium",
) -> PlausibilityReport:
    """
    Run the per-cell check over every non-empty (row, column) pair.

    trust_score = max(0, round(100 - flagged / (rows * columns) * 500)),
    a linear penalty that bottoms out at 0.  An empty table scores 100.
    """
    columns = [c for c in columns if c in df.columns]
    flags: list[PlausibilityFlag] = []

    for position, row in enumerate(df.to_dict(orient="records")):
        for col in columns:
            raw = row.get(col)
            if stats.is_missing(raw):
                continue
            flags.extend(
                run_plausibility_check(
                    row, col, raw, domain=domain, source_trust=source_trust, row_index=position
                )
            )

    total_cells = len(df) * len(columns)
    if total_cells == 0:
        trust_score = 100
    else:
        error_rate = len(flags) / total_cells
        # Half-up rounding
        trust_score = max(0, math.floor(100 - error_rate * TRUST_SCORE_PENALTY + 0.5))

    return PlausibilityReport(
        total_records=len(df),
        flagged_count=len(flags),
        trust_score=trust_score,
        flags=flags,
    )
