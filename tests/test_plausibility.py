"""
Tests for the plausibility engine (PDAE): age rules, occupation cross-checks,
domain bounds, source trust and the dataset trust score.
"""

from __future__ import annotations

import pandas as pd
import pytest

from prepcast.schemas.analysis import PlausibilityStatus
from prepcast.services.plausibility import generate_plausibility_report, run_plausibility_check
from prepcast.services.rules import Domain, get_domain_rules, get_public_rules


class TestRuleTables:

    def test_public_rules_loaded(self):
        rules = get_public_rules()
        assert rules.age.min == 0
        assert rules.age.max == 120
        assert rules.occupation_rule("Student").max_age == 65

    def test_domain_rules_first_substring_match(self):
        healthcare = get_domain_rules()[Domain.HEALTHCARE]
        key, bounds = healthcare.match("systolic_bp")
        assert key == "systolic"
        assert (bounds.min, bounds.max) == (50, 250)
        assert healthcare.match("patient_name") is None

    def test_domain_parse_is_lenient(self):
        assert Domain.parse(" Finance ") is Domain.FINANCE
        assert Domain.parse("retail") is None
        assert Domain.parse(None) is None


class TestAgeChecks:

    def test_impossible_age(self):
        flags = run_plausibility_check({"age": 200}, "age", 200)
        assert len(flags) == 1
        assert flags[0].status == PlausibilityStatus.IMPOSSIBLE
        assert flags[0].confidence == pytest.approx(0.95)
        assert flags[0].reason == "Age violates basic human age constraints"
        assert flags[0].suggested_actions == ["Mark as missing", "Exclude from analysis"]
        assert flags[0].label == "Validation Insight"

    def test_negative_age_is_impossible(self):
        flags = run_plausibility_check({}, "Age", -1)
        assert flags[0].status == PlausibilityStatus.IMPOSSIBLE

    def test_centenarian_is_implausible(self):
        flags = run_plausibility_check({}, "age", 105)
        assert [f.status for f in flags] == [PlausibilityStatus.IMPLAUSIBLE]
        assert flags[0].confidence == pytest.approx(0.7)

    def test_nineties_band(self):
        flags = run_plausibility_check({}, "age", 95)
        assert flags[0].confidence == pytest.approx(0.4)

    @pytest.mark.parametrize(
        "age,confidence",
        [(90, 0.4), (99.9995, 0.4), (100, 0.7), (119.5, 0.7), (120, 0.7)],
    )
    def test_band_edges_leave_no_gap(self, age, confidence):
        flags = run_plausibility_check({}, "age", age)
        assert len(flags) == 1
        assert flags[0].confidence == pytest.approx(confidence)

    def test_below_lowest_band(self):
        assert run_plausibility_check({}, "age", 89.99) == []

    def test_ordinary_age_passes(self):
        assert run_plausibility_check({}, "age", 30) == []

    def test_numeric_string_is_checked(self):
        assert len(run_plausibility_check({}, "age", "200")) == 1

    def test_text_value_never_flagged(self):
        assert run_plausibility_check({}, "age", "unknown") == []


class TestOccupationChecks:

    def test_student_too_old(self):
        flags = run_plausibility_check({"occupation": "student"}, "age", 70)
        assert len(flags) == 1
        assert flags[0].confidence == pytest.approx(0.80)
        assert "student" in flags[0].reason

    def test_doctor_too_young(self):
        flags = run_plausibility_check({"occupation": "Doctor"}, "age", 15)
        assert flags[0].confidence == pytest.approx(0.85)

    def test_unknown_occupation_ignored(self):
        assert run_plausibility_check({"occupation": "astronaut"}, "age", 15) == []

    def test_missing_occupation_ignored(self):
        assert run_plausibility_check({"occupation": None}, "age", 15) == []


class TestDomainChecks:

    def test_out_of_bounds_vital(self):
        flags = run_plausibility_check({}, "Systolic", 300, domain="healthcare")
        assert len(flags) == 1
        assert flags[0].status == PlausibilityStatus.IMPOSSIBLE
        assert flags[0].confidence == pytest.approx(0.9)
        assert flags[0].reason == "Violates healthcare domain constraints for systolic"

    def test_in_bounds_vital(self):
        assert run_plausibility_check({}, "systolic", 120, domain="healthcare") == []

    def test_other_domain_does_not_apply(self):
        assert run_plausibility_check({}, "systolic", 300, domain="general") == []
        assert run_plausibility_check({}, "systolic", 300, domain="unknown") == []


class TestSourceTrust:

    def test_low_trust_raises_confidence(self):
        flags = run_plausibility_check({}, "age", 105, source_trust="low")
        assert flags[0].confidence == pytest.approx(0.75)

    def test_high_trust_lowers_confidence(self):
        flags = run_plausibility_check({}, "age", 105, source_trust="high")
        assert flags[0].confidence == pytest.approx(0.65)

    def test_confidence_clamped(self):
        flags = run_plausibility_check({}, "age", 200, source_trust="low")
        assert flags[0].confidence <= 1.0


class TestPlausibilityReport:

    def test_trust_score(self):
        df = pd.DataFrame({"age": [30] * 19 + [200]})
        report = generate_plausibility_report(df, ["age"])
        assert report.total_records == 20
        assert report.flagged_count == 1
        # 1 flag over 20 cells: 100 - 0.05 * 500
        assert report.trust_score == 75
        assert report.flags[0].row == 19

    def test_trust_score_floor_at_zero(self):
        df = pd.DataFrame({"age": [200, 300]})
        assert generate_plausibility_report(df, ["age"]).trust_score == 0

    def test_empty_table_scores_full(self):
        report = generate_plausibility_report(pd.DataFrame({"age": []}), ["age"])
        assert report.trust_score == 100
        assert report.flags == []

    def test_missing_cells_skipped(self):
        df = pd.DataFrame({"age": [None, 30]})
        assert generate_plausibility_report(df, ["age"]).flagged_count == 0

    def test_table_left_untouched(self):
        df = pd.DataFrame({"age": [30, 200]})
        generate_plausibility_report(df, ["age"])
        assert df["age"].tolist() == [30, 200]
