"""
Unit tests for the coverage validator.
"""

import math

import pytest

from gp_rules import AllGp, Between, GreaterThan, LessThan
from rule_coverage import Gap, check_overlaps, find_issues, validate
from rule_errors import (
    DegenerateRuleError,
    GapError,
    InputError,
    OverlapError,
    StructureError,
)


class TestValidate:
    """Test cases for full validation."""

    def test_universal_rule_is_valid(self, universal_rules):
        assert validate(universal_rules).ok

    def test_contiguous_rules_are_valid(self, tiered_rules):
        assert validate(tiered_rules).ok

    def test_order_of_input_does_not_matter(self, tiered_rules):
        assert validate(list(reversed(tiered_rules))).ok

    def test_touching_boundaries_are_valid(self):
        assert validate([LessThan(max=10, gp=80), GreaterThan(min=10, gp=60)]).ok

    def test_gap_is_reported(self, gapped_rules):
        with pytest.raises(GapError) as exc_info:
            validate(gapped_rules)

        assert exc_info.value.gaps == [Gap(10.0, 15.0)]
        assert exc_info.value.details == {"gaps": [{"lo": 10.0, "hi": 15.0}]}
        assert "£10.00 to £15.00" in exc_info.value.message

    def test_every_gap_found_in_one_pass(self):
        rules = [
            LessThan(max=10, gp=80),
            Between(min=12, max=14, start_gp=78, end_gp=76),
            Between(min=16, max=18, start_gp=74, end_gp=72),
            GreaterThan(min=20, gp=70),
        ]

        report = find_issues(rules)

        assert report.gaps == [Gap(10, 12), Gap(14, 16), Gap(18, 20)]
        assert report.overlaps == []

    def test_overlap_reports_both_rules(self):
        wide = Between(min=5, max=25, start_gp=80, end_gp=70)
        sibling = Between(min=20, max=30, start_gp=70, end_gp=60)
        rules = [LessThan(max=5, gp=80), wide, sibling, GreaterThan(min=30, gp=60)]

        with pytest.raises(OverlapError) as exc_info:
            validate(rules)

        assert exc_info.value.pairs == [(wide, sibling)]
        assert "£5.00-£25.00" in exc_info.value.message
        assert "£20.00-£30.00" in exc_info.value.message

    def test_overlaps_beyond_adjacent_pairs(self):
        wide = Between(min=5, max=40, start_gp=80, end_gp=60)
        inner_a = Between(min=10, max=12, start_gp=78, end_gp=77)
        inner_b = Between(min=20, max=30, start_gp=70, end_gp=65)
        rules = [LessThan(max=5, gp=80), wide, inner_a, inner_b, GreaterThan(min=40, gp=60)]

        report = find_issues(rules)

        assert report.overlaps == [(wide, inner_a), (wide, inner_b)]
        assert report.gaps == []

    def test_less_than_overlapping_greater_than(self):
        less = LessThan(max=20, gp=80)
        greater = GreaterThan(min=15, gp=60)
        assert find_issues([less, greater]).overlaps == [(less, greater)]

    def test_zero_width_between_is_degenerate(self):
        degenerate = Between(min=10, max=10, start_gp=80, end_gp=70)
        rules = [LessThan(max=10, gp=80), degenerate, GreaterThan(min=10, gp=70)]

        with pytest.raises(DegenerateRuleError) as exc_info:
            validate(rules)

        assert exc_info.value.rules == [degenerate]

    def test_inverted_between_is_degenerate(self):
        inverted = Between(min=20, max=10, start_gp=80, end_gp=70)
        assert find_issues([LessThan(max=10, gp=80), inverted, GreaterThan(min=20, gp=70)]).degenerate == [inverted]

    def test_boundary_kinds_are_required(self):
        report = find_issues([Between(min=10, max=20, start_gp=80, end_gp=60)])

        assert report.gaps == [Gap(-math.inf, 10.0), Gap(20.0, math.inf)]
        assert report.gaps[0].as_dict() == {"lo": None, "hi": 10.0}

    def test_structure_errors_are_raised(self, tiered_rules):
        with pytest.raises(StructureError):
            validate([])
        with pytest.raises(StructureError):
            validate(tiered_rules + [AllGp(gp=70)])

    def test_field_errors_are_raised(self):
        with pytest.raises(InputError):
            validate([LessThan(max=10, gp=150), GreaterThan(min=10, gp=60)])


class TestCheckOverlaps:
    """Test cases for the in-progress overlap check."""

    def test_gaps_are_tolerated(self, gapped_rules):
        report = check_overlaps(gapped_rules)
        assert report.gaps == [Gap(10, 15)]

    def test_overlap_raises(self):
        with pytest.raises(OverlapError):
            check_overlaps([LessThan(max=20, gp=80), GreaterThan(min=15, gp=60)])

    def test_empty_and_universal_pass(self, universal_rules):
        assert check_overlaps([]).ok
        assert check_overlaps(universal_rules).ok


class TestGap:
    """Test cases for gap descriptions."""

    def test_round_trip_through_dict(self):
        for gap in (Gap(10.0, 15.0), Gap(-math.inf, 5.0), Gap(20.0, math.inf)):
            assert Gap.from_dict(gap.as_dict()) == gap

    def test_bounded(self):
        assert Gap(10, 15).bounded
        assert not Gap(10, math.inf).bounded
