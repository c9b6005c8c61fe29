"""
Unit tests for the rule-set builder.
"""

import pytest

from gp_rules import AllGp, Between, GreaterThan, LessThan
from pricing_engine import PricingEngine
from rule_builder import RuleSetBuilder
from rule_errors import (
    BuilderStateError,
    DegenerateRuleError,
    InputError,
    OverlapError,
    StructureError,
)


class TestStart:
    """Test cases for starting a rule set."""

    def test_new_builder_is_empty(self):
        builder = RuleSetBuilder()
        assert builder.is_empty
        assert not builder.is_custom
        assert not builder.is_universal

    def test_add_universal(self):
        builder = RuleSetBuilder().add_universal()

        assert builder.is_universal
        assert builder.rules == (AllGp(gp=70),)
        assert builder.finish() == [AllGp(gp=70)]

    def test_universal_only_from_empty(self):
        builder = RuleSetBuilder().add_universal(65)
        with pytest.raises(BuilderStateError):
            builder.add_universal()

    def test_universal_gp_is_checked(self):
        with pytest.raises(InputError):
            RuleSetBuilder().add_universal(0)

    def test_start_custom_opens_less_than(self):
        builder = RuleSetBuilder().start_custom()

        assert builder.rules == (LessThan(max=0, gp=0),)
        assert builder.editing == 0
        assert builder.editing_rule == LessThan(max=0, gp=0)

    def test_start_custom_requires_discard(self):
        universal = RuleSetBuilder().add_universal()

        with pytest.raises(BuilderStateError):
            universal.start_custom()

        custom = universal.start_custom(discard=True)
        assert custom.is_custom
        assert universal.is_universal


class TestCommit:
    """Test cases for committing edits."""

    def test_guided_flow_builds_contiguous_rules(self):
        builder = RuleSetBuilder().start_custom()

        builder = builder.commit(LessThan(max=13, gp=75))
        assert builder.rules == (LessThan(max=13, gp=75), GreaterThan(min=13, gp=75))
        assert builder.editing == 1

        builder = builder.commit(GreaterThan(min=20, gp=72))
        assert builder.rules == (
            LessThan(max=13, gp=75),
            Between(min=13, max=20, start_gp=75, end_gp=72),
            GreaterThan(min=20, gp=72),
        )
        assert builder.editing == 1

        rules = builder.finish()
        assert PricingEngine.gp_for(16.5, rules) == 73.5

    def test_no_bridge_when_boundaries_touch(self):
        builder = RuleSetBuilder().start_custom().commit(LessThan(max=10, gp=80))
        builder = builder.commit(GreaterThan(min=10, gp=60))

        assert builder.rules == (LessThan(max=10, gp=80), GreaterThan(min=10, gp=60))
        assert builder.finish() == list(builder.rules)

    def test_overlapping_edit_is_rejected(self):
        builder = RuleSetBuilder.from_rules([
            LessThan(max=5, gp=80),
            Between(min=5, max=20, start_gp=80, end_gp=72),
            Between(min=20, max=30, start_gp=72, end_gp=65),
            GreaterThan(min=30, gp=65),
        ])

        with pytest.raises(OverlapError) as exc_info:
            builder.commit(Between(min=5, max=25, start_gp=80, end_gp=70), index=1)

        assert "£5.00-£25.00" in exc_info.value.message
        assert "£20.00-£30.00" in exc_info.value.message
        assert builder.rules[1] == Between(min=5, max=20, start_gp=80, end_gp=72)

    def test_zero_width_commit_is_rejected(self, tiered_rules):
        builder = RuleSetBuilder.from_rules(tiered_rules)
        with pytest.raises(DegenerateRuleError):
            builder.commit(Between(min=13, max=13, start_gp=75, end_gp=72), index=1)

    def test_kind_cannot_change(self, tiered_rules):
        builder = RuleSetBuilder.from_rules(tiered_rules)
        with pytest.raises(StructureError):
            builder.commit(GreaterThan(min=13, gp=70), index=1)

    def test_invalid_value_is_rejected(self, tiered_rules):
        builder = RuleSetBuilder.from_rules(tiered_rules).open(0)
        with pytest.raises(InputError):
            builder.commit(LessThan(max=13, gp=120))

    def test_commit_needs_open_rule(self, tiered_rules):
        with pytest.raises(BuilderStateError):
            RuleSetBuilder.from_rules(tiered_rules).commit(LessThan(max=12, gp=75))

    def test_open_and_cancel(self, tiered_rules):
        builder = RuleSetBuilder.from_rules(tiered_rules).open(2)
        assert builder.editing_rule == tiered_rules[2]
        assert builder.cancel().editing is None

        with pytest.raises(BuilderStateError):
            builder.open(7)


class TestBetween:
    """Test cases for adding and deleting Between rules."""

    def test_add_between_fills_first_gap(self, gapped_rules):
        builder = RuleSetBuilder.from_rules(gapped_rules).add_between()

        assert builder.rules[1] == Between(min=10, max=15, start_gp=80, end_gp=60)
        assert builder.editing == 1
        assert builder.finish()

    def test_add_between_without_gap_adds_draft(self, tiered_rules):
        builder = RuleSetBuilder.from_rules(tiered_rules).add_between()

        assert builder.rules[2] == Between(min=20, max=20, start_gp=72, end_gp=72)
        assert builder.editing == 2
        assert isinstance(builder.rules[3], GreaterThan)

        with pytest.raises(DegenerateRuleError):
            builder.finish()

    def test_draft_does_not_block_other_edits(self, tiered_rules):
        builder = RuleSetBuilder.from_rules(tiered_rules).add_between()

        builder = builder.commit(LessThan(max=13, gp=76), index=0)

        assert builder.rules[0] == LessThan(max=13, gp=76)

    def test_draft_can_be_deleted(self, tiered_rules):
        builder = RuleSetBuilder.from_rules(tiered_rules).add_between().delete(2)

        assert builder.rules == tuple(tiered_rules)
        assert builder.editing is None
        assert builder.finish() == tiered_rules

    def test_add_between_with_only_drafts(self):
        builder = RuleSetBuilder.from_rules([Between(min=5, max=5, start_gp=70, end_gp=70)])

        builder = builder.add_between()

        assert builder.rules[1] == Between(min=0, max=0, start_gp=70, end_gp=70)
        assert builder.editing == 1

    def test_add_between_after_last_between(self):
        builder = RuleSetBuilder.from_rules([
            LessThan(max=10, gp=80),
            Between(min=10, max=20, start_gp=80, end_gp=72),
        ]).add_between()

        assert builder.rules[2] == Between(min=20, max=20, start_gp=72, end_gp=72)

    def test_add_between_needs_custom_rules(self):
        with pytest.raises(BuilderStateError):
            RuleSetBuilder().add_between()
        with pytest.raises(BuilderStateError):
            RuleSetBuilder().add_universal().add_between()

    def test_boundary_rules_cannot_be_deleted(self, tiered_rules):
        builder = RuleSetBuilder.from_rules(tiered_rules)
        with pytest.raises(BuilderStateError):
            builder.delete(0)
        with pytest.raises(BuilderStateError):
            builder.delete(2)

    def test_delete_universal_empties_builder(self):
        assert RuleSetBuilder().add_universal().delete(0).is_empty

    def test_delete_shifts_open_rule(self, tiered_rules):
        builder = RuleSetBuilder.from_rules(tiered_rules).open(2).delete(1)
        assert builder.editing == 1
        assert builder.editing_rule == tiered_rules[2]
