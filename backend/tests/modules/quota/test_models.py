"""Tests for quota models."""

from modules.quota.models import (
    PlanType,
    QuotaDecision,
    QuotaSnapshot,
    SubscriptionStatus,
    TenantProfile,
    contact_limit_for,
)


class TestPlanType:
    def test_parse_known(self):
        assert PlanType.parse("BASE") == PlanType.BASE
        assert PlanType.parse("enterprise") == PlanType.ENTERPRISE

    def test_parse_unknown_is_free(self):
        assert PlanType.parse("platinum") == PlanType.FREE
        assert PlanType.parse(None) == PlanType.FREE


class TestContactLimits:
    def test_ceilings(self):
        assert contact_limit_for("free") == 50
        assert contact_limit_for("trial") == 50
        assert contact_limit_for(PlanType.BASE) == 250_000
        assert contact_limit_for("enterprise") == 1_000_000

    def test_unknown_plan_gets_free_ceiling(self):
        assert contact_limit_for("gold") == 50


class TestQuotaDecision:
    def test_from_snapshot_with_headroom(self):
        decision = QuotaDecision.from_snapshot(QuotaSnapshot(plan=PlanType.FREE, contact_count=45), 3)
        assert decision.allowed is True
        assert decision.remaining == 5
        assert decision.max == 50
        assert decision.reserved == 0

    def test_from_snapshot_over_ceiling(self):
        decision = QuotaDecision.from_snapshot(QuotaSnapshot(plan=PlanType.FREE, contact_count=55), 1)
        assert decision.allowed is False
        assert decision.remaining == 0


class TestTenantProfile:
    def test_from_row_tolerates_bad_values(self):
        profile = TenantProfile.from_row(
            {
                "id": "u1",
                "subscription_plan": "mystery",
                "subscription_status": "weird",
                "contact_count": None,
                "preferences": None,
            }
        )
        assert profile.plan == PlanType.FREE
        assert profile.subscription_status == SubscriptionStatus.NONE
        assert profile.contact_count == 0
        assert profile.preferences == {}

    def test_contact_limit_is_derived(self):
        profile = TenantProfile.from_row({"id": "u1", "subscription_plan": "base"})
        assert profile.contact_limit == 250_000

    def test_ignores_unknown_columns(self):
        profile = TenantProfile.from_row({"id": "u1", "last_login": "2024-01-01T00:00:00+00:00"})
        assert profile.id == "u1"
