"""
Lead Tracker — Distribution Engine Tests
Tests: ordering rules, skill matching, capacity, batch results, failure semantics.
Run: cd backend && pytest tests/test_distribution_engine.py -v
"""

import pytest

from services.assignment_ledger import AssignmentLedger
from services.document_store import PersistenceFailure
from services.distribution_engine import (
    ASSIGNMENT_REASON,
    NO_CAPACITY_MESSAGE,
    DistributionCandidate,
    DistributionError,
    DistributionStrategy,
    build_roster,
    distribute_leads,
    plan_distribution,
    resolve_strategy,
)
from services.event_logger import flush_events


def candidate(emp_id, level="senior", target=5, count=0, skills=None):
    return DistributionCandidate(
        {
            "id": emp_id,
            "role": "employee",
            "is_active": True,
            "experience_level": level,
            "daily_lead_target": target,
            "skills": skills or [],
        },
        count
    )


def leads(*ids, process_type="Legal Service"):
    return [{"id": i, "process_type": process_type} for i in ids]


# ═══════════════════════════════════════════════════════════════
# 1. STRATEGY RESOLUTION
# ═══════════════════════════════════════════════════════════════

class TestResolveStrategy:

    @pytest.mark.parametrize("value,expected", [
        ("equal", DistributionStrategy.EQUAL),
        ("Equal", DistributionStrategy.EQUAL),
        ("target-based", DistributionStrategy.TARGET_BASED),
        ("TargetBased", DistributionStrategy.TARGET_BASED),
        ("skill_based", DistributionStrategy.SKILL_BASED),
        (DistributionStrategy.SKILL_BASED, DistributionStrategy.SKILL_BASED),
    ])
    def test_aliases(self, value, expected):
        assert resolve_strategy(value) == expected

    def test_unknown(self):
        with pytest.raises(DistributionError):
            resolve_strategy("random")


# ═══════════════════════════════════════════════════════════════
# 2. PLANNING (pure)
# ═══════════════════════════════════════════════════════════════

class TestPlanDistribution:

    @pytest.mark.parametrize("strategy", list(DistributionStrategy))
    def test_senior_wins_at_equal_load(self, strategy):
        roster = [candidate(1, "new"), candidate(2, "senior")]
        assert plan_distribution(leads(100), roster, strategy) == [(100, 2)]

    @pytest.mark.parametrize("strategy", [DistributionStrategy.EQUAL, DistributionStrategy.TARGET_BASED])
    def test_fairness_within_tier(self, strategy):
        busy = candidate(1, "senior", target=10, count=2)
        idle = candidate(2, "senior", target=10, count=0)
        roster = [busy, idle]

        pairings = plan_distribution(leads(100, 101), roster, strategy)

        # 0 vs 2 -> idle; then 1 vs 2 -> idle again
        assert pairings == [(100, 2), (101, 2)]
        assert idle.assigned_count == 2

    def test_fairness_reevaluated_each_lead(self):
        a = candidate(1, "senior", target=10, count=1)
        b = candidate(2, "senior", target=10, count=0)
        pairings = plan_distribution(leads(1, 2, 3), [a, b], DistributionStrategy.TARGET_BASED)
        assert pairings[0] == (1, 2)
        assert a.assigned_count + b.assigned_count == 4
        assert abs(a.assigned_count - b.assigned_count) <= 1

    def test_headroom_breaks_ties(self):
        small = candidate(1, "senior", target=3)
        large = candidate(2, "senior", target=8)
        assert plan_distribution(leads(1), [small, large], DistributionStrategy.EQUAL) == [(1, 2)]

    @pytest.mark.parametrize("strategy", list(DistributionStrategy))
    def test_seniors_first_regardless_of_load(self, strategy):
        senior = candidate(1, "senior", target=10, count=3)
        junior = candidate(2, "new", target=10, count=0)
        pairings = plan_distribution(leads(1, 2), [junior, senior], strategy)
        assert pairings == [(1, 1), (2, 1)]

    def test_equal_and_target_based_pick_the_same_employee(self):
        def roster():
            return [candidate(1, "senior", count=2), candidate(2, "new", count=0)]

        equal = plan_distribution(leads(1), roster(), DistributionStrategy.EQUAL)
        target = plan_distribution(leads(1), roster(), DistributionStrategy.TARGET_BASED)
        assert equal == target == [(1, 1)]

    def test_seniors_take_everything_until_full(self):
        senior = candidate(1, "senior", target=5)
        junior = candidate(2, "new", target=5)
        pairings = plan_distribution(leads(1, 2, 3), [junior, senior], DistributionStrategy.EQUAL)
        assert pairings == [(1, 1), (2, 1), (3, 1)]
        assert junior.assigned_count == 0

    def test_full_candidate_removed_from_roster(self):
        one_left = candidate(1, "senior", target=1)
        other = candidate(2, "new", target=5)
        roster = [one_left, other]
        pairings = plan_distribution(leads(1, 2, 3), roster, DistributionStrategy.TARGET_BASED)
        assert pairings == [(1, 1), (2, 2), (3, 2)]
        assert roster == [other]

    def test_stops_when_roster_exhausted(self):
        roster = [candidate(1, target=2)]
        pairings = plan_distribution(leads(1, 2, 3, 4), roster, DistributionStrategy.EQUAL)
        assert pairings == [(1, 1), (2, 1)]
        assert roster == []

    def test_skill_match_preferred(self):
        senior = candidate(1, "senior", skills=["GST"])
        junior = candidate(2, "new", skills=["Legal Service"])
        pairings = plan_distribution(leads(1), [senior, junior], DistributionStrategy.SKILL_BASED)
        assert pairings == [(1, 2)]

    def test_skill_fallback_to_full_roster(self):
        senior = candidate(1, "senior", skills=["GST"])
        junior = candidate(2, "new", skills=["GST"])
        pairings = plan_distribution(
            leads(1, process_type="Trademark"), [junior, senior], DistributionStrategy.SKILL_BASED
        )
        assert pairings == [(1, 1)]

    def test_skills_ignored_outside_skill_strategy(self):
        senior = candidate(1, "senior", skills=["GST"])
        junior = candidate(2, "new", skills=["Legal Service"])
        pairings = plan_distribution(leads(1), [senior, junior], DistributionStrategy.TARGET_BASED)
        assert pairings == [(1, 1)]


class TestBuildRoster:

    def test_filters_inactive_admin_and_full(self):
        employees = [
            {"id": 1, "role": "employee", "is_active": True, "daily_lead_target": 5},
            {"id": 2, "role": "employee", "is_active": False, "daily_lead_target": 5},
            {"id": 3, "role": "admin", "is_active": True, "daily_lead_target": 5},
            {"id": 4, "role": "employee", "is_active": True, "daily_lead_target": 2},
            {"id": 5, "role": "employee", "is_active": True, "daily_lead_target": 1},
        ]
        roster = build_roster(employees, {4: 1, 5: 3})
        assert [c.id for c in roster] == [1, 4]
        assert roster[1].assigned_count == 1
        assert roster[1].remaining_capacity == 1


# ═══════════════════════════════════════════════════════════════
# 3. BATCH (store + ledger)
# ═══════════════════════════════════════════════════════════════

class TestDistributeLeads:

    @pytest.mark.asyncio
    async def test_full_batch_sufficient_capacity(self, ledger, make_user, make_lead):
        senior = await make_user(experience_level="senior", daily_lead_target=5)
        junior = await make_user(experience_level="new", daily_lead_target=5)
        batch = [await make_lead() for _ in range(3)]

        result = await distribute_leads(batch, "equal", 1, ledger)

        assert result.to_dict() == {"assigned": 3, "skipped": 0}
        owners = [a["assigned_to"] for a in result.assignments]
        assert owners == [senior["id"]] * 3
        assert await ledger.active_assignments_today(junior["id"]) == 0

    @pytest.mark.asyncio
    async def test_new_employees_get_overflow_once_seniors_full(self, ledger, make_user, make_lead):
        senior = await make_user(experience_level="senior", daily_lead_target=2)
        junior = await make_user(experience_level="new", daily_lead_target=5)
        batch = [await make_lead() for _ in range(3)]

        result = await distribute_leads(batch, "equal", 1, ledger)

        owners = [a["assigned_to"] for a in result.assignments]
        assert owners == [senior["id"], senior["id"], junior["id"]]
        assert [a["lead_id"] for a in result.assignments] == [lead["id"] for lead in batch]

    @pytest.mark.asyncio
    async def test_capacity_exhaustion(self, store, ledger, make_user, make_lead, seed_assignments):
        emp = await make_user(daily_lead_target=1)
        await seed_assignments(emp["id"], 1)
        batch = [await make_lead(), await make_lead()]

        result = await distribute_leads(batch, DistributionStrategy.EQUAL, 1, ledger)

        assert result.assigned == 0
        assert result.skipped == 2
        assert result.message == NO_CAPACITY_MESSAGE
        assert await store.count("assignments") == 1

    @pytest.mark.asyncio
    async def test_capacity_never_exceeded_across_runs(self, ledger, make_user, make_lead, seed_assignments):
        emp = await make_user(daily_lead_target=3)
        await seed_assignments(emp["id"], 1)

        first = await distribute_leads([await make_lead() for _ in range(3)], "target-based", 1, ledger)
        second = await distribute_leads([await make_lead() for _ in range(2)], "target-based", 1, ledger)

        assert (first.assigned, first.skipped) == (2, 1)
        assert (second.assigned, second.skipped) == (0, 2)
        assert await ledger.active_assignments_today(emp["id"]) == 3

    @pytest.mark.asyncio
    async def test_over_capacity_employee_not_increased(self, ledger, make_user, make_lead, seed_assignments):
        over = await make_user(experience_level="senior", daily_lead_target=1)
        other = await make_user(experience_level="new", daily_lead_target=5)
        await seed_assignments(over["id"], 3)

        result = await distribute_leads([await make_lead() for _ in range(2)], "equal", 1, ledger)

        assert result.assigned == 2
        assert all(a["assigned_to"] == other["id"] for a in result.assignments)
        assert await ledger.active_assignments_today(over["id"]) == 3

    @pytest.mark.asyncio
    async def test_inactive_employees_ignored(self, ledger, make_user, make_lead):
        await make_user(experience_level="senior", is_active=False)
        active = await make_user(experience_level="new")
        result = await distribute_leads([await make_lead()], "equal", 1, ledger)
        assert result.assignments[0]["assigned_to"] == active["id"]

    @pytest.mark.asyncio
    async def test_skill_fallback_still_assigns(self, ledger, make_user, make_lead):
        await make_user(skills=["GST"])
        result = await distribute_leads([await make_lead(process_type="Trademark")], "skill-based", 1, ledger)
        assert result.assigned == 1

    @pytest.mark.asyncio
    async def test_reassigns_previously_assigned_lead(self, store, ledger, make_user, make_lead):
        first = await make_user(experience_level="senior", daily_lead_target=1)
        second = await make_user(experience_level="new", daily_lead_target=5)
        lead = await make_lead()

        await distribute_leads([lead], "equal", 1, ledger)
        await distribute_leads([lead], "equal", 1, ledger)

        active = await store.list_all("assignments", {"lead_id": lead["id"], "active": True})
        assert len(active) == 1
        assert active[0]["assigned_to"] == second["id"]
        assert await ledger.active_assignments_today(first["id"]) == 0

    @pytest.mark.asyncio
    async def test_audit_event_per_assignment(self, store, ledger, make_user, make_lead):
        await make_user(daily_lead_target=2)
        batch = [await make_lead() for _ in range(3)]

        result = await distribute_leads(batch, "equal", 42, ledger)
        await flush_events()

        events = await store.list_all("audit_logs", {"action_type": "LEAD_ASSIGNED"})
        assert len(events) == result.assigned == 2
        assert all(e["user_id"] == 42 for e in events)
        assert all(e["new_value"]["reason"] == ASSIGNMENT_REASON for e in events)

    @pytest.mark.asyncio
    async def test_assigned_by_tags_admin(self, ledger, make_user, make_lead):
        await make_user()
        result = await distribute_leads([await make_lead()], "equal", 7, ledger)
        assert result.assignments[0]["assigned_by"] == "auto_dist_admin_7"


class TestDistributionFailures:

    @pytest.mark.asyncio
    async def test_empty_batch_rejected(self, ledger):
        with pytest.raises(DistributionError):
            await distribute_leads([], "equal", 1, ledger)

    @pytest.mark.asyncio
    async def test_unpersisted_lead_rejected_before_writes(self, store, ledger, make_user, make_lead):
        await make_user()
        good = await make_lead()
        with pytest.raises(DistributionError):
            await distribute_leads([good, {"customer_name": "draft"}], "equal", 1, ledger)
        assert await store.count("assignments") == 0

    @pytest.mark.asyncio
    async def test_unknown_strategy_rejected(self, store, ledger, make_user, make_lead):
        await make_user()
        with pytest.raises(DistributionError):
            await distribute_leads([await make_lead()], "round-robin", 1, ledger)
        assert await store.count("assignments") == 0

    @pytest.mark.asyncio
    async def test_persistence_failure_counts_as_skip(self, store, make_user, make_lead):
        class FlakyLedger(AssignmentLedger):
            def __init__(self, store, failing):
                super().__init__(store)
                self.failing = failing

            async def assign(self, lead_id, employee_id, assigned_by):
                if lead_id in self.failing:
                    raise PersistenceFailure("store unavailable")
                return await super().assign(lead_id, employee_id, assigned_by)

        await make_user(daily_lead_target=10)
        batch = [await make_lead() for _ in range(3)]
        ledger = FlakyLedger(store, {batch[1]["id"]})

        result = await distribute_leads(batch, "equal", 1, ledger)

        assert (result.assigned, result.skipped) == (2, 1)
        assert result.failures[0]["lead_id"] == batch[1]["id"]
        assert [a["lead_id"] for a in result.assignments] == [batch[0]["id"], batch[2]["id"]]

    @pytest.mark.asyncio
    async def test_capacity_race_counts_as_skip(self, store, make_user, make_lead, seed_assignments):
        emp = await make_user(daily_lead_target=1)

        class RacingLedger(AssignmentLedger):
            async def assign(self, lead_id, employee_id, assigned_by):
                # a concurrent manual assignment lands between planning and persistence
                await seed_assignments(emp["id"], 1)
                return await super().assign(lead_id, employee_id, assigned_by)

        result = await distribute_leads([await make_lead()], "equal", 1, RacingLedger(store))

        assert (result.assigned, result.skipped) == (0, 1)
        assert "capacity" in result.failures[0]["reason"]
