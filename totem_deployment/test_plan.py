#!/usr/bin/env python3
"""
Tests for the TotemParadox deployment plan
Tests the element distribution, dependency ordering and fixed literals
"""

import pytest

from totem_deployment.errors import PlanError
from totem_deployment.plan import (
    ATTRIBUTES_REPOSITORY_ADDRESS,
    DEPLOYER,
    ELEMENT_DISTRIBUTION,
    MAX_UINT256,
    MINT_PRICE,
    STATE_ORDER,
    Call,
    ComponentDescriptor,
    ElementDistribution,
    ElementRange,
    Ref,
    RoleGrant,
    RunState,
    Step,
    build_totems_plan,
    validate_distribution,
    validate_plan,
)


class TestElementDistribution:
    """Test class for the minting distribution ranges"""

    def test_default_distribution_partitions_draw_range(self):
        """Test that the five ranges cover 0..10000 with no gaps or overlaps"""
        ranges = ELEMENT_DISTRIBUTION.ranges
        assert len(ranges) == 5
        assert ranges[0].start == 0
        assert ranges[-1].end == 10000
        for current, following in zip(ranges, ranges[1:]):
            assert current.end + 1 == following.start
        validate_distribution(ELEMENT_DISTRIBUTION)

    def test_call_args_are_parallel_lists(self):
        """Test names, starts and ends in setElementDistribution order"""
        names, starts, ends = ELEMENT_DISTRIBUTION.as_call_args()
        assert names == ["infernum", "eternum", "metamorphium", "genesisium", "emphatium"]
        assert starts == [0, 2000, 4000, 6000, 8000]
        assert ends == [1999, 3999, 5999, 7999, 10000]

    def test_gap_is_rejected(self):
        distribution = ElementDistribution(ranges=(
            ElementRange("a", 0, 4999),
            ElementRange("b", 5001, 10000),
        ))
        with pytest.raises(PlanError, match="not contiguous"):
            validate_distribution(distribution)

    def test_overlap_is_rejected(self):
        distribution = ElementDistribution(ranges=(
            ElementRange("a", 0, 5000),
            ElementRange("b", 5000, 10000),
        ))
        with pytest.raises(PlanError):
            validate_distribution(distribution)

    def test_wrong_bounds_are_rejected(self):
        with pytest.raises(PlanError, match="start at 0"):
            validate_distribution(ElementDistribution(ranges=(ElementRange("a", 1, 10000),)))
        with pytest.raises(PlanError, match="end at 10000"):
            validate_distribution(ElementDistribution(ranges=(ElementRange("a", 0, 9999),)))

    def test_empty_distribution_is_rejected(self):
        with pytest.raises(PlanError):
            validate_distribution(ElementDistribution())

    def test_plan_refuses_bad_distribution(self):
        """Test that building the plan fails before any step exists"""
        with pytest.raises(PlanError):
            build_totems_plan(ElementDistribution(ranges=(ElementRange("a", 0, 100),)))


class TestValidatePlan:
    """Test class for plan ordering and dependency checks"""

    def test_totems_plan_is_valid(self):
        validate_plan(build_totems_plan())

    def test_plan_visits_every_working_state_in_order(self):
        assert [step.state for step in build_totems_plan()] == STATE_ORDER

    def test_reference_before_deployment_is_rejected(self):
        steps = [
            Step(RunState.DEPLOYING_PRIMARY,
                 deploy=ComponentDescriptor("minter", "Minter", (Ref("totems"),))),
        ]
        with pytest.raises(PlanError, match="totems"):
            validate_plan(steps)

    def test_grant_requires_both_participants(self):
        steps = [
            Step(RunState.DEPLOYING_PRIMARY, deploy=ComponentDescriptor("totems", "Totems")),
            Step(RunState.GRANTING_MINT_ROLE, grant=RoleGrant("totems", "CRAFTER_ROLE", "minter")),
        ]
        with pytest.raises(PlanError, match="minter"):
            validate_plan(steps)

    def test_revisited_state_is_rejected(self):
        steps = [
            Step(RunState.DEPLOYING_PRIMARY, deploy=ComponentDescriptor("totems", "Totems")),
            Step(RunState.DEPLOYING_PRIMARY, deploy=ComponentDescriptor("other", "Totems")),
        ]
        with pytest.raises(PlanError, match="revisited"):
            validate_plan(steps)

    def test_out_of_order_state_is_rejected(self):
        steps = [
            Step(RunState.DEPLOYING_QUEST, deploy=ComponentDescriptor("quest", "Quest")),
            Step(RunState.DEPLOYING_PRIMARY, deploy=ComponentDescriptor("totems", "Totems")),
        ]
        with pytest.raises(PlanError):
            validate_plan(steps)

    def test_terminal_state_is_not_a_step(self):
        with pytest.raises(PlanError):
            validate_plan([Step(RunState.DONE)])

    def test_duplicate_instance_name_is_rejected(self):
        steps = [
            Step(RunState.DEPLOYING_PRIMARY, deploy=ComponentDescriptor("totems", "Totems")),
            Step(RunState.DEPLOYING_UTILITY, deploy=ComponentDescriptor("totems", "Totems")),
        ]
        with pytest.raises(PlanError, match="provided twice"):
            validate_plan(steps)

    def test_step_calls_may_target_its_own_deployment(self):
        steps = [
            Step(RunState.DEPLOYING_PRIMARY,
                 deploy=ComponentDescriptor("totems", "Totems"),
                 calls=(Call("totems", "updateMaxTierAndStage", (3, 3)),)),
        ]
        validate_plan(steps)

    def test_constructor_may_not_reference_itself(self):
        steps = [
            Step(RunState.DEPLOYING_PRIMARY,
                 deploy=ComponentDescriptor("totems", "Totems", (Ref("totems"),))),
        ]
        with pytest.raises(PlanError):
            validate_plan(steps)


class TestTotemsPlan:
    """Test class for the literal values of the TotemParadox plan"""

    def setup_method(self):
        self.steps = {step.state: step for step in build_totems_plan()}

    def test_primary_collection(self):
        step = self.steps[RunState.DEPLOYING_PRIMARY]
        assert step.deploy.contract == "Totems"
        assert step.deploy.args[3] == MAX_UINT256
        assert step.deploy.args[4] is DEPLOYER
        assert step.deploy.args[5] == 500
        assert step.calls == (Call("totems", "updateMaxTierAndStage", (3, 3)),)

    def test_attributes_repository_is_attached_not_deployed(self):
        step = self.steps[RunState.CONFIGURING_ATTRIBUTES]
        assert step.deploy is None
        assert step.attach.address == ATTRIBUTES_REPOSITORY_ADDRESS
        assert step.attach.contract == "IERC7508"

    def test_attribute_prepopulation_call_count(self):
        """
        Test the exact attribute calls, including the five writes that all
        target token 0 / key "element" in sequence
        """
        calls = self.steps[RunState.CONFIGURING_ATTRIBUTES].calls
        methods = [call.method for call in calls]
        assert len(calls) == 11
        assert methods.count("registerAccessControl") == 1
        assert methods.count("manageAccessControl") == 3
        assert methods.count("setStringAttribute") == 5
        assert methods.count("setUintAttribute") == 2

        element_writes = [call.args for call in calls if call.method == "setStringAttribute"]
        assert {args[1:3] for args in element_writes} == {(0, "element")}
        assert [args[3] for args in element_writes] == [
            "infernum", "eternum", "metamorphium", "genesisium", "emphatium",
        ]

    def test_gateway_arguments(self):
        step = self.steps[RunState.DEPLOYING_GATEWAY]
        assert step.deploy.args == (Ref("totems"), Ref("mintingUtils"), MINT_PRICE)
        assert MINT_PRICE == 10**15

    def test_role_grants(self):
        assert self.steps[RunState.GRANTING_MINT_ROLE].grant == RoleGrant("totems", "CRAFTER_ROLE", "minter")
        assert self.steps[RunState.GRANTING_TRANSFER_ROLE].grant == RoleGrant(
            "totems", "TRANSFERABILITY_MANAGER_ROLE", "quest"
        )

    def test_quest_parameters(self):
        calls = self.steps[RunState.DEPLOYING_QUEST].calls
        assert calls == (
            Call("quest", "updateQuestJoinTimeBpts", (1000,)),
            Call("quest", "updateMaxTotemsPerInstance", (4,)),
        )

    def test_resources_depend_on_rewards(self):
        assert self.steps[RunState.DEPLOYING_RESOURCES].deploy.dependencies == frozenset({"rewards"})
        assert self.steps[RunState.WIRING_REWARDS].calls == (
            Call("quest", "setRewardsAddress", (Ref("rewards"),)),
        )


if __name__ == "__main__":
    pytest.main([__file__])
