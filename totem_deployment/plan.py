#!/usr/bin/env python3
"""
Deployment plan for the TotemParadox contracts

The plan is plain data: an ordered list of steps, one per run state. Each
step may deploy or attach one contract, then send configuration calls, then
grant one role. References between contracts are explicit `Ref` values so
the dependency graph can be checked before anything is sent to the network.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, FrozenSet, Iterable, List, Optional, Sequence, Tuple

from web3 import Web3

from .errors import PlanError

MAX_UINT256 = 2**256 - 1
ZERO_ADDRESS = "0x0000000000000000000000000000000000000000"
ATTRIBUTES_REPOSITORY_ADDRESS = "0xA77b75D5fDEC6E6e8E00e05c707a7CA81a3F9f4a"

DRAW_RANGE_START = 0
DRAW_RANGE_END = 10000

ELEMENTS = ("infernum", "eternum", "metamorphium", "genesisium", "emphatium")


class RunState(Enum):
    NOT_STARTED = "not_started"
    DEPLOYING_PRIMARY = "deploying_primary"
    CONFIGURING_ATTRIBUTES = "configuring_attributes"
    DEPLOYING_UTILITY = "deploying_utility"
    DEPLOYING_GATEWAY = "deploying_gateway"
    GRANTING_MINT_ROLE = "granting_mint_role"
    DEPLOYING_QUEST = "deploying_quest"
    DEPLOYING_REWARDS = "deploying_rewards"
    DEPLOYING_RESOURCES = "deploying_resources"
    WIRING_REWARDS = "wiring_rewards"
    GRANTING_TRANSFER_ROLE = "granting_transfer_role"
    DONE = "done"
    FAILED = "failed"


# Order of the non-terminal working states
STATE_ORDER = [
    RunState.DEPLOYING_PRIMARY,
    RunState.CONFIGURING_ATTRIBUTES,
    RunState.DEPLOYING_UTILITY,
    RunState.DEPLOYING_GATEWAY,
    RunState.GRANTING_MINT_ROLE,
    RunState.DEPLOYING_QUEST,
    RunState.DEPLOYING_REWARDS,
    RunState.DEPLOYING_RESOURCES,
    RunState.WIRING_REWARDS,
    RunState.GRANTING_TRANSFER_ROLE,
]


@dataclass(frozen=True)
class Ref:
    """Address of an instance deployed or attached earlier in the run"""
    name: str


class _Deployer:
    def __repr__(self):
        return "DEPLOYER"


# Placeholder for the signer address, resolved from the network context
DEPLOYER = _Deployer()


@dataclass(frozen=True)
class ComponentDescriptor:
    """A deployable contract: logical name, artifact name and constructor args"""
    name: str
    contract: str
    args: Tuple[Any, ...] = ()

    @property
    def dependencies(self) -> FrozenSet[str]:
        return frozenset(collect_refs(self.args))


@dataclass(frozen=True)
class ExternalComponent:
    """A contract that already exists on-chain and is only attached to"""
    name: str
    contract: str
    address: str


@dataclass(frozen=True)
class Call:
    target: str
    method: str
    args: Tuple[Any, ...] = ()


@dataclass(frozen=True)
class RoleGrant:
    """Grant `grantee` the role returned by `target.<role>()`"""
    target: str
    role: str
    grantee: str


@dataclass(frozen=True)
class Step:
    state: RunState
    deploy: Optional[ComponentDescriptor] = None
    attach: Optional[ExternalComponent] = None
    calls: Tuple[Call, ...] = ()
    grant: Optional[RoleGrant] = None

    @property
    def provides(self) -> Optional[str]:
        if self.deploy is not None:
            return self.deploy.name
        if self.attach is not None:
            return self.attach.name
        return None

    @property
    def requires(self) -> FrozenSet[str]:
        """Instances this step needs from strictly earlier steps"""
        needed = set()
        for call in self.calls:
            needed.add(call.target)
            needed |= set(collect_refs(call.args))
        if self.grant is not None:
            needed.add(self.grant.target)
            needed.add(self.grant.grantee)
        # calls and grants may use what this step deploys; constructors may not
        needed.discard(self.provides)
        if self.deploy is not None:
            needed |= self.deploy.dependencies
        return frozenset(needed)


@dataclass(frozen=True)
class ElementRange:
    element: str
    start: int
    end: int


@dataclass(frozen=True)
class ElementDistribution:
    ranges: Tuple[ElementRange, ...] = field(default_factory=tuple)

    def as_call_args(self) -> Tuple[List[str], List[int], List[int]]:
        """Arguments for MintingUtils.setElementDistribution(names, starts, ends)"""
        return (
            [r.element for r in self.ranges],
            [r.start for r in self.ranges],
            [r.end for r in self.ranges],
        )


def collect_refs(value: Any) -> Iterable[str]:
    """Yield the names of every Ref inside value, descending into lists and tuples"""
    if isinstance(value, Ref):
        yield value.name
    elif isinstance(value, (list, tuple)):
        for item in value:
            yield from collect_refs(item)


def validate_distribution(distribution: ElementDistribution,
                          start: int = DRAW_RANGE_START,
                          end: int = DRAW_RANGE_END) -> None:
    """
    Check that the ranges partition [start, end] with no gaps or overlaps

    Raises:
        PlanError: when the ranges do not cover the draw space exactly
    """
    ranges = distribution.ranges
    if not ranges:
        raise PlanError("Element distribution is empty")
    if ranges[0].start != start:
        raise PlanError(f"Element distribution must start at {start}, got {ranges[0].start}")
    if ranges[-1].end != end:
        raise PlanError(f"Element distribution must end at {end}, got {ranges[-1].end}")
    for current in ranges:
        if current.end < current.start:
            raise PlanError(f"Range for {current.element} is inverted: {current.start}-{current.end}")
    for current, following in zip(ranges, ranges[1:]):
        if current.end + 1 != following.start:
            raise PlanError(
                f"Ranges for {current.element} and {following.element} are not contiguous: "
                f"{current.end} -> {following.start}"
            )


def validate_plan(steps: Sequence[Step]) -> None:
    """
    Check that the plan can run in order

    Run states must follow STATE_ORDER without revisits, every referenced
    instance must come from a strictly earlier step (a step's own calls may
    target what it deploys) and no instance name may be provided twice.

    Raises:
        PlanError: on the first violation found
    """
    available = set()
    last_index = -1
    for step in steps:
        if step.state not in STATE_ORDER:
            raise PlanError(f"{step.state.name} is not a working state", step.state.name)
        index = STATE_ORDER.index(step.state)
        if index <= last_index:
            raise PlanError(f"{step.state.name} is out of order or revisited", step.state.name)
        last_index = index

        if step.deploy is not None and step.attach is not None:
            raise PlanError("A step can deploy or attach, not both", step.state.name)

        missing = sorted(step.requires - available)
        if missing:
            raise PlanError(
                f"{step.state.name} depends on {', '.join(missing)} before it exists",
                step.state.name,
            )

        own = step.provides
        if own is not None:
            if own in available:
                raise PlanError(f"{own} is provided twice", step.state.name)
            available.add(own)


ELEMENT_DISTRIBUTION = ElementDistribution(ranges=(
    ElementRange("infernum", 0, 1999),
    ElementRange("eternum", 2000, 3999),
    ElementRange("metamorphium", 4000, 5999),
    ElementRange("genesisium", 6000, 7999),
    ElementRange("emphatium", 8000, 10000),
))

MINT_PRICE = Web3.to_wei("0.001", "ether")


def build_totems_plan(distribution: ElementDistribution = ELEMENT_DISTRIBUTION) -> List[Step]:
    """The full TotemParadox deployment, in run order"""
    validate_distribution(distribution)

    totems = Ref("totems")

    # Pre-populating the enumerated values moves the one-time string
    # registration cost onto the deployer instead of the first minters.
    attribute_calls = (
        Call("attributes", "registerAccessControl", (totems, DEPLOYER, True)),
        Call("attributes", "manageAccessControl", (totems, "element", 2, ZERO_ADDRESS)),
        Call("attributes", "manageAccessControl", (totems, "stage", 2, ZERO_ADDRESS)),
        Call("attributes", "manageAccessControl", (totems, "tier", 2, ZERO_ADDRESS)),
    ) + tuple(
        Call("attributes", "setStringAttribute", (totems, 0, "element", element))
        for element in ELEMENTS
    ) + (
        Call("attributes", "setUintAttribute", (totems, 0, "stage", 0)),
        Call("attributes", "setUintAttribute", (totems, 0, "tier", 0)),
    )

    return [
        Step(
            RunState.DEPLOYING_PRIMARY,
            deploy=ComponentDescriptor("totems", "Totems", (
                "TotemParadox Totems",
                "TOTEM",
                "ipfs://QmYG1p1dEVZb93S7TnVUQZQ4Wz1sU67yAnN32A5BWsvBec",
                MAX_UINT256,
                DEPLOYER,
                500,
            )),
            calls=(Call("totems", "updateMaxTierAndStage", (3, 3)),),
        ),
        Step(
            RunState.CONFIGURING_ATTRIBUTES,
            attach=ExternalComponent("attributes", "IERC7508", ATTRIBUTES_REPOSITORY_ADDRESS),
            calls=attribute_calls,
        ),
        Step(
            RunState.DEPLOYING_UTILITY,
            deploy=ComponentDescriptor("mintingUtils", "MintingUtils"),
            calls=(Call("mintingUtils", "setElementDistribution", distribution.as_call_args()),),
        ),
        Step(
            RunState.DEPLOYING_GATEWAY,
            deploy=ComponentDescriptor("minter", "Minter", (totems, Ref("mintingUtils"), MINT_PRICE)),
        ),
        Step(
            RunState.GRANTING_MINT_ROLE,
            grant=RoleGrant("totems", "CRAFTER_ROLE", "minter"),
        ),
        Step(
            RunState.DEPLOYING_QUEST,
            deploy=ComponentDescriptor("quest", "Quest", (
                "TotemParadox Quests",
                "QUEST",
                "ipfs://QmabN5KdpzgABzk2y6RFoSg7urSyjUe1XdLrczp9mUngZc",
                MAX_UINT256,
                totems,
                DEPLOYER,
            )),
            calls=(
                Call("quest", "updateQuestJoinTimeBpts", (1000,)),
                Call("quest", "updateMaxTotemsPerInstance", (4,)),
            ),
        ),
        Step(
            RunState.DEPLOYING_REWARDS,
            deploy=ComponentDescriptor("rewards", "Rewards", (3, totems, DEPLOYER)),
        ),
        Step(
            RunState.DEPLOYING_RESOURCES,
            deploy=ComponentDescriptor("resources", "Resources", (Ref("rewards"),)),
        ),
        Step(
            RunState.WIRING_REWARDS,
            calls=(Call("quest", "setRewardsAddress", (Ref("rewards"),)),),
        ),
        Step(
            RunState.GRANTING_TRANSFER_ROLE,
            grant=RoleGrant("totems", "TRANSFERABILITY_MANAGER_ROLE", "quest"),
        ),
    ]
