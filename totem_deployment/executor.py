#!/usr/bin/env python3
"""
Plan executor

Runs a validated plan strictly in order, one remote operation at a time.
The first failure moves the run to FAILED and is re-raised; nothing that
already happened on-chain is undone.
"""

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Mapping, Optional, Sequence

from .deployer import ComponentDeployer, DeployedInstance, resolve_args
from .errors import DeploymentError, PlanError, RemoteCallError, WiringError
from .network import NetworkContext
from .plan import Call, RoleGrant, RunState, Step, validate_plan
from .reporting import Reporter

logger = logging.getLogger(__name__)


@dataclass
class DeploymentRun:
    """State of one run: where it is, where it has been, what it created"""
    context: NetworkContext
    state: RunState = RunState.NOT_STARTED
    history: List[RunState] = field(default_factory=lambda: [RunState.NOT_STARTED])
    instances: Dict[str, DeployedInstance] = field(default_factory=dict)
    failed_in: Optional[RunState] = None

    def advance(self, state: RunState) -> None:
        if self.state in (RunState.DONE, RunState.FAILED):
            raise PlanError(f"Run already ended in {self.state.name}")
        if state in self.history:
            raise PlanError(f"{state.name} was already visited")
        self.state = state
        self.history.append(state)

    def fail(self) -> None:
        self.failed_in = self.state
        self.state = RunState.FAILED
        self.history.append(RunState.FAILED)


class Wiring:
    """Follow-up calls against contracts that already exist"""

    def __init__(self, network, reporter: Optional[Reporter] = None):
        self.network = network
        self.reporter = reporter or Reporter()

    def _instance(self, name: str, instances: Mapping[str, DeployedInstance]) -> DeployedInstance:
        if name not in instances:
            raise PlanError(f"{name} is used before it is deployed")
        return instances[name]

    def invoke(self, call: Call, instances: Mapping[str, DeployedInstance], context: NetworkContext) -> None:
        target = self._instance(call.target, instances)
        args = resolve_args(call.args, instances, context)
        try:
            self.network.transact(target.handle, call.method, args)
        except RemoteCallError as e:
            raise WiringError(f"{call.target}.{call.method} failed: {e}") from e
        self.reporter.call_confirmed(call.target, call.method)

    def grant_role(self, grant: RoleGrant, instances: Mapping[str, DeployedInstance]) -> None:
        target = self._instance(grant.target, instances)
        grantee = self._instance(grant.grantee, instances)
        try:
            role = self.network.call(target.handle, grant.role)
            self.network.transact(target.handle, "grantRole", (role, grantee.address))
        except RemoteCallError as e:
            raise WiringError(f"Granting {grant.role} on {grant.target} to {grant.grantee} failed: {e}") from e
        self.reporter.role_granted(grant.target, grant.role, grant.grantee)


class PlanExecutor:
    def __init__(self, deployer: ComponentDeployer, wiring: Wiring, reporter: Optional[Reporter] = None):
        self.deployer = deployer
        self.wiring = wiring
        self.reporter = reporter or Reporter()

    def run(self, steps: Sequence[Step], context: NetworkContext) -> DeploymentRun:
        """
        Execute every step in order

        Args:
            steps: Plan to run; validated before anything is sent
            context: Network context, established once by the caller

        Returns:
            The finished DeploymentRun (state DONE)

        Raises:
            DeploymentError (or whatever a collaborator raised) from the first failing step
        """
        run = DeploymentRun(context=context)
        self.reporter.run_started(context)
        try:
            validate_plan(steps)
            for step in steps:
                run.advance(step.state)
                self.reporter.state_entered(step.state)
                self._execute(step, run)
            run.advance(RunState.DONE)
        except BaseException as e:
            # KeyboardInterrupt too: an interrupted run still records what it deployed
            run.fail()
            if isinstance(e, DeploymentError) and e.state is None:
                e.state = run.failed_in.name
            logger.error(f"Run stopped in {run.failed_in.name} after deploying {len(run.instances)} contracts: {e!r}")
            self.reporter.run_failed(run, e)
            raise

        self.reporter.run_finished(run)
        return run

    def _execute(self, step: Step, run: DeploymentRun) -> None:
        if step.deploy is not None:
            args = resolve_args(step.deploy.args, run.instances, run.context)
            run.instances[step.deploy.name] = self.deployer.deploy(step.deploy, args, run.context)
        elif step.attach is not None:
            run.instances[step.attach.name] = self.deployer.attach(step.attach)

        for call in step.calls:
            self.wiring.invoke(call, run.instances, run.context)

        if step.grant is not None:
            self.wiring.grant_role(step.grant, run.instances)
