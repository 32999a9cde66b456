import logging
from dataclasses import dataclass
from typing import Any, Mapping, Optional, Tuple, Union

from .errors import CreationError, PlanError, RemoteCallError
from .network import NetworkContext
from .plan import DEPLOYER, ComponentDescriptor, ExternalComponent, Ref
from .reporting import Reporter

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DeployedInstance:
    """A contract that exists on-chain, with the handle used to talk to it"""
    name: str
    address: str
    source: Union[ComponentDescriptor, ExternalComponent]
    args: Tuple[Any, ...]
    handle: Any

    @property
    def contract(self) -> str:
        return self.source.contract


def resolve_args(value: Any, instances: Mapping[str, DeployedInstance], context: NetworkContext) -> Any:
    """Replace Ref and DEPLOYER placeholders with addresses, keeping list/tuple shapes"""
    if isinstance(value, Ref):
        if value.name not in instances:
            raise PlanError(f"{value.name} is referenced before it is deployed")
        return instances[value.name].address
    if value is DEPLOYER:
        return context.account
    if isinstance(value, list):
        return [resolve_args(item, instances, context) for item in value]
    if isinstance(value, tuple):
        return tuple(resolve_args(item, instances, context) for item in value)
    return value


class ComponentDeployer:
    """Creates one contract, then verifies it unless the network is local"""

    def __init__(self, network, verifier, reporter: Optional[Reporter] = None):
        self.network = network
        self.verifier = verifier
        self.reporter = reporter or Reporter()

    def deploy(self, descriptor: ComponentDescriptor, args: Tuple[Any, ...],
               context: NetworkContext) -> DeployedInstance:
        """
        Create `descriptor` with already-resolved constructor args

        Blocks until the creation is confirmed. Verification failures are
        fatal even though the contract already exists on-chain.

        Raises:
            CreationError: the node rejected the deployment or it reverted
            ConfirmationError: the deployment was never confirmed
            VerificationError: the verification service did not accept it
        """
        logger.debug(f"Deploying {descriptor.contract} with args {args}")
        try:
            handle = self.network.create(descriptor.contract, args)
        except RemoteCallError as e:
            raise CreationError(f"Deploying {descriptor.contract} failed: {e}") from e

        instance = DeployedInstance(
            name=descriptor.name,
            address=handle.address,
            source=descriptor,
            args=tuple(args),
            handle=handle,
        )
        self.reporter.deployed(instance)

        if context.is_local:
            self.reporter.verification_skipped(instance, context)
            return instance

        self.verifier.verify(instance, instance.args, context)
        self.reporter.verified(instance)
        return instance

    def attach(self, component: ExternalComponent) -> DeployedInstance:
        handle = self.network.attach(component.contract, component.address)
        instance = DeployedInstance(
            name=component.name,
            address=handle.address,
            source=component,
            args=(),
            handle=handle,
        )
        self.reporter.attached(instance)
        return instance

