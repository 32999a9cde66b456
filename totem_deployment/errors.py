"""Error taxonomy for deployment runs. Every error is fatal to the run."""

from typing import Optional


class DeploymentError(Exception):
    """Base class for everything that aborts a deployment run"""

    def __init__(self, message: str, state: Optional[str] = None):
        super().__init__(message)
        self.state = state


class ConfigError(DeploymentError):
    """Missing or invalid environment configuration"""


class PlanError(DeploymentError):
    """The plan violates ordering, dependency or distribution rules"""


class ArtifactError(DeploymentError):
    """A compiled contract artifact or its build info could not be loaded"""


class RemoteCallError(DeploymentError):
    """A transaction was rejected by the node or reverted on-chain"""


class ConfirmationError(DeploymentError):
    """A transaction was sent but never confirmed"""


class CreationError(DeploymentError):
    """A contract could not be created"""


class VerificationError(DeploymentError):
    """The verification service rejected or failed to process a contract"""


class WiringError(DeploymentError):
    """A configuration call or role grant against a deployed contract failed"""
