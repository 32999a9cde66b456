import os
from dataclasses import dataclass
from typing import Optional

from dotenv import find_dotenv, load_dotenv

from .errors import ConfigError

DEFAULT_RPC_URL = "http://localhost:8545"
DEFAULT_ETHERSCAN_API_URL = "https://api.etherscan.io/v2/api"


@dataclass(frozen=True)
class DeployConfig:
    """Deployment settings read from the environment (and .env)"""
    rpc_url: str
    private_key: str
    artifacts_dir: str = "artifacts"
    etherscan_api_key: Optional[str] = None
    etherscan_api_url: str = DEFAULT_ETHERSCAN_API_URL
    verify_poll_interval: float = 5.0
    verify_max_polls: int = 30
    tx_timeout: float = 300.0
    slack_webhook: Optional[str] = None
    deployment_file: Optional[str] = "deployment.json"
    log_file: Optional[str] = None

    @classmethod
    def from_env(cls, dotenv_path: Optional[str] = None) -> "DeployConfig":
        """
        Build the configuration from environment variables

        Args:
            dotenv_path: Optional explicit .env file; defaults to searching upwards from the working directory

        Returns:
            DeployConfig instance
        """
        load_dotenv(dotenv_path or find_dotenv(usecwd=True))

        private_key = os.getenv("PRIVATE_KEY")
        if not private_key:
            raise ConfigError("PRIVATE_KEY not found in environment")

        try:
            return cls(
                rpc_url=os.getenv("RPC_URL", DEFAULT_RPC_URL),
                private_key=private_key,
                artifacts_dir=os.getenv("ARTIFACTS_DIR", "artifacts"),
                etherscan_api_key=os.getenv("ETHERSCAN_API_KEY") or None,
                etherscan_api_url=os.getenv("ETHERSCAN_API_URL", DEFAULT_ETHERSCAN_API_URL),
                verify_poll_interval=float(os.getenv("VERIFY_POLL_INTERVAL", "5")),
                verify_max_polls=int(os.getenv("VERIFY_MAX_POLLS", "30")),
                tx_timeout=float(os.getenv("TX_TIMEOUT", "300")),
                slack_webhook=os.getenv("SLACK_WEBHOOK") or None,
                deployment_file=os.getenv("DEPLOYMENT_FILE", "deployment.json") or None,
                log_file=os.getenv("LOG_FILE") or None,
            )
        except ValueError as e:
            raise ConfigError(f"Invalid numeric setting in environment: {e}") from e
