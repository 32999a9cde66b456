#!/usr/bin/env python3
"""
Deploy and configure the TotemParadox contracts

Usage:
    python -m totem_deployment

Settings come from the environment or a .env file (see DeployConfig).
"""

import logging
import sys

from .config import DeployConfig
from .deployer import ComponentDeployer
from .errors import ConfigError
from .executor import PlanExecutor, Wiring
from .network import Web3Network
from .plan import build_totems_plan
from .reporting import CompositeReporter, DeploymentFileReporter, LoggingReporter, SlackReporter
from .verification import EtherscanVerifier

logger = logging.getLogger("totem_deployment")


def configure_logging(log_file=None):
    handlers = [logging.StreamHandler()]
    if log_file:
        handlers.append(logging.FileHandler(log_file))
    logging.basicConfig(
        level=logging.INFO,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        handlers=handlers,
    )


def build_reporter(config: DeployConfig) -> CompositeReporter:
    reporters = [LoggingReporter()]
    if config.deployment_file:
        reporters.append(DeploymentFileReporter(config.deployment_file))
    if config.slack_webhook:
        reporters.append(SlackReporter(config.slack_webhook))
    return CompositeReporter(reporters)


def deploy(config: DeployConfig, network=None, verifier=None):
    """Run the full plan with real (or supplied) collaborators"""
    network = network or Web3Network.from_config(config)
    verifier = verifier or EtherscanVerifier(
        config.etherscan_api_key,
        network.artifacts,
        api_url=config.etherscan_api_url,
        poll_interval=config.verify_poll_interval,
        max_polls=config.verify_max_polls,
    )
    reporter = build_reporter(config)

    context = network.context()
    if not context.is_local and not config.etherscan_api_key:
        raise ConfigError(f"ETHERSCAN_API_KEY is required to verify contracts on chain {context.chain_id}")

    executor = PlanExecutor(
        ComponentDeployer(network, verifier, reporter),
        Wiring(network, reporter),
        reporter,
    )
    return executor.run(build_totems_plan(), context)


def main():
    try:
        config = DeployConfig.from_env()
    except ConfigError as e:
        configure_logging()
        logger.error(f"Fatal error: {e}")
        return 1

    configure_logging(config.log_file)
    try:
        deploy(config)
    except KeyboardInterrupt:
        logger.info("Deployment stopped by user")
        return 1
    except Exception as e:
        logger.exception(f"Fatal error: {e}")
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
