"""Observers for deployment progress. None of them can change the run's outcome."""

import json
import logging
from datetime import datetime
from typing import Dict, List, Optional

import requests

logger = logging.getLogger(__name__)


class Reporter:
    """No-op base; subclasses override what they care about"""

    def run_started(self, context) -> None:
        pass

    def state_entered(self, state) -> None:
        pass

    def deployed(self, instance) -> None:
        pass

    def attached(self, instance) -> None:
        pass

    def verification_skipped(self, instance, context) -> None:
        pass

    def verified(self, instance) -> None:
        pass

    def call_confirmed(self, target: str, method: str) -> None:
        pass

    def role_granted(self, target: str, role: str, grantee: str) -> None:
        pass

    def run_finished(self, run) -> None:
        pass

    def run_failed(self, run, error: Exception) -> None:
        pass


class LoggingReporter(Reporter):
    def run_started(self, context):
        logger.info(f"ℹ️  Using account {context.account} as deployer on chain {context.chain_id}")

    def state_entered(self, state):
        logger.info(f"⏳ {state.name.replace('_', ' ').capitalize()}...")

    def deployed(self, instance):
        logger.info(f"✅ {instance.contract} deployed to {instance.address}")

    def attached(self, instance):
        logger.info(f"Connected to {instance.contract} at {instance.address}")

    def verification_skipped(self, instance, context):
        logger.info(f"Skipping verify of {instance.contract} on local chain {context.chain_id}")

    def verified(self, instance):
        logger.info(f"✅ {instance.contract} verified")

    def call_confirmed(self, target, method):
        logger.info(f"-> {target}.{method} confirmed")

    def role_granted(self, target, role, grantee):
        logger.info(f"✅ Granted {role} on {target} to {grantee}")

    def run_finished(self, run):
        logger.info("✅ Deployment and configuration complete")

    def run_failed(self, run, error):
        logger.error(f"Deployment failed while {run.failed_in.name}: {error}")


class SlackReporter(Reporter):
    """Posts an alert to a Slack incoming webhook when a run fails"""

    def __init__(self, webhook: str, timeout: float = 10):
        self.webhook = webhook
        self.timeout = timeout

    def run_failed(self, run, error):
        deployed = ", ".join(f"{name}={instance.address}" for name, instance in run.instances.items())
        payload = {
            "text": f"🚨 TotemParadox deployment failed: {error}",
            "attachments": [
                {
                    "fields": [
                        {"title": "Failed while", "value": run.failed_in.name, "short": True},
                        {"title": "Chain", "value": str(run.context.chain_id), "short": True},
                        {"title": "Already deployed", "value": deployed or "nothing", "short": False},
                    ]
                }
            ]
        }
        response = requests.post(self.webhook, json=payload, timeout=self.timeout)
        response.raise_for_status()


class DeploymentFileReporter(Reporter):
    """Writes the addresses of a run (complete or not) to a JSON file"""

    def __init__(self, path: str):
        self.path = path

    def _dump(self, run, status: str) -> None:
        contracts: Dict[str, str] = {name: instance.address for name, instance in run.instances.items()}
        record = {
            "network": run.context.name,
            "chainId": run.context.chain_id,
            "status": status,
            "timestamp": datetime.now().isoformat(),
            "contracts": contracts,
            "roles": {"deployer": run.context.account},
        }
        with open(self.path, 'w') as f:
            json.dump(record, f, indent=2)
        logger.info(f"💾 Deployment info saved to: {self.path}")

    def run_finished(self, run):
        self._dump(run, "done")

    def run_failed(self, run, error):
        self._dump(run, "failed")


class CompositeReporter(Reporter):
    """Fans out to several reporters; a failing reporter is logged and skipped"""

    def __init__(self, reporters: Optional[List[Reporter]] = None):
        self.reporters = list(reporters or [])

    def _notify(self, event: str, *args) -> None:
        for reporter in self.reporters:
            try:
                getattr(reporter, event)(*args)
            except Exception as e:
                logger.error(f"{type(reporter).__name__}.{event} failed: {e}")

    def run_started(self, context):
        self._notify("run_started", context)

    def state_entered(self, state):
        self._notify("state_entered", state)

    def deployed(self, instance):
        self._notify("deployed", instance)

    def attached(self, instance):
        self._notify("attached", instance)

    def verification_skipped(self, instance, context):
        self._notify("verification_skipped", instance, context)

    def verified(self, instance):
        self._notify("verified", instance)

    def call_confirmed(self, target, method):
        self._notify("call_confirmed", target, method)

    def role_granted(self, target, role, grantee):
        self._notify("role_granted", target, role, grantee)

    def run_finished(self, run):
        self._notify("run_finished", run)

    def run_failed(self, run, error):
        self._notify("run_failed", run, error)
