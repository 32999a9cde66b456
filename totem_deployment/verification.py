#!/usr/bin/env python3
"""
Source verification against an Etherscan-compatible API (v2, multichain)
"""

import json
import logging
import time
from typing import Any, Dict, Optional, Sequence

import requests
from eth_abi import encode
from eth_utils.abi import collapse_if_tuple

from .artifacts import Artifact, ArtifactStore
from .errors import VerificationError

logger = logging.getLogger(__name__)

PENDING = "Pending in queue"
VERIFIED = "Pass - Verified"
ALREADY_VERIFIED = "already verified"


def encode_constructor_args(artifact: Artifact, args: Sequence[Any]) -> str:
    """ABI-encode constructor arguments as hex without the 0x prefix"""
    types = [collapse_if_tuple(item) for item in artifact.constructor_inputs()]
    if len(types) != len(args):
        raise VerificationError(
            f"{artifact.contract_name} constructor takes {len(types)} arguments, got {len(args)}"
        )
    if not types:
        return ""
    return encode(types, list(args)).hex()


class EtherscanVerifier:
    """Submits standard-JSON sources and waits for the verification result"""

    def __init__(self, api_key: Optional[str], artifacts: ArtifactStore,
                 api_url: str = "https://api.etherscan.io/v2/api",
                 poll_interval: float = 5.0, max_polls: int = 30,
                 session: Optional[requests.Session] = None):
        self.api_key = api_key
        self.artifacts = artifacts
        self.api_url = api_url
        self.poll_interval = poll_interval
        self.max_polls = max_polls
        self.session = session or requests.Session()

    def verify(self, instance, args: Sequence[Any], context) -> None:
        """
        Verify one deployed contract

        Args:
            instance: DeployedInstance to verify
            args: Exact constructor arguments used for its creation
            context: NetworkContext of the run (selects the chain)

        Raises:
            VerificationError: if the service rejects the source or never reports success
        """
        if not self.api_key:
            raise VerificationError(f"No ETHERSCAN_API_KEY to verify {instance.name}")

        artifact = self.artifacts.load(instance.contract)
        build_info = self.artifacts.build_info(artifact)
        payload = {
            'apikey': self.api_key,
            'module': 'contract',
            'action': 'verifysourcecode',
            'contractaddress': instance.address,
            'sourceCode': json.dumps(build_info.input),
            'codeformat': 'solidity-standard-json-input',
            'contractname': artifact.fully_qualified_name,
            'compilerversion': f"v{build_info.solc_long_version}",
            'constructorArguements': encode_constructor_args(artifact, args),
        }

        body = self._request('post', context.chain_id, data=payload)
        result = str(body.get('result', ''))
        if body.get('status') != '1':
            if ALREADY_VERIFIED in result.lower():
                logger.info(f"{instance.name} at {instance.address} is already verified")
                return
            raise VerificationError(f"Verification of {instance.name} rejected: {result}")

        self._wait_for_result(instance, result, context.chain_id)

    def _wait_for_result(self, instance, guid: str, chain_id: int) -> None:
        params = {
            'apikey': self.api_key,
            'module': 'contract',
            'action': 'checkverifystatus',
            'guid': guid,
        }
        for _ in range(self.max_polls):
            time.sleep(self.poll_interval)
            body = self._request('get', chain_id, params=params)
            result = str(body.get('result', ''))
            if result == PENDING:
                continue
            if result == VERIFIED or ALREADY_VERIFIED in result.lower():
                logger.info(f"{instance.name} verified at {instance.address}")
                return
            raise VerificationError(f"Verification of {instance.name} failed: {result}")

        raise VerificationError(
            f"Verification of {instance.name} still pending after {self.max_polls} checks (guid {guid})"
        )

    def _request(self, method: str, chain_id: int, params: Optional[Dict[str, Any]] = None,
                 data: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        query = {'chainid': chain_id}
        if params:
            query.update(params)
        try:
            response = self.session.request(method, self.api_url, params=query, data=data, timeout=30)
            response.raise_for_status()
            return response.json()
        except (requests.exceptions.RequestException, ValueError) as e:
            raise VerificationError(f"Verification service request failed: {e}") from e
