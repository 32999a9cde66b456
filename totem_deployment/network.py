#!/usr/bin/env python3
"""
Network access layer on top of web3.py

Every write goes through the same path: build, sign with the deployer key,
send, then block on the receipt. A call returns only once the receipt is
confirmed with status 1.
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, Sequence
from urllib.parse import urlparse

from web3 import Web3
from web3.exceptions import TimeExhausted, Web3Exception
from web3.middleware import ExtraDataToPOAMiddleware

from .artifacts import ArtifactStore
from .config import DeployConfig
from .errors import ConfigError, ConfirmationError, RemoteCallError

logger = logging.getLogger(__name__)

# Hardhat / Anvil default chain id
LOCAL_CHAIN_IDS = frozenset({31337})


def network_name(rpc_url: str) -> str:
    """Host part of an RPC URL; provider paths and query strings often carry API keys"""
    return urlparse(rpc_url).hostname or ""


@dataclass(frozen=True)
class NetworkContext:
    """Read-only facts about the target network, fixed at run start"""
    chain_id: int
    account: str
    name: str = ""

    @property
    def is_local(self) -> bool:
        return self.chain_id in LOCAL_CHAIN_IDS


class Web3Network:
    """Creates contracts and sends transactions as a single signer"""

    def __init__(self, w3: Web3, private_key: str, artifacts: ArtifactStore,
                 tx_timeout: float = 300.0, name: str = ""):
        self.w3 = w3
        self.private_key = private_key
        self.artifacts = artifacts
        self.tx_timeout = tx_timeout
        self.name = name
        self.account = w3.eth.account.from_key(private_key)

    @classmethod
    def from_config(cls, config: DeployConfig) -> "Web3Network":
        w3 = Web3(Web3.HTTPProvider(config.rpc_url))
        w3.middleware_onion.inject(ExtraDataToPOAMiddleware, layer=0)
        if not w3.is_connected():
            raise ConfigError(f"Could not connect to RPC host: {network_name(config.rpc_url)}")
        logger.info(f"Connected to blockchain at {network_name(config.rpc_url)}")
        return cls(
            w3,
            config.private_key,
            ArtifactStore(config.artifacts_dir),
            tx_timeout=config.tx_timeout,
            name=network_name(config.rpc_url),
        )

    def context(self) -> NetworkContext:
        return NetworkContext(
            chain_id=self.w3.eth.chain_id,
            account=self.account.address,
            name=self.name,
        )

    def create(self, contract_name: str, args: Sequence[Any]) -> Any:
        """Deploy `contract_name` and return a contract handle at its address"""
        artifact = self.artifacts.load(contract_name)
        factory = self.w3.eth.contract(abi=artifact.abi, bytecode=artifact.bytecode)
        try:
            tx = factory.constructor(*args).build_transaction(self._tx_params())
        except (Web3Exception, ValueError) as e:
            raise RemoteCallError(f"{contract_name} constructor rejected: {e}") from e

        receipt = self._send(tx, f"{contract_name} deployment")
        address = receipt.get("contractAddress")
        if not address:
            raise RemoteCallError(f"{contract_name} deployment receipt has no contract address")
        return self.w3.eth.contract(address=address, abi=artifact.abi)

    def attach(self, contract_name: str, address: str) -> Any:
        artifact = self.artifacts.load(contract_name)
        return self.w3.eth.contract(address=self.w3.to_checksum_address(address), abi=artifact.abi)

    def call(self, handle: Any, method: str, args: Sequence[Any] = ()) -> Any:
        """Read-only call against a contract"""
        try:
            return getattr(handle.functions, method)(*args).call()
        except (Web3Exception, ValueError) as e:
            raise RemoteCallError(f"{method}() call failed: {e}") from e

    def transact(self, handle: Any, method: str, args: Sequence[Any] = ()) -> Dict[str, Any]:
        try:
            tx = getattr(handle.functions, method)(*args).build_transaction(self._tx_params())
        except (Web3Exception, ValueError) as e:
            raise RemoteCallError(f"{method} rejected: {e}") from e
        return self._send(tx, method)

    def _tx_params(self) -> Dict[str, Any]:
        return {
            'from': self.account.address,
            'nonce': self.w3.eth.get_transaction_count(self.account.address, 'pending'),
            'chainId': self.w3.eth.chain_id,
        }

    def _send(self, tx: Dict[str, Any], label: str) -> Dict[str, Any]:
        try:
            signed_tx = self.w3.eth.account.sign_transaction(tx, self.private_key)
            tx_hash = self.w3.eth.send_raw_transaction(signed_tx.raw_transaction)
        except (Web3Exception, ValueError) as e:
            raise RemoteCallError(f"{label} transaction rejected: {e}") from e

        logger.debug(f"{label} transaction sent: {tx_hash.hex()}")
        try:
            receipt = self.w3.eth.wait_for_transaction_receipt(tx_hash, timeout=self.tx_timeout)
        except TimeExhausted as e:
            raise ConfirmationError(f"{label} transaction {tx_hash.hex()} not confirmed after {self.tx_timeout}s") from e

        if receipt['status'] != 1:
            raise RemoteCallError(f"{label} transaction {tx_hash.hex()} reverted in block {receipt['blockNumber']}")
        return receipt
