import json
import os
from dataclasses import dataclass
from typing import Any, Dict, List

from .errors import ArtifactError


@dataclass(frozen=True)
class Artifact:
    """Compiled contract as written by `hardhat compile`"""
    contract_name: str
    source_name: str
    abi: List[Dict[str, Any]]
    bytecode: str
    path: str

    @property
    def fully_qualified_name(self) -> str:
        return f"{self.source_name}:{self.contract_name}"

    def constructor_inputs(self) -> List[Dict[str, Any]]:
        ctor = next((item for item in self.abi if item.get("type") == "constructor"), None)
        if ctor is None:
            return []
        return ctor.get("inputs", [])


@dataclass(frozen=True)
class BuildInfo:
    solc_long_version: str
    input: Dict[str, Any]


class ArtifactStore:
    """Looks up Hardhat artifacts (and their build info) by contract name"""

    def __init__(self, artifacts_dir: str):
        self.artifacts_dir = artifacts_dir
        self._cache: Dict[str, Artifact] = {}

    def _find(self, contract_name: str) -> str:
        filename = f"{contract_name}.json"
        matches = []
        for root, _dirs, files in os.walk(self.artifacts_dir):
            if filename in files and os.path.basename(root).endswith(".sol"):
                matches.append(os.path.join(root, filename))
        if not matches:
            raise ArtifactError(f"No artifact for {contract_name} under {self.artifacts_dir}. Compile the contracts first.")
        if len(matches) > 1:
            raise ArtifactError(f"Ambiguous artifact for {contract_name}: {', '.join(sorted(matches))}")
        return matches[0]

    def load(self, contract_name: str) -> Artifact:
        if contract_name in self._cache:
            return self._cache[contract_name]

        path = self._find(contract_name)
        try:
            with open(path, 'r') as f:
                data = json.load(f)
            artifact = Artifact(
                contract_name=data["contractName"],
                source_name=data["sourceName"],
                abi=data["abi"],
                bytecode=data.get("bytecode", "0x"),
                path=path,
            )
        except (OSError, json.JSONDecodeError, KeyError) as e:
            raise ArtifactError(f"Could not read artifact {path}: {e}") from e

        self._cache[contract_name] = artifact
        return artifact

    def build_info(self, artifact: Artifact) -> BuildInfo:
        """
        Load the compiler input that produced an artifact

        Hardhat writes `<Name>.dbg.json` next to each artifact, pointing at the
        shared build-info file relative to itself.
        """
        dbg_path = artifact.path[:-len(".json")] + ".dbg.json"
        try:
            with open(dbg_path, 'r') as f:
                build_info_rel = json.load(f)["buildInfo"]
            build_info_path = os.path.normpath(os.path.join(os.path.dirname(dbg_path), build_info_rel))
            with open(build_info_path, 'r') as f:
                data = json.load(f)
            return BuildInfo(solc_long_version=data["solcLongVersion"], input=data["input"])
        except (OSError, json.JSONDecodeError, KeyError) as e:
            raise ArtifactError(f"Could not read build info for {artifact.contract_name}: {e}") from e

