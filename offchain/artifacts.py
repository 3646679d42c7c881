import os
import json
import glob
import logging
from typing import Any, Dict, List, Optional

from .errors import ArtifactError, LinkError
from .linker import link_bytecode, find_unlinked

logger = logging.getLogger(__name__)


class ContractArtifact:
    """Compiled contract bundle loaded from a Truffle or Hardhat JSON file"""

    def __init__(self, name: str, abi: List[Dict[str, Any]], bytecode: str = "0x",
                 link_references: Optional[Dict] = None, path: Optional[str] = None,
                 source_name: Optional[str] = None):
        self.name = name
        self.abi = abi
        self.bytecode = bytecode or "0x"
        self.link_references = link_references or {}
        self.path = path
        # solc source unit, e.g. contracts/IterableMapping.sol (Hardhat "sourceName")
        self.source_name = source_name
        # library name -> deployed address, filled by Deployer.link
        self.links: Dict[str, str] = {}
        self.address: Optional[str] = None

    @classmethod
    def from_json(cls, data: Dict[str, Any], path: Optional[str] = None) -> "ContractArtifact":
        name = data.get('contractName') or (os.path.splitext(os.path.basename(path))[0] if path else None)
        if not name:
            raise ArtifactError(f"Artifact has no contract name: {path}")
        if 'abi' not in data:
            raise ArtifactError(f"ABI not found in artifact: {path}")

        bytecode = data.get('bytecode', "0x")
        # solc standard JSON nests the bytecode object
        if isinstance(bytecode, dict):
            link_references = bytecode.get('linkReferences')
            bytecode = bytecode.get('object', "")
            if bytecode and not bytecode.startswith("0x"):
                bytecode = "0x" + bytecode
        else:
            link_references = data.get('linkReferences')

        return cls(name, data['abi'], bytecode, link_references, path, data.get('sourceName'))

    @property
    def fully_qualified_name(self) -> Optional[str]:
        if not self.source_name:
            return None
        return f"{self.source_name}:{self.name}"

    @property
    def is_deployed(self) -> bool:
        return self.address is not None

    def linked_bytecode(self) -> str:
        """Creation bytecode with every linked library inserted."""
        if self.bytecode in ("", "0x"):
            raise ArtifactError(f"{self.name} has no bytecode (abstract contract or interface?)")
        code = link_bytecode(self.bytecode, self.links, self.link_references)
        missing = find_unlinked(code)
        if missing:
            raise LinkError(f"{self.name} has unlinked libraries: {', '.join(missing)}")
        return code

    def __repr__(self):
        return f"<ContractArtifact {self.name} address={self.address}>"


class ArtifactStore:
    """Resolves contract names to artifacts under a build directory"""

    def __init__(self, build_dir: str):
        self.build_dir = build_dir
        self._cache: Dict[str, ContractArtifact] = {}

    def _find(self, name: str) -> str:
        direct = os.path.join(self.build_dir, f"{name}.json")
        if os.path.isfile(direct):
            return direct
        # Hardhat layout: artifacts/contracts/<File>.sol/<Name>.json
        matches = [
            p for p in glob.glob(os.path.join(self.build_dir, "**", f"{name}.json"), recursive=True)
            if not p.endswith(".dbg.json")
        ]
        if not matches:
            raise ArtifactError(f"Artifact for {name} not found in {self.build_dir}. Compile the contracts first.")
        if len(matches) > 1:
            raise ArtifactError(f"Ambiguous artifact for {name}: {', '.join(sorted(matches))}")
        return matches[0]

    def require(self, name: str) -> ContractArtifact:
        if name in self._cache:
            return self._cache[name]

        path = self._find(name)
        try:
            with open(path, 'r') as f:
                data = json.load(f)
        except json.JSONDecodeError as e:
            raise ArtifactError(f"Could not parse artifact {path}: {e}")

        artifact = ContractArtifact.from_json(data, path)
        logger.debug(f"Loaded artifact {artifact.name} from {path}")
        self._cache[name] = artifact
        return artifact
