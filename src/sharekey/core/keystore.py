"""
Persistent storage for key parameters.

Keys are stored as the binary form produced by KeyParameters.to_bytes(), so
the modulus bytes are written and read back unchanged.
"""

import logging
import re
from pathlib import Path
from typing import Optional

from .params import KeyParameters


logger = logging.getLogger(__name__)

_KEY_NAME = re.compile(r"^[A-Za-z0-9_.-]+$")


class KeyStore:
    """
    Directory-backed storage for named key parameters.

    Directory Structure:
        store_dir/
            keys/            # <name>.key files
    """

    KEYS_DIR = "keys"
    KEY_SUFFIX = ".key"

    def __init__(self, store_dir: str | Path):
        """Initialize keystore at specified directory."""
        self.store_dir = Path(store_dir)
        self._ensure_directories()

    def _ensure_directories(self) -> None:
        """Create directory structure."""
        self.store_dir.mkdir(parents=True, exist_ok=True)
        (self.store_dir / self.KEYS_DIR).mkdir(exist_ok=True)

    def _key_path(self, name: str) -> Path:
        if not _KEY_NAME.match(name) or name in (".", ".."):
            raise ValueError(f"Invalid key name: {name!r}")
        return self.store_dir / self.KEYS_DIR / f"{name}{self.KEY_SUFFIX}"

    def save_key(self, name: str, params: KeyParameters) -> None:
        """Save key parameters under a name, replacing any existing key."""
        path = self._key_path(name)
        data = params.to_bytes()

        # Existing key stays intact until the new file is complete
        tmp_path = path.with_name(path.name + ".tmp")
        with open(tmp_path, "wb") as f:
            f.write(data)
        tmp_path.replace(path)
        logger.debug("Saved key %s to %s", name, path)

    def load_key(self, name: str) -> Optional[KeyParameters]:
        """Load key parameters, or None if no key has that name."""
        path = self._key_path(name)
        if not path.exists():
            return None

        with open(path, "rb") as f:
            return KeyParameters.from_bytes(f.read())

    def has_key(self, name: str) -> bool:
        """Check whether a key with that name exists."""
        return self._key_path(name).exists()

    def list_keys(self) -> list[str]:
        """Names of all stored keys, sorted."""
        keys_dir = self.store_dir / self.KEYS_DIR
        return sorted(p.stem for p in keys_dir.glob(f"*{self.KEY_SUFFIX}"))

    def export_key(self, name: str, export_path: str | Path) -> None:
        """Export key parameters to external file."""
        params = self.load_key(name)
        if params is None:
            raise ValueError(f"No key found: {name}")

        with open(export_path, "wb") as f:
            f.write(params.to_bytes())

    @staticmethod
    def import_key(import_path: str | Path) -> KeyParameters:
        """Import key parameters from external file."""
        with open(import_path, "rb") as f:
            return KeyParameters.from_bytes(f.read())
