"""
Secrets store
Holds the admin initialization secret and the backup of the admin API key
"""

import base64
import json
import os
import tempfile
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Dict, Optional

from cryptography.fernet import Fernet, InvalidToken
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC
from loguru import logger

ADMIN_INIT_KEY_SECRET = "admin-init-key"
ADMIN_API_KEY_SECRET = "admin-api-key"


class SecretsStoreError(RuntimeError):
    pass


class SecretsStore(ABC):
    """Named secret storage"""

    @abstractmethod
    def get_secret(self, name: str) -> Optional[str]:
        """Return the secret value or None when it is not set"""

    @abstractmethod
    def put_secret(self, name: str, value: str) -> None:
        """Create or replace a secret"""


def derive_fernet_key(secret_key: str, salt: bytes = b"roundup-secrets-salt") -> bytes:
    """Derive a Fernet key from the application secret with PBKDF2"""
    kdf = PBKDF2HMAC(
        algorithm=hashes.SHA256(),
        length=32,
        salt=salt,
        iterations=100000,
    )
    return base64.urlsafe_b64encode(kdf.derive(secret_key.encode("utf-8")))


class EncryptedFileSecretsStore(SecretsStore):
    """
    Secrets kept in a JSON file, every value encrypted with Fernet.

    ``seed`` values come from configuration and are returned when the file does
    not hold a value of the same name.
    """

    def __init__(self, path: str | Path, secret_key: str, seed: Optional[Dict[str, str]] = None):
        self.path = Path(path)
        self.cipher = Fernet(derive_fernet_key(secret_key))
        self._seed = {k: v for k, v in (seed or {}).items() if v}

    def _read(self) -> Dict[str, str]:
        if not self.path.exists():
            return {}
        try:
            data = json.loads(self.path.read_text(encoding="utf-8") or "{}")
        except (OSError, json.JSONDecodeError) as e:
            raise SecretsStoreError(f"Cannot read secrets file {self.path}") from e
        if not isinstance(data, dict):
            raise SecretsStoreError(f"Secrets file {self.path} is not a JSON object")
        return data

    def get_secret(self, name: str) -> Optional[str]:
        encrypted = self._read().get(name)
        if encrypted is None:
            return self._seed.get(name)
        try:
            return self.cipher.decrypt(encrypted.encode()).decode()
        except InvalidToken as e:
            raise SecretsStoreError(f"Secret {name!r} cannot be decrypted with the configured key") from e

    def put_secret(self, name: str, value: str) -> None:
        data = self._read()
        data[name] = self.cipher.encrypt(value.encode()).decode()

        self.path.parent.mkdir(parents=True, exist_ok=True)
        # Write to a sibling file and rename so readers never see a partial file
        fd, tmp_name = tempfile.mkstemp(dir=self.path.parent, prefix=".secrets-")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                json.dump(data, fh, indent=2, sort_keys=True)
            os.replace(tmp_name, self.path)
        except OSError as e:
            Path(tmp_name).unlink(missing_ok=True)
            raise SecretsStoreError(f"Cannot write secrets file {self.path}") from e

        logger.info(f"Stored secret {name!r} in {self.path}")
