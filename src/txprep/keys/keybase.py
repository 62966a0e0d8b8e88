"""
Keybase - named signing keys.

Resolves a signer name to its public key and address, and signs bytes with
the matching private key.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Optional, Tuple

import structlog

from pycardano import (
    Address,
    Network,
    PaymentSigningKey,
    PaymentVerificationKey,
)

from txprep.config import ClientConfig, NetworkType, get_config

logger = structlog.get_logger(__name__)

KEY_FILE_SUFFIX = ".skey"


class SigningError(Exception):
    """Raised when secret material is unavailable or signing fails."""
    pass


class KeyNotFoundError(SigningError):
    """Raised when no key exists under the requested name."""

    def __init__(self, name: str):
        super().__init__(f"Key not found: {name}")
        self.name = name


@dataclass(frozen=True)
class KeyInfo:
    """Public information about a stored key."""
    name: str
    pub_key: bytes
    address: str


def derive_address(verification_key: PaymentVerificationKey, network: NetworkType) -> str:
    """Derive the bech32 address of a verification key."""
    net = Network.MAINNET if network == NetworkType.MAINNET else Network.TESTNET
    return str(Address(verification_key.hash(), network=net))


class Keybase(ABC):
    """
    Abstract store of named keys.

    Implementations decide where keys live and how the passphrase is used.
    """

    @abstractmethod
    def get(self, name: str) -> KeyInfo:
        """
        Look up a key by name.

        Raises:
            KeyNotFoundError: If there is no such key
        """
        pass

    @abstractmethod
    def sign(self, name: str, passphrase: str, message: bytes) -> Tuple[bytes, bytes]:
        """
        Sign a message with a named key.

        Args:
            name: Key name
            passphrase: Passphrase unlocking the key
            message: Bytes to sign

        Returns:
            (signature, public key)

        Raises:
            SigningError: If the key is unavailable or signing fails
        """
        pass

    @abstractmethod
    def list(self) -> List[KeyInfo]:
        """List all keys."""
        pass


class InMemoryKeybase(Keybase):
    """
    Keybase holding keys in process memory.

    Keys are unencrypted, so the passphrase is not checked.
    """

    def __init__(self, config: Optional[ClientConfig] = None):
        self.config = config or get_config()
        self._keys: Dict[str, PaymentSigningKey] = {}

    def add(self, name: str, signing_key: PaymentSigningKey) -> KeyInfo:
        """Store a signing key under a name."""
        self._keys[name] = signing_key
        info = self._info(name, signing_key)
        logger.info("key_added", name=name, address=info.address[:30] + "...")
        return info

    def generate(self, name: str) -> KeyInfo:
        """Generate and store a new random key."""
        return self.add(name, PaymentSigningKey.generate())

    def get(self, name: str) -> KeyInfo:
        return self._info(name, self._load(name))

    def list(self) -> List[KeyInfo]:
        return [self._info(name, key) for name, key in sorted(self._keys.items())]

    def sign(self, name: str, passphrase: str, message: bytes) -> Tuple[bytes, bytes]:
        signing_key = self._load(name)
        verification_key = PaymentVerificationKey.from_signing_key(signing_key)

        try:
            signature = signing_key.sign(message)
        except Exception as e:
            raise SigningError(f"Signing with key {name} failed: {e}") from e

        logger.debug("message_signed", name=name, size=len(message))
        return signature, verification_key.payload

    def _load(self, name: str) -> PaymentSigningKey:
        try:
            return self._keys[name]
        except KeyError:
            raise KeyNotFoundError(name) from None

    def _info(self, name: str, signing_key: PaymentSigningKey) -> KeyInfo:
        verification_key = PaymentVerificationKey.from_signing_key(signing_key)
        return KeyInfo(
            name=name,
            pub_key=verification_key.payload,
            address=derive_address(verification_key, self.config.network),
        )


class FileKeybase(InMemoryKeybase):
    """
    Keybase backed by a directory of signing key files.

    Each key is a standard text envelope file named ``<name>.skey``. Files are
    loaded on first use and cached.
    """

    def __init__(self, directory: Optional[str] = None, config: Optional[ClientConfig] = None):
        super().__init__(config)
        directory = directory or self.config.keyring_dir
        if not directory:
            raise ValueError("No keyring directory configured")
        self.directory = Path(directory)

    def key_path(self, name: str) -> Path:
        return self.directory / f"{name}{KEY_FILE_SUFFIX}"

    def generate(self, name: str) -> KeyInfo:
        """Generate a new key and save it to the keyring directory."""
        path = self.key_path(name)
        if path.exists():
            raise ValueError(f"Key file already exists: {path}")

        self.directory.mkdir(parents=True, exist_ok=True)
        signing_key = PaymentSigningKey.generate()
        signing_key.save(str(path))
        logger.info("key_file_written", path=str(path))
        return self.add(name, signing_key)

    def list(self) -> List[KeyInfo]:
        if self.directory.is_dir():
            for path in sorted(self.directory.glob(f"*{KEY_FILE_SUFFIX}")):
                self._load(path.name[: -len(KEY_FILE_SUFFIX)])
        return super().list()

    def _load(self, name: str) -> PaymentSigningKey:
        if name in self._keys:
            return self._keys[name]

        path = self.key_path(name)
        if not path.exists():
            raise KeyNotFoundError(name)

        try:
            signing_key = PaymentSigningKey.load(str(path))
        except Exception as e:
            raise SigningError(f"Cannot load key file {path}: {e}") from e

        self._keys[name] = signing_key
        logger.debug("key_file_loaded", name=name, path=str(path))
        return signing_key


def generate_test_keybase(*names: str, config: Optional[ClientConfig] = None) -> InMemoryKeybase:
    """
    Create an in-memory keybase with fresh random keys.

    WARNING: Do not use in production. The keys are not persisted.
    """
    keybase = InMemoryKeybase(config)
    for name in names:
        keybase.generate(name)

    logger.warning("test_keybase_generated", names=list(names))
    return keybase
