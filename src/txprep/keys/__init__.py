"""
Key management.

Named signing keys used to sign transactions.
"""

from txprep.keys.keybase import (
    FileKeybase,
    InMemoryKeybase,
    KeyInfo,
    KeyNotFoundError,
    Keybase,
    SigningError,
)

__all__ = [
    "Keybase",
    "InMemoryKeybase",
    "FileKeybase",
    "KeyInfo",
    "KeyNotFoundError",
    "SigningError",
]
