"""Secret numeric codes: escrow confirmation codes and barter pickup PINs.

Codes gate fund release, so the default generator draws from `secrets`.
Services take a generator in their constructor; tests pass a fixed one.
"""

import secrets
from typing import Protocol

CODE_LENGTH = 6


class CodeGenerator(Protocol):
    def generate(self) -> str: ...


class SecureCodeGenerator:
    """Uniform 6-digit codes from the OS CSPRNG, zero-padded ('004217')."""

    def __init__(self, length: int = CODE_LENGTH) -> None:
        self._length = length

    def generate(self) -> str:
        return f"{secrets.randbelow(10 ** self._length):0{self._length}d}"


def codes_match(submitted: str, stored: str) -> bool:
    """Exact byte-for-byte comparison in constant time. No normalization."""
    return secrets.compare_digest(submitted.encode(), stored.encode())
