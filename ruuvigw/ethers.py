"""Lookup of friendly tag names in an ethers-style mapping file."""

from __future__ import annotations

import os
from typing import Union

#: Size of the name field, including room for a terminator.
DEFAULT_NAME_LENGTH = 25


class EthersError(LookupError):
    """Base class for ethers lookup failures."""


class EtherNotFound(EthersError):
    """The address, or a newline-terminated name after it, is missing."""


class NameTooLong(EthersError):
    """The name found for an address does not fit the allowed length."""


class EthersTable:
    """Text of lines of the form ``<address> <name>``."""

    def __init__(self, text: str) -> None:
        self.text = text
        self._folded = text.lower()

    def name_for(self, ether: str, max_len: int = DEFAULT_NAME_LENGTH) -> str:
        """Return the name recorded for ``ether``, matched case-insensitively.

        The name starts one separator character after the address and runs to
        the end of the line. ``max_len`` counts room for a terminator, so the
        name must be shorter than it.
        """
        start = self._folded.find(ether.lower())
        if start < 0:
            raise EtherNotFound(ether)
        start += len(ether) + 1
        end = self.text.find("\n", start)
        if end < 0:
            raise EtherNotFound(ether)
        if end - start + 1 > max_len:
            raise NameTooLong(f"name for {ether} exceeds {max_len - 1} characters")
        return self.text[start:end]


def load_ethers(path: Union[str, "os.PathLike[str]"]) -> EthersTable:
    """Read an ethers file into an :class:`EthersTable`."""
    with open(path, encoding="utf-8") as handle:
        return EthersTable(handle.read())