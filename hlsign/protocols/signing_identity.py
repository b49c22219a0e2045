"""
Signing Identity Protocol
Defines the one capability the signing pipeline needs from key custody.
"""

from typing import Protocol, Dict, Any, List, Union, Awaitable
from abc import abstractmethod


TypedDataFields = Dict[str, List[Dict[str, str]]]


class SigningIdentity(Protocol):
    """Protocol for anything that can sign EIP-712 typed data."""

    @abstractmethod
    def sign_typed_data(
        self,
        domain: Dict[str, Any],
        types: TypedDataFields,
        primary_type: str,
        message: Dict[str, Any],
    ) -> Union[str, bytes, Awaitable[Union[str, bytes]]]:
        """Return the 65-byte signature (bytes or 0x-hex), directly or awaitable."""
        ...
