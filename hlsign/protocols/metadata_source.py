"""
Symbol Metadata Source Protocol
Defines where the asset index resolver reads its symbol snapshot from.
"""

from typing import Protocol, Mapping
from abc import abstractmethod


class SymbolMetadataSource(Protocol):
    """Protocol for a {symbol -> asset index} snapshot provider."""

    @abstractmethod
    async def snapshot(self) -> Mapping[str, int]:
        """Get the current symbol -> asset index mapping."""
        ...
