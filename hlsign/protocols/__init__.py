"""
Protocols
Lightweight Protocols for the external collaborators of the signing pipeline.
"""

from .signing_identity import SigningIdentity, TypedDataFields
from .metadata_source import SymbolMetadataSource

__all__ = [
    "SigningIdentity",
    "TypedDataFields",
    "SymbolMetadataSource",
]
