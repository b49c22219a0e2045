"""
Signing identities and the single typed-data signing entry point.

The pipeline only ever asks an identity for `sign_typed_data`; key bytes stay
inside the identity.
"""
import asyncio
import inspect
import logging
from typing import Any, Dict, List

from eth_account import Account
from eth_account.messages import encode_typed_data
from eth_account.signers.local import LocalAccount
from eth_utils import keccak

from hlsign.errors import UnsupportedSignerError
from hlsign.protocols import SigningIdentity, TypedDataFields
from hlsign.signature import Signature, split_signature

logger = logging.getLogger(__name__)

_EIP712_DOMAIN_FIELDS = (
    ("name", "string"),
    ("version", "string"),
    ("chainId", "uint256"),
    ("verifyingContract", "address"),
)


def domain_types(domain: Dict[str, Any]) -> List[Dict[str, str]]:
    return [{"name": n, "type": t} for n, t in _EIP712_DOMAIN_FIELDS if n in domain]


def full_typed_data(domain: Dict[str, Any], types: TypedDataFields, primary_type: str,
                    message: Dict[str, Any]) -> Dict[str, Any]:
    return {
        "domain": domain,
        "types": {"EIP712Domain": domain_types(domain), **types},
        "primaryType": primary_type,
        "message": message,
    }


def typed_data_digest(domain: Dict[str, Any], types: TypedDataFields, primary_type: str,
                      message: Dict[str, Any]) -> bytes:
    """The 32-byte EIP-712 hash a signer actually signs."""
    signable = encode_typed_data(full_message=full_typed_data(domain, types, primary_type, message))
    return keccak(b"\x19" + signable.version + signable.header + signable.body)


class LocalKeyIdentity:
    """Identity backed by a local eth_account key."""

    def __init__(self, account: LocalAccount):
        self._account = account

    @classmethod
    def from_key(cls, private_key: str) -> "LocalKeyIdentity":
        return cls(Account.from_key(private_key))

    @property
    def address(self) -> str:
        return self._account.address

    def __repr__(self) -> str:
        return f"LocalKeyIdentity({self.address})"

    def _sign(self, domain, types, primary_type, message) -> bytes:
        signable = encode_typed_data(full_message=full_typed_data(domain, types, primary_type, message))
        return bytes(self._account.sign_message(signable).signature)

    async def sign_typed_data(self, domain: Dict[str, Any], types: TypedDataFields, primary_type: str,
                              message: Dict[str, Any]) -> bytes:
        # ECDSA is CPU-bound; keep it off the event loop
        return await asyncio.to_thread(self._sign, domain, types, primary_type, message)


def as_identity(signer: Any) -> SigningIdentity:
    """Accept an identity or a bare eth_account LocalAccount."""
    if isinstance(signer, LocalAccount):
        return LocalKeyIdentity(signer)
    if callable(getattr(signer, "sign_typed_data", None)):
        return signer
    raise UnsupportedSignerError(
        f"{type(signer).__name__} cannot sign typed data",
        {"signer_type": type(signer).__name__},
    )


async def sign_typed(signer: Any, domain: Dict[str, Any], types: TypedDataFields, primary_type: str,
                     message: Dict[str, Any]) -> Signature:
    """Ask the identity for a typed-data signature and split it."""
    identity = as_identity(signer)
    raw = identity.sign_typed_data(domain, types, primary_type, message)
    if inspect.isawaitable(raw):
        raw = await raw
    sig = split_signature(raw)
    logger.debug("[HL:signed] primaryType=%s v=%d", primary_type, sig.v)
    return sig
