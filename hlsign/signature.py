"""
Signature splitting and recovery.
"""
from dataclasses import dataclass
from typing import Dict, Union

from eth_keys import keys
from hexbytes import HexBytes

from hlsign.errors import MalformedSignatureError

SIGNATURE_LENGTH = 65


@dataclass(frozen=True)
class Signature:
    """Transport form of a recoverable secp256k1 signature."""
    r: str
    s: str
    v: int

    def to_dict(self) -> Dict[str, Union[str, int]]:
        return {"r": self.r, "s": self.s, "v": self.v}

    def to_bytes(self) -> bytes:
        return bytes.fromhex(self.r[2:]) + bytes.fromhex(self.s[2:]) + bytes([self.v])


def _signature_bytes(raw: Union[str, bytes, bytearray]) -> bytes:
    if isinstance(raw, (bytes, bytearray)):
        return bytes(raw)
    if isinstance(raw, str):
        try:
            return bytes(HexBytes(raw))
        except ValueError as e:
            raise MalformedSignatureError(f"Signature is not hex: {e}") from e
    raise MalformedSignatureError(f"Unsupported signature type: {type(raw).__name__}")


def split_signature(raw: Union[str, bytes, bytearray]) -> Signature:
    """r = bytes [0,32), s = [32,64), v = byte 64 exactly as the signer produced it."""
    data = _signature_bytes(raw)
    if len(data) != SIGNATURE_LENGTH:
        raise MalformedSignatureError(
            f"Signature must be {SIGNATURE_LENGTH} bytes, got {len(data)}",
            {"length": len(data)},
        )
    return Signature(
        r="0x" + data[0:32].hex(),
        s="0x" + data[32:64].hex(),
        v=data[64],
    )


def recover_signer(msg_hash: bytes, signature: Signature) -> str:
    """Checksum address that produced `signature` over `msg_hash`."""
    # eth_keys wants v in {0, 1}
    v = signature.v - 27 if signature.v >= 27 else signature.v
    sig = keys.Signature(vrs=(v, int(signature.r, 16), int(signature.s, 16)))
    pub = sig.recover_public_key_from_msg_hash(msg_hash)
    return pub.to_checksum_address()
