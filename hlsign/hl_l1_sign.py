import logging
from typing import Any, Dict, Mapping, Optional

from eth_utils import keccak
from hexbytes import HexBytes

from hlsign.action_schema import ActionType
from hlsign.errors import InvalidActionError, InvalidAddressError, InvalidNonceError
from hlsign.hl_canon import pack_action
from hlsign.identity import sign_typed
from hlsign.signature import Signature

logger = logging.getLogger(__name__)

ZERO_ADDRESS = "0x0000000000000000000000000000000000000000"
MAX_NONCE = 2 ** 64 - 1

PHANTOM_DOMAIN = {
    "name": "Exchange",
    "version": "1",
    "chainId": 1337,
    "verifyingContract": ZERO_ADDRESS,
}

AGENT_TYPES = {
    "Agent": [
        {"name": "source", "type": "string"},
        {"name": "connectionId", "type": "bytes32"},
    ],
}

L1_ACTIONS = frozenset({
    ActionType.ORDER.value,
    ActionType.CANCEL.value,
    ActionType.CANCEL_BY_CLOID.value,
    ActionType.MODIFY.value,
    ActionType.BATCH_MODIFY.value,
    ActionType.UPDATE_LEVERAGE.value,
    ActionType.UPDATE_ISOLATED_MARGIN.value,
    ActionType.VAULT_TRANSFER.value,
    ActionType.SCHEDULE_CANCEL.value,
    ActionType.SET_REFERRER.value,
    ActionType.SPOT_USER.value,
})


def address_to_bytes(address: str) -> bytes:
    try:
        raw = bytes(HexBytes(address))
    except (TypeError, ValueError) as e:
        raise InvalidAddressError(f"Invalid address: {address!r}") from e
    if len(raw) != 20:
        raise InvalidAddressError(f"Address must be 20 bytes, got {len(raw)}", {"address": address})
    return raw


def l1_hash_input(action: Mapping, vault_address: Optional[str], nonce: int) -> bytes:
    """
    packed action | nonce (8 bytes, big-endian) | 0x00
    packed action | nonce (8 bytes, big-endian) | 0x01 | vault address (20 bytes)
    """
    if isinstance(nonce, bool) or not isinstance(nonce, int) or not 0 <= nonce <= MAX_NONCE:
        raise InvalidNonceError(f"Nonce must be a uint64, got {nonce!r}", {"nonce": repr(nonce)})

    packed = pack_action(action)
    extra = 9 if vault_address is None else 29
    data = bytearray(len(packed) + extra)
    data[0:len(packed)] = packed
    data[len(packed):len(packed) + 8] = nonce.to_bytes(8, "big")
    if vault_address is None:
        data[len(packed) + 8] = 0
    else:
        data[len(packed) + 8] = 1
        data[len(packed) + 9:] = address_to_bytes(vault_address)
    return bytes(data)


def action_hash(action: Mapping, vault_address: Optional[str], nonce: int) -> bytes:
    """32-byte keccak digest binding (action, nonce, vault address)."""
    digest = keccak(l1_hash_input(action, vault_address, nonce))
    logger.debug("[HL:digest] type=%s nonce=%d vault=%s digest=%s",
                 action.get("type"), nonce, vault_address is not None, digest.hex())
    return digest


def construct_phantom_agent(digest: bytes, is_mainnet: bool) -> Dict[str, Any]:
    return {"source": "a" if is_mainnet else "b", "connectionId": digest}


async def sign_l1_action(signer: Any, action: Mapping, vault_address: Optional[str], nonce: int,
                         is_mainnet: bool) -> Signature:
    """Sign an L1 action through the phantom agent under the Exchange domain."""
    if action.get("type") not in L1_ACTIONS:
        raise InvalidActionError(
            f"{action.get('type')!r} is not an L1 action",
            {"type": action.get("type")},
        )
    digest = action_hash(action, vault_address, nonce)
    phantom_agent = construct_phantom_agent(digest, is_mainnet)
    return await sign_typed(signer, PHANTOM_DOMAIN, AGENT_TYPES, "Agent", phantom_agent)
