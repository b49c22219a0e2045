"""
User-signed actions: transfers, withdrawals and approvals are signed over
their own fields under the HyperliquidSignTransaction domain.
"""
import logging
from typing import Any, Dict, List, Tuple

from hlsign.action_schema import ActionType
from hlsign.errors import InvalidActionError
from hlsign.hl_l1_sign import L1_ACTIONS, ZERO_ADDRESS
from hlsign.identity import sign_typed
from hlsign.signature import Signature

logger = logging.getLogger(__name__)

# Arbitrum One
DEFAULT_SIGNATURE_CHAIN_ID = "0xa4b1"

FieldTypes = List[Dict[str, str]]


def _fields(*pairs: Tuple[str, str]) -> FieldTypes:
    return [{"name": n, "type": t} for n, t in pairs]


USD_SEND_SIGN_TYPES = _fields(
    ("hyperliquidChain", "string"),
    ("destination", "string"),
    ("amount", "string"),
    ("time", "uint64"),
)

SPOT_SEND_SIGN_TYPES = _fields(
    ("hyperliquidChain", "string"),
    ("destination", "string"),
    ("token", "string"),
    ("amount", "string"),
    ("time", "uint64"),
)

WITHDRAW_SIGN_TYPES = _fields(
    ("hyperliquidChain", "string"),
    ("destination", "string"),
    ("amount", "string"),
    ("time", "uint64"),
)

APPROVE_AGENT_SIGN_TYPES = _fields(
    ("hyperliquidChain", "string"),
    ("agentAddress", "address"),
    ("agentName", "string"),
    ("nonce", "uint64"),
)

APPROVE_BUILDER_FEE_SIGN_TYPES = _fields(
    ("hyperliquidChain", "string"),
    ("maxFeeRate", "string"),
    ("builder", "address"),
    ("nonce", "uint64"),
)

# action type -> (primary type, ordered field schema, field carrying the nonce)
USER_SIGNED_ACTIONS: Dict[str, Tuple[str, FieldTypes, str]] = {
    ActionType.USD_SEND.value: ("HyperliquidTransaction:UsdSend", USD_SEND_SIGN_TYPES, "time"),
    ActionType.SPOT_SEND.value: ("HyperliquidTransaction:SpotSend", SPOT_SEND_SIGN_TYPES, "time"),
    ActionType.WITHDRAW.value: ("HyperliquidTransaction:Withdraw", WITHDRAW_SIGN_TYPES, "time"),
    ActionType.APPROVE_AGENT.value: ("HyperliquidTransaction:ApproveAgent", APPROVE_AGENT_SIGN_TYPES, "nonce"),
    ActionType.APPROVE_BUILDER_FEE.value: (
        "HyperliquidTransaction:ApproveBuilderFee", APPROVE_BUILDER_FEE_SIGN_TYPES, "nonce"),
}


def hyperliquid_chain(is_mainnet: bool) -> str:
    return "Mainnet" if is_mainnet else "Testnet"


def user_signed_domain(signature_chain_id: str) -> Dict[str, Any]:
    return {
        "name": "HyperliquidSignTransaction",
        "version": "1",
        "chainId": int(signature_chain_id, 16),
        "verifyingContract": ZERO_ADDRESS,
    }


def user_action_nonce(action: Dict[str, Any]) -> int:
    """The nonce a user-signed action carries in its own fields."""
    try:
        _, _, nonce_field = USER_SIGNED_ACTIONS[action.get("type")]
    except KeyError:
        raise InvalidActionError(f"{action.get('type')!r} is not a user-signed action",
                                 {"type": action.get("type")})
    return int(action[nonce_field])


async def sign_user_signed_action(signer: Any, action: Dict[str, Any], payload_types: FieldTypes,
                                  primary_type: str, is_mainnet: bool,
                                  signature_chain_id: str = DEFAULT_SIGNATURE_CHAIN_ID) -> Signature:
    """
    Stamp `signatureChainId` and `hyperliquidChain` into `action` (in place)
    and sign its fields with the given ordered schema.
    """
    if action.get("type") in L1_ACTIONS:
        raise InvalidActionError(
            f"{action.get('type')!r} is an L1 action and must be signed through the phantom agent",
            {"type": action.get("type")},
        )
    action["signatureChainId"] = signature_chain_id
    action["hyperliquidChain"] = hyperliquid_chain(is_mainnet)
    domain = user_signed_domain(signature_chain_id)
    return await sign_typed(signer, domain, {primary_type: payload_types}, primary_type, action)


async def sign_user_action(signer: Any, action: Dict[str, Any], is_mainnet: bool,
                           signature_chain_id: str = DEFAULT_SIGNATURE_CHAIN_ID) -> Signature:
    """Sign a known user-signed action with its registered schema."""
    entry = USER_SIGNED_ACTIONS.get(action.get("type"))
    if entry is None:
        raise InvalidActionError(f"{action.get('type')!r} is not a user-signed action",
                                 {"type": action.get("type")})
    primary_type, payload_types, _ = entry
    logger.debug("[HL:user-sign] %s chain=%s", primary_type, hyperliquid_chain(is_mainnet))
    return await sign_user_signed_action(signer, action, payload_types, primary_type, is_mainnet,
                                         signature_chain_id)
