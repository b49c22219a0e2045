"""
Wire encoders: typed intents plus resolved asset indices -> canonical actions.

Each function is pure. Key insertion order is the wire order, since the
msgpack encoding that gets hashed preserves it.
"""
import re
from typing import Any, Dict, List, Optional, Sequence, Tuple, Union

from hlsign.action_schema import ActionType, Builder, OrderRequest, Num
from hlsign.errors import InvalidAddressError, InvalidOrderTypeError
from hlsign.formatting import decimal_to_usd_int, decimal_to_wire

Action = Dict[str, Any]
OrderWire = Dict[str, Any]

GROUPINGS = ("na", "normalTpsl", "positionTpsl")
TPSL = ("tp", "sl")

_ADDRESS_RE = re.compile(r"^0x[0-9a-fA-F]{40}$")


def canon_addr(addr: str) -> str:
    """Lowercase 0x-prefixed address; InvalidAddressError if it is not 20 bytes of hex."""
    if not isinstance(addr, str):
        raise InvalidAddressError(f"Address must be a string: {addr!r}")
    if not addr.startswith("0x"):
        addr = "0x" + addr
    if not _ADDRESS_RE.match(addr):
        raise InvalidAddressError(f"Invalid address: {addr}", {"address": addr})
    return addr.lower()


def order_type_to_wire(order_type: Any) -> Dict[str, Any]:
    if not isinstance(order_type, dict):
        raise InvalidOrderTypeError(f"Invalid order type: {order_type!r}")
    if order_type.get("limit"):
        return {"limit": order_type["limit"]}
    trigger = order_type.get("trigger")
    if trigger:
        if (
            not isinstance(trigger, dict)
            or "triggerPx" not in trigger
            or trigger.get("tpsl") not in TPSL
            or not isinstance(trigger.get("isMarket"), bool)
        ):
            raise InvalidOrderTypeError(f"Invalid trigger order type: {trigger!r}")
        return {
            "trigger": {
                "isMarket": trigger["isMarket"],
                "triggerPx": decimal_to_wire(trigger["triggerPx"]),
                "tpsl": trigger["tpsl"],
            }
        }
    raise InvalidOrderTypeError(f"Invalid order type: {order_type!r}")


def order_to_wire(order: OrderRequest, asset: int) -> OrderWire:
    wire = {
        "a": int(asset),
        "b": bool(order.is_buy),
        "p": decimal_to_wire(order.limit_px),
        "s": decimal_to_wire(order.sz),
        "r": bool(order.reduce_only),
        "t": order_type_to_wire(order.order_type),
    }
    if order.cloid is not None:
        wire["c"] = order.cloid
    return wire


def order_wires_to_action(order_wires: Sequence[OrderWire], grouping: str = "na",
                          builder: Optional[Builder] = None) -> Action:
    if grouping not in GROUPINGS:
        raise InvalidOrderTypeError(f"Invalid grouping: {grouping!r}")
    action = {
        "type": ActionType.ORDER.value,
        "orders": list(order_wires),
        "grouping": grouping,
    }
    if builder is not None:
        action["builder"] = {"b": builder.b.lower(), "f": builder.f}
    return action


def cancel_action(cancels: Sequence[Tuple[int, int]]) -> Action:
    """cancels: (asset, oid) pairs."""
    return {
        "type": ActionType.CANCEL.value,
        "cancels": [{"a": int(a), "o": int(o)} for a, o in cancels],
    }


def cancel_by_cloid_action(cancels: Sequence[Tuple[int, str]]) -> Action:
    """cancels: (asset, cloid) pairs."""
    return {
        "type": ActionType.CANCEL_BY_CLOID.value,
        "cancels": [{"asset": int(a), "cloid": c} for a, c in cancels],
    }


def modify_action(oid: Union[int, str], order_wire: OrderWire) -> Action:
    return {
        "type": ActionType.MODIFY.value,
        "oid": oid,
        "order": order_wire,
    }


def batch_modify_action(modifies: Sequence[Tuple[Union[int, str], OrderWire]]) -> Action:
    return {
        "type": ActionType.BATCH_MODIFY.value,
        "modifies": [{"oid": oid, "order": wire} for oid, wire in modifies],
    }


def update_leverage_action(asset: int, is_cross: bool, leverage: int) -> Action:
    return {
        "type": ActionType.UPDATE_LEVERAGE.value,
        "asset": int(asset),
        "isCross": bool(is_cross),
        "leverage": int(leverage),
    }


def update_isolated_margin_action(asset: int, is_buy: bool, amount: Num) -> Action:
    """amount in USD; encoded as micro-USD in `ntli`."""
    return {
        "type": ActionType.UPDATE_ISOLATED_MARGIN.value,
        "asset": int(asset),
        "isBuy": bool(is_buy),
        "ntli": decimal_to_usd_int(amount),
    }


def usd_send_action(destination: str, amount: Num, time_ms: int) -> Action:
    canon_addr(destination)
    return {
        "type": ActionType.USD_SEND.value,
        "destination": destination,
        "amount": decimal_to_wire(amount),
        "time": int(time_ms),
    }


def spot_send_action(destination: str, token: str, amount: Num, time_ms: int) -> Action:
    canon_addr(destination)
    return {
        "type": ActionType.SPOT_SEND.value,
        "destination": destination,
        "token": token,
        "amount": decimal_to_wire(amount),
        "time": int(time_ms),
    }


def withdraw_action(destination: str, amount: Num, time_ms: int) -> Action:
    canon_addr(destination)
    return {
        "type": ActionType.WITHDRAW.value,
        "destination": destination,
        "amount": decimal_to_wire(amount),
        "time": int(time_ms),
    }


def approve_agent_action(agent_address: str, agent_name: Optional[str], nonce: int) -> Action:
    # agentName is always part of the signed message; callers drop it after
    # signing when no name was given
    return {
        "type": ActionType.APPROVE_AGENT.value,
        "agentAddress": canon_addr(agent_address),
        "agentName": agent_name or "",
        "nonce": int(nonce),
    }


def approve_builder_fee_action(builder: str, max_fee_rate: str, nonce: int) -> Action:
    return {
        "type": ActionType.APPROVE_BUILDER_FEE.value,
        "maxFeeRate": str(max_fee_rate),
        "builder": canon_addr(builder),
        "nonce": int(nonce),
    }


def schedule_cancel_action(time_ms: Optional[int] = None) -> Action:
    """Without a time, clears any scheduled cancel."""
    action = {"type": ActionType.SCHEDULE_CANCEL.value}
    if time_ms is not None:
        action["time"] = int(time_ms)
    return action


def vault_transfer_action(vault_address: str, is_deposit: bool, usd: Num) -> Action:
    """usd in dollars; encoded as micro-USD."""
    return {
        "type": ActionType.VAULT_TRANSFER.value,
        "vaultAddress": canon_addr(vault_address),
        "isDeposit": bool(is_deposit),
        "usd": decimal_to_usd_int(usd),
    }


def set_referrer_action(code: str) -> Action:
    return {
        "type": ActionType.SET_REFERRER.value,
        "code": code,
    }


def class_transfer_action(usdc: Num, to_perp: bool) -> Action:
    """Move USDC between the spot and perp wallets; usdc in dollars."""
    return {
        "type": ActionType.SPOT_USER.value,
        "classTransfer": {
            "usdc": decimal_to_usd_int(usdc),
            "toPerp": bool(to_perp),
        },
    }


def orders_to_action(orders: Sequence[OrderRequest], indices: Dict[str, int], grouping: str = "na",
                     builder: Optional[Builder] = None) -> Action:
    """Encode a batch of orders given already-resolved {coin -> asset} indices."""
    wires: List[OrderWire] = [order_to_wire(o, indices[o.coin]) for o in orders]
    return order_wires_to_action(wires, grouping, builder)
