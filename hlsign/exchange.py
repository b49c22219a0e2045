"""
Exchange Signer - intent -> asset indices -> wire action -> digest -> signature.

Builds the exact payload the /exchange endpoint expects. Nothing is sent
from here; transport, rate limiting and retries belong to the caller.
"""

import logging
from typing import Any, Callable, Dict, List, Optional, Sequence, Union

from hlsign.action_schema import (
    Builder, CancelByCloidRequest, CancelRequest, ModifyRequest, Num, OrderRequest,
)
from hlsign.config import SignerConfig, redacted
from hlsign.errors import InvalidActionError
from hlsign.formatting import get_timestamp_ms
from hlsign.hl_l1_sign import L1_ACTIONS, sign_l1_action
from hlsign.hl_meta import AssetIndexResolver, HttpMetaSource
from hlsign.hl_user_sign import (
    DEFAULT_SIGNATURE_CHAIN_ID, USER_SIGNED_ACTIONS, sign_user_action, user_action_nonce,
)
from hlsign import hl_wire
from hlsign.identity import LocalKeyIdentity, as_identity
from hlsign.signature import Signature

logger = logging.getLogger("hl_exchange")

Payload = Dict[str, Any]


def build_exchange_payload(action: Dict[str, Any], nonce: int, signature: Signature,
                           vault_address: Optional[str] = None) -> Payload:
    """Outbound shape; vaultAddress only appears when one was signed over."""
    payload = {
        "action": action,
        "nonce": int(nonce),
        "signature": signature.to_dict(),
    }
    if vault_address is not None:
        payload["vaultAddress"] = vault_address
    return payload


async def sign_action(signer: Any, action: Dict[str, Any], nonce: Optional[int],
                      vault_address: Optional[str], is_mainnet: bool,
                      signature_chain_id: str = DEFAULT_SIGNATURE_CHAIN_ID) -> Payload:
    """Route an action to its signing mode and return the outbound payload."""
    kind = action.get("type")
    if kind in L1_ACTIONS:
        if nonce is None:
            raise InvalidActionError(f"{kind!r} needs an explicit nonce", {"type": kind})
        signature = await sign_l1_action(signer, action, vault_address, nonce, is_mainnet)
        return build_exchange_payload(action, nonce, signature, vault_address)
    if kind in USER_SIGNED_ACTIONS:
        if vault_address is not None:
            raise InvalidActionError(f"{kind!r} cannot be sent on behalf of a vault", {"type": kind})
        signature = await sign_user_action(signer, action, is_mainnet, signature_chain_id)
        return build_exchange_payload(action, user_action_nonce(action), signature)
    raise InvalidActionError(f"Unknown action type: {kind!r}", {"type": kind})


class ExchangeSigner:
    """Signs every action variant for one identity on one network."""

    def __init__(self, signer: Any, resolver: AssetIndexResolver, *, is_mainnet: bool,
                 nonce_factory: Callable[[], int] = get_timestamp_ms,
                 signature_chain_id: str = DEFAULT_SIGNATURE_CHAIN_ID,
                 vault_address: Optional[str] = None, account_address: Optional[str] = None):
        self._identity = as_identity(signer)
        self._resolver = resolver
        self._is_mainnet = bool(is_mainnet)
        self._nonce_factory = nonce_factory
        self._signature_chain_id = signature_chain_id
        # trading actions act for this vault unless a call names another one
        self._vault_address = hl_wire.canon_addr(vault_address) if vault_address else None
        self._account_address = account_address

    @classmethod
    def from_config(cls, cfg: SignerConfig, **kwargs) -> "ExchangeSigner":
        """Local key identity plus an /info-backed resolver."""
        resolver = AssetIndexResolver(HttpMetaSource(cfg.rest_url, ttl_s=cfg.meta_ttl_s), ttl_s=cfg.meta_ttl_s)
        logger.info("[hl_exchange] signer ready %s", redacted(cfg))
        kwargs.setdefault("vault_address", cfg.vault_address)
        kwargs.setdefault("account_address", cfg.account_address)
        return cls(LocalKeyIdentity.from_key(cfg.private_key), resolver, is_mainnet=cfg.is_mainnet,
                   signature_chain_id=cfg.signature_chain_id, **kwargs)

    @property
    def is_mainnet(self) -> bool:
        return self._is_mainnet

    @property
    def vault_address(self) -> Optional[str]:
        return self._vault_address

    @property
    def account_address(self) -> Optional[str]:
        """Account whose state is traded: the configured master, else the signing key's own address."""
        return self._account_address or getattr(self._identity, "address", None)

    def _vault(self, vault_address: Optional[str]) -> Optional[str]:
        return vault_address if vault_address is not None else self._vault_address

    async def sign(self, action: Dict[str, Any], *, nonce: Optional[int] = None,
                   vault_address: Optional[str] = None) -> Payload:
        """Sign a pre-built action; L1 actions get a fresh nonce when none is given."""
        if nonce is None and action.get("type") in L1_ACTIONS:
            nonce = self._nonce_factory()
        payload = await sign_action(self._identity, action, nonce, vault_address,
                                    self._is_mainnet, self._signature_chain_id)
        logger.info("[hl_exchange] signed %s nonce=%d", action.get("type"), payload["nonce"])
        return payload

    # -----------------------
    # Order flow
    # -----------------------

    async def place_orders(self, orders: Union[OrderRequest, Sequence[OrderRequest]], *,
                           grouping: str = "na", builder: Optional[Builder] = None,
                           vault_address: Optional[str] = None) -> Payload:
        batch: List[OrderRequest] = [orders] if isinstance(orders, OrderRequest) else list(orders)
        indices = await self._resolver.resolve_many(o.coin for o in batch)
        action = hl_wire.orders_to_action(batch, indices, grouping, builder)
        return await self.sign(action, vault_address=self._vault(vault_address))

    async def cancel_orders(self, cancels: Union[CancelRequest, Sequence[CancelRequest]], *,
                            vault_address: Optional[str] = None) -> Payload:
        batch = [cancels] if isinstance(cancels, CancelRequest) else list(cancels)
        indices = await self._resolver.resolve_many(c.coin for c in batch)
        action = hl_wire.cancel_action([(indices[c.coin], c.o) for c in batch])
        return await self.sign(action, vault_address=self._vault(vault_address))

    async def cancel_by_cloid(self, cancels: Union[CancelByCloidRequest, Sequence[CancelByCloidRequest]], *,
                              vault_address: Optional[str] = None) -> Payload:
        batch = [cancels] if isinstance(cancels, CancelByCloidRequest) else list(cancels)
        indices = await self._resolver.resolve_many(c.coin for c in batch)
        action = hl_wire.cancel_by_cloid_action([(indices[c.coin], c.cloid) for c in batch])
        return await self.sign(action, vault_address=self._vault(vault_address))

    async def modify_order(self, modify: ModifyRequest, *, vault_address: Optional[str] = None) -> Payload:
        asset = await self._resolver.resolve(modify.order.coin)
        action = hl_wire.modify_action(modify.oid, hl_wire.order_to_wire(modify.order, asset))
        return await self.sign(action, vault_address=self._vault(vault_address))

    async def batch_modify_orders(self, modifies: Sequence[ModifyRequest], *,
                                  vault_address: Optional[str] = None) -> Payload:
        indices = await self._resolver.resolve_many(m.order.coin for m in modifies)
        action = hl_wire.batch_modify_action(
            [(m.oid, hl_wire.order_to_wire(m.order, indices[m.order.coin])) for m in modifies]
        )
        return await self.sign(action, vault_address=self._vault(vault_address))

    async def update_leverage(self, coin: str, leverage: int, *, is_cross: bool = True,
                              vault_address: Optional[str] = None) -> Payload:
        asset = await self._resolver.resolve(coin)
        action = hl_wire.update_leverage_action(asset, is_cross, leverage)
        return await self.sign(action, vault_address=self._vault(vault_address))

    async def update_isolated_margin(self, coin: str, is_buy: bool, amount: Num, *,
                                     vault_address: Optional[str] = None) -> Payload:
        asset = await self._resolver.resolve(coin)
        action = hl_wire.update_isolated_margin_action(asset, is_buy, amount)
        return await self.sign(action, vault_address=self._vault(vault_address))

    async def schedule_cancel(self, time_ms: Optional[int] = None, *,
                              vault_address: Optional[str] = None) -> Payload:
        return await self.sign(hl_wire.schedule_cancel_action(time_ms), vault_address=self._vault(vault_address))

    # -----------------------
    # Account & transfers
    # -----------------------

    async def vault_transfer(self, vault_address: str, is_deposit: bool, usd: Num) -> Payload:
        return await self.sign(hl_wire.vault_transfer_action(vault_address, is_deposit, usd))

    async def set_referrer(self, code: str) -> Payload:
        return await self.sign(hl_wire.set_referrer_action(code))

    async def class_transfer(self, usdc: Num, to_perp: bool) -> Payload:
        return await self.sign(hl_wire.class_transfer_action(usdc, to_perp))

    async def usd_transfer(self, destination: str, amount: Num) -> Payload:
        action = hl_wire.usd_send_action(destination, amount, self._nonce_factory())
        return await self.sign(action)

    async def spot_transfer(self, destination: str, token: str, amount: Num) -> Payload:
        action = hl_wire.spot_send_action(destination, token, amount, self._nonce_factory())
        return await self.sign(action)

    async def withdraw(self, destination: str, amount: Num) -> Payload:
        action = hl_wire.withdraw_action(destination, amount, self._nonce_factory())
        return await self.sign(action)

    async def approve_agent(self, agent_address: str, agent_name: Optional[str] = None) -> Payload:
        action = hl_wire.approve_agent_action(agent_address, agent_name, self._nonce_factory())
        payload = await self.sign(action)
        if agent_name is None:
            # signed as "", sent without the field
            del payload["action"]["agentName"]
        return payload

    async def approve_builder_fee(self, builder: str, max_fee_rate: str) -> Payload:
        action = hl_wire.approve_builder_fee_action(builder, max_fee_rate, self._nonce_factory())
        return await self.sign(action)
