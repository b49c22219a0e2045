# config.py
from dataclasses import dataclass
from typing import Literal, Optional
import logging
import os

from dotenv import load_dotenv, find_dotenv

from hlsign.errors import ConfigurationError
from hlsign.hl_meta import DEFAULT_TTL_S
from hlsign.hl_user_sign import DEFAULT_SIGNATURE_CHAIN_ID

# Load nearest .env from project tree, don't override existing process env
load_dotenv(find_dotenv(usecwd=True), override=False)

logger = logging.getLogger(__name__)

Network = Literal["mainnet", "testnet"]

MAINNET_API_URL = "https://api.hyperliquid.xyz"
TESTNET_API_URL = "https://api.hyperliquid-testnet.xyz"


@dataclass(frozen=True)
class SignerConfig:
    network: Network
    private_key: str
    account_address: Optional[str]   # master address when signing as an API wallet
    vault_address: Optional[str]
    rest_url: str
    meta_ttl_s: float
    signature_chain_id: str

    @property
    def is_mainnet(self) -> bool:
        return self.network == "mainnet"


def base_url_for(network: str) -> str:
    n = (network or "testnet").strip().lower()
    if n == "mainnet":
        return MAINNET_API_URL
    return TESTNET_API_URL


def _require(name: str) -> str:
    v = (os.getenv(name) or "").strip()
    if not v:
        raise ConfigurationError(f"Missing env var: {name}", {"var": name})
    return v


def _optional(name: str) -> Optional[str]:
    v = (os.getenv(name) or "").strip()
    return v or None


def load_config() -> SignerConfig:
    network = (os.getenv("HL_NETWORK") or "testnet").strip().lower()
    if network not in ("mainnet", "testnet"):
        raise ConfigurationError("HL_NETWORK must be 'mainnet' or 'testnet'", {"HL_NETWORK": network})

    chain_id = (os.getenv("HL_SIGNATURE_CHAIN_ID") or DEFAULT_SIGNATURE_CHAIN_ID).strip().lower()
    try:
        int(chain_id, 16)
    except ValueError:
        raise ConfigurationError("HL_SIGNATURE_CHAIN_ID must be a hex chain id", {"HL_SIGNATURE_CHAIN_ID": chain_id})

    try:
        ttl = float(os.getenv("HL_META_TTL_S", str(DEFAULT_TTL_S)))
    except ValueError:
        raise ConfigurationError("HL_META_TTL_S must be a number")

    return SignerConfig(
        network=network,
        private_key=_require("HL_PRIVATE_KEY"),
        account_address=_optional("HL_ACCOUNT_ADDRESS"),
        vault_address=_optional("HL_VAULT_ADDRESS"),
        rest_url=_optional("HL_REST_URL") or base_url_for(network),
        meta_ttl_s=ttl,
        signature_chain_id=chain_id,
    )


def _short(addr: Optional[str]) -> Optional[str]:
    if not addr:
        return addr
    return addr[:6] + "..." + addr[-4:]


def redacted(cfg: SignerConfig) -> dict:
    return {
        "network": cfg.network,
        "private_key": "***redacted***",
        "account_address": _short(cfg.account_address),
        "vault_address": _short(cfg.vault_address),
        "rest_url": cfg.rest_url,
        "meta_ttl_s": cfg.meta_ttl_s,
        "signature_chain_id": cfg.signature_chain_id,
    }
