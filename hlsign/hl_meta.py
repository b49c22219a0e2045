"""
Asset index resolution backed by exchange metadata.

Perp indices are positions in meta["universe"]; spot pairs are
10000 + spotMeta["universe"][i]["index"].
"""
import asyncio
import logging
import time
from typing import Any, Callable, Dict, Iterable, Mapping, Optional, Tuple

import httpx

from hlsign.errors import MetadataUnavailableError, UnknownAssetError
from hlsign.protocols import SymbolMetadataSource

logger = logging.getLogger(__name__)

SPOT_ASSET_OFFSET = 10000
DEFAULT_TTL_S = 300
PERP_SUFFIX = "-PERP"


def normalize_symbol(symbol: str) -> str:
    """Exact exchange name; "ETH-PERP" is accepted as an alias for "ETH"."""
    s = (symbol or "").strip()
    if s.upper().endswith(PERP_SUFFIX):
        s = s[: -len(PERP_SUFFIX)]
    return s


def build_index_snapshot(meta: Mapping[str, Any], spot_meta: Optional[Mapping[str, Any]] = None) -> Dict[str, int]:
    """Build {symbol -> asset index} from meta (and optionally spotMeta) responses."""
    snapshot: Dict[str, int] = {}
    for i, coin in enumerate(meta.get("universe", []) or []):
        name = coin.get("name")
        if name:
            snapshot[name] = i

    if spot_meta:
        tokens = {t.get("index"): t.get("name") for t in spot_meta.get("tokens", []) or []}
        for pair in spot_meta.get("universe", []) or []:
            asset = SPOT_ASSET_OFFSET + int(pair["index"])
            snapshot.setdefault(pair["name"], asset)
            base_quote = pair.get("tokens") or []
            if len(base_quote) == 2 and base_quote[0] in tokens and base_quote[1] in tokens:
                snapshot.setdefault(f"{tokens[base_quote[0]]}/{tokens[base_quote[1]]}", asset)
    return snapshot


class StaticMetaSource:
    """Fixed snapshot, for tests and for callers that already hold metadata."""

    def __init__(self, mapping: Mapping[str, int]):
        self._mapping = dict(mapping)

    async def snapshot(self) -> Mapping[str, int]:
        return self._mapping


class HttpMetaSource:
    """Snapshot from the /info endpoint, cached for `ttl_s` and fetched once per refresh."""

    def __init__(self, base_url: str, ttl_s: float = DEFAULT_TTL_S, include_spot: bool = True,
                 timeout: float = 10, transport: Optional[httpx.AsyncBaseTransport] = None):
        self.base_url = base_url.rstrip("/")
        self.ttl_s = ttl_s
        self.include_spot = include_spot
        self.timeout = timeout
        self._transport = transport
        self._snapshot: Optional[Dict[str, int]] = None
        self._ts = 0.0
        self._lock: Optional[asyncio.Lock] = None
        self.fetch_count = 0

    def _fresh(self) -> bool:
        return self._snapshot is not None and self._ts + self.ttl_s > time.time()

    async def snapshot(self) -> Mapping[str, int]:
        if self._fresh():
            return self._snapshot
        if self._lock is None:
            # created on first use so it belongs to the running loop
            self._lock = asyncio.Lock()
        async with self._lock:
            # another waiter may have refreshed while we queued
            if self._fresh():
                return self._snapshot
            self._snapshot = await self._fetch()
            self._ts = time.time()
            return self._snapshot

    def expire(self):
        """Force the next snapshot() to refetch."""
        self._ts = 0.0

    async def _fetch(self) -> Dict[str, int]:
        self.fetch_count += 1
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as c:
                meta = await self._post(c, {"type": "meta"})
                spot_meta = await self._post(c, {"type": "spotMeta"}) if self.include_spot else None
        except httpx.HTTPError as e:
            logger.error("[HL:meta] fetch failed: %s", e)
            raise MetadataUnavailableError(f"Metadata fetch failed: {e}", {"base_url": self.base_url}) from e

        snapshot = build_index_snapshot(meta, spot_meta)
        logger.info("[HL:meta] snapshot loaded (%d symbols)", len(snapshot))
        return snapshot

    async def _post(self, client: httpx.AsyncClient, body: Dict[str, Any]) -> Dict[str, Any]:
        r = await client.post(f"{self.base_url}/info", json=body)
        r.raise_for_status()
        return r.json()


def _consume_exception(task: asyncio.Task):
    # every waiter may have been cancelled off the shared lookup; mark its error seen
    if not task.cancelled():
        task.exception()


class AssetIndexResolver:
    """
    Symbol -> asset index with a shared, expiring cache.

    Concurrent lookups of one symbol share a single in-flight task. Entries
    expire after `ttl_s`; invalidate() is the refresh hook for relistings.
    """

    def __init__(self, source: SymbolMetadataSource, ttl_s: float = DEFAULT_TTL_S,
                 clock: Callable[[], float] = time.monotonic):
        self._source = source
        self._ttl_s = ttl_s
        self._clock = clock
        self._cache: Dict[str, Tuple[float, int]] = {}
        self._inflight: Dict[str, asyncio.Task] = {}

    async def resolve(self, symbol: str) -> int:
        key = normalize_symbol(symbol)
        hit = self._cache.get(key)
        if hit is not None and hit[0] > self._clock():
            return hit[1]

        task = self._inflight.get(key)
        if task is None:
            task = asyncio.ensure_future(self._lookup(key))
            self._inflight[key] = task
            task.add_done_callback(lambda _t, k=key: self._inflight.pop(k, None))
            task.add_done_callback(_consume_exception)
        return await asyncio.shield(task)

    async def resolve_many(self, symbols: Iterable[str]) -> Dict[str, int]:
        """Resolve each distinct symbol once, concurrently."""
        distinct = list(dict.fromkeys(symbols))
        indices = await asyncio.gather(*(self.resolve(s) for s in distinct))
        return dict(zip(distinct, indices))

    def invalidate(self, symbol: Optional[str] = None):
        """Drop one cached symbol, or all of them."""
        if symbol is None:
            self._cache.clear()
            logger.info("[HL:meta] asset index cache cleared")
        else:
            self._cache.pop(normalize_symbol(symbol), None)

    def cached(self) -> Dict[str, int]:
        now = self._clock()
        return {k: idx for k, (expires_at, idx) in self._cache.items() if expires_at > now}

    async def _lookup(self, key: str) -> int:
        snapshot = await self._source.snapshot()
        index = snapshot.get(key)
        if index is None:
            raise UnknownAssetError(f"Unknown asset: {key}", {"symbol": key})
        index = int(index)
        self._cache[key] = (self._clock() + self._ttl_s, index)
        logger.debug("[HL:meta] %s -> %d", key, index)
        return index
