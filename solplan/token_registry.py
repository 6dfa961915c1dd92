"""Ticker to mint resolution backed by a curated seed and a refreshed list."""

from __future__ import annotations

import asyncio
import time
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional

import httpx

from solplan.plan_types import NATIVE_MINT, TokenRegistryEntry
from solplan.utils.logging import get_logger

logger = get_logger(__name__)

DEFAULT_TOKEN_LIST_URL = "https://token.jup.ag/all"
DEFAULT_REFRESH_INTERVAL_SECONDS = 60 * 60

STATIC_SEED: List[TokenRegistryEntry] = [
    TokenRegistryEntry("SOL", NATIVE_MINT, 9, "Solana"),
    TokenRegistryEntry("USDC", "EPjFWdd5AufqSSqeM2qN1xzybapC8G4wEGGkZwyTDt1v", 6, "USD Coin"),
    TokenRegistryEntry("USDT", "Es9vMFrzaCERmJfrF4H2FYD4KCoNkY11McCe8BenwNYB", 6, "Tether USD"),
    TokenRegistryEntry("BONK", "DezXAZ8z7PnrnRJjz3wXBoRgixCa6xjnB7YaB1pPB263", 5, "Bonk"),
    TokenRegistryEntry("JUP", "JUPyiwrYJFskUPiHa7hkeR8VUtAeFoSYbKedZNsDvCN", 6, "Jupiter"),
    TokenRegistryEntry("WIF", "EKpQGSJtjMFqKZ9KQanSqYXRcF8fBopzLHYxdM65zcjm", 6, "dogwifhat"),
    TokenRegistryEntry("PYTH", "HZ1JovNiVvGrGNiiYvEozEVgZ58xaU3RKwX8eACQBCt3", 6, "Pyth Network"),
    TokenRegistryEntry("JTO", "jtojtomepa8beP8AuQc6eXt5FriJwfFMwQx2v2f9mCL", 9, "Jito"),
    TokenRegistryEntry("RAY", "4k3Dyjzvzp8eMZWUXbBCjEvwSkkk59S5iCNLY3QrkX6R", 6, "Raydium"),
    TokenRegistryEntry("ORCA", "orcaEKTdK7LKz57vaAYr9QeNsVEPfiu6QeMU1kektZE", 6, "Orca"),
    TokenRegistryEntry("MNDE", "MNDEFzGvMt87ueuHvVU9VcTqsAP5b3fTGPsHuuPA5ey", 9, "Marinade"),
    TokenRegistryEntry("mSOL", "mSoLzYCxHdYgdzU16g5QSh3i5K3z3KZK7ytfqcJm7So", 9, "Marinade Staked SOL"),
    TokenRegistryEntry("stSOL", "7dHbWXmci3dT8UFYWYZweBLXgycu7Y3iL6trKn1Y7ARj", 9, "Lido Staked SOL"),
    TokenRegistryEntry("jitoSOL", "J1toso1uCk3RLmjorhTtrVwY9HJ7X8V9yYac6Y7kGCPn", 9, "Jito Staked SOL"),
    TokenRegistryEntry("RENDER", "rndrizKT3MK1iimdxRdWabcF7Zg7AR5T4nud4EkHBof", 8, "Render Token"),
    TokenRegistryEntry("HNT", "hntyVP6YFm1Hg25TN9WGLqM12b8TQmcknKrdu1oxWux", 8, "Helium"),
    TokenRegistryEntry("TNSR", "TNSRxcUxoT9xBG3de7PiJyTDYu7kskLqcpddxnEJAS6", 9, "Tensor"),
    TokenRegistryEntry("W", "85VBFQZC9TZkfaptBWjvUw7YbZjy52A6mjtPGjstQAmQ", 6, "Wormhole"),
    TokenRegistryEntry("KMNO", "KMNo3nJsBXfcpJTVhZcXLW7RmTwTt4GVFE7suUBo9sS", 6, "Kamino"),
    TokenRegistryEntry("BSOL", "bSo13r4TkiE4KumL71LsHTPpL2euBYLFx6h9HP3piy1", 9, "BlazeStake Staked SOL"),
]


class ResolutionStatus(Enum):
    RESOLVED = "resolved"
    AMBIGUOUS = "ambiguous"
    UNRESOLVED = "unresolved"


@dataclass(frozen=True)
class Resolution:
    """Result of a ticker lookup.

    ``entry`` is set only when ``status`` is ``RESOLVED``; callers branch on
    the status so "not found" and "found several" stay distinct.
    """

    status: ResolutionStatus
    entry: Optional[TokenRegistryEntry] = None

    @property
    def is_resolved(self) -> bool:
        return self.status is ResolutionStatus.RESOLVED


class TokenRegistry:
    """Resolve tickers to canonical token records.

    Entries are keyed by mint and only ever added, so readers can call
    :meth:`lookup` while a refresh is in flight.
    """

    def __init__(
        self,
        token_list_url: str = DEFAULT_TOKEN_LIST_URL,
        http_client: Optional[httpx.AsyncClient] = None,
        refresh_interval_seconds: float = DEFAULT_REFRESH_INTERVAL_SECONDS,
        timeout: float = 10.0,
        seed: Iterable[TokenRegistryEntry] = STATIC_SEED,
    ) -> None:
        self.token_list_url = token_list_url
        self.refresh_interval_seconds = refresh_interval_seconds
        self._client = http_client
        self._owns_client = http_client is None
        self._timeout = timeout
        self._by_ticker: Dict[str, List[TokenRegistryEntry]] = {}
        self._by_mint: Dict[str, TokenRegistryEntry] = {}
        self._last_refresh: Optional[float] = None
        self._refresh_task: Optional[asyncio.Task[bool]] = None

        for entry in seed:
            self._add_entry(entry)

    def _add_entry(self, entry: TokenRegistryEntry) -> bool:
        if entry.mint in self._by_mint:
            return False
        self._by_mint[entry.mint] = entry
        self._by_ticker.setdefault(entry.ticker.upper(), []).append(entry)
        return True

    def lookup(self, ticker: str) -> Resolution:
        entries = self._by_ticker.get(ticker.upper(), [])
        if not entries:
            return Resolution(ResolutionStatus.UNRESOLVED)
        if len(entries) > 1:
            return Resolution(ResolutionStatus.AMBIGUOUS)
        return Resolution(ResolutionStatus.RESOLVED, entry=entries[0])

    def resolve(self, ticker: str) -> Optional[TokenRegistryEntry]:
        """Return the single entry for ``ticker``, or ``None``."""
        return self.lookup(ticker).entry

    def is_ambiguous(self, ticker: str) -> bool:
        return self.lookup(ticker).status is ResolutionStatus.AMBIGUOUS

    def __len__(self) -> int:
        return len(self._by_mint)

    @property
    def last_refresh(self) -> Optional[float]:
        return self._last_refresh

    def needs_refresh(self) -> bool:
        if self._last_refresh is None:
            return True
        return time.monotonic() - self._last_refresh > self.refresh_interval_seconds

    @property
    def refresh_in_progress(self) -> bool:
        return self._refresh_task is not None and not self._refresh_task.done()

    async def refresh(self) -> bool:
        """Merge the remote token list; concurrent callers share one fetch.

        Returns whether the refresh succeeded. Failures are logged and leave
        the registry untouched.
        """
        task = self._refresh_task
        if task is None or task.done():
            task = asyncio.ensure_future(self._do_refresh())
            self._refresh_task = task
            task.add_done_callback(self._clear_refresh_task)
        # Shield so one cancelled waiter does not abort the shared fetch
        return await asyncio.shield(task)

    def _clear_refresh_task(self, task: "asyncio.Task[bool]") -> None:
        if self._refresh_task is task:
            self._refresh_task = None

    async def _do_refresh(self) -> bool:
        try:
            client = self._get_client()
            response = await client.get(self.token_list_url)
            if response.status_code != 200:
                logger.warning(
                    "token_registry_refresh_failed",
                    status=response.status_code,
                    url=self.token_list_url,
                )
                return False
            records = response.json()
        except (httpx.HTTPError, ValueError) as exc:
            logger.warning(
                "token_registry_refresh_failed",
                error=str(exc),
                url=self.token_list_url,
            )
            return False

        if not isinstance(records, list):
            logger.warning(
                "token_registry_refresh_failed",
                error="token list payload is not an array",
                url=self.token_list_url,
            )
            return False

        added = self.merge(records)
        self._last_refresh = time.monotonic()
        logger.info("token_registry_refreshed", added=added, size=len(self))
        return True

    def merge(self, records: Iterable[Any]) -> int:
        """Add well-formed ``{symbol, address, decimals, name}`` rows.

        Returns the number of new mints. Rows for mints already present are
        ignored, so the curated seed always wins.
        """
        added = 0
        for record in records:
            entry = _entry_from_record(record)
            if entry is not None and self._add_entry(entry):
                added += 1
        return added

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self._timeout)
        return self._client

    async def aclose(self) -> None:
        if self._refresh_task is not None and not self._refresh_task.done():
            self._refresh_task.cancel()
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None


def _entry_from_record(record: Any) -> Optional[TokenRegistryEntry]:
    if not isinstance(record, dict):
        return None
    symbol = record.get("symbol")
    address = record.get("address")
    decimals = record.get("decimals")
    if not isinstance(symbol, str) or not symbol.strip():
        return None
    if not isinstance(address, str) or not address.strip():
        return None
    if isinstance(decimals, bool) or not isinstance(decimals, int) or decimals < 0:
        return None
    name = record.get("name")
    return TokenRegistryEntry(
        ticker=symbol.strip().upper(),
        mint=address.strip(),
        decimals=decimals,
        name=name if isinstance(name, str) else symbol.strip(),
    )


__all__ = [
    "DEFAULT_TOKEN_LIST_URL",
    "Resolution",
    "ResolutionStatus",
    "STATIC_SEED",
    "TokenRegistry",
]
