"""Solana JSON-RPC balance fetcher.

Reads a wallet's native SOL balance and its token balances under both the
SPL Token and Token-2022 programs. Every sub-query fails soft: an outage or a
malformed reply for one category yields an empty result for that category
only, so assets reachable through the other queries still get valued.
"""

import itertools
import logging
from dataclasses import dataclass, field

import httpx

from arena.errors import RateLimited, UpstreamUnavailable
from arena.services.rate_limiter import RateLimiter
from arena.utils.constants import LAMPORTS_PER_SOL, TOKEN_PROGRAMS

logger = logging.getLogger(__name__)


@dataclass
class AssetBalance:
    mint: str
    raw_amount: int
    decimals: int
    program: str = "spl"  # key into TOKEN_PROGRAMS

    @property
    def balance(self) -> float:
        return self.raw_amount / 10 ** self.decimals


@dataclass
class WalletBalances:
    native_balance: float = 0.0  # SOL
    tokens: list[AssetBalance] = field(default_factory=list)


class SolanaBalanceFetcher:
    """Fetches balances from a Solana RPC node over JSON-RPC."""

    def __init__(
        self,
        rpc_url: str,
        limiter: RateLimiter | None = None,
        client: httpx.AsyncClient | None = None,
        timeout: float = 15.0,
    ):
        self.rpc_url = rpc_url
        self.limiter = limiter
        self.timeout = timeout
        self._client = client
        self._owns_client = client is None
        self._ids = itertools.count(1)

    def _ensure_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self.timeout)
        return self._client

    async def close(self):
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None

    async def _rpc(self, method: str, params: list):
        """Send one JSON-RPC request and return its ``result`` member.

        Raises UpstreamUnavailable on transport errors, non-200 replies and
        JSON-RPC error objects. Raises ValueError on a malformed body.
        """
        if self.limiter:
            await self.limiter.acquire("solana_rpc")

        payload = {"jsonrpc": "2.0", "id": next(self._ids), "method": method, "params": params}
        try:
            resp = await self._ensure_client().post(self.rpc_url, json=payload)
        except httpx.HTTPError as e:
            raise UpstreamUnavailable(f"{method}: {e!r}") from e

        if resp.status_code == 429:
            raise RateLimited(f"{method}: HTTP 429")
        if resp.status_code != 200:
            raise UpstreamUnavailable(f"{method}: HTTP {resp.status_code}")

        data = resp.json()
        if not isinstance(data, dict):
            raise ValueError(f"{method}: expected a JSON object")
        if data.get("error"):
            raise UpstreamUnavailable(f"{method}: {data['error']}")
        return data.get("result")

    async def get_native_balance(self, wallet_address: str) -> float:
        """SOL balance, or 0.0 if the node could not be read."""
        try:
            result = await self._rpc("getBalance", [wallet_address])
            lamports = int(result["value"])
        except (UpstreamUnavailable, ValueError, KeyError, TypeError) as e:
            logger.warning(f"[{wallet_address}] getBalance failed, treating as empty: {e}")
            return 0.0
        return lamports / LAMPORTS_PER_SOL

    async def get_token_balances(self, wallet_address: str, program: str) -> list[AssetBalance]:
        """Non-zero token balances held under one token program."""
        program_id = TOKEN_PROGRAMS[program]
        try:
            result = await self._rpc(
                "getTokenAccountsByOwner",
                [wallet_address, {"programId": program_id}, {"encoding": "jsonParsed"}],
            )
            accounts = result["value"]
        except (UpstreamUnavailable, ValueError, KeyError, TypeError) as e:
            logger.warning(
                f"[{wallet_address}] getTokenAccountsByOwner({program}) failed, treating as empty: {e}"
            )
            return []

        if accounts is None:
            accounts = []
        if not isinstance(accounts, list):
            logger.warning(
                f"[{wallet_address}] getTokenAccountsByOwner({program}) returned {type(accounts).__name__}, treating as empty"
            )
            return []

        balances = []
        for account in accounts:
            parsed = _parse_token_account(account, program)
            if parsed is None:
                continue
            if parsed.raw_amount <= 0:
                continue
            balances.append(parsed)
        return balances

    async def fetch_balances(self, wallet_address: str) -> WalletBalances:
        """Native balance plus merged token balances from both programs.

        Queries run one after another to stay inside the node's rate limit.
        """
        native = await self.get_native_balance(wallet_address)

        merged: dict[str, AssetBalance] = {}
        for program in TOKEN_PROGRAMS:
            for bal in await self.get_token_balances(wallet_address, program):
                existing = merged.get(bal.mint)
                if existing is None:
                    merged[bal.mint] = bal
                else:
                    # Several token accounts can hold the same mint
                    existing.raw_amount += bal.raw_amount

        logger.info(
            f"[{wallet_address}] SOL={native:.6f}, token mints={len(merged)}"
        )
        return WalletBalances(native_balance=native, tokens=list(merged.values()))


def _parse_token_account(account: dict, program: str) -> AssetBalance | None:
    """Extract mint/amount/decimals from a jsonParsed token account."""
    try:
        info = account["account"]["data"]["parsed"]["info"]
        token_amount = info["tokenAmount"]
        return AssetBalance(
            mint=info["mint"],
            raw_amount=int(token_amount["amount"]),
            decimals=int(token_amount["decimals"]),
            program=program,
        )
    except (KeyError, TypeError, ValueError) as e:
        logger.debug(f"Skipping unparseable token account: {e}")
        return None
