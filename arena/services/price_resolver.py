"""USD price resolution for Solana assets.

Resolution order for one asset:

1. Stablecoins are worth exactly 1.0; no external call.
2. A fresh cache entry is returned as-is.
3. Otherwise the price comes from Jupiter, either
   - the batched Price API (many mints per request), used for native SOL and
     whenever no raw amount is known, or
   - the Quote API, quoting the actual raw amount into USDC. One request per
     asset, paced by the shared ``jupiter_quote`` rate-limit bucket.
4. If the upstream fails the last cached price is used, then 0.0.

A price failure only ever degrades a single asset; nothing here raises.
"""

import logging

import httpx

from arena.errors import RateLimited, UpstreamUnavailable
from arena.services.price_cache import PriceCache
from arena.services.rate_limiter import RateLimiter
from arena.utils.constants import USDC_DECIMALS, USDC_MINT, WSOL_MINT, is_stablecoin

logger = logging.getLogger(__name__)

PRICE_BATCH_SIZE = 100


def _quote_key(mint: str) -> str:
    return f"quote:{mint}"


def _price_key(mint: str) -> str:
    return f"price:{mint}"


class PriceResolver:
    """Resolves USD unit prices with caching, pacing and fail-soft fallbacks."""

    def __init__(
        self,
        cache: PriceCache,
        limiter: RateLimiter,
        price_api_url: str,
        quote_api_url: str,
        token_pricing: str = "quote",
        slippage_bps: int = 50,
        client: httpx.AsyncClient | None = None,
        timeout: float = 10.0,
    ):
        if token_pricing not in ("quote", "batch"):
            raise ValueError(f"token_pricing must be 'quote' or 'batch', got {token_pricing!r}")
        self.cache = cache
        self.limiter = limiter
        self.price_api_url = price_api_url
        self.quote_api_url = quote_api_url
        self.token_pricing = token_pricing
        self.slippage_bps = slippage_bps
        self.timeout = timeout
        self._client = client
        self._owns_client = client is None

    def _ensure_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self.timeout)
        return self._client

    async def close(self):
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None

    async def _get_json(self, endpoint: str, url: str, params: dict) -> dict:
        await self.limiter.acquire(endpoint)
        try:
            resp = await self._ensure_client().get(url, params=params)
        except httpx.HTTPError as e:
            raise UpstreamUnavailable(f"{endpoint}: {e!r}") from e
        if resp.status_code == 429:
            raise RateLimited(f"{endpoint}: HTTP 429")
        if resp.status_code != 200:
            raise UpstreamUnavailable(f"{endpoint}: HTTP {resp.status_code}")
        data = resp.json()
        if not isinstance(data, dict):
            raise ValueError(f"{endpoint}: expected a JSON object")
        return data

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def get_price(
        self,
        mint: str,
        raw_amount: int | None = None,
        decimals: int | None = None,
    ) -> float:
        """USD unit price for ``mint``; 0.0 when no price can be found.

        ``raw_amount`` and ``decimals`` enable the quote strategy.
        """
        if is_stablecoin(mint):
            return 1.0

        use_quote = (
            self.token_pricing == "quote"
            and mint != WSOL_MINT
            and raw_amount is not None
            and decimals is not None
            and raw_amount > 0
        )
        if use_quote:
            return await self._quote_price(mint, raw_amount, decimals)

        prices = await self.get_prices([mint])
        return prices.get(mint, 0.0)

    async def get_prices(self, mints: list[str]) -> dict[str, float]:
        """Batched lookup. Every requested mint is present in the result."""
        result: dict[str, float] = {}
        missing: list[str] = []
        for mint in dict.fromkeys(mints):
            if is_stablecoin(mint):
                result[mint] = 1.0
                continue
            cached = self.cache.get(_price_key(mint))
            if cached is not None:
                result[mint] = cached
            else:
                missing.append(mint)

        for start in range(0, len(missing), PRICE_BATCH_SIZE):
            chunk = missing[start:start + PRICE_BATCH_SIZE]
            fetched = await self._fetch_price_batch(chunk)
            for mint in chunk:
                price = fetched.get(mint, 0.0)
                if price > 0:
                    self.cache.set(_price_key(mint), price)
                    result[mint] = price
                else:
                    result[mint] = self._fallback(_price_key(mint), mint)
        return result

    async def get_native_price(self) -> float:
        """USD price of SOL."""
        return (await self.get_prices([WSOL_MINT]))[WSOL_MINT]

    # ------------------------------------------------------------------
    # Strategies
    # ------------------------------------------------------------------

    async def _fetch_price_batch(self, mints: list[str]) -> dict[str, float]:
        """Call the Price API for one chunk. Failures yield an empty map."""
        try:
            data = await self._get_json(
                "jupiter_price", self.price_api_url, {"ids": ",".join(mints)}
            )
        except (UpstreamUnavailable, ValueError) as e:
            logger.warning(f"Price API failed for {len(mints)} mint(s): {e}")
            return {}

        payload = data.get("data") or {}
        if not isinstance(payload, dict):
            logger.warning(f"Price API returned malformed data for {len(mints)} mint(s): {type(payload).__name__}")
            return {}

        prices: dict[str, float] = {}
        for mint, info in payload.items():
            if not isinstance(info, dict):
                continue
            try:
                price = float(info.get("price") or 0.0)
            except (TypeError, ValueError):
                continue
            if price > 0:
                prices[mint] = price
        logger.debug(f"Price API returned {len(prices)}/{len(mints)} prices")
        return prices

    async def _quote_price(self, mint: str, raw_amount: int, decimals: int) -> float:
        """Unit price from a USDC quote for the actual holding size."""
        key = _quote_key(mint)
        cached = self.cache.get(key)
        if cached is not None:
            return cached

        try:
            data = await self._get_json(
                "jupiter_quote",
                self.quote_api_url,
                {
                    "inputMint": mint,
                    "outputMint": USDC_MINT,
                    "amount": str(raw_amount),
                    "slippageBps": self.slippage_bps,
                },
            )
            out_amount = int(data["outAmount"])
        except (UpstreamUnavailable, ValueError, KeyError, TypeError) as e:
            logger.warning(f"Quote failed for {mint}: {e}")
            return self._fallback(key, mint)

        balance = raw_amount / 10 ** decimals
        usd_value = out_amount / 10 ** USDC_DECIMALS
        price = usd_value / balance if balance > 0 else 0.0
        if price <= 0:
            logger.info(f"No USDC route value for {mint}")
            return self._fallback(key, mint)

        self.cache.set(key, price)
        return price

    def _fallback(self, key: str, mint: str) -> float:
        stale = self.cache.get_stale(key)
        if stale is not None:
            logger.info(f"Using stale cached price for {mint}: ${stale:.6f}")
            return stale
        return 0.0
