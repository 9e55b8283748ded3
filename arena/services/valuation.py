"""Wallet valuation: balances x prices -> breakdown and totals."""

import logging
from dataclasses import asdict, dataclass, field

from arena.services.price_resolver import PriceResolver
from arena.services.solana_rpc import SolanaBalanceFetcher, WalletBalances
from arena.utils.constants import WSOL_MINT, is_stablecoin, symbol_for

logger = logging.getLogger(__name__)


@dataclass
class PricedHolding:
    mint: str
    symbol: str
    balance: float
    price: float
    value: float
    is_stablecoin: bool = False


@dataclass
class WalletValuation:
    total_value: float = 0.0
    stablecoin_balance: float = 0.0
    non_stablecoin_value: float = 0.0
    breakdown: list[PricedHolding] = field(default_factory=list)

    def to_dict(self) -> dict:
        return asdict(self)


class WalletValuator:
    """Values a wallet from its on-chain balances.

    Policy: native SOL, every stablecoin at 1.0 and every other SPL or
    Token-2022 asset that prices at or above ``min_value_usd``.
    """

    def __init__(
        self,
        fetcher: SolanaBalanceFetcher,
        resolver: PriceResolver,
        min_value_usd: float = 0.01,
        min_native_balance: float = 0.0001,
    ):
        self.fetcher = fetcher
        self.resolver = resolver
        self.min_value_usd = min_value_usd
        self.min_native_balance = min_native_balance

    async def calculate_value(self, wallet_address: str) -> WalletValuation:
        """Fetch balances and price them. Read-only."""
        balances = await self.fetcher.fetch_balances(wallet_address)
        return await self.value_balances(wallet_address, balances)

    async def value_balances(self, wallet_address: str, balances: WalletBalances) -> WalletValuation:
        valuation = WalletValuation()

        # Native SOL; dust is skipped before any price lookup
        if balances.native_balance >= self.min_native_balance:
            sol_price = await self.resolver.get_native_price()
            self._add_priced(valuation, WSOL_MINT, balances.native_balance, sol_price)

        # Stablecoins first so their totals never wait on price calls
        stables = [t for t in balances.tokens if is_stablecoin(t.mint)]
        others = [t for t in balances.tokens if not is_stablecoin(t.mint)]

        for token in stables:
            valuation.stablecoin_balance += token.balance
            valuation.breakdown.append(PricedHolding(
                mint=token.mint,
                symbol=symbol_for(token.mint),
                balance=token.balance,
                price=1.0,
                value=token.balance,
                is_stablecoin=True,
            ))

        # Sequential on purpose: one upstream call in flight per wallet
        for token in others:
            price = await self.resolver.get_price(token.mint, token.raw_amount, token.decimals)
            self._add_priced(valuation, token.mint, token.balance, price)

        valuation.total_value = valuation.stablecoin_balance + valuation.non_stablecoin_value

        logger.info(
            f"[{wallet_address}] Total=${valuation.total_value:.2f} "
            f"(stable=${valuation.stablecoin_balance:.2f}, "
            f"other=${valuation.non_stablecoin_value:.2f}, "
            f"holdings={len(valuation.breakdown)})"
        )
        return valuation

    def _add_priced(self, valuation: WalletValuation, mint: str, balance: float, price: float):
        value = balance * price
        if price <= 0 or value < self.min_value_usd:
            logger.debug(f"Dropping {symbol_for(mint)}: balance={balance}, price={price}")
            return
        valuation.non_stablecoin_value += value
        valuation.breakdown.append(PricedHolding(
            mint=mint,
            symbol=symbol_for(mint),
            balance=balance,
            price=price,
            value=value,
        ))
