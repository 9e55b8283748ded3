"""Tests for the Solana balance fetcher: both token programs, dust and fail-soft behavior."""

import httpx
import pytest

from arena.services.solana_rpc import SolanaBalanceFetcher
from tests.fakes import (
    BONK, JUP, KALSHI_YES, RPC_URL, USDC, WALLET_A,
    FakeChain, FakeJupiter, fast_limiter, make_http_client,
)


def _fetcher(chain: FakeChain) -> SolanaBalanceFetcher:
    client = make_http_client(chain, FakeJupiter())
    return SolanaBalanceFetcher(RPC_URL, limiter=fast_limiter(), client=client)


@pytest.fixture
def funded_chain() -> FakeChain:
    return FakeChain({
        WALLET_A: {
            "lamports": 2_500_000_000,
            "spl": [(USDC, 10_000_000, 6), (BONK, 0, 5), (JUP, 3_000_000, 6)],
            "token2022": [(KALSHI_YES, 42_000_000, 6)],
        }
    })


@pytest.mark.asyncio
async def test_fetch_reads_native_and_both_token_programs(funded_chain):
    balances = await _fetcher(funded_chain).fetch_balances(WALLET_A)

    assert balances.native_balance == pytest.approx(2.5)
    by_mint = {t.mint: t for t in balances.tokens}
    assert set(by_mint) == {USDC, JUP, KALSHI_YES}
    assert by_mint[USDC].balance == pytest.approx(10.0)
    assert by_mint[KALSHI_YES].program == "token2022"
    assert funded_chain.calls == ["getBalance", "getTokenAccountsByOwner", "getTokenAccountsByOwner"]


@pytest.mark.asyncio
async def test_zero_balance_accounts_are_dropped(funded_chain):
    balances = await _fetcher(funded_chain).fetch_balances(WALLET_A)
    assert BONK not in {t.mint for t in balances.tokens}


@pytest.mark.asyncio
async def test_duplicate_accounts_for_same_mint_are_merged():
    chain = FakeChain({WALLET_A: {"spl": [(USDC, 1_000_000, 6), (USDC, 2_500_000, 6)]}})
    balances = await _fetcher(chain).fetch_balances(WALLET_A)

    assert len(balances.tokens) == 1
    assert balances.tokens[0].raw_amount == 3_500_000


@pytest.mark.asyncio
async def test_failed_program_query_yields_empty_for_that_program_only(funded_chain):
    funded_chain.failing_programs.add("spl")
    balances = await _fetcher(funded_chain).fetch_balances(WALLET_A)

    assert balances.native_balance == pytest.approx(2.5)
    assert [t.mint for t in balances.tokens] == [KALSHI_YES]


@pytest.mark.asyncio
async def test_malformed_result_is_treated_as_empty(funded_chain):
    funded_chain.malformed_programs.add("token2022")
    balances = await _fetcher(funded_chain).fetch_balances(WALLET_A)

    assert {t.mint for t in balances.tokens} == {USDC, JUP}


@pytest.mark.asyncio
@pytest.mark.parametrize("value", [5, "accounts", {"pubkey": "x"}])
async def test_non_list_account_value_is_treated_as_empty(funded_chain, value):
    funded_chain.raw_results["token2022"] = {"context": {"slot": 1}, "value": value}
    balances = await _fetcher(funded_chain).fetch_balances(WALLET_A)

    assert {t.mint for t in balances.tokens} == {USDC, JUP}
    assert balances.native_balance == pytest.approx(2.5)


@pytest.mark.asyncio
async def test_unparseable_account_entries_are_skipped(funded_chain):
    funded_chain.raw_results["token2022"] = {"context": {"slot": 1}, "value": [5, None, {"account": {}}]}
    balances = await _fetcher(funded_chain).fetch_balances(WALLET_A)

    assert {t.mint for t in balances.tokens} == {USDC, JUP}


@pytest.mark.asyncio
async def test_native_balance_outage_does_not_block_tokens(funded_chain):
    funded_chain.failing_methods.add("getBalance")
    balances = await _fetcher(funded_chain).fetch_balances(WALLET_A)

    assert balances.native_balance == 0.0
    assert len(balances.tokens) == 3


@pytest.mark.asyncio
async def test_unreachable_node_returns_empty_balances():
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    fetcher = SolanaBalanceFetcher(RPC_URL, limiter=fast_limiter(), client=client)

    balances = await fetcher.fetch_balances(WALLET_A)

    assert balances.native_balance == 0.0
    assert balances.tokens == []


@pytest.mark.asyncio
async def test_non_json_body_is_treated_as_empty():
    client = httpx.AsyncClient(
        transport=httpx.MockTransport(lambda request: httpx.Response(200, text="<html>oops</html>"))
    )
    fetcher = SolanaBalanceFetcher(RPC_URL, limiter=fast_limiter(), client=client)

    balances = await fetcher.fetch_balances(WALLET_A)

    assert balances.native_balance == 0.0
    assert balances.tokens == []
