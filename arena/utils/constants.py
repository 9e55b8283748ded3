"""Shared constants: Solana program ids, well-known mints, schedule intervals."""

# Token programs. Assets can live under either, so balances are read from both.
SPL_TOKEN_PROGRAM_ID = "TokenkegQfeZyiNwAJbNbGKPFXCWuBvf9Ss623VQ5DA"
TOKEN_2022_PROGRAM_ID = "TokenzQdBNbLqP5VEhdkAS6EPFLC1PHnBqCXEpPxuEb"

TOKEN_PROGRAMS: dict[str, str] = {
    "spl": SPL_TOKEN_PROGRAM_ID,
    "token2022": TOKEN_2022_PROGRAM_ID,
}

LAMPORTS_PER_SOL = 1_000_000_000

# Wrapped SOL mint; price APIs key native SOL by it
WSOL_MINT = "So11111111111111111111111111111111111111112"
USDC_MINT = "EPjFWdd5AufqSSqeM2qN1xzybapC8G4wEGGkZwyTDt1v"
USDC_DECIMALS = 6

# Priced at exactly 1.0 USD, never sent to a price API
STABLECOINS: dict[str, str] = {
    USDC_MINT: "USDC",
    "Es9vMFrzaCERmJfrF4H2FYD4KCoNkY11McCe8BenwNYB": "USDT",
    "USDH1SM1ojwWUga67PGrgFWUHibbjqMvuMaDkRJTgkX": "USDH",
}

KNOWN_SYMBOLS: dict[str, str] = {
    WSOL_MINT: "SOL",
    **STABLECOINS,
}

VALID_INTERVALS = ["1m", "5m", "15m", "30m", "1h", "2h", "4h", "8h", "1d"]

# Interval to hours mapping for APScheduler
INTERVAL_HOURS: dict[str, float] = {
    "1m": 1 / 60,
    "5m": 5 / 60,
    "15m": 0.25,
    "30m": 0.5,
    "1h": 1.0,
    "2h": 2.0,
    "4h": 4.0,
    "8h": 8.0,
    "1d": 24.0,
}

# Equity curve bucket sizes (pandas offset aliases)
CURVE_INTERVALS: dict[str, str] = {
    "15m": "15min",
    "1h": "1h",
    "1d": "1D",
}


def is_stablecoin(mint: str) -> bool:
    return mint in STABLECOINS


def symbol_for(mint: str) -> str:
    """Display symbol for a mint, falling back to a shortened address."""
    if mint in KNOWN_SYMBOLS:
        return KNOWN_SYMBOLS[mint]
    return f"{mint[:4]}...{mint[-4:]}" if len(mint) > 8 else mint
