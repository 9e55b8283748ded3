"""Error types raised by the valuation and sync engine."""


class ArenaError(Exception):
    """Base class for engine errors."""


class UpstreamUnavailable(ArenaError):
    """A blockchain node or price API was unreachable or answered non-200."""


class RateLimited(UpstreamUnavailable):
    """An upstream answered HTTP 429."""


class AgentNotFound(ArenaError):
    """No agent is registered for the wallet address."""

    message = "Agent not found"

    def __init__(self, wallet_address: str):
        super().__init__(self.message)
        self.wallet_address = wallet_address


class PersistenceFailure(ArenaError):
    """Writing the agent's equity and snapshot failed; nothing was committed."""
