"""CLI tool for admin operations.

Usage:
    python -m arena.cli init-db
    python -m arena.cli register <name> <wallet>
    python -m arena.cli sync <wallet>
    python -m arena.cli sync-all
    python -m arena.cli value <wallet>
"""

import asyncio
import json
import sys

from pydantic import ValidationError

from arena.database import engine, create_db_and_tables
from arena.engine.store import AgentStore
from arena.schemas.agent import AgentRegister
from arena.utils.logging import setup_logging


def init_db():
    create_db_and_tables()
    print("Database tables created.")


def register(name: str, wallet_address: str):
    """Register an agent with zeroed equity."""
    create_db_and_tables()
    try:
        data = AgentRegister(name=name, wallet_address=wallet_address)
    except ValidationError as e:
        print(f"Invalid input: {e}")
        sys.exit(1)

    store = AgentStore(engine)
    if store.find_agent_by_wallet(data.wallet_address):
        print(f"Wallet '{data.wallet_address}' is already registered.")
        sys.exit(1)

    agent = store.register_agent(data.name, data.wallet_address)
    print(f"Agent '{agent.name}' registered with id {agent.id}.")


async def _run(command: str, wallet_address: str | None = None):
    from arena.engine.wallet_sync import get_sync_service, close_sync_service

    service = get_sync_service()
    try:
        if command == "sync":
            result = (await service.sync_one(wallet_address)).to_dict()
        elif command == "sync-all":
            result = (await service.sync_all()).to_dict()
        else:
            result = (await service.calculate_value(wallet_address)).to_dict()
    finally:
        await close_sync_service()
    return result


def main():
    if len(sys.argv) < 2:
        print(__doc__)
        sys.exit(1)

    setup_logging()
    command = sys.argv[1]
    args = sys.argv[2:]

    if command == "init-db":
        init_db()
    elif command == "register" and len(args) == 2:
        register(args[0], args[1])
    elif command in ("sync", "value") and len(args) == 1:
        create_db_and_tables()
        result = asyncio.run(_run(command, args[0]))
        print(json.dumps(result, indent=2, default=str))
        if command == "sync" and not result["success"]:
            sys.exit(1)
    elif command == "sync-all":
        create_db_and_tables()
        result = asyncio.run(_run(command))
        print(json.dumps(result, indent=2, default=str))
    else:
        print(f"Unknown command or wrong arguments: {' '.join(sys.argv[1:])}")
        print(__doc__)
        sys.exit(1)


if __name__ == "__main__":
    main()
