#!/usr/bin/env python3
"""Diagnose provider routing for one pair against live upstreams.

Usage:
    python scripts/quote_check.py ethereum usdc base usdc 100
    python scripts/quote_check.py solana usdt tron usdt 50 \
        --wallet SOLANA=<pubkey> --wallet EVM=0x... --wallet TRON=T...
"""

import argparse
import asyncio
import json
import sys

from dotenv import load_dotenv

load_dotenv()

from routerex.chains import family_of  # noqa: E402
from routerex.web.contracts.quotes import QuoteRequest  # noqa: E402
from routerex.web.contracts.route_plans import RoutePlanRequest, WalletContext  # noqa: E402
from routerex.web.dependencies import get_services, shutdown_services  # noqa: E402

# Colors for output
GREEN = "\033[92m"
RED = "\033[91m"
RESET = "\033[0m"


def parse_wallets(values: list[str]) -> WalletContext:
    wallets = {}
    for value in values:
        family, sep, address = value.partition("=")
        if not sep or not address:
            raise SystemExit(f"Invalid --wallet value: {value} (expected FAMILY=ADDRESS)")
        wallets[family.strip().lower()] = address.strip()
    return WalletContext(**wallets)


async def run(args: argparse.Namespace) -> bool:
    services = get_services()
    try:
        wallets = parse_wallets(args.wallet)
        if family_of(args.from_network) == family_of(args.to_network):
            result = await services.quotes.get_quote(QuoteRequest(
                amount=args.amount,
                from_token_id=args.from_token,
                to_token_id=args.to_token,
                from_network_id=args.from_network,
                to_network_id=args.to_network,
                user_address=args.user or wallets.address_for(family_of(args.from_network)),
            ))
        else:
            result = await services.route_plans.build_plan(RoutePlanRequest(
                from_network_id=args.from_network,
                to_network_id=args.to_network,
                from_token_id=args.from_token,
                to_token_id=args.to_token,
                amount=args.amount,
                wallets=wallets,
            ))
        color = GREEN if result.ok else RED
        print(f"{color}{'OK' if result.ok else result.error_code}{RESET}")
        print(json.dumps(result.model_dump(by_alias=True, exclude_none=True, mode="json"), indent=2))
        return result.ok
    finally:
        await shutdown_services()


def main() -> int:
    parser = argparse.ArgumentParser(description="Quote / route plan diagnostic")
    parser.add_argument("from_network")
    parser.add_argument("from_token")
    parser.add_argument("to_network")
    parser.add_argument("to_token")
    parser.add_argument("amount")
    parser.add_argument("--user", help="User address for an executable quote")
    parser.add_argument("--wallet", action="append", default=[], help="FAMILY=ADDRESS, repeatable")
    args = parser.parse_args()
    return 0 if asyncio.run(run(args)) else 1


if __name__ == "__main__":
    sys.exit(main())
