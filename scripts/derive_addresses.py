"""Print the CoinTool proxy addresses derived for a wallet."""

from __future__ import annotations

import argparse

from web3 import Web3

from xen_calendar.config.networks import DEFAULT_REGISTRY
from xen_calendar.config.settings import get_app_config
from xen_calendar.utils.address import derive_proxy_address


def main() -> None:
    parser = argparse.ArgumentParser(description="Derive CoinTool proxy addresses offline.")
    parser.add_argument("owner", help="Wallet address that owns the proxies")
    parser.add_argument("count", type=int, help="Number of proxies to derive, starting at index 1")
    parser.add_argument("--chain", default="1", help="Chain id or network name (default: 1)")
    parser.add_argument(
        "--salt",
        action="append",
        default=None,
        help="Salt in hex; repeatable (defaults to fetch.cointool_salts)",
    )
    args = parser.parse_args()

    if not Web3.is_address(args.owner):
        raise SystemExit(f"Invalid owner address: {args.owner}")
    profile = DEFAULT_REGISTRY.resolve(args.chain)
    if profile is None:
        raise SystemExit(f"Unsupported chain: {args.chain}")
    if not profile.cointool_contract:
        raise SystemExit(f"No CoinTool contract on {profile.name}")

    salts = args.salt or get_app_config().fetch.cointool_salts
    for salt in salts:
        for index in range(1, args.count + 1):
            address = derive_proxy_address(profile.cointool_contract, salt, index, args.owner)
            print(f"{salt}\t{index}\t{address}")


if __name__ == "__main__":
    main()
