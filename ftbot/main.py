"""
friend.tech Sell Watcher - Main Entry Point

Commands:
    ftbot watch-sells [--telegram-user-id ID] [--dry-run] [--from-block N]
    ftbot sell-amount LOCAL REMAINING SOLD
    ftbot list-keys [--inactive-days N] [--address ADDR]
    ftbot sell SUBJECT AMOUNT [--yes] [--no-wait]
    ftbot nuke [--delay SECONDS] [--yes]
"""

import argparse
import asyncio
import logging
import sys
import time
from typing import Optional

from ftbot.config.config import Config
from ftbot.services.friend_tech_api import FriendTechAPI
from ftbot.services.friend_tech_contract import FriendTechContract
from ftbot.services.inactive_keys import InactiveKey, find_inactive_keys
from ftbot.services.key_seller import KeySeller, SellOrder, SellResult, orders_from_holdings
from ftbot.services.sell_allocator import InvalidHoldingError, compute_sell_amount
from ftbot.services.sell_watcher import SellWatcher
from ftbot.services.telegram_notifier import TelegramNotifier
from ftbot.services.trade_monitor import MonitorConfig, TradeMonitor
from ftbot.storage.state_store import StateStore
from ftbot.utils.formatting import pluralize, relative_time, round_eth


def setup_logging(level: str = "INFO"):
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )


async def watch_sells(config: Config, from_block: Optional[int] = None):
    """Run the sell watcher until interrupted."""
    print("=" * 60)
    print("friend.tech Sell Watcher")
    print("=" * 60)
    print(f"\n👛 Using wallet {config.chain.wallet_address}")
    print(f"   Provider: {config.chain.node_provider_url}")
    print(f"   Telegram: {'enabled' if config.telegram.enabled else 'disabled'}")
    if config.watch.dry_run:
        print("   🧪 DRY RUN - sells are computed, never submitted")
    if config.watch.dev_mode:
        print("   ⚠️  DEV MODE - reacting to sells of any subject")

    state = StateStore(config.watch.state_path).load()
    contract = FriendTechContract(
        config.chain.node_provider_url,
        private_key=config.chain.private_key,
        contract_address=config.chain.contract_address
    )
    notifier = TelegramNotifier(config.telegram.bot_token, config.telegram.user_id)
    users_api = FriendTechAPI()

    watcher = SellWatcher(
        watched_address=config.chain.wallet_address,
        contract=contract,
        notifier=notifier,
        users_api=users_api,
        dry_run=config.watch.dry_run,
        dev_mode=config.watch.dev_mode,
        throttle_seconds=config.watch.throttle_seconds
    )
    monitor = TradeMonitor(
        contract=contract,
        config=MonitorConfig(
            poll_interval=config.watch.poll_interval,
            block_batch_size=config.watch.block_batch_size,
            start_block=from_block
        ),
        on_trade=watcher.on_trade,
        state=state
    )

    if notifier.enabled:
        await notifier.send("✅ Sell watcher started\\. You will be notified when your keys are sold")

    try:
        await monitor.run_loop()
    finally:
        monitor.stop()
        await users_api.close()
        await notifier.close()
        await contract.close()
        print("✅ Watcher stopped")


def confirm(question: str) -> bool:
    answer = input(f"{question} [y/N] ").strip().lower()
    return answer in ("y", "yes")


async def list_keys(address: str, inactive_days: float) -> list[InactiveKey]:
    """Print held keys of users inactive for `inactive_days`."""
    print(f"🔍 Retrieving keys held by {address}...")
    api = FriendTechAPI()
    try:
        keys = await find_inactive_keys(api, address, inactive_days)
    finally:
        await api.close()

    now_ms = int(time.time() * 1000)
    print(
        f"\n👥 Found {len(keys)} inactive {pluralize('user', len(keys))} "
        f"that have not logged in for at least {inactive_days:g} days\n"
    )
    for key in keys:
        print(
            f"   {key.address}  {key.quantity:>4} {pluralize('key', key.quantity):<4}  "
            f"{round_eth(key.price_eth):>8} ETH  @{key.twitter_username:<16} "
            f"last online {relative_time((key.last_online - now_ms) / 1000)}"
        )
    return keys


async def sell_keys(config: Config, orders: list[SellOrder], delay: float, wait: bool = True) -> list[SellResult]:
    """Execute sell orders with the configured wallet."""
    contract = FriendTechContract(
        config.chain.node_provider_url,
        private_key=config.chain.private_key,
        contract_address=config.chain.contract_address
    )
    try:
        return await KeySeller(contract, delay=delay, wait_for_receipt=wait).sell_orders(orders)
    finally:
        await contract.close()


async def nuke(config: Config, delay: float, assume_yes: bool = False) -> list[SellResult]:
    """Sell every key the wallet holds."""
    address = config.chain.wallet_address
    print(f"👛 Using wallet {address}")

    api = FriendTechAPI()
    try:
        holdings = await api.get_token_holdings(address)
    finally:
        await api.close()

    orders = orders_from_holdings(holdings)
    if not orders:
        print("✅ No keys to sell")
        return []

    total_keys = sum(o.quantity for o in orders)
    print(f"🧨 About to sell {total_keys} {pluralize('key', total_keys)} of {len(orders)} {pluralize('user', len(orders))}")
    if not assume_yes and not (confirm("Sell ALL keys?") and confirm("Are you really sure?")):
        print("🛑 Aborted")
        return []

    return await sell_keys(config, orders, delay)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="ftbot", description="friend.tech key automations")
    parser.add_argument("--env-file", default=".env", help="Path to .env file")
    subparsers = parser.add_subparsers(dest="command", required=True)

    watch = subparsers.add_parser("watch-sells", help="Sell keys proportionally when traders sell yours")
    watch.add_argument("--telegram-user-id", type=int, help="Telegram user id to notify")
    watch.add_argument("--dry-run", action="store_true", help="Compute sells without submitting them")
    watch.add_argument("--from-block", type=int, help="Start from this block instead of the saved cursor")

    amount = subparsers.add_parser("sell-amount", help="Show how many keys the allocator would sell")
    amount.add_argument("local", type=int, help="Keys of the trader you own")
    amount.add_argument("remaining", type=int, help="Keys of yours the trader still holds")
    amount.add_argument("sold", type=int, help="Keys of yours the trader sold")

    keys = subparsers.add_parser("list-keys", help="List held keys of inactive users")
    keys.add_argument("-d", "--inactive-days", type=float, default=7.0, help="Days the user has been inactive")
    keys.add_argument("--address", help="Wallet to inspect (defaults to the configured wallet)")

    sell = subparsers.add_parser("sell", help="Sell keys of one subject")
    sell.add_argument("subject", help="Subject address whose keys are sold")
    sell.add_argument("amount", type=int, help="Number of keys to sell")
    sell.add_argument("-y", "--yes", action="store_true", help="Do not ask for confirmation")
    sell.add_argument("--no-wait", action="store_true", help="Do not wait for the transaction receipt")

    nuke_cmd = subparsers.add_parser("nuke", help="Sell every key the wallet holds")
    nuke_cmd.add_argument("--delay", type=float, default=1.0, help="Delay between orders in seconds")
    nuke_cmd.add_argument("-y", "--yes", action="store_true", help="Do not ask for confirmation")

    return parser


def print_config_errors(errors: list[str]):
    print("❌ Configuration Errors:")
    for e in errors:
        print(f"   - {e}")
    print("\nPlease copy .env.example to .env and fill in your values.")


def main(argv: Optional[list[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    if args.command == "sell-amount":
        try:
            result = compute_sell_amount(args.local, args.remaining, args.sold)
        except InvalidHoldingError as e:
            print(f"❌ {e}", file=sys.stderr)
            return 2
        print(result)
        return 0

    config = Config.load(args.env_file)
    setup_logging(config.log_level)

    if args.command == "list-keys":
        address = args.address or config.chain.wallet_address
        if not address:
            print_config_errors(["PRIVATE_KEY or --address is required"])
            return 1
        asyncio.run(list_keys(address, args.inactive_days))
        return 0

    if args.command == "watch-sells":
        if args.telegram_user_id is not None:
            config.telegram.user_id = args.telegram_user_id
        if args.dry_run:
            config.watch.dry_run = True

    valid, errors = config.validate()
    if not valid:
        print_config_errors(errors)
        return 1

    try:
        if args.command == "sell":
            if args.amount <= 0:
                print(f"❌ Amount must be positive, got {args.amount}", file=sys.stderr)
                return 2
            if not args.yes and not confirm(f"Sell {args.amount} {pluralize('key', args.amount)} of {args.subject}?"):
                print("🛑 Aborted")
                return 0
            orders = [SellOrder(address=args.subject, quantity=args.amount, index=1)]
            results = asyncio.run(sell_keys(config, orders, delay=0, wait=not args.no_wait))
            return 0 if all(r.success for r in results) else 1

        if args.command == "nuke":
            results = asyncio.run(nuke(config, args.delay, assume_yes=args.yes))
            return 0 if all(r.success for r in results) else 1

        asyncio.run(watch_sells(config, from_block=args.from_block))
    except KeyboardInterrupt:
        print("\n\n🛑 Stopped")
    return 0


if __name__ == "__main__":
    sys.exit(main())
