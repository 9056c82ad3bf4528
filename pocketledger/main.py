"""
Demo script for the PocketLedger expense tracker.

Opens the configured database, sets up two wallets in different
currencies and walks through the ledger operations, printing balances
and totals along the way.
"""

import logging
import sys
from datetime import date

from pocketledger.config import (
    LOG_DIR,
    LOG_FILE,
    LOG_FORMAT,
    ensure_directories,
    get_db_path,
    get_log_level,
    load_environment,
)
from pocketledger.currency import format_money
from pocketledger.db import ExpenseBook

logger = logging.getLogger(__name__)


def setup_logging():
    """Configure logging to a file and stdout."""
    ensure_directories()
    logging.basicConfig(
        level=get_log_level(),
        format=LOG_FORMAT,
        handlers=[
            logging.FileHandler(LOG_DIR / LOG_FILE),
            logging.StreamHandler(sys.stdout),
        ],
    )


def print_wallets(book: ExpenseBook):
    for wallet in book.reports.fetch_wallets().unwrap():
        print(
            f"  {wallet.name:<10} {format_money(wallet.amount, wallet.currency):>14}"
            f"  ({format_money(wallet.normalized_amount, 'USD')})"
        )


def main():
    env_loaded = load_environment()
    setup_logging()
    if env_loaded:
        logger.info("Loaded environment from .env")

    db_path = get_db_path()
    today = date.today().isoformat()

    print("=" * 60)
    print("PocketLedger Demo")
    print("=" * 60)
    print(f"Database: {db_path}")

    with ExpenseBook(db_path) as book:
        if not book.is_ready:
            print("Database schema could not be initialized, see the log.")
            sys.exit(1)

        cash = book.ledger.create_wallet("Cash", 100, "USD")
        bank = book.ledger.create_wallet("Bank", 1000, "NGN")
        for result in (cash, bank):
            if not result.success:
                print(f"  Skipped wallet: {result.error.message}")

        wallets = {w.name: w for w in book.reports.fetch_wallets().unwrap()}
        print("\nWallets:")
        print_wallets(book)

        print("\nRecording expenses...")
        attempts = [
            (30.0, "Lunch", "Food", "Cash", "USD"),
            (5.0, "Bus fare", "Transport", "Bank", "USD"),
            (500.0, "Airtime", "Bills", "Bank", "NGN"),
        ]
        for amount, note, category, wallet_name, currency in attempts:
            result = book.ledger.insert_expense(
                amount, note, today, category, wallets[wallet_name].id, currency
            )
            status = "ok" if result.success else f"failed: {result.error.message}"
            print(f"  {note:<10} {amount:>8} {currency} from {wallet_name}: {status}")

        print("\nWallets:")
        print_wallets(book)

        daily = book.reports.daily_total(today).unwrap()
        monthly = book.reports.monthly_total(today[:7]).unwrap()
        print(f"\nToday:      {format_money(daily, 'USD')}")
        print(f"This month: {format_money(monthly, 'USD')}")


if __name__ == "__main__":
    main()
