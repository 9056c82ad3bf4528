"""
Configuration module for PocketLedger.

Contains constants, settings, and configuration values used throughout the application.
"""

import logging
import os
from pathlib import Path

from dotenv import load_dotenv

# Version
VERSION = "0.1.0"

# Application paths
PROJECT_ROOT = Path(__file__).parent.parent
DATA_DIR = PROJECT_ROOT / "data"
LOG_DIR = PROJECT_ROOT / "logs"
ENV_FILE = PROJECT_ROOT / ".env"

# Database configuration
DEFAULT_DB_PATH = DATA_DIR / "expenses.db"
DB_TIMEOUT = 10.0  # seconds

# Money handling
REFERENCE_CURRENCY = "USD"
MONEY_PRECISION = 2
DEFAULT_CURRENCY = "USD"

# Expense categories
DEFAULT_CATEGORY = "General"
ALL_CATEGORIES = "All"  # filter sentinel, never stored
CATEGORIES = [
    "Food",
    "Transport",
    "Bills",
    "Entertainment",
    "Loan",
    "General",
]

# Input limits
MAX_WALLET_NAME_LENGTH = 100
MAX_NOTE_LENGTH = 500

# Export configuration
MAX_EXPORT_ENTRIES = 10000
EXPORT_FORMATS = ["xlsx", "csv"]

# Logging configuration
LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
LOG_FILE = "pocketledger.log"
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

# Error messages
ERROR_MESSAGES = {
    "not_initialized": "Database schema is not initialized",
    "unknown_currency": "Unknown currency code: {code}",
    "duplicate_name": "A wallet named '{name}' already exists",
    "wallet_not_found": "Wallet {wallet_id} not found",
    "expense_not_found": "Expense {expense_id} not found",
    "insufficient_balance": "Insufficient balance in wallet {wallet_id}",
    "wallet_required": "A wallet is required for this expense",
    "wallet_in_use": "Wallet {wallet_id} still has {count} expense(s)",
    "storage_failure": "Database error occurred. Please try again later.",
}


def load_environment(env_path: Path = ENV_FILE) -> bool:
    """Load a .env file if it exists. Returns True when one was loaded."""
    if env_path.exists():
        return load_dotenv(env_path)
    return False


def get_db_path() -> Path:
    """Get the database path, honouring POCKETLEDGER_DB_PATH."""
    override = os.getenv("POCKETLEDGER_DB_PATH")
    if override:
        return Path(override)
    return DEFAULT_DB_PATH


def ensure_directories():
    """Ensure required directories exist."""
    DATA_DIR.mkdir(parents=True, exist_ok=True)
    LOG_DIR.mkdir(parents=True, exist_ok=True)


def get_log_level():
    """Get the configured log level."""
    level_map = {
        "DEBUG": logging.DEBUG,
        "INFO": logging.INFO,
        "WARNING": logging.WARNING,
        "ERROR": logging.ERROR,
        "CRITICAL": logging.CRITICAL,
    }
    # Re-read so values from a .env loaded after import still apply
    level = os.getenv("LOG_LEVEL", LOG_LEVEL)
    return level_map.get(level.upper(), logging.INFO)
