"""
Ledger engine: the only code allowed to change wallet balances.

Handles wallet creation, edits and removal, and the expense operations
that move money out of (and back into) wallets:
- Inserting an expense debits its wallet
- Updating an expense adjusts one wallet, or refunds one and debits another
- Deleting an expense refunds its wallet

Every mutating method runs inside one transaction scope, so a failure at
any step leaves both tables exactly as they were.
"""

import logging
import math
import sqlite3
from datetime import date as date_type
from datetime import datetime
from decimal import Decimal
from typing import Optional, Union

from pocketledger.config import (
    CATEGORIES,
    DEFAULT_CATEGORY,
    DEFAULT_CURRENCY,
    ERROR_MESSAGES,
    MAX_NOTE_LENGTH,
    MAX_WALLET_NAME_LENGTH,
)
from pocketledger.currency import CurrencyTable, get_currency_table, round_money
from pocketledger.errors import (
    DuplicateNameError,
    ExpenseNotFoundError,
    InsufficientBalanceError,
    InvalidInputError,
    WalletInUseError,
    WalletNotFoundError,
    WalletRequiredError,
)

from .base import Database, ledger_operation
from .models import Expense, Wallet
from .schema import SchemaManager

logger = logging.getLogger(__name__)

DateLike = Union[str, date_type]


# =============================================================================
# Input validation
# =============================================================================


def _validate_amount(value, field: str = "amount", allow_zero: bool = False) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float, Decimal)):
        raise InvalidInputError(f"Invalid {field}: {value!r}")
    try:
        finite = not (math.isnan(value) or math.isinf(value))
    except (TypeError, ValueError):
        finite = False
    if not finite:
        raise InvalidInputError(f"Invalid {field}: {value!r}")
    rounded = round_money(value)
    if value < 0 or (rounded == 0 and not allow_zero):
        raise InvalidInputError(f"{field.capitalize()} must be positive: {value}")
    return rounded


def _validate_wallet_id(wallet_id) -> Optional[int]:
    """Return the wallet ID, or None when none was given."""
    if not wallet_id and not isinstance(wallet_id, bool):
        return None
    if isinstance(wallet_id, bool) or not isinstance(wallet_id, int):
        raise InvalidInputError(f"Invalid wallet ID: {wallet_id!r}")
    return wallet_id


def _validate_name(name) -> str:
    if not isinstance(name, str) or not name.strip():
        raise InvalidInputError("Wallet name must not be empty")
    name = name.strip()
    if len(name) > MAX_WALLET_NAME_LENGTH:
        raise InvalidInputError(
            f"Wallet name longer than {MAX_WALLET_NAME_LENGTH} characters"
        )
    return name


def _validate_date(value: DateLike) -> str:
    if isinstance(value, datetime):
        return value.date().isoformat()
    if isinstance(value, date_type):
        return value.isoformat()
    try:
        parsed = date_type.fromisoformat(value)
    except (TypeError, ValueError):
        raise InvalidInputError(f"Invalid date, expected YYYY-MM-DD: {value!r}")
    if parsed.isoformat() != value:
        raise InvalidInputError(f"Invalid date, expected YYYY-MM-DD: {value!r}")
    return value


def _validate_category(category: Optional[str]) -> str:
    if not category:
        return DEFAULT_CATEGORY
    if category not in CATEGORIES:
        raise InvalidInputError(f"Unknown category: {category}")
    return category


def _validate_note(note: Optional[str]) -> str:
    note = (note or "").strip()
    if len(note) > MAX_NOTE_LENGTH:
        raise InvalidInputError(f"Note longer than {MAX_NOTE_LENGTH} characters")
    return note


def _is_duplicate_name(error: sqlite3.IntegrityError) -> bool:
    message = str(error)
    return "UNIQUE" in message and "wallets.name" in message


class LedgerEngine:
    """
    Money-conserving wallet and expense operations.

    Each public method returns an ``OperationResult``. For every wallet the
    reference balance always equals its funding minus the normalized
    amounts of the expenses currently pointing at it.
    """

    def __init__(
        self,
        database: Database,
        schema: SchemaManager,
        currencies: Optional[CurrencyTable] = None,
    ):
        """
        Initialize the ledger engine.

        Args:
            database: Shared persistence adapter
            schema: Schema manager gating every operation
            currencies: Currency table used for conversions
        """
        self.database = database
        self.schema = schema
        self.currencies = get_currency_table(currencies)

    # =========================================================================
    # Wallet Operations
    # =========================================================================

    @ledger_operation("create_wallet")
    def create_wallet(
        self, name: str, amount: float, currency: str = DEFAULT_CURRENCY
    ) -> Wallet:
        """
        Create a wallet funded with ``amount`` in its own currency.

        Raises (as a failed result):
            DuplicateNameError: another wallet already has this name
            UnknownCurrencyError: the currency code is not in the table
        """
        name = _validate_name(name)
        amount = _validate_amount(amount, "amount", allow_zero=True)
        normalized = self.currencies.convert_to_reference(amount, currency)

        with self.database.transaction("create_wallet"):
            try:
                result = self.database.run(
                    """
                    INSERT INTO wallets (name, amount, normalizedAmount, currency)
                    VALUES (?, ?, ?, ?)
                    """,
                    (name, amount, normalized, currency),
                    label="create_wallet:insert_row",
                )
            except sqlite3.IntegrityError as e:
                if _is_duplicate_name(e):
                    raise DuplicateNameError(
                        ERROR_MESSAGES["duplicate_name"].format(name=name)
                    ) from e
                raise

        wallet = Wallet(
            id=result.last_row_id,
            name=name,
            amount=amount,
            normalized_amount=normalized,
            currency=currency,
        )
        logger.info(f"Created wallet {wallet.id} '{name}' ({amount} {currency})")
        return wallet

    @ledger_operation("update_wallet")
    def update_wallet(
        self, wallet_id: int, name: str, amount: float, currency: str
    ) -> Wallet:
        """
        Overwrite a wallet's name, balance and currency.

        This is a correction, not a transaction: the reference balance is
        recomputed from the new amount and currency, and expense history is
        not consulted.
        """
        name = _validate_name(name)
        amount = _validate_amount(amount, "amount", allow_zero=True)
        normalized = self.currencies.convert_to_reference(amount, currency)

        with self.database.transaction("update_wallet"):
            self._load_wallet(wallet_id, label="update_wallet:select_wallet")
            try:
                self.database.run(
                    """
                    UPDATE wallets
                    SET name = ?, amount = ?, normalizedAmount = ?, currency = ?
                    WHERE id = ?
                    """,
                    (name, amount, normalized, currency, wallet_id),
                    label="update_wallet:update_row",
                )
            except sqlite3.IntegrityError as e:
                if _is_duplicate_name(e):
                    raise DuplicateNameError(
                        ERROR_MESSAGES["duplicate_name"].format(name=name)
                    ) from e
                raise

        logger.info(f"Updated wallet {wallet_id} '{name}' ({amount} {currency})")
        return Wallet(
            id=wallet_id,
            name=name,
            amount=amount,
            normalized_amount=normalized,
            currency=currency,
        )

    @ledger_operation("delete_wallet")
    def delete_wallet(self, wallet_id: int) -> int:
        """
        Remove a wallet that no expense refers to.

        Returns:
            The deleted wallet's ID

        Raises (as a failed result):
            WalletNotFoundError: no such wallet
            WalletInUseError: expenses still point at the wallet
        """
        with self.database.transaction("delete_wallet"):
            self._load_wallet(wallet_id, label="delete_wallet:select_wallet")
            row = self.database.query_one(
                "SELECT COUNT(*) AS count FROM expenses WHERE walletId = ?",
                (wallet_id,),
                label="delete_wallet:count_expenses",
            )
            count = row["count"] if row else 0
            if count:
                raise WalletInUseError(
                    ERROR_MESSAGES["wallet_in_use"].format(
                        wallet_id=wallet_id, count=count
                    )
                )
            self.database.run(
                "DELETE FROM wallets WHERE id = ?",
                (wallet_id,),
                label="delete_wallet:delete_row",
            )

        logger.info(f"Deleted wallet {wallet_id}")
        return wallet_id

    # =========================================================================
    # Expense Operations
    # =========================================================================

    @ledger_operation("insert_expense")
    def insert_expense(
        self,
        amount: float,
        note: str,
        date: DateLike,
        category: Optional[str],
        wallet_id: Optional[int],
        currency: str = DEFAULT_CURRENCY,
    ) -> Expense:
        """
        Record an expense and debit its wallet.

        The expense's reference value is converted into the wallet's own
        currency to find the local debit. The wallet must cover that debit.

        Raises (as a failed result):
            WalletRequiredError: no wallet given
            WalletNotFoundError: the wallet does not exist
            InsufficientBalanceError: the debit exceeds the wallet balance
            UnknownCurrencyError: the currency code is not in the table
        """
        amount = _validate_amount(amount)
        note = _validate_note(note)
        date = _validate_date(date)
        category = _validate_category(category)
        wallet_id = _validate_wallet_id(wallet_id)
        if wallet_id is None:
            raise WalletRequiredError(ERROR_MESSAGES["wallet_required"])
        normalized = self.currencies.convert_to_reference(amount, currency)

        with self.database.transaction("insert_expense"):
            wallet = self._load_wallet(wallet_id, label="insert_expense:select_wallet")
            # Even in the wallet's own currency the debit goes through the
            # rounded reference value, so 400 LBP (0.00 USD) debits nothing.
            local_debit = self.currencies.convert_from_reference(
                normalized, wallet.currency
            )
            self._check_balance(wallet, local_debit)

            result = self.database.run(
                """
                INSERT INTO expenses (
                    amount, normalizedAmount, note, date, category, currency, walletId
                ) VALUES (?, ?, ?, ?, ?, ?, ?)
                """,
                (amount, normalized, note, date, category, currency, wallet_id),
                label="insert_expense:insert_row",
            )
            self._adjust_wallet(
                wallet, -local_debit, -normalized, label="insert_expense:debit_wallet"
            )

        expense = Expense(
            id=result.last_row_id,
            amount=amount,
            normalized_amount=normalized,
            note=note,
            date=date,
            category=category,
            currency=currency,
            wallet_id=wallet_id,
        )
        logger.info(
            f"Inserted expense {expense.id}: {amount} {currency} "
            f"from wallet {wallet_id} (-{local_debit} {wallet.currency})"
        )
        return expense

    @ledger_operation("update_expense")
    def update_expense(
        self,
        expense_id: int,
        amount: float,
        note: str,
        date: DateLike,
        category: Optional[str],
        currency: str,
        wallet_id: Optional[int],
    ) -> Expense:
        """
        Rewrite an expense and rebalance the wallet(s) it touches.

        When the wallet is unchanged only the difference in reference value
        is applied, and only an increase is checked against the balance.
        When the expense moves, the old wallet is refunded in full and the
        new wallet must cover the whole new amount from its own balance.
        """
        amount = _validate_amount(amount)
        note = _validate_note(note)
        date = _validate_date(date)
        category = _validate_category(category)
        wallet_id = _validate_wallet_id(wallet_id)
        new_normalized = self.currencies.convert_to_reference(amount, currency)

        with self.database.transaction("update_expense"):
            old, old_wallet = self._load_expense(
                expense_id, label="update_expense:select_old_expense"
            )
            if wallet_id is None:
                raise WalletRequiredError(ERROR_MESSAGES["wallet_required"])

            if old.wallet_id == wallet_id:
                if old_wallet is None:
                    raise WalletNotFoundError(
                        ERROR_MESSAGES["wallet_not_found"].format(wallet_id=wallet_id)
                    )
                normalized_delta = round_money(new_normalized - old.normalized_amount)
                local_delta = self.currencies.convert_from_reference(
                    normalized_delta, old_wallet.currency
                )
                if local_delta > 0:
                    self._check_balance(old_wallet, local_delta)

                self._write_expense(
                    expense_id, amount, new_normalized, note, date, category,
                    currency, wallet_id, label="update_expense:update_row_same_wallet",
                )
                if normalized_delta != 0 or local_delta != 0:
                    self._adjust_wallet(
                        old_wallet,
                        -local_delta,
                        -normalized_delta,
                        label="update_expense:update_wallet_same_wallet",
                    )
            else:
                if old.wallet_id is not None and old_wallet is None:
                    raise WalletNotFoundError(
                        ERROR_MESSAGES["wallet_not_found"].format(
                            wallet_id=old.wallet_id
                        )
                    )
                new_wallet = self._load_wallet(
                    wallet_id, label="update_expense:select_new_wallet"
                )
                if old_wallet is not None and new_wallet.id == old_wallet.id:
                    # Same row: both adjustments must compound on one copy
                    new_wallet = old_wallet
                new_local = self.currencies.convert_from_reference(
                    new_normalized, new_wallet.currency
                )
                self._check_balance(new_wallet, new_local)

                self._write_expense(
                    expense_id, amount, new_normalized, note, date, category,
                    currency, wallet_id, label="update_expense:update_row_new_wallet",
                )
                if old_wallet is not None:
                    refund = self.currencies.convert_from_reference(
                        old.normalized_amount, old_wallet.currency
                    )
                    self._adjust_wallet(
                        old_wallet,
                        refund,
                        old.normalized_amount,
                        label="update_expense:credit_old_wallet",
                    )
                self._adjust_wallet(
                    new_wallet,
                    -new_local,
                    -new_normalized,
                    label="update_expense:debit_new_wallet",
                )

        logger.info(
            f"Updated expense {expense_id}: {amount} {currency} on wallet {wallet_id}"
        )
        return Expense(
            id=expense_id,
            amount=amount,
            normalized_amount=new_normalized,
            note=note,
            date=date,
            category=category,
            currency=currency,
            wallet_id=wallet_id,
        )

    @ledger_operation("delete_expense")
    def delete_expense(self, expense_id: int) -> Expense:
        """
        Delete an expense and refund its wallet.

        The frozen reference value is converted back at the wallet's current
        rate. Expenses without a wallet are deleted without a refund.

        Returns:
            The deleted expense
        """
        with self.database.transaction("delete_expense"):
            expense, wallet = self._load_expense(
                expense_id, label="delete_expense:select_expense"
            )
            if wallet is not None:
                refund = self.currencies.convert_from_reference(
                    expense.normalized_amount, wallet.currency
                )
                self._adjust_wallet(
                    wallet,
                    refund,
                    expense.normalized_amount,
                    label="delete_expense:update_wallet",
                )
            else:
                logger.warning(f"Expense {expense_id} has no wallet; nothing refunded")
            self.database.run(
                "DELETE FROM expenses WHERE id = ?",
                (expense_id,),
                label="delete_expense:delete_row",
            )

        logger.info(f"Deleted expense {expense_id}")
        return expense

    # =========================================================================
    # Helpers (call only inside a transaction scope)
    # =========================================================================

    def _load_wallet(self, wallet_id: int, label: str) -> Wallet:
        row = self.database.query_one(
            "SELECT * FROM wallets WHERE id = ?", (wallet_id,), label=label
        )
        if row is None:
            raise WalletNotFoundError(
                ERROR_MESSAGES["wallet_not_found"].format(wallet_id=wallet_id)
            )
        return Wallet.from_row(row)

    def _load_expense(
        self, expense_id: int, label: str
    ) -> tuple[Expense, Optional[Wallet]]:
        """Load an expense together with the wallet it currently points at."""
        row = self.database.query_one(
            """
            SELECT e.*,
                   w.id AS w_id,
                   w.name AS w_name,
                   w.amount AS w_amount,
                   w.normalizedAmount AS w_normalizedAmount,
                   w.currency AS w_currency
            FROM expenses e
            LEFT JOIN wallets w ON w.id = e.walletId
            WHERE e.id = ?
            """,
            (expense_id,),
            label=label,
        )
        if row is None:
            raise ExpenseNotFoundError(
                ERROR_MESSAGES["expense_not_found"].format(expense_id=expense_id)
            )

        wallet = None
        if row["w_id"] is not None:
            wallet = Wallet(
                id=row["w_id"],
                name=row["w_name"],
                amount=row["w_amount"],
                normalized_amount=row["w_normalizedAmount"] or 0.0,
                currency=row["w_currency"] or DEFAULT_CURRENCY,
            )
        return Expense.from_row(row), wallet

    def _check_balance(self, wallet: Wallet, local_debit: float):
        if round_money(wallet.amount) < round_money(local_debit):
            raise InsufficientBalanceError(
                f"{ERROR_MESSAGES['insufficient_balance'].format(wallet_id=wallet.id)}: "
                f"needs {local_debit} {wallet.currency}, has {wallet.amount}"
            )

    def _adjust_wallet(
        self, wallet: Wallet, local_delta: float, normalized_delta: float, label: str
    ) -> Wallet:
        """Apply a delta to both balances of a wallet and persist them together."""
        wallet.amount = round_money(wallet.amount + local_delta)
        wallet.normalized_amount = round_money(
            wallet.normalized_amount + normalized_delta
        )
        self.database.run(
            "UPDATE wallets SET amount = ?, normalizedAmount = ? WHERE id = ?",
            (wallet.amount, wallet.normalized_amount, wallet.id),
            label=label,
        )
        return wallet

    def _write_expense(
        self,
        expense_id: int,
        amount: float,
        normalized: float,
        note: str,
        date: str,
        category: str,
        currency: str,
        wallet_id: int,
        label: str,
    ):
        self.database.run(
            """
            UPDATE expenses
            SET amount = ?, normalizedAmount = ?, note = ?, date = ?,
                category = ?, currency = ?, walletId = ?
            WHERE id = ?
            """,
            (amount, normalized, note, date, category, currency, wallet_id, expense_id),
            label=label,
        )
