"""
Expense Service.

Two disjoint ledgers:

* general (``admin_expenses``): office costs, never tied to a car
* car (``car_expenses``): fuel, repairs and the like, always tied to a car

Monthly listings go through the period aggregator. The legacy mixed
``expenses`` collection is only read by the one-time split at startup.
"""

import csv
import enum
import io
import logging
from typing import Any, Dict, List, Mapping, Optional, Tuple

from rental_backend.app.core.clock import Clock, new_id
from rental_backend.app.core.exceptions import ResourceNotFoundError, ValidationError
from rental_backend.app.db.repository import CollectionRepository
from rental_backend.app.domain.reporting.period import PeriodSummary, aggregate
from rental_backend.app.domain.scheduling.temporal import TimezoneLike, format_local, to_epoch_ms
from rental_backend.app.models.document import find_index, parse_records
from rental_backend.app.models.enums import Collection
from rental_backend.app.models.expense import Expense

logger = logging.getLogger(__name__)


class Ledger(str, enum.Enum):
    GENERAL = "general"
    CAR = "car"

    @property
    def collection(self) -> Collection:
        return Collection.ADMIN_EXPENSES if self is Ledger.GENERAL else Collection.CAR_EXPENSES


EDITABLE_FIELDS = ("title", "payee", "purpose", "amount", "when")

CSV_COLUMNS = {
    Ledger.GENERAL: ["id", "title", "payee", "purpose", "amount", "when", "created_at", "updated_at"],
    Ledger.CAR: ["id", "car_id", "title", "payee", "purpose", "amount", "when", "created_at", "updated_at"],
}


def _check_when(value: Any, tz: TimezoneLike) -> None:
    if value is not None and to_epoch_ms(value, tz) is None:
        raise ValidationError("Expense date is not a valid date", reason="invalid_dates", details={"when": value})


class ExpenseService:

    @staticmethod
    async def list_expenses(repository: CollectionRepository, ledger: Ledger) -> List[Expense]:
        return parse_records(await repository.load_all(ledger.collection), Expense)

    @staticmethod
    async def month_summary(
        repository: CollectionRepository,
        ledger: Ledger,
        month: Optional[str],
        tz: TimezoneLike,
        now,
        car_id: Optional[str] = None
    ) -> PeriodSummary[Expense]:
        """Entries of one ledger dated within ``month`` (current month if malformed)."""
        expenses = await ExpenseService.list_expenses(repository, ledger)
        return aggregate(expenses, month, tz, now, car_id=car_id if ledger is Ledger.CAR else None)

    @staticmethod
    async def create_expense(
        repository: CollectionRepository,
        clock: Clock,
        ledger: Ledger,
        data: Mapping[str, Any],
        tz: TimezoneLike = None,
        notifier=None,
        actor: Optional[str] = None
    ) -> Expense:
        """
        Record an expense.

        Raises:
            ValidationError: invalid_field if a general entry names a car,
                missing_car_id if a car entry does not, invalid_dates for a bad ``when``
        """
        car_id = str(data.get("car_id") or "").strip()
        if ledger is Ledger.GENERAL and car_id:
            raise ValidationError(
                "car_id is only allowed on car expenses",
                reason="invalid_field",
                details={"field": "car_id"}
            )
        if ledger is Ledger.CAR and not car_id:
            raise ValidationError("car_id is required for car expenses", reason="missing_car_id")
        _check_when(data.get("when"), tz)

        now = clock.now()
        expense = Expense(
            id=new_id(),
            car_id=car_id or None,
            title=data.get("title") or "",
            payee=data.get("payee") or "",
            purpose=data.get("purpose") or "",
            amount=data.get("amount") or 0,
            when=data.get("when") or now.isoformat(),
            created_at=now,
            updated_at=now
        )

        async with repository.lock(ledger.collection):
            raw_expenses = await repository.load_all(ledger.collection)
            raw_expenses.append(expense.to_record())
            await repository.save_all(ledger.collection, raw_expenses)

        logger.info("Expense %s added to %s ledger (%s)", expense.id, ledger.value, expense.amount)

        if notifier is not None:
            ExpenseService._notify_created(notifier, ledger, expense, tz, actor)
        return expense

    @staticmethod
    async def update_expense(
        repository: CollectionRepository,
        clock: Clock,
        ledger: Ledger,
        expense_id: str,
        patch: Mapping[str, Any],
        tz: TimezoneLike = None
    ) -> Expense:
        """Edit an entry. A general entry can never gain a car; a car entry can move to another car."""
        changes: Dict[str, Any] = {
            name: value for name, value in patch.items() if name in EDITABLE_FIELDS and value is not None
        }
        if "when" in changes:
            _check_when(changes["when"], tz)
        if ledger is Ledger.CAR and patch.get("car_id"):
            changes["car_id"] = str(patch["car_id"]).strip()

        async with repository.lock(ledger.collection):
            raw_expenses = await repository.load_all(ledger.collection)
            index = find_index(raw_expenses, expense_id)
            if index < 0:
                raise ResourceNotFoundError("Expense", expense_id)

            expense = Expense.model_validate({**raw_expenses[index], **changes, "updated_at": clock.now()})
            raw_expenses[index] = {**raw_expenses[index], **expense.to_record()}
            await repository.save_all(ledger.collection, raw_expenses)

        return expense

    @staticmethod
    async def delete_expense(repository: CollectionRepository, ledger: Ledger, expense_id: str) -> Expense:
        async with repository.lock(ledger.collection):
            raw_expenses = await repository.load_all(ledger.collection)
            index = find_index(raw_expenses, expense_id)
            if index < 0:
                raise ResourceNotFoundError("Expense", expense_id)
            removed = raw_expenses.pop(index)
            await repository.save_all(ledger.collection, raw_expenses)

        return Expense.model_validate(removed)

    @staticmethod
    async def export_csv(repository: CollectionRepository, ledger: Ledger) -> str:
        """Whole ledger as CSV with a header row. Missing values export as empty cells."""
        columns = CSV_COLUMNS[ledger]
        buffer = io.StringIO()
        writer = csv.writer(buffer, quoting=csv.QUOTE_MINIMAL, lineterminator="\n")
        writer.writerow(columns)
        for record in await repository.load_all(ledger.collection):
            if not isinstance(record, dict):
                continue
            writer.writerow(["" if record.get(column) is None else record.get(column) for column in columns])
        return buffer.getvalue()

    @staticmethod
    async def split_legacy_expenses(repository: CollectionRepository) -> Tuple[int, int]:
        """
        One-time split of the legacy mixed ledger.

        Runs only when the legacy collection has entries and both new ledgers
        are empty. Entries with a car go to the car ledger, the rest to the
        general one. The legacy collection is left as it was.

        Returns:
            (general count, car count) moved; (0, 0) when nothing was done
        """
        async with repository.lock(Collection.ADMIN_EXPENSES):
            async with repository.lock(Collection.CAR_EXPENSES):
                legacy = [
                    record for record in await repository.load_all(Collection.LEGACY_EXPENSES)
                    if isinstance(record, dict)
                ]
                if not legacy:
                    return 0, 0
                if await repository.load_all(Collection.ADMIN_EXPENSES) or await repository.load_all(Collection.CAR_EXPENSES):
                    return 0, 0

                general = [record for record in legacy if not record.get("car_id")]
                car = [record for record in legacy if record.get("car_id")]
                await repository.save_all(Collection.ADMIN_EXPENSES, general)
                await repository.save_all(Collection.CAR_EXPENSES, car)

        logger.info("Split legacy expenses: %d general, %d car", len(general), len(car))
        return len(general), len(car)

    @staticmethod
    def _notify_created(notifier, ledger: Ledger, expense: Expense, tz: TimezoneLike, actor: Optional[str]) -> None:
        when = expense.when or expense.created_at
        try:
            notifier.notify("expense.created", {
                "Date": format_local(when, tz),
                "Time": format_local(when, tz, "%H:%M"),
                "Added by": actor or "Unknown user",
                "Ledger": "car" if ledger is Ledger.CAR else "general",
                "Amount": f"{expense.amount:g}",
                "Payee": expense.payee,
                "Purpose": expense.purpose,
            })
        except Exception:
            logger.exception("Notifier failed for expense %s", expense.id)
