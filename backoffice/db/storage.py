"""
In-memory cache for users, sheets, projects and transactions.

The spreadsheet is the source of truth; this cache only mirrors tab
metadata and ledger entries for routing and dashboard aggregation.
Nothing here is persisted: everything is lost on restart.
"""

import logging
import uuid
from collections import defaultdict
from datetime import datetime, timezone
from decimal import Decimal
from typing import Dict, List, Optional

from backoffice.schemas.auth import User, UserUpsert
from backoffice.schemas.dashboard import (
    DashboardData,
    ExpenseCategory,
    MonthlyData,
    Project,
    Transaction,
)
from backoffice.schemas.sheets import Sheet, SheetRecord
from backoffice.utils.constants import (
    DASHBOARD_MONTH_WINDOW,
    DASHBOARD_PROJECT_LIMIT,
    TURKISH_MONTHS,
)

logger = logging.getLogger(__name__)


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _month_window(reference: datetime, size: int) -> List[tuple]:
    """(year, month) pairs for the `size` months ending at `reference`, oldest first."""
    year, month = reference.year, reference.month
    window = []
    for _ in range(size):
        window.append((year, month))
        month -= 1
        if month == 0:
            month = 12
            year -= 1
    return list(reversed(window))


class MemStorage:
    """
    Dictionary-backed storage.

    All methods are async so callers do not change if a persistent backend
    replaces this class.
    """

    def __init__(self) -> None:
        self.users: Dict[str, User] = {}
        self.sheets: Dict[str, Sheet] = {}
        self.sheet_records: Dict[str, SheetRecord] = {}
        self.projects: Dict[str, Project] = {}
        self.transactions: Dict[str, Transaction] = {}

    # --- Users ---

    async def get_user(self, user_id: str) -> Optional[User]:
        return self.users.get(user_id)

    async def get_user_by_google_id(self, google_id: str) -> Optional[User]:
        return next((u for u in self.users.values() if u.google_id == google_id), None)

    async def get_user_by_email(self, email: str) -> Optional[User]:
        return next((u for u in self.users.values() if u.email == email), None)

    async def create_user(self, data: UserUpsert) -> User:
        now = _now()
        user = User(id=str(uuid.uuid4()), created_at=now, updated_at=now, **data.model_dump())
        self.users[user.id] = user
        return user

    async def update_user(self, user_id: str, updates: dict) -> Optional[User]:
        user = self.users.get(user_id)
        if user is None:
            return None
        updated = user.model_copy(update={**updates, "updated_at": _now()})
        self.users[user_id] = updated
        return updated

    async def upsert_user(self, data: UserUpsert) -> User:
        """
        Create or update a user.

        Matches on google_id first (when provided), then on email.
        """
        existing: Optional[User] = None

        if data.google_id:
            existing = await self.get_user_by_google_id(data.google_id)

        if existing is None and data.email:
            existing = await self.get_user_by_email(data.email)

        if existing is not None:
            updates = data.model_dump()
            # An empty google_id from a Firebase session must not erase a linked account
            if not data.google_id:
                updates.pop("google_id")
            # Role changes are not driven by sign-in
            updates.pop("role")
            return await self.update_user(existing.id, updates) or existing

        return await self.create_user(data)

    # --- Sheets ---

    async def get_sheets(self) -> List[Sheet]:
        return list(self.sheets.values())

    async def get_sheet(self, sheet_id: str) -> Optional[Sheet]:
        return self.sheets.get(sheet_id)

    async def create_sheet(
        self,
        name: str,
        google_sheet_id: str,
        sheet_tab_id: int = 0,
        headers: Optional[List[str]] = None,
    ) -> Sheet:
        now = _now()
        sheet = Sheet(
            id=str(uuid.uuid4()),
            name=name,
            google_sheet_id=google_sheet_id,
            sheet_tab_id=sheet_tab_id,
            headers=headers or [],
            created_at=now,
            updated_at=now,
        )
        self.sheets[sheet.id] = sheet
        return sheet

    async def update_sheet(self, sheet_id: str, updates: dict) -> Optional[Sheet]:
        sheet = self.sheets.get(sheet_id)
        if sheet is None:
            return None
        updated = sheet.model_copy(update={**updates, "updated_at": _now()})
        self.sheets[sheet_id] = updated
        return updated

    async def delete_sheet(self, sheet_id: str) -> bool:
        return self.sheets.pop(sheet_id, None) is not None

    # --- Sheet records ---

    async def get_sheet_records(self, sheet_id: str) -> List[SheetRecord]:
        return [r for r in self.sheet_records.values() if r.sheet_id == sheet_id]

    async def create_sheet_record(self, sheet_id: str, row_index: int, data: str) -> SheetRecord:
        now = _now()
        record = SheetRecord(
            id=str(uuid.uuid4()),
            sheet_id=sheet_id,
            row_index=row_index,
            data=data,
            created_at=now,
            updated_at=now,
        )
        self.sheet_records[record.id] = record
        return record

    async def update_sheet_record(self, record_id: str, updates: dict) -> Optional[SheetRecord]:
        record = self.sheet_records.get(record_id)
        if record is None:
            return None
        updated = record.model_copy(update={**updates, "updated_at": _now()})
        self.sheet_records[record_id] = updated
        return updated

    async def delete_sheet_record(self, record_id: str) -> bool:
        return self.sheet_records.pop(record_id, None) is not None

    async def delete_sheet_records(self, sheet_id: str) -> bool:
        for record in await self.get_sheet_records(sheet_id):
            self.sheet_records.pop(record.id, None)
        return True

    # --- Projects ---

    async def get_projects(self) -> List[Project]:
        return list(self.projects.values())

    async def get_project(self, project_id: str) -> Optional[Project]:
        return self.projects.get(project_id)

    async def create_project(self, data: dict) -> Project:
        now = _now()
        fields = {k: v for k, v in data.items() if v is not None}
        fields.setdefault("progress", 0)
        fields.setdefault("status", "active")
        project = Project(id=str(uuid.uuid4()), created_at=now, updated_at=now, **fields)
        self.projects[project.id] = project
        return project

    async def update_project(self, project_id: str, updates: dict) -> Optional[Project]:
        """Merge `updates` and re-validate; an explicit null on a required field raises ValidationError."""
        project = self.projects.get(project_id)
        if project is None:
            return None
        updated = Project.model_validate({**project.model_dump(), **updates, "updated_at": _now()})
        self.projects[project_id] = updated
        return updated

    # --- Transactions ---

    async def get_transactions(self) -> List[Transaction]:
        return list(self.transactions.values())

    async def create_transaction(self, data: dict) -> Transaction:
        now = _now()
        transaction = Transaction(
            id=str(uuid.uuid4()),
            created_at=now,
            updated_at=now,
            **{**data, "project_id": data.get("project_id") or None},
        )
        self.transactions[transaction.id] = transaction
        return transaction

    async def update_transaction(self, transaction_id: str, updates: dict) -> Optional[Transaction]:
        """Merge `updates` and re-validate; see update_project."""
        transaction = self.transactions.get(transaction_id)
        if transaction is None:
            return None
        updated = Transaction.model_validate({**transaction.model_dump(), **updates, "updated_at": _now()})
        self.transactions[transaction_id] = updated
        return updated

    async def delete_transaction(self, transaction_id: str) -> bool:
        return self.transactions.pop(transaction_id, None) is not None

    # --- Dashboard ---

    async def get_dashboard_data(self, reference: Optional[datetime] = None) -> DashboardData:
        """
        Aggregate cached transactions and projects.

        Monthly data covers the six calendar months ending with the month of
        `reference` (defaults to now).
        """
        transactions = await self.get_transactions()
        projects = await self.get_projects()
        reference = reference or _now()

        income = sum((t.amount for t in transactions if t.type == "income"), Decimal("0"))
        expenses = sum((t.amount for t in transactions if t.type == "expense"), Decimal("0"))

        window = _month_window(reference, DASHBOARD_MONTH_WINDOW)
        monthly: Dict[tuple, Dict[str, Decimal]] = {
            key: {"income": Decimal("0"), "expenses": Decimal("0")} for key in window
        }
        for t in transactions:
            key = (t.date.year, t.date.month)
            if key not in monthly:
                continue
            bucket = "income" if t.type == "income" else "expenses"
            monthly[key][bucket] += t.amount

        monthly_data = [
            MonthlyData(
                month=TURKISH_MONTHS[month - 1],
                income=float(monthly[(year, month)]["income"]),
                expenses=float(monthly[(year, month)]["expenses"]),
            )
            for year, month in window
        ]

        # dict preserves first-seen category order
        category_totals: Dict[str, Decimal] = defaultdict(lambda: Decimal("0"))
        for t in transactions:
            if t.type == "expense":
                category_totals[t.category] += t.amount

        expense_categories = [
            ExpenseCategory(
                category=category,
                amount=float(amount),
                percentage=float(amount / expenses * 100) if expenses > 0 else 0.0,
            )
            for category, amount in category_totals.items()
        ]

        active = [p for p in projects if p.status == "active"]

        logger.debug(
            f"Dashboard aggregated: {len(transactions)} transactions, {len(active)} active projects"
        )

        return DashboardData(
            total_income=float(income),
            total_expenses=float(expenses),
            net_profit=float(income - expenses),
            active_projects=len(active),
            monthly_data=monthly_data,
            expense_categories=expense_categories,
            projects=active[:DASHBOARD_PROJECT_LIMIT],
        )


storage = MemStorage()


def get_storage() -> MemStorage:
    """FastAPI dependency returning the process-wide cache."""
    return storage
