"""
Pydantic schemas for dashboard, projects and cached transactions.
"""

from datetime import datetime, timezone
from decimal import Decimal
from typing import List, Literal, Optional

from pydantic import BaseModel, Field, field_validator

ProjectStatus = Literal["active", "completed", "paused"]
TransactionType = Literal["income", "expense"]


# --- Projects ---

class Project(BaseModel):
    """Project tracked on the dashboard."""
    id: str
    name: str
    description: Optional[str] = None
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    budget: Optional[Decimal] = None
    spent: Optional[Decimal] = None
    progress: int = Field(0, ge=0, le=100, description="Completion percentage")
    status: ProjectStatus = "active"
    created_at: datetime
    updated_at: datetime


class ProjectCreateRequest(BaseModel):
    """Request to create a project."""
    name: str = Field(..., min_length=1)
    description: Optional[str] = None
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    budget: Optional[Decimal] = Field(None, ge=0)
    spent: Optional[Decimal] = Field(None, ge=0)
    progress: Optional[int] = Field(None, ge=0, le=100)
    status: Optional[ProjectStatus] = None


class ProjectUpdateRequest(BaseModel):
    """Partial project update; only provided fields change."""
    name: Optional[str] = Field(None, min_length=1)
    description: Optional[str] = None
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    budget: Optional[Decimal] = Field(None, ge=0)
    spent: Optional[Decimal] = Field(None, ge=0)
    progress: Optional[int] = Field(None, ge=0, le=100)
    status: Optional[ProjectStatus] = None


# --- Transactions ---

class Transaction(BaseModel):
    """Cached accounting transaction."""
    id: str
    date: datetime
    description: str
    amount: Decimal
    type: TransactionType
    category: str
    project_id: Optional[str] = None
    created_at: datetime
    updated_at: datetime

    @field_validator("date")
    @classmethod
    def normalize_date(cls, v: datetime) -> datetime:
        """Keep every date in UTC; a date without an offset is read as UTC."""
        if v.tzinfo is None:
            return v.replace(tzinfo=timezone.utc)
        return v.astimezone(timezone.utc)


class TransactionCreateRequest(BaseModel):
    """Request to cache a transaction."""
    date: datetime
    description: str = Field(..., min_length=1)
    amount: Decimal = Field(..., ge=0)
    type: TransactionType
    category: str = Field(..., min_length=1)
    project_id: Optional[str] = None


class TransactionUpdateRequest(BaseModel):
    """Partial transaction update."""
    date: Optional[datetime] = None
    description: Optional[str] = Field(None, min_length=1)
    amount: Optional[Decimal] = Field(None, ge=0)
    type: Optional[TransactionType] = None
    category: Optional[str] = Field(None, min_length=1)
    project_id: Optional[str] = None


# --- Dashboard ---

class MonthlyData(BaseModel):
    month: str = Field(..., description="Short Turkish month name", examples=["Oca"])
    income: float
    expenses: float


class ExpenseCategory(BaseModel):
    category: str
    amount: float
    percentage: float = Field(..., description="Share of total expenses (0-100)")


class DashboardData(BaseModel):
    """
    Response for GET /api/dashboard.

    Aggregated from the in-memory transaction and project cache.
    """
    total_income: float
    total_expenses: float
    net_profit: float
    active_projects: int
    monthly_data: List[MonthlyData]
    expense_categories: List[ExpenseCategory]
    projects: List[Project] = Field(..., description="Up to three active projects")


class SyncResponse(BaseModel):
    """Response for POST /api/sync."""
    success: bool
    message: str
    timestamp: str
