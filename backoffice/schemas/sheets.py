"""
Pydantic schemas for Google Sheets proxy endpoints.

A Sheet is a Google Sheets tab mirrored as a lightweight local record.
Records are plain rows (lists of cell values) as returned by the Sheets API.
"""

from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, Field

# --- Sheet models ---

class Sheet(BaseModel):
    """Cached metadata for one Google Sheets tab."""
    id: str = Field(..., description="Local sheet UUID")
    name: str = Field(..., description="Tab title in the spreadsheet")
    google_sheet_id: str = Field(..., description="Spreadsheet ID the tab belongs to")
    sheet_tab_id: int = Field(0, description="Numeric Google tab id (gid)")
    headers: List[str] = Field(default_factory=list, description="Header row (first row of the tab)")
    created_at: datetime = Field(..., description="When the record was cached")
    updated_at: datetime = Field(..., description="Last local update")


class SheetRecord(BaseModel):
    """A cached sheet row (row data stored as a JSON string)."""
    id: str
    sheet_id: str
    row_index: int
    data: str
    created_at: datetime
    updated_at: datetime


class SheetCreateRequest(BaseModel):
    """
    Request to create a new tab.

    The template decides the header row written into the new tab.
    """
    name: str = Field(..., min_length=1, description="Tab title", examples=["Muhasebe 2025"])
    template: Literal["custom", "accounting", "project", "personnel"] = Field(
        ...,
        description="Header template to apply"
    )


class SheetUpdateRequest(BaseModel):
    """
    Request to update sheet metadata (rename and/or replace headers).

    At least one valid field must be present.
    """
    name: Optional[str] = Field(None, description="New tab title")
    headers: Optional[List[str]] = Field(None, description="Replacement header row")


class SheetDataResponse(BaseModel):
    """Response for GET /api/sheets/{id}/data."""
    sheet: Sheet
    records: List[List[Any]] = Field(default_factory=list, description="Data rows (header row excluded)")
    headers: List[str] = Field(default_factory=list)


# --- Record models ---

class AddRecordRequest(BaseModel):
    """
    Ledger entry added through the record form.

    `type` uses the spreadsheet's own values: 'Gelir' (income) or 'Gider' (expense).
    """
    date: str = Field(..., min_length=1, description="Entry date", examples=["2025-09-02"])
    description: str = Field(..., min_length=1, description="Entry description")
    amount: Decimal = Field(..., ge=0, description="Amount (must be >= 0)", examples=["150000"])
    type: Literal["Gelir", "Gider"] = Field(..., description="Income (Gelir) or expense (Gider)")
    category: str = Field(..., min_length=1, description="Ledger category")

    @property
    def amount_text(self) -> str:
        """Plain decimal notation, no exponent or trailing zeros (150000, 150000.5)."""
        return format(self.amount.normalize(), "f")

    def to_row(self) -> List[str]:
        """Row layout written to the sheet."""
        return [self.date, self.description, self.amount_text, self.type, self.category]


class UpdateRecordRequest(BaseModel):
    """Replacement cell values for one data row."""
    data: List[Any] = Field(..., min_length=1, description="Cell values, column A onwards")


class OperationResponse(BaseModel):
    """Generic success response."""
    success: bool = True
    message: str


class SheetTemplatesResponse(BaseModel):
    """Financial sheet templates (headers and categories per tab)."""
    templates: Dict[str, Dict[str, Any]]
