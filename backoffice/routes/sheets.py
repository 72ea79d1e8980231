"""
Google Sheets proxy endpoints.

The configured spreadsheet (GOOGLE_SPREADSHEET_ID) is the source of truth.
Tabs are mirrored in the in-memory cache so the UI can address them by a
stable local id; record rows are read and written straight through to
Google.

All endpoints require an authenticated session (or Bearer token).
"""

import logging
from typing import Annotated, Any, Dict, List

from fastapi import APIRouter, Body, Depends, HTTPException, Path, status
from pydantic import ValidationError

from backoffice.auth.dependencies import AuthenticatedUser, require_auth
from backoffice.config import settings
from backoffice.db.storage import MemStorage, get_storage
from backoffice.schemas.sheets import (
    AddRecordRequest,
    OperationResponse,
    Sheet,
    SheetCreateRequest,
    SheetDataResponse,
    SheetTemplatesResponse,
    SheetUpdateRequest,
    UpdateRecordRequest,
)
from backoffice.services.errors import GoogleSheetsError, ServiceNotConfiguredError
from backoffice.services.google_sheets_service import (
    GoogleSheetsService,
    get_google_sheets_service,
    get_template_headers,
    record_range,
)
from backoffice.utils.constants import (
    ACCOUNTING_SHEET_MARKERS,
    FINANCIAL_SHEET_TEMPLATES,
    INCOME_RECORD_TYPE,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/sheets", tags=["sheets"])

SHEETS_ERRORS = (GoogleSheetsError, ServiceNotConfiguredError)


def _spreadsheet_id() -> str:
    return settings.GOOGLE_SPREADSHEET_ID


def _not_found() -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_404_NOT_FOUND,
        detail={
            "error": "not_found",
            "details": "Sheet not found"
        }
    )


def _invalid(details: Any) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_400_BAD_REQUEST,
        detail={
            "error": "invalid_request",
            "details": details
        }
    )


def _google_failure(details: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail={
            "error": "google_sheets_error",
            "details": details
        }
    )


def is_accounting_sheet(name: str) -> bool:
    lowered = name.lower()
    return any(marker in lowered for marker in ACCOUNTING_SHEET_MARKERS)


async def _get_sheet_or_404(storage: MemStorage, sheet_id: str) -> Sheet:
    sheet = await storage.get_sheet(sheet_id)
    if sheet is None:
        raise _not_found()
    return sheet


@router.get(
    "/templates",
    response_model=SheetTemplatesResponse,
    summary="List financial sheet templates",
)
async def list_templates(
    auth_user: Annotated[AuthenticatedUser, Depends(require_auth)],
) -> SheetTemplatesResponse:
    return SheetTemplatesResponse(templates=FINANCIAL_SHEET_TEMPLATES)


@router.get(
    "",
    response_model=List[Sheet],
    summary="List sheets",
    description="""
    Return the cached sheets.

    When the cache is empty and a spreadsheet is configured, one cached
    sheet is created per Google tab first. If Google cannot be reached the
    (empty) cache is returned.
    """
)
async def list_sheets(
    auth_user: Annotated[AuthenticatedUser, Depends(require_auth)],
    storage: Annotated[MemStorage, Depends(get_storage)],
    sheets_service: Annotated[GoogleSheetsService, Depends(get_google_sheets_service)],
) -> List[Sheet]:
    sheets = await storage.get_sheets()
    spreadsheet_id = _spreadsheet_id()

    if sheets or not spreadsheet_id:
        return sheets

    try:
        info = await sheets_service.get_spreadsheet_info(spreadsheet_id)
    except SHEETS_ERRORS as e:
        logger.warning(f"Could not sync sheets from Google, returning cache: {e}")
        return sheets

    for tab in info["sheets"]:
        await storage.create_sheet(
            name=tab["title"],
            google_sheet_id=spreadsheet_id,
            sheet_tab_id=tab["id"],
            headers=[],
        )

    logger.info(f"Cached {len(info['sheets'])} tabs from spreadsheet")
    return await storage.get_sheets()


@router.post(
    "",
    response_model=Sheet,
    summary="Create a sheet tab",
    description="""
    Create a tab in the spreadsheet with the template's header row and
    cache it.

    Errors:
    - 400 for an invalid body
    - 500 when Google Sheets rejects the new tab
    """
)
async def create_sheet(
    auth_user: Annotated[AuthenticatedUser, Depends(require_auth)],
    storage: Annotated[MemStorage, Depends(get_storage)],
    sheets_service: Annotated[GoogleSheetsService, Depends(get_google_sheets_service)],
    payload: Dict[str, Any] = Body(...),
) -> Sheet:
    try:
        request = SheetCreateRequest.model_validate(payload)
    except ValidationError as e:
        raise _invalid(e.errors(include_url=False, include_context=False))

    headers = get_template_headers(request.template)
    spreadsheet_id = _spreadsheet_id()
    sheet_tab_id = 0

    if spreadsheet_id:
        try:
            sheet_tab_id = await sheets_service.create_sheet(spreadsheet_id, request.name, headers)
        except SHEETS_ERRORS as e:
            logger.error(f"Error creating sheet in Google Sheets: {e}")
            raise _google_failure("Failed to create sheet in Google Sheets")

    sheet = await storage.create_sheet(
        name=request.name,
        google_sheet_id=spreadsheet_id,
        sheet_tab_id=sheet_tab_id or 0,
        headers=headers,
    )

    logger.info(f"Sheet created: id={sheet.id}, tab_id={sheet.sheet_tab_id}, user_id={auth_user.user_id}")
    return sheet


@router.put(
    "/{sheet_id}",
    response_model=Sheet,
    summary="Rename a sheet or replace its headers",
)
async def update_sheet(
    request: SheetUpdateRequest,
    auth_user: Annotated[AuthenticatedUser, Depends(require_auth)],
    storage: Annotated[MemStorage, Depends(get_storage)],
    sheets_service: Annotated[GoogleSheetsService, Depends(get_google_sheets_service)],
    sheet_id: str = Path(..., description="Local sheet id"),
) -> Sheet:
    sheet = await _get_sheet_or_404(storage, sheet_id)

    updates: Dict[str, Any] = {}
    if request.name is not None and request.name.strip():
        updates["name"] = request.name.strip()
    if request.headers is not None:
        updates["headers"] = request.headers

    if not updates:
        raise _invalid("No valid fields to update")

    spreadsheet_id = _spreadsheet_id()
    new_name = updates.get("name")
    if new_name and new_name != sheet.name and spreadsheet_id and sheet.sheet_tab_id:
        try:
            await sheets_service.rename_sheet(spreadsheet_id, sheet.sheet_tab_id, new_name)
        except SHEETS_ERRORS as e:
            logger.error(f"Error renaming sheet in Google Sheets: {e}")
            raise _google_failure("Failed to rename sheet in Google Sheets")

    updated = await storage.update_sheet(sheet_id, updates)
    return updated or sheet


@router.delete(
    "/{sheet_id}",
    response_model=OperationResponse,
    summary="Delete a sheet tab",
)
async def delete_sheet(
    auth_user: Annotated[AuthenticatedUser, Depends(require_auth)],
    storage: Annotated[MemStorage, Depends(get_storage)],
    sheets_service: Annotated[GoogleSheetsService, Depends(get_google_sheets_service)],
    sheet_id: str = Path(..., description="Local sheet id"),
) -> OperationResponse:
    sheet = await _get_sheet_or_404(storage, sheet_id)
    spreadsheet_id = _spreadsheet_id()

    if spreadsheet_id and sheet.sheet_tab_id:
        try:
            await sheets_service.delete_sheet(spreadsheet_id, sheet.sheet_tab_id)
        except SHEETS_ERRORS as e:
            logger.error(f"Error deleting sheet from Google Sheets: {e}")
            raise _google_failure("Failed to delete sheet from Google Sheets")

    await storage.delete_sheet(sheet_id)
    await storage.delete_sheet_records(sheet_id)

    logger.info(f"Sheet deleted: id={sheet_id}, user_id={auth_user.user_id}")
    return OperationResponse(message="Sheet deleted successfully")


@router.get(
    "/{sheet_id}/data",
    response_model=SheetDataResponse,
    summary="Read a sheet's rows",
    description="""
    Read the tab from Google. The first row is returned as `headers` (and
    stored in the cache); the remaining rows as `records`. When Google
    cannot be reached the cached headers are returned with no records.
    """
)
async def get_sheet_data(
    auth_user: Annotated[AuthenticatedUser, Depends(require_auth)],
    storage: Annotated[MemStorage, Depends(get_storage)],
    sheets_service: Annotated[GoogleSheetsService, Depends(get_google_sheets_service)],
    sheet_id: str = Path(..., description="Local sheet id"),
) -> SheetDataResponse:
    sheet = await _get_sheet_or_404(storage, sheet_id)
    spreadsheet_id = _spreadsheet_id()

    headers = list(sheet.headers)
    records: List[List[Any]] = []

    if spreadsheet_id and sheet.name:
        try:
            rows = await sheets_service.get_sheet_data(spreadsheet_id, sheet.name)
            if rows:
                headers = [str(cell) for cell in rows[0]]
                records = rows[1:]
                sheet = await storage.update_sheet(sheet_id, {"headers": headers}) or sheet
        except SHEETS_ERRORS as e:
            logger.warning(f"Error getting data from Google Sheets for '{sheet.name}': {e}")

    return SheetDataResponse(sheet=sheet, records=records, headers=headers)


@router.post(
    "/{sheet_id}/records",
    response_model=OperationResponse,
    summary="Append a ledger record",
    description="""
    Append `[date, description, amount, type, category]` to the tab.

    On accounting sheets (name contains "muhasebe" or "accounting") the
    entry is also cached as a transaction for the dashboard.
    """
)
async def add_record(
    auth_user: Annotated[AuthenticatedUser, Depends(require_auth)],
    storage: Annotated[MemStorage, Depends(get_storage)],
    sheets_service: Annotated[GoogleSheetsService, Depends(get_google_sheets_service)],
    sheet_id: str = Path(..., description="Local sheet id"),
    payload: Dict[str, Any] = Body(...),
) -> OperationResponse:
    try:
        record = AddRecordRequest.model_validate(payload)
    except ValidationError as e:
        raise _invalid(e.errors(include_url=False, include_context=False))

    sheet = await _get_sheet_or_404(storage, sheet_id)
    spreadsheet_id = _spreadsheet_id()

    if spreadsheet_id and sheet.name:
        try:
            await sheets_service.append_sheet_data(spreadsheet_id, sheet.name, [record.to_row()])
        except SHEETS_ERRORS as e:
            logger.error(f"Error adding record to Google Sheets: {e}")
            raise _google_failure("Failed to add record to Google Sheets")

    if is_accounting_sheet(sheet.name):
        try:
            await storage.create_transaction({
                "date": record.date,
                "description": record.description,
                "amount": record.amount_text,
                "type": "income" if record.type == INCOME_RECORD_TYPE else "expense",
                "category": record.category,
            })
        except ValidationError as e:
            # The row is already in the sheet; only the dashboard cache misses it
            logger.warning(f"Could not cache transaction for sheet '{sheet.name}': {e}")

    return OperationResponse(message="Record added successfully")


@router.put(
    "/{sheet_id}/records/{row_index}",
    response_model=OperationResponse,
    summary="Replace a data row",
    description="""
    Overwrite one data row. `row_index` is zero-based over the data rows,
    so row 0 is sheet row 2 (directly under the header).
    """
)
async def update_record(
    request: UpdateRecordRequest,
    auth_user: Annotated[AuthenticatedUser, Depends(require_auth)],
    storage: Annotated[MemStorage, Depends(get_storage)],
    sheets_service: Annotated[GoogleSheetsService, Depends(get_google_sheets_service)],
    sheet_id: str = Path(..., description="Local sheet id"),
    row_index: int = Path(..., ge=0, description="Zero-based data row index"),
) -> OperationResponse:
    sheet = await _get_sheet_or_404(storage, sheet_id)
    spreadsheet_id = _spreadsheet_id()

    if spreadsheet_id and sheet.name:
        a1_range = record_range(sheet.name, row_index, len(request.data))
        try:
            await sheets_service.update_sheet_data(spreadsheet_id, a1_range, [request.data])
        except SHEETS_ERRORS as e:
            logger.error(f"Error updating record in Google Sheets: {e}")
            raise _google_failure("Failed to update record in Google Sheets")

    return OperationResponse(message="Record updated successfully")
