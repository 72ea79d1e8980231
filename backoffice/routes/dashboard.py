"""
Dashboard, sync, project and transaction endpoints.

Projects and transactions live in the in-memory cache; the dashboard
aggregates them. POST /api/sync refreshes cached sheet headers from
Google Sheets.
"""

import logging
from datetime import datetime, timezone
from typing import Annotated, List

from fastapi import APIRouter, Depends, HTTPException, Path, status
from fastapi.exceptions import RequestValidationError
from pydantic import ValidationError

from backoffice.auth.dependencies import AuthenticatedUser, require_admin, require_auth
from backoffice.config import settings
from backoffice.db.storage import MemStorage, get_storage
from backoffice.schemas.dashboard import (
    DashboardData,
    Project,
    ProjectCreateRequest,
    ProjectUpdateRequest,
    SyncResponse,
    Transaction,
    TransactionCreateRequest,
    TransactionUpdateRequest,
)
from backoffice.schemas.sheets import OperationResponse
from backoffice.services.errors import GoogleSheetsError, ServiceNotConfiguredError
from backoffice.services.google_sheets_service import (
    GoogleSheetsService,
    get_google_sheets_service,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["dashboard"])


def _not_found(entity: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_404_NOT_FOUND,
        detail={
            "error": "not_found",
            "details": f"{entity} not found"
        }
    )


@router.get(
    "/dashboard",
    response_model=DashboardData,
    summary="Dashboard totals",
    description="""
    Totals, the last six months of income and expenses, expense
    categories and up to three active projects.
    """
)
async def get_dashboard(
    auth_user: Annotated[AuthenticatedUser, Depends(require_auth)],
    storage: Annotated[MemStorage, Depends(get_storage)],
) -> DashboardData:
    return await storage.get_dashboard_data()


@router.post(
    "/sync",
    response_model=SyncResponse,
    summary="Refresh cached sheet headers from Google",
)
async def sync_sheets(
    auth_user: Annotated[AuthenticatedUser, Depends(require_auth)],
    storage: Annotated[MemStorage, Depends(get_storage)],
    sheets_service: Annotated[GoogleSheetsService, Depends(get_google_sheets_service)],
) -> SyncResponse:
    spreadsheet_id = settings.GOOGLE_SPREADSHEET_ID
    if not spreadsheet_id:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={
                "error": "not_configured",
                "details": "Google Spreadsheet ID not configured"
            }
        )

    synced = 0
    for sheet in await storage.get_sheets():
        try:
            rows = await sheets_service.get_sheet_data(spreadsheet_id, sheet.name)
        except (GoogleSheetsError, ServiceNotConfiguredError) as e:
            logger.warning(f"Error syncing sheet '{sheet.name}': {e}")
            continue

        if rows:
            await storage.update_sheet(sheet.id, {"headers": [str(cell) for cell in rows[0]]})
            synced += 1

    logger.info(f"Sync finished: {synced} sheets, user_id={auth_user.user_id}")
    return SyncResponse(
        success=True,
        message=f"Synced {synced} sheets successfully",
        timestamp=datetime.now(timezone.utc).isoformat(),
    )


# --- Projects ---

@router.get("/projects", response_model=List[Project], summary="List projects")
async def list_projects(
    auth_user: Annotated[AuthenticatedUser, Depends(require_auth)],
    storage: Annotated[MemStorage, Depends(get_storage)],
) -> List[Project]:
    return await storage.get_projects()


@router.post(
    "/projects",
    response_model=Project,
    status_code=status.HTTP_201_CREATED,
    summary="Create a project",
)
async def create_project(
    request: ProjectCreateRequest,
    auth_user: Annotated[AuthenticatedUser, Depends(require_auth)],
    storage: Annotated[MemStorage, Depends(get_storage)],
) -> Project:
    project = await storage.create_project(request.model_dump())
    logger.info(f"Project created: id={project.id}")
    return project


@router.get("/projects/{project_id}", response_model=Project, summary="Get a project")
async def get_project(
    auth_user: Annotated[AuthenticatedUser, Depends(require_auth)],
    storage: Annotated[MemStorage, Depends(get_storage)],
    project_id: str = Path(...),
) -> Project:
    project = await storage.get_project(project_id)
    if project is None:
        raise _not_found("Project")
    return project


@router.put("/projects/{project_id}", response_model=Project, summary="Update a project")
async def update_project(
    request: ProjectUpdateRequest,
    auth_user: Annotated[AuthenticatedUser, Depends(require_auth)],
    storage: Annotated[MemStorage, Depends(get_storage)],
    project_id: str = Path(...),
) -> Project:
    try:
        updated = await storage.update_project(project_id, request.model_dump(exclude_unset=True))
    except ValidationError as e:
        raise RequestValidationError(e.errors(include_url=False))
    if updated is None:
        raise _not_found("Project")
    return updated


# --- Transactions ---

@router.get("/transactions", response_model=List[Transaction], summary="List cached transactions")
async def list_transactions(
    auth_user: Annotated[AuthenticatedUser, Depends(require_auth)],
    storage: Annotated[MemStorage, Depends(get_storage)],
) -> List[Transaction]:
    transactions = await storage.get_transactions()
    return sorted(transactions, key=lambda t: t.date, reverse=True)


@router.post(
    "/transactions",
    response_model=Transaction,
    status_code=status.HTTP_201_CREATED,
    summary="Cache a transaction",
)
async def create_transaction(
    request: TransactionCreateRequest,
    auth_user: Annotated[AuthenticatedUser, Depends(require_auth)],
    storage: Annotated[MemStorage, Depends(get_storage)],
) -> Transaction:
    return await storage.create_transaction(request.model_dump())


@router.put("/transactions/{transaction_id}", response_model=Transaction, summary="Update a transaction")
async def update_transaction(
    request: TransactionUpdateRequest,
    auth_user: Annotated[AuthenticatedUser, Depends(require_auth)],
    storage: Annotated[MemStorage, Depends(get_storage)],
    transaction_id: str = Path(...),
) -> Transaction:
    try:
        updated = await storage.update_transaction(transaction_id, request.model_dump(exclude_unset=True))
    except ValidationError as e:
        raise RequestValidationError(e.errors(include_url=False))
    if updated is None:
        raise _not_found("Transaction")
    return updated


@router.delete(
    "/transactions/{transaction_id}",
    response_model=OperationResponse,
    summary="Delete a transaction",
)
async def delete_transaction(
    auth_user: Annotated[AuthenticatedUser, Depends(require_admin)],
    storage: Annotated[MemStorage, Depends(get_storage)],
    transaction_id: str = Path(...),
) -> OperationResponse:
    if not await storage.delete_transaction(transaction_id):
        raise _not_found("Transaction")
    return OperationResponse(message="Transaction deleted successfully")
