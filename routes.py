"""API Routes for expenses"""
from fastapi import APIRouter, Body, HTTPException, Depends, Request, Query, Response, status
from fastapi.responses import JSONResponse
from typing import Annotated, Any, Optional
from services.expenses_service import ExpenseGateway, UpstreamError
from models.expense import ExpenseWrite, TotalResponse, ErrorResponse
import logging

router = APIRouter()
logger = logging.getLogger(__name__)

ERROR_RESPONSES = {500: {"model": ErrorResponse, "description": "Upstream call failed"}}

# --- Dependency Function ---
def get_gateway(request: Request) -> ExpenseGateway:
    """Dependency to get the upstream gateway from the application state."""
    gateway = getattr(request.app.state, "gateway", None)
    if gateway is None:
        logger.error("Expense gateway not found in application state. Was the lifespan started?")
        raise HTTPException(status_code=503, detail="Upstream gateway not available.")
    return gateway

GatewayDep = Annotated[ExpenseGateway, Depends(get_gateway)]


def upstream_failure(gateway: ExpenseGateway, message: str, exc: UpstreamError) -> JSONResponse:
    """Maps an upstream failure to the client-facing error response."""
    status_code = 500
    if gateway.settings.preserve_upstream_status and exc.status_code and exc.status_code >= 400:
        status_code = exc.status_code
    logger.error(f"{message}: {exc}")
    return JSONResponse(status_code=status_code, content={"message": message, "error": exc.to_dict()})


# --- API Routes ---

@router.get("/expenses", summary="List Expenses", responses=ERROR_RESPONSES)
async def list_expenses(gateway: GatewayDep):
    """Returns the upstream collection as received."""
    try:
        return await gateway.list_expenses()
    except UpstreamError as e:
        return upstream_failure(gateway, "Error fetching expenses", e)

# Registered before /expenses/{expense_id} so the literal segment is not taken as an id
@router.get("/expenses/date-range", response_model=TotalResponse, summary="Total By Date Range", responses=ERROR_RESPONSES)
async def total_by_date_range(
    gateway: GatewayDep,
    start_date: Optional[str] = Query(None, alias="startDate", description="Inclusive lower bound, ISO date."),
    end_date: Optional[str] = Query(None, alias="endDate", description="Inclusive upper bound, ISO date."),
):
    logger.info(f"GET /expenses/date-range called with {start_date}..{end_date}")
    try:
        total = await gateway.total_by_date_range(start_date, end_date)
        return {"total": total}
    except UpstreamError as e:
        return upstream_failure(gateway, "Error fetching expenses by date range", e)

@router.get("/expenses/category/{category}", response_model=TotalResponse, summary="Total By Category", responses=ERROR_RESPONSES)
async def total_by_category(category: str, gateway: GatewayDep):
    """Sums `nominal` over expenses whose category matches exactly (case-sensitive)."""
    logger.info(f"GET /expenses/category/{category} called")
    try:
        total = await gateway.total_by_category(category)
        return {"total": total}
    except UpstreamError as e:
        return upstream_failure(gateway, "Error fetching expenses by category", e)

@router.get("/expenses/{expense_id}", summary="Get Expense", responses=ERROR_RESPONSES)
async def get_expense(expense_id: str, gateway: GatewayDep):
    try:
        return await gateway.get_expense(expense_id)
    except UpstreamError as e:
        return upstream_failure(gateway, "Error fetching expense", e)

@router.post("/expenses", status_code=status.HTTP_201_CREATED, summary="Create Expense", responses=ERROR_RESPONSES)
async def create_expense(gateway: GatewayDep, body: Any = Body(None)):
    """Forwards the new expense upstream; the upstream store assigns its id."""
    try:
        return await gateway.create_expense(ExpenseWrite.payload_from(body))
    except UpstreamError as e:
        return upstream_failure(gateway, "Error creating expense", e)

@router.put("/expenses/{expense_id}", summary="Update Expense", responses=ERROR_RESPONSES)
async def update_expense(expense_id: str, gateway: GatewayDep, body: Any = Body(None)):
    try:
        return await gateway.update_expense(expense_id, ExpenseWrite.payload_from(body))
    except UpstreamError as e:
        return upstream_failure(gateway, "Error updating expense", e)

@router.delete("/expenses/{expense_id}", status_code=status.HTTP_204_NO_CONTENT, summary="Delete Expense", responses=ERROR_RESPONSES)
async def delete_expense(expense_id: str, gateway: GatewayDep):
    try:
        await gateway.delete_expense(expense_id)
    except UpstreamError as e:
        return upstream_failure(gateway, "Error deleting expense", e)
    return Response(status_code=status.HTTP_204_NO_CONTENT)

@router.get("/health", tags=["system"])
async def healthcheck() -> dict:
    return {"status": "ok"}
