"""FastAPI router for sales upload, plan configuration and commission runs."""
import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, File, HTTPException, Query, Request, Response, UploadFile, status
from pydantic import BaseModel, Field

from backend.calc_engine.config.settings import AppSettings
from backend.core import exports
from backend.core.commission_engine import CommissionEngine, summarize_calculations
from backend.core.errors import IngestionError, PlanConfigurationError, PlanNotFoundError
from backend.core.ingestion import parse_sales_csv
from backend.models.commission_schemas import (
    CommissionCalculation,
    CommissionPlan,
    CommissionPlanDraft,
    CommissionSummaryRow,
    SalesData,
)

from ..core.constraints import ensure_plans_available
from ..core.plan_registry import PlanRegistry

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/v1", tags=["commissions"])

XLSX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"


def get_registry(request: Request) -> PlanRegistry:
    return request.app.state.plan_registry


def get_engine(request: Request) -> CommissionEngine:
    return request.app.state.engine


def get_settings(request: Request) -> AppSettings:
    return request.app.state.settings


class CalculateRequest(BaseModel):
    sales: List[SalesData]
    plans: Optional[List[CommissionPlan]] = Field(
        None, description="Plans to apply; defaults to the configured plans"
    )


class ExportRequest(BaseModel):
    calculations: List[CommissionCalculation]


# ---------- Sales ----------

@router.post(
    "/sales/upload",
    response_model=List[SalesData],
    responses={400: {"description": "Unreadable CSV file"}},
)
async def upload_sales(
    file: UploadFile = File(...),
    settings: AppSettings = Depends(get_settings),
) -> List[SalesData]:
    """Parse an uploaded sales CSV into sales records."""
    content = await file.read()
    try:
        return parse_sales_csv(
            content,
            default_business_line=settings.ingestion.default_business_line,
        )
    except IngestionError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))


# ---------- Plans ----------

@router.get("/plans", response_model=List[CommissionPlan])
async def list_plans(registry: PlanRegistry = Depends(get_registry)) -> List[CommissionPlan]:
    return registry.list()


@router.post(
    "/plans",
    response_model=CommissionPlan,
    status_code=status.HTTP_201_CREATED,
    responses={400: {"description": "Invalid plan"}},
)
async def create_plan(
    draft: CommissionPlanDraft,
    registry: PlanRegistry = Depends(get_registry),
) -> CommissionPlan:
    try:
        return registry.create(draft)
    except PlanConfigurationError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))


@router.put(
    "/plans/{plan_id}",
    response_model=CommissionPlan,
    responses={400: {"description": "Invalid plan"}, 404: {"description": "Unknown plan"}},
)
async def update_plan(
    plan_id: str,
    draft: CommissionPlanDraft,
    registry: PlanRegistry = Depends(get_registry),
) -> CommissionPlan:
    try:
        return registry.update(plan_id, draft)
    except PlanNotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc))
    except PlanConfigurationError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))


@router.delete(
    "/plans/{plan_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    responses={404: {"description": "Unknown plan"}},
)
async def delete_plan(plan_id: str, registry: PlanRegistry = Depends(get_registry)) -> Response:
    try:
        registry.delete(plan_id)
    except PlanNotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc))
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# ---------- Calculations ----------

@router.post(
    "/commissions/calculate",
    response_model=List[CommissionCalculation],
    responses={400: {"description": "No plans, or a sale without a matching plan"}},
)
async def calculate(
    payload: CalculateRequest,
    registry: PlanRegistry = Depends(get_registry),
    engine: CommissionEngine = Depends(get_engine),
) -> List[CommissionCalculation]:
    """Calculate commissions for every sale; fails as a whole if any sale has no plan."""
    plans = payload.plans if payload.plans is not None else registry.list()
    try:
        ensure_plans_available(plans)
        return engine.calculate_commissions(payload.sales, plans)
    except PlanConfigurationError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))


@router.post(
    "/commissions/export/excel",
    responses={200: {"content": {XLSX_MEDIA_TYPE: {}}, "description": "Binary Excel workbook"}},
)
async def export_excel(
    payload: ExportRequest,
    settings: AppSettings = Depends(get_settings),
) -> Response:
    content = exports.to_excel(
        payload.calculations,
        calculations_sheet=settings.export.calculations_sheet,
        details_sheet=settings.export.details_sheet,
    )
    return Response(
        content,
        media_type=XLSX_MEDIA_TYPE,
        headers={"Content-Disposition": 'attachment; filename="commission_calculations.xlsx"'},
    )


@router.post(
    "/commissions/export/csv",
    responses={200: {"content": {"text/csv": {}}, "description": "Calculations as CSV"}},
)
async def export_csv(payload: ExportRequest) -> Response:
    return Response(
        exports.to_csv(payload.calculations),
        media_type="text/csv",
        headers={"Content-Disposition": 'attachment; filename="commission_calculations.csv"'},
    )


@router.post("/commissions/summary", response_model=List[CommissionSummaryRow])
async def summarize(
    payload: ExportRequest,
    group_by: str = Query("rep", pattern="^(rep|plan)$"),
) -> List[CommissionSummaryRow]:
    """Totals per representative or per plan for the dashboard."""
    return summarize_calculations(payload.calculations, group_by=group_by)
