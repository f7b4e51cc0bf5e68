"""
Mapa de Decisões API
====================

FastAPI endpoints for the favorability dashboard.

Read Endpoints (prefix /api/v1/mapa-decisoes):
- GET /trts                                 - TRT rollup
- GET /trts/{court_id}/turmas               - Turma/vara rollup for one TRT
- GET /turmas/{division_id}/desembargadores - Adjudicators with decisions
- GET /analytics/estatisticas               - KPI summary
- GET /analytics/top-turmas                 - Best turmas
- GET /analytics/top-desembargadores        - Best adjudicators
- GET /analytics/piores-desembargadores     - Worst adjudicators
- GET /analytics/timeline                   - Monthly series
- GET /analytics/empresas                   - Company breakdown
- GET /analytics/regioes                    - Macro-region breakdown

Write Endpoints:
- POST   /import                - Import spreadsheet rows
- DELETE /trts/{court_id}       - Delete TRT (cascade)
- DELETE /turmas/{division_id}  - Delete turma/vara (cascade)
- DELETE /decisoes/{decision_id} - Delete decision

The tenant comes from the X-Tenant-Id header, the instance from the
`instancia` query parameter.

Run with:
    uvicorn mapa_decisoes.api:app --host 0.0.0.0 --port 8000
"""

import logging
from datetime import date, datetime
from typing import List, Optional

from fastapi import FastAPI, APIRouter, Depends, Header, HTTPException, Query, Request
from fastapi.exceptions import RequestValidationError
from fastapi.exception_handlers import http_exception_handler, request_validation_exception_handler
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from . import admin, analytics
from .config import get_settings
from .db.session import DecisionStore, get_db, get_store
from .errors import (
    MapaDecisoesError, ScopeNotFoundError, BatchTooLargeError,
)
from .reconcile import import_decisions
from .rollup import DecisionFilters
from .schemas import (
    Instance, LiabilityType,
    ImportRequest, ImportResult,
    CourtOutput, DivisionOutput, AdjudicatorOutput,
    RankingOutput, TimelineOutput, CompanyOutput, RegionOutput, StatisticsOutput,
    HealthResponse, ErrorResponse,
)
from .scope import tenant_exists

# Configure logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


# =============================================================================
# Dependencies
# =============================================================================

def require_tenant(
    x_tenant_id: Optional[str] = Header(None, alias="X-Tenant-Id"),
    db: Session = Depends(get_db),
) -> str:
    """Tenant from header; unknown tenants are indistinguishable from missing ones"""
    if not x_tenant_id or not tenant_exists(db, x_tenant_id):
        raise HTTPException(status_code=404, detail="Tenant not found")
    return x_tenant_id


def get_filters(
    data_inicio: Optional[date] = Query(None, alias="dataInicio"),
    data_fim: Optional[date] = Query(None, alias="dataFim"),
    responsabilidade: Optional[LiabilityType] = Query(None),
    empresa: Optional[str] = Query(None, max_length=100),
    numero_processo: Optional[str] = Query(None, alias="numeroProcesso", max_length=50),
) -> DecisionFilters:
    """Parse and validate filter query parameters before they reach the engine"""
    return DecisionFilters(
        date_from=data_inicio,
        date_to=data_fim,
        liability=responsabilidade,
        company=empresa or None,
        process_number=numero_processo or None,
    ).validate()


def _leaderboard_params(limit: Optional[int], min_decisoes: Optional[int]):
    settings = get_settings()
    n = limit if limit is not None else settings.leaderboard_size
    min_total = min_decisoes if min_decisoes is not None else settings.leaderboard_min_sample
    return n, min_total


# =============================================================================
# Router
# =============================================================================

router = APIRouter(
    prefix="/api/v1/mapa-decisoes",
    tags=["mapa-decisoes"],
    responses={
        400: {"model": ErrorResponse},
        404: {"model": ErrorResponse},
        422: {"model": ErrorResponse},
    },
)


@router.get("/trts", response_model=List[CourtOutput], summary="TRT rollup")
async def list_courts(
    instancia: Instance = Query(Instance.SEGUNDA),
    filters: DecisionFilters = Depends(get_filters),
    tenant_id: str = Depends(require_tenant),
    db: Session = Depends(get_db),
):
    return analytics.court_overview(db, tenant_id, instancia, filters)


@router.get("/trts/{court_id}/turmas", response_model=List[DivisionOutput], summary="Turma rollup for one TRT")
async def list_divisions(
    court_id: str,
    instancia: Instance = Query(Instance.SEGUNDA),
    filters: DecisionFilters = Depends(get_filters),
    tenant_id: str = Depends(require_tenant),
    db: Session = Depends(get_db),
):
    return analytics.division_overview(db, tenant_id, instancia, court_id, filters)


@router.get(
    "/turmas/{division_id}/desembargadores",
    response_model=List[AdjudicatorOutput],
    summary="Adjudicators of a turma with their decisions",
)
async def list_adjudicators(
    division_id: str,
    instancia: Instance = Query(Instance.SEGUNDA),
    filters: DecisionFilters = Depends(get_filters),
    tenant_id: str = Depends(require_tenant),
    db: Session = Depends(get_db),
):
    return analytics.adjudicator_overview(db, tenant_id, instancia, division_id, filters)


@router.get("/analytics/estatisticas", response_model=StatisticsOutput, summary="KPI summary")
async def get_statistics(
    instancia: Instance = Query(Instance.SEGUNDA),
    filters: DecisionFilters = Depends(get_filters),
    tenant_id: str = Depends(require_tenant),
    db: Session = Depends(get_db),
):
    return analytics.statistics_summary(db, tenant_id, instancia, filters)


@router.get("/analytics/top-turmas", response_model=List[RankingOutput], summary="Best turmas")
async def get_top_divisions(
    instancia: Instance = Query(Instance.SEGUNDA),
    trt_id: Optional[str] = Query(None, alias="trtId"),
    limit: Optional[int] = Query(None, ge=1, le=100),
    min_decisoes: Optional[int] = Query(None, alias="minDecisoes", ge=0),
    filters: DecisionFilters = Depends(get_filters),
    tenant_id: str = Depends(require_tenant),
    db: Session = Depends(get_db),
):
    n, min_total = _leaderboard_params(limit, min_decisoes)
    return analytics.top_divisions(
        db, tenant_id, instancia, filters, n=n, min_total=min_total, court_id=trt_id,
    )


@router.get("/analytics/top-desembargadores", response_model=List[RankingOutput], summary="Best adjudicators")
async def get_top_adjudicators(
    instancia: Instance = Query(Instance.SEGUNDA),
    trt_id: Optional[str] = Query(None, alias="trtId"),
    turma_id: Optional[str] = Query(None, alias="turmaId"),
    limit: Optional[int] = Query(None, ge=1, le=100),
    min_decisoes: Optional[int] = Query(None, alias="minDecisoes", ge=0),
    filters: DecisionFilters = Depends(get_filters),
    tenant_id: str = Depends(require_tenant),
    db: Session = Depends(get_db),
):
    n, min_total = _leaderboard_params(limit, min_decisoes)
    return analytics.top_adjudicators(
        db, tenant_id, instancia, filters, n=n, min_total=min_total,
        court_id=trt_id, division_id=turma_id,
    )


@router.get("/analytics/piores-desembargadores", response_model=List[RankingOutput], summary="Worst adjudicators")
async def get_worst_adjudicators(
    instancia: Instance = Query(Instance.SEGUNDA),
    trt_id: Optional[str] = Query(None, alias="trtId"),
    turma_id: Optional[str] = Query(None, alias="turmaId"),
    limit: Optional[int] = Query(None, ge=1, le=100),
    min_decisoes: Optional[int] = Query(None, alias="minDecisoes", ge=0),
    filters: DecisionFilters = Depends(get_filters),
    tenant_id: str = Depends(require_tenant),
    db: Session = Depends(get_db),
):
    n, min_total = _leaderboard_params(limit, min_decisoes)
    return analytics.top_adjudicators(
        db, tenant_id, instancia, filters, n=n, min_total=min_total, worst=True,
        court_id=trt_id, division_id=turma_id,
    )


@router.get("/analytics/timeline", response_model=List[TimelineOutput], summary="Monthly series")
async def get_timeline(
    instancia: Instance = Query(Instance.SEGUNDA),
    trt_id: Optional[str] = Query(None, alias="trtId"),
    turma_id: Optional[str] = Query(None, alias="turmaId"),
    filters: DecisionFilters = Depends(get_filters),
    tenant_id: str = Depends(require_tenant),
    db: Session = Depends(get_db),
):
    return analytics.timeline(db, tenant_id, instancia, filters, court_id=trt_id, division_id=turma_id)


@router.get("/analytics/empresas", response_model=List[CompanyOutput], summary="Company breakdown")
async def get_company_breakdown(
    instancia: Instance = Query(Instance.SEGUNDA),
    filters: DecisionFilters = Depends(get_filters),
    tenant_id: str = Depends(require_tenant),
    db: Session = Depends(get_db),
):
    return analytics.company_breakdown(db, tenant_id, instancia, filters)


@router.get("/analytics/regioes", response_model=List[RegionOutput], summary="Macro-region breakdown")
async def get_region_breakdown(
    instancia: Instance = Query(Instance.SEGUNDA),
    filters: DecisionFilters = Depends(get_filters),
    tenant_id: str = Depends(require_tenant),
    db: Session = Depends(get_db),
):
    return analytics.region_breakdown(db, tenant_id, instancia, filters)


@router.post("/import", response_model=ImportResult, summary="Import spreadsheet rows")
def import_rows(
    request: ImportRequest,
    instancia: Instance = Query(Instance.SEGUNDA),
    tenant_id: str = Depends(require_tenant),
    store: DecisionStore = Depends(get_store),
):
    """
    Import rows produced by the spreadsheet parser.

    Bad rows are reported in errorDetails; the rest of the batch is kept.
    """
    return import_decisions(store, tenant_id, instancia, request.rows, court_id=request.court_id)


@router.delete("/trts/{court_id}", summary="Delete TRT and everything under it")
async def delete_court(
    court_id: str,
    instancia: Instance = Query(Instance.SEGUNDA),
    tenant_id: str = Depends(require_tenant),
    db: Session = Depends(get_db),
):
    removed = admin.delete_court(db, tenant_id, instancia, court_id)
    db.commit()
    return {"deleted": court_id, "removed": removed}


@router.delete("/turmas/{division_id}", summary="Delete turma/vara and everything under it")
async def delete_division(
    division_id: str,
    instancia: Instance = Query(Instance.SEGUNDA),
    tenant_id: str = Depends(require_tenant),
    db: Session = Depends(get_db),
):
    removed = admin.delete_division(db, tenant_id, instancia, division_id)
    db.commit()
    return {"deleted": division_id, "removed": removed}


@router.delete("/decisoes/{decision_id}", summary="Delete decision")
async def delete_decision(
    decision_id: str,
    instancia: Instance = Query(Instance.SEGUNDA),
    tenant_id: str = Depends(require_tenant),
    db: Session = Depends(get_db),
):
    admin.delete_decision(db, tenant_id, instancia, decision_id)
    db.commit()
    return {"deleted": decision_id}


# =============================================================================
# Error handling
# =============================================================================

def _is_api_v1_request(request: Request) -> bool:
    return request.url.path.startswith("/api/v1")


def _error_code_for_status(status_code: int) -> str:
    return {
        400: "bad_request",
        403: "forbidden",
        404: "not_found",
        413: "payload_too_large",
        422: "validation_error",
    }.get(status_code, "error" if status_code < 500 else "internal_error")


def _build_error_payload(code: str, message: str, details=None) -> dict:
    return {"error": {"code": code, "message": message, "details": details}}


def _status_for_engine_error(exc: MapaDecisoesError) -> int:
    if isinstance(exc, ScopeNotFoundError):
        return 404
    if isinstance(exc, BatchTooLargeError):
        return 413
    # InvalidFilterError and anything else from the engine
    return 400


def _register_error_handlers(app: FastAPI) -> None:

    @app.exception_handler(MapaDecisoesError)
    async def engine_error_handler(request: Request, exc: MapaDecisoesError):
        status_code = _status_for_engine_error(exc)
        return JSONResponse(
            status_code=status_code,
            content=_build_error_payload(_error_code_for_status(status_code), str(exc)),
        )

    @app.exception_handler(HTTPException)
    async def api_http_exception_handler(request: Request, exc: HTTPException):
        """Structured errors for /api/v1 endpoints."""
        if not _is_api_v1_request(request):
            return await http_exception_handler(request, exc)

        message = exc.detail if isinstance(exc.detail, str) and exc.detail else "Erro na requisição"
        return JSONResponse(
            status_code=exc.status_code,
            content=_build_error_payload(_error_code_for_status(exc.status_code), message),
        )

    @app.exception_handler(RequestValidationError)
    async def api_validation_exception_handler(request: Request, exc: RequestValidationError):
        """Return structured validation errors without leaking inputs."""
        if not _is_api_v1_request(request):
            return await request_validation_exception_handler(request, exc)

        sanitized_errors = [
            {"loc": err.get("loc"), "msg": err.get("msg"), "type": err.get("type")}
            for err in exc.errors()
        ]
        return JSONResponse(
            status_code=422,
            content=_build_error_payload(
                "validation_error",
                "Erro de validação dos parâmetros",
                {"errors": sanitized_errors},
            ),
        )

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        """Global exception handler - always return valid JSON"""
        logger.error("Unhandled exception on %s: %s", request.url.path, exc.__class__.__name__, exc_info=exc)
        return JSONResponse(
            status_code=500,
            content=_build_error_payload("internal_error", "Erro interno", {"exception": exc.__class__.__name__}),
        )


# =============================================================================
# FastAPI App
# =============================================================================

def create_app(store: Optional[DecisionStore] = None) -> FastAPI:
    """
    Build the app. Without an explicit store one is created from settings
    on startup.
    """
    settings = get_settings()

    app = FastAPI(
        title="Mapa de Decisões",
        description="Favorability analytics over labor-court decisions",
        version=settings.service_version,
        docs_url="/docs",
        redoc_url="/redoc",
    )
    app.state.store = store

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins(),
        allow_credentials=True,
        allow_methods=["GET", "POST", "DELETE", "OPTIONS"],
        allow_headers=["*"],
    )

    app.include_router(router)
    _register_error_handlers(app)

    @app.get("/health", response_model=HealthResponse, tags=["Health"])
    async def health_check():
        """Health check endpoint"""
        return HealthResponse(
            status="healthy",
            version=settings.service_version,
            timestamp=datetime.now(),
        )

    @app.on_event("startup")
    async def startup_event():
        """Initialize on startup"""
        logger.info(f"Starting Mapa de Decisões v{settings.service_version}")
        for warning in settings.validate_config():
            logger.warning(warning)

        if app.state.store is None:
            app.state.store = DecisionStore(settings.database_url, echo=settings.sql_echo)
        app.state.store.init_schema()

        if settings.seed_demo_data:
            from .seed import seed_demo_data
            seed_demo_data(app.state.store)

    @app.on_event("shutdown")
    async def shutdown_event():
        logger.info("Shutting down Mapa de Decisões")

    return app


app = create_app()
