"""
Pydantic Schemas for Mapa de Decisões
=====================================

Stable schemas for the import boundary and the dashboard boundary.
Output field names follow the dashboard contract (Portuguese camelCase).
"""

from typing import List, Optional, Any
from pydantic import BaseModel, Field, ConfigDict, field_validator
from enum import Enum
from datetime import date, datetime


# =============================================================================
# ENUMS
# =============================================================================

class Instance(str, Enum):
    """
    Which of the two parallel hierarchies a request targets.

    - PRIMEIRA: trial level (TRT -> vara -> juiz)
    - SEGUNDA: appellate level (TRT -> turma -> desembargador)
    """
    PRIMEIRA = "primeira"
    SEGUNDA = "segunda"


class Outcome(str, Enum):
    """Decision outcome. Mutually exclusive."""
    FAVORAVEL = "favoravel"
    DESFAVORAVEL = "desfavoravel"
    PARCIAL = "parcial"
    EM_ANALISE = "em_analise"


class LiabilityType(str, Enum):
    """Responsabilidade solidária / subsidiária"""
    SOLIDARIA = "solidaria"
    SUBSIDIARIA = "subsidiaria"


class AdjudicatorRole(str, Enum):
    """Titular or substitute judge"""
    TITULAR = "titular"
    SUBSTITUTO = "substituto"


class Company(str, Enum):
    """Client companies tracked by the dashboard"""
    VTAL = "V.tal"
    OI = "OI"
    SEREDE = "Serede"
    SPRINK = "Sprink"
    OUTROS = "Outros Terceiros"


# =============================================================================
# IMPORT BOUNDARY
# =============================================================================

class ImportRow(BaseModel):
    """
    One spreadsheet row as produced by the parsing collaborator.

    Every field is optional here: a missing required field is a per-row
    error reported in the import result, not a request validation error.
    """
    model_config = ConfigDict(populate_by_name=True)

    data_decisao: Optional[str] = Field(None, alias="dataDecisao")
    numero_processo: Optional[str] = Field(None, alias="numeroProcesso")
    local: Optional[str] = None
    turma: Optional[str] = None
    relator: Optional[str] = None
    resultado: Optional[str] = None
    responsabilidade: Optional[str] = None
    upi: Optional[str] = None
    empresa: Optional[str] = None
    instancia: Optional[str] = None

    @field_validator("*", mode="before")
    @classmethod
    def _coerce_to_text(cls, v: Any) -> Any:
        # Spreadsheet cells arrive as numbers or booleans as often as text
        if v is None or isinstance(v, str):
            return v
        if isinstance(v, bool):
            return "sim" if v else "não"
        if isinstance(v, float) and v.is_integer():
            return str(int(v))
        return str(v)


class ImportRequest(BaseModel):
    """Import batch request"""
    rows: List[ImportRow]
    court_id: Optional[str] = Field(None, alias="trtId")

    model_config = ConfigDict(populate_by_name=True)


class ImportRowError(BaseModel):
    """Per-row import error"""
    index: int
    error: str


class ImportResult(BaseModel):
    """Batch import result"""
    success: int = 0
    skipped: int = 0
    updated: int = 0
    errors: int = 0
    turmasCreated: int = 0
    desembargadoresCreated: int = 0
    errorDetails: List[ImportRowError] = Field(default_factory=list)


# =============================================================================
# DASHBOARD BOUNDARY
# =============================================================================

class StatsOutput(BaseModel):
    """Favorability tuple shared by every aggregate view"""
    totalDecisoes: int = 0
    favoraveis: int = 0
    desfavoraveis: int = 0
    parciais: int = 0
    emAnalise: int = 0
    percentualFavoravel: int = 0
    percentualDesfavoravel: int = 0


class CourtOutput(StatsOutput):
    """TRT row"""
    id: str
    nome: str
    regiao: Optional[str] = None
    totalTurmas: int = 0
    totalDesembargadores: int = 0


class DivisionOutput(StatsOutput):
    """Turma / vara row (scoped to one TRT)"""
    id: str
    nome: str
    trtId: str
    totalDesembargadores: int = 0


class DecisionOutput(BaseModel):
    """Single decision for drill-down"""
    id: str
    numeroProcesso: str
    dataDecisao: Optional[date] = None
    resultado: Outcome
    responsabilidade: Optional[LiabilityType] = None
    upi: bool = False
    empresa: str
    regiao: Optional[str] = None


class AdjudicatorOutput(StatsOutput):
    """Desembargador / juiz row with embedded decisions"""
    id: str
    nome: str
    voto: Optional[AdjudicatorRole] = None
    turmaId: str
    decisoes: List[DecisionOutput] = Field(default_factory=list)


class RankingOutput(BaseModel):
    """Top-N entry"""
    id: str
    nome: str
    contextLabel: str
    totalDecisoes: int
    favoraveis: int
    desfavoraveis: int
    percentualFavoravel: int


class TimelineOutput(BaseModel):
    """Monthly bucket"""
    mes: int
    ano: int
    label: str
    totalDecisoes: int
    favoraveis: int
    desfavoraveis: int
    percentualFavoravel: int
    percentualDesfavoravel: int


class CompanyOutput(BaseModel):
    """Company breakdown row"""
    empresa: str
    totalDecisoes: int
    favoraveis: int
    desfavoraveis: int
    parciais: int
    emAnalise: int
    percentualFavoravel: int
    percentualDesfavoravel: int


class RegionOutput(BaseModel):
    """Macro-region breakdown row"""
    nome: str
    totalDecisoes: int
    favoraveis: int
    desfavoraveis: int
    parciais: int
    emAnalise: int
    percentualFavoravel: int
    percentualDesfavoravel: int


class StatisticsOutput(StatsOutput):
    """Dashboard KPI summary"""
    totalTRTs: int = 0
    totalTurmas: int = 0
    totalDesembargadores: int = 0


class HealthResponse(BaseModel):
    """Health check response"""
    status: str
    version: str
    timestamp: datetime


class ErrorResponse(BaseModel):
    """Structured error body"""
    error: dict
