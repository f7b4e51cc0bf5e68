"""
Shared fixtures: a fresh SQLite store per test and a seeded tenant scope.
"""

import sys
from pathlib import Path

import pytest

# Add parent to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent.parent))

from mapa_decisoes.admin import create_court, create_tenant
from mapa_decisoes.db.session import DecisionStore
from mapa_decisoes.schemas import Instance


@pytest.fixture
def store(tmp_path):
    """Configure a fresh SQLAlchemy SQLite DB for tests."""
    s = DecisionStore(f"sqlite:///{tmp_path / 'mapa.db'}")
    s.init_schema()
    yield s
    s.drop_schema()
    s.dispose()


@pytest.fixture
def scope(store):
    """
    Two tenants, each with TRT 1 and TRT 2 in both instances.

    Returns ids keyed by tenant ("a", "b") and court code.
    """
    ids = {}
    with store.session() as db:
        for key, company in (("a", "V.tal"), ("b", "OI")):
            tenant = create_tenant(db, f"Tenant {key.upper()}", primary_company=company)
            ids[key] = tenant.id
            for instance in Instance:
                trt1 = create_court(db, tenant.id, instance, "TRT 1 - Rio de Janeiro", region_code="01")
                trt2 = create_court(db, tenant.id, instance, "TRT 2 - São Paulo", region_code="02")
                ids[(key, instance, "01")] = trt1.id
                ids[(key, instance, "02")] = trt2.id
    return ids


def make_row(numero, relator="Des. Maria Helena Costa", turma="1ª Turma", resultado="Favorável", **extra):
    """Import row with sensible defaults"""
    row = {
        "numeroProcesso": numero,
        "relator": relator,
        "turma": turma,
        "resultado": resultado,
        "dataDecisao": "2024-03-10",
        "local": "TRT 1",
    }
    row.update(extra)
    return row


def process_number(seq: int, trt: str = "01") -> str:
    """CNJ number in TRT `trt`"""
    return f"{seq:07d}-45.2023.5.{trt}.0001"
