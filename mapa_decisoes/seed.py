"""
Demo Data Seeding
=================

One-time setup of a demo tenant. Decisions go through the normal import
path, so seeding also exercises reconciliation.
"""

import logging
from typing import Optional

from .admin import create_court, create_tenant
from .db.models import Tenant
from .db.session import DecisionStore
from .reconcile import import_decisions
from .schemas import Instance

logger = logging.getLogger(__name__)

DEMO_TENANT_NAME = "Demo V.tal"

_DEMO_COURTS = [
    ("TRT 1 - Rio de Janeiro", "01"),
    ("TRT 2 - São Paulo", "02"),
]

_DEMO_ROWS = {
    Instance.SEGUNDA: [
        {"dataDecisao": "2024-01-15", "numeroProcesso": "0100123-45.2023.5.01.0001", "turma": "1ª Turma",
         "relator": "Des. Maria Helena Costa", "resultado": "Favorável", "responsabilidade": "Subsidiária",
         "upi": "Não", "empresa": "V.tal"},
        {"dataDecisao": "2024-02-03", "numeroProcesso": "0100456-12.2023.5.01.0002", "turma": "1ª Turma",
         "relator": "Des. Maria Helena Costa", "resultado": "Desfavorável", "responsabilidade": "Solidária",
         "upi": "Sim", "empresa": "OI"},
        {"dataDecisao": "2024-02-20", "numeroProcesso": "0100789-33.2023.5.01.0003", "turma": "3ª Turma",
         "relator": "Des. Ricardo Almeida", "resultado": "Parcialmente procedente", "empresa": "Serede"},
        {"dataDecisao": "12/03/2024", "numeroProcesso": "1000321-77.2023.5.02.0011", "turma": "2ª Turma",
         "relator": "Des. Ana Paula Ferreira", "resultado": "Provido", "empresa": "V.tal"},
        {"dataDecisao": "", "numeroProcesso": "1000654-88.2023.5.02.0012", "turma": "2ª Turma",
         "relator": "Ana Paula Ferreira", "resultado": "Em análise", "empresa": "Sprink"},
    ],
    Instance.PRIMEIRA: [
        {"dataDecisao": "2024-01-10", "numeroProcesso": "0100999-01.2023.5.01.0021", "turma": "21ª Vara do Trabalho",
         "relator": "Juiz Carlos Eduardo Lima", "resultado": "Improcedente", "empresa": "V.tal"},
        {"dataDecisao": "2024-03-05", "numeroProcesso": "1000111-22.2023.5.02.0031", "turma": "31ª Vara do Trabalho",
         "relator": "Juíza Fernanda Rocha", "resultado": "Procedente", "empresa": "OI"},
    ],
}


def seed_demo_data(store: DecisionStore) -> Optional[str]:
    """
    Create the demo tenant once. Returns its id, or None if it already exists.
    """
    with store.session() as db:
        existing = db.query(Tenant).filter(Tenant.name == DEMO_TENANT_NAME).first()
        if existing:
            logger.info("Demo tenant already seeded")
            return None

        tenant = create_tenant(db, DEMO_TENANT_NAME, primary_company="V.tal")
        for instance in Instance:
            for name, code in _DEMO_COURTS:
                create_court(db, tenant.id, instance, name, region_code=code)
        tenant_id = tenant.id

    for instance, rows in _DEMO_ROWS.items():
        result = import_decisions(store, tenant_id, instance, rows)
        logger.info(f"Seeded {instance.value}: {result.success} decisions")

    return tenant_id
