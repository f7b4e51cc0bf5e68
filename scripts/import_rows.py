#!/usr/bin/env python3
"""
Import decision rows from a JSON file into one tenant+instance.

The file holds a list of row objects as produced by the spreadsheet parser
(keys: dataDecisao, numeroProcesso, turma, relator, resultado, ...).

Safe by default (check only). Use --apply to persist.
"""

import argparse
import json
from pathlib import Path


def main() -> int:
    parser = argparse.ArgumentParser(description="Import decision rows from JSON.")
    parser.add_argument("rows_file", type=Path, help="JSON file with a list of rows")
    parser.add_argument("--tenant", required=True, help="Tenant id")
    parser.add_argument("--instancia", default="segunda", choices=["primeira", "segunda"])
    parser.add_argument("--trt-id", default=None, help="Attach every row to this TRT")
    parser.add_argument("--apply", action="store_true", help="Persist changes (default: check only)")
    args = parser.parse_args()

    from mapa_decisoes.config import get_settings
    from mapa_decisoes.db.session import DecisionStore
    from mapa_decisoes.errors import RowError
    from mapa_decisoes.reconcile import import_decisions, validate_row
    from mapa_decisoes.schemas import ImportRow, Instance

    with open(args.rows_file, "r", encoding="utf-8") as f:
        raw_rows = json.load(f)
    instance = Instance(args.instancia)
    rows = [ImportRow.model_validate(r) for r in raw_rows]

    if not args.apply:
        invalid = 0
        for index, row in enumerate(rows):
            try:
                validate_row(row, instance)
            except RowError as e:
                invalid += 1
                print(f"[CHECK] row {index}: {e}")
        print(f"[CHECK] {len(rows)} rows, {invalid} invalid")
        return 1 if invalid else 0

    settings = get_settings()
    store = DecisionStore(settings.database_url, echo=settings.sql_echo)
    store.init_schema()
    try:
        result = import_decisions(store, args.tenant, instance, rows, court_id=args.trt_id)
    finally:
        store.dispose()

    print(f"[APPLY] Created: {result.success}")
    print(f"[APPLY] Updated: {result.updated}")
    print(f"[APPLY] Skipped: {result.skipped}")
    print(f"[APPLY] Turmas created: {result.turmasCreated}")
    print(f"[APPLY] Desembargadores created: {result.desembargadoresCreated}")
    for err in result.errorDetails:
        print(f"[APPLY] row {err.index}: {err.error}")
    return 1 if result.errors else 0


if __name__ == "__main__":
    raise SystemExit(main())
