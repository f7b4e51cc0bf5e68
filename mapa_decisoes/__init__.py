"""
Mapa de Decisões - Favorability Analytics Service
=================================================

Tracks judicial decisions across a three-level hierarchy
(TRT -> turma/vara -> desembargador/juiz) and computes:
1. Rollup statistics at every hierarchy level
2. Top-N rankings, monthly timelines and grouped breakdowns
3. Reconciliation of spreadsheet rows into the hierarchy

Every read recomputes from the current decision set.
"""

__version__ = "1.0.0"
