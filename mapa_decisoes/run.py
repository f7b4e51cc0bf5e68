#!/usr/bin/env python3
"""
Quick runner for Mapa de Decisões
=================================

Usage:
    python -m mapa_decisoes.run
    # or
    python mapa_decisoes/run.py
"""

import uvicorn

if __name__ == "__main__":
    print("Starting Mapa de Decisões...")
    print("API docs: http://localhost:8000/docs")
    print("Health:   http://localhost:8000/health")
    print()

    uvicorn.run(
        "mapa_decisoes.api:app",
        host="0.0.0.0",
        port=8000,
        reload=True
    )
