"""Route registration helpers."""

from __future__ import annotations

from fastapi import APIRouter

from .imports import router as imports_router
from .inputs import router as inputs_router
from .kpis import router as kpis_router
from .labor import router as labor_router
from .pos import router as pos_router

api_router = APIRouter()
api_router.include_router(kpis_router, prefix="/kpis", tags=["kpis"])
api_router.include_router(inputs_router, prefix="/inputs", tags=["inputs"])
api_router.include_router(imports_router, prefix="/import", tags=["import"])
api_router.include_router(pos_router, prefix="/pos", tags=["pos"])
api_router.include_router(labor_router, prefix="/labor", tags=["labor"])

__all__ = ["api_router"]
