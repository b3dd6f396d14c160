"""
Aggregates all v1 API routers into a single APIRouter.
"""
from __future__ import annotations

from fastapi import APIRouter

from mytasks.api.v1 import public, tasks

api_router = APIRouter()

api_router.include_router(tasks.router)
api_router.include_router(public.router)
