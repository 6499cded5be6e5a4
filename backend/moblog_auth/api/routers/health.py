"""Liveness route."""

from __future__ import annotations

from fastapi import APIRouter

from moblog_auth.auth.http import api_success

router = APIRouter()


@router.get("/api/health")
def health() -> dict[str, object]:
    return api_success(message="ok")
