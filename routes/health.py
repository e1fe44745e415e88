from __future__ import annotations

import os

from fastapi import APIRouter, Request

from db import get_conn

router = APIRouter(tags=["health"])


def _check_db() -> tuple[bool, str | None]:
    try:
        with get_conn() as conn:
            with conn.cursor() as cur:
                cur.execute("SELECT 1;")
                cur.fetchone()
        return True, None
    except Exception as exc:
        return False, f"{type(exc).__name__}: {exc}"


def _resolve_git_sha() -> str | None:
    return (os.getenv("GIT_SHA") or "").strip() or None


@router.get("/health")
def health(request: Request):
    cfg = request.app.state.gateway_config
    return {
        "ok": True,
        "santimpay_mode": cfg.mode,
        "git_sha": _resolve_git_sha(),
    }


@router.get("/healthz")
def healthz(request: Request):
    backend = request.app.state.store_backend
    db_ok, db_error = (None, None)
    if backend == "postgres":
        db_ok, db_error = _check_db()
    return {
        "ok": True,
        "version": os.getenv("APP_VERSION", "1.0.0"),
        "git_sha": _resolve_git_sha(),
        "store": backend,
        "db_ok": db_ok,
        "db_error": db_error,
    }
