# src/hazardroute/api/app.py
"""
FastAPI application wiring.

This file creates the `FastAPI` instance and configures CORS for the map frontend.
Business logic lives in `hazardroute.api.routes` and `hazardroute.planner.session`.
"""

from __future__ import annotations

import os

from fastapi import FastAPI
from starlette.middleware.cors import CORSMiddleware

from hazardroute.core.env import load_dotenv_if_present
from hazardroute.core.logging import configure_logging

from .routes import router

load_dotenv_if_present()
configure_logging()

app = FastAPI(title="HazardRoute API", version="0.1.0")

# CORS (dev-friendly): allow a local map frontend (e.g. http://localhost:5173) to call this API.
# Configure via env:
# - HAZARDROUTE_CORS_ORIGINS="http://localhost:5173,http://127.0.0.1:5173"
# - HAZARDROUTE_CORS_ALLOW_LOCAL=0 to disable the default localhost allowance
cors_origins = [s.strip() for s in os.getenv("HAZARDROUTE_CORS_ORIGINS", "").split(",") if s.strip()]
cors_allow_local = os.getenv("HAZARDROUTE_CORS_ALLOW_LOCAL", "1").strip().lower() in {"1", "true", "yes", "y"}
cors_origin_regex = os.getenv("HAZARDROUTE_CORS_ALLOW_ORIGIN_REGEX", "").strip() or (
    r"^https?://(localhost|127\.0\.0\.1)(:\d+)?$" if cors_allow_local and not cors_origins else ""
)
if cors_origins or cors_origin_regex:
    app.add_middleware(
        CORSMiddleware,
        allow_origins=cors_origins,
        allow_origin_regex=cors_origin_regex or None,
        allow_credentials=False,
        allow_methods=["*"],
        allow_headers=["*"],
    )

app.include_router(router)


@app.get("/api/health")
def health() -> dict:
    return {"status": "ok"}
