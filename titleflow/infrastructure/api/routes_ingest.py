"""Ingest endpoint — load hub, fulfiller and assignment CSVs."""

from __future__ import annotations

import logging
from pathlib import Path

from fastapi import APIRouter, Depends, HTTPException

from titleflow.config import settings
from titleflow.infrastructure.api.dependencies import Repositories, get_repositories
from titleflow.tools.seed_db import seed_repositories

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/ingest", tags=["ingest"])


@router.post("")
async def ingest_csv(repos: Repositories = Depends(get_repositories)):
    """Load CSV data from CSV_DATA_PATH; rows already present are skipped."""
    data_dir = Path(settings.csv_data_path)
    if not data_dir.exists():
        raise HTTPException(status_code=400, detail=f"Data directory not found: {data_dir}")

    try:
        counts = await seed_repositories(data_dir, repos.hubs, repos.fulfillers, repos.assignments)
    except FileNotFoundError as e:
        raise HTTPException(status_code=400, detail=str(e))
    await repos.commit()

    return {"status": "ok", "message": "CSV data ingested successfully", "counts": counts}
