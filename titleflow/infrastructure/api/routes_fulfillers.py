"""Fulfiller endpoints — master data and workloads."""

from __future__ import annotations

from fastapi import APIRouter, Depends, status

from titleflow.application.use_cases.master_data import MasterDataUseCase
from titleflow.config import settings
from titleflow.domain.errors import NotFound
from titleflow.infrastructure.api.dependencies import (
    Repositories,
    get_master_data_uc,
    get_repositories,
)
from titleflow.infrastructure.api.schemas import (
    FulfillerIn,
    serialize_fulfiller,
    serialize_workload,
)

router = APIRouter(prefix="/fulfillers", tags=["fulfillers"])


@router.get("")
async def list_fulfillers(repos: Repositories = Depends(get_repositories)):
    fulfillers = await repos.fulfillers.get_all()
    return {"total": len(fulfillers), "fulfillers": [serialize_fulfiller(f) for f in fulfillers]}


@router.get("/workloads")
async def workloads(
    cap: int | None = None,
    master: MasterDataUseCase = Depends(get_master_data_uc),
):
    """Derived active load of every fulfiller against *cap*."""
    cap = settings.default_capacity if cap is None else cap
    rows = await master.workloads(cap)
    return {"cap": cap, "workloads": [serialize_workload(w) for w in rows]}


@router.get("/{fulfiller_id}")
async def get_fulfiller(fulfiller_id: str, repos: Repositories = Depends(get_repositories)):
    fulfiller = await repos.fulfillers.get_by_id(fulfiller_id)
    if fulfiller is None:
        raise NotFound("Fulfiller", fulfiller_id)
    return serialize_fulfiller(fulfiller)


@router.post("", status_code=status.HTTP_201_CREATED)
async def register_fulfiller(
    body: FulfillerIn,
    master: MasterDataUseCase = Depends(get_master_data_uc),
    repos: Repositories = Depends(get_repositories),
):
    fulfiller = await master.register_fulfiller(body.to_domain())
    await repos.commit()
    return serialize_fulfiller(fulfiller)


@router.put("/{fulfiller_id}")
async def update_fulfiller(
    fulfiller_id: str,
    body: FulfillerIn,
    master: MasterDataUseCase = Depends(get_master_data_uc),
    repos: Repositories = Depends(get_repositories),
):
    fulfiller = await master.update_fulfiller(body.to_domain(fulfiller_id))
    await repos.commit()
    return serialize_fulfiller(fulfiller)


@router.delete("/{fulfiller_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_fulfiller(
    fulfiller_id: str,
    master: MasterDataUseCase = Depends(get_master_data_uc),
    repos: Repositories = Depends(get_repositories),
):
    await master.delete_fulfiller(fulfiller_id)
    await repos.commit()
