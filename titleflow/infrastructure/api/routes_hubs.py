"""Hub endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends, status

from titleflow.application.use_cases.master_data import MasterDataUseCase
from titleflow.infrastructure.api.dependencies import (
    Repositories,
    get_master_data_uc,
    get_repositories,
)
from titleflow.infrastructure.api.schemas import HubIn, serialize_hub

router = APIRouter(prefix="/hubs", tags=["hubs"])


@router.get("")
async def list_hubs(repos: Repositories = Depends(get_repositories)):
    hubs = await repos.hubs.get_all()
    return {"total": len(hubs), "hubs": [serialize_hub(h) for h in hubs]}


@router.post("", status_code=status.HTTP_201_CREATED)
async def add_hub(
    body: HubIn,
    master: MasterDataUseCase = Depends(get_master_data_uc),
    repos: Repositories = Depends(get_repositories),
):
    hub = await master.add_hub(body.to_domain())
    await repos.commit()
    return serialize_hub(hub)


@router.delete("/{hub_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_hub(
    hub_id: str,
    master: MasterDataUseCase = Depends(get_master_data_uc),
    repos: Repositories = Depends(get_repositories),
):
    await master.delete_hub(hub_id)
    await repos.commit()
