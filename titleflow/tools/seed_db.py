"""Seed the store from CSV files.

Usage:
    python -m titleflow.tools.seed_db
    python -m titleflow.tools.seed_db --data-dir data
    python -m titleflow.tools.seed_db --drop  # drop existing data first
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import re
import sys
from pathlib import Path

from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from titleflow.adapters.csv_loader.loader import load_assignments, load_fulfillers, load_hubs
from titleflow.adapters.persistence.database import async_session_factory
from titleflow.adapters.persistence.models import (
    AssignmentModel,
    AuditEntryModel,
    FulfillerModel,
    HubModel,
)
from titleflow.adapters.persistence.repositories import (
    SqlAssignmentRepository,
    SqlFulfillerRepository,
    SqlHubRepository,
)
from titleflow.application.ports.assignment_repo import AssignmentRepository
from titleflow.application.ports.fulfiller_repo import FulfillerRepository
from titleflow.application.ports.hub_repo import HubRepository
from titleflow.application.use_cases.intake import AssignmentIntake
from titleflow.application.use_cases.master_data import MasterDataUseCase
from titleflow.config import settings
from titleflow.domain.entities.fulfiller import Fulfiller
from titleflow.domain.entities.hub import Hub
from titleflow.domain.errors import DomainError
from titleflow.domain.value_objects.enums import ActorRole, Priority, Scope
from titleflow.domain.value_objects.location import Actor, Location

logger = logging.getLogger(__name__)

SEED_ACTOR = Actor(id="seed", role=ActorRole.OPERATIONS)


def _slug(value: str) -> str:
    return re.sub(r"[^a-z0-9]+", "-", value.strip().lower()).strip("-")


def _find_csv(data_dir: Path, name_hints: list[str]) -> Path | None:
    """Find a CSV file matching any of the name hints."""
    for f in sorted(data_dir.glob("*.csv")):
        fname_lower = f.stem.lower()
        for hint in name_hints:
            if hint in fname_lower:
                logger.info("Found CSV: %s (matched hint '%s')", f.name, hint)
                return f
    return None


async def seed_repositories(
    data_dir: Path,
    hub_repo: HubRepository,
    fulfiller_repo: FulfillerRepository,
    assignment_repo: AssignmentRepository,
) -> dict[str, int]:
    """Import hubs, then fulfillers, then assignments; returns counts of new records.

    Rows already present (hub code, fulfiller id, assignment account number)
    are skipped, so re-running is safe.
    """
    counts = {"hubs": 0, "fulfillers": 0, "assignments": 0}

    hub_csv = _find_csv(data_dir, ["hubs", "hub", "branches"])
    fulfiller_csv = _find_csv(data_dir, ["fulfillers", "advocates", "fulfiller", "advocate"])
    assignment_csv = _find_csv(data_dir, ["assignments", "assignment", "cases"])

    if not hub_csv:
        raise FileNotFoundError(f"No hubs CSV found in {data_dir}. Expected hubs.csv")

    master = MasterDataUseCase(fulfiller_repo, hub_repo, assignment_repo)
    intake = AssignmentIntake(
        assignment_repo, hub_repo, reference_prefix=settings.reference_prefix
    )

    # 1. Hubs
    for hd in load_hubs(hub_csv):
        if await hub_repo.get_by_code(hd["code"]) is not None:
            logger.debug("Hub '%s' already exists, skipping", hd["code"])
            continue
        await master.add_hub(Hub(
            id=hd["id"] or _slug(hd["code"]),
            code=hd["code"],
            name=hd["name"],
            state=hd["state"],
            district=hd["district"],
            email=hd["email"],
        ))
        counts["hubs"] += 1

    # 2. Fulfillers
    if fulfiller_csv:
        for fd in load_fulfillers(fulfiller_csv):
            fulfiller_id = fd["id"] or _slug(fd["name"])
            if await fulfiller_repo.get_by_id(fulfiller_id) is not None:
                logger.debug("Fulfiller '%s' already exists, skipping", fulfiller_id)
                continue
            home_hub = await hub_repo.get_by_code(fd["hub_code"]) if fd["hub_code"] else None
            if fd["hub_code"] and home_hub is None:
                logger.warning(
                    "Fulfiller '%s': hub '%s' not found, importing without home hub",
                    fd["name"], fd["hub_code"],
                )
            try:
                await master.register_fulfiller(Fulfiller(
                    id=fulfiller_id,
                    name=fd["name"],
                    states=set(fd["states"]),
                    districts=set(fd["districts"]),
                    specializations=set(fd["specializations"]),
                    tags=set(fd["tags"]),
                    home_hub_id=home_hub.id if home_hub else None,
                    firm_name=fd["firm_name"],
                    email=fd["email"],
                ))
            except DomainError as e:
                logger.warning("Fulfiller '%s' skipped: %s", fd["name"], e)
                continue
            counts["fulfillers"] += 1
    else:
        logger.info("No fulfillers CSV found — skipping fulfiller import")

    # 3. Assignments
    if assignment_csv:
        known_accounts = {
            a.account_number for a in await assignment_repo.get_all() if a.account_number
        }
        for ad in load_assignments(assignment_csv):
            if ad["account_number"] and ad["account_number"] in known_accounts:
                logger.debug("Assignment '%s' already exists, skipping", ad["account_number"])
                continue
            hub = await hub_repo.get_by_code(ad["hub_code"])
            if hub is None:
                logger.warning("Assignment row: hub '%s' not found, skipping", ad["hub_code"])
                continue
            try:
                await intake.create(
                    category=ad["category"],
                    subject_location=Location(
                        state=ad["state"],
                        district=ad["district"],
                        address=ad["address"],
                        pincode=ad["pincode"],
                    ),
                    requester_location=Location(
                        state=ad["requester_state"] or hub.state,
                        district=ad["requester_district"] or hub.district,
                    ),
                    origin_hub_id=hub.id,
                    actor=SEED_ACTOR,
                    priority=Priority(ad["priority"]) if ad["priority"] else Priority.STANDARD,
                    scope=Scope(ad["scope"].upper()) if ad["scope"] else Scope.TSR,
                    borrower_name=ad["borrower_name"],
                    account_number=ad["account_number"],
                    claimed=False,
                )
            except (DomainError, ValueError) as e:
                logger.warning("Assignment row skipped: %s", e)
                continue
            if ad["account_number"]:
                known_accounts.add(ad["account_number"])
            counts["assignments"] += 1
    else:
        logger.info("No assignments CSV found — skipping assignment import")

    logger.info(
        "Seed complete: %d hubs, %d fulfillers, %d assignments",
        counts["hubs"], counts["fulfillers"], counts["assignments"],
    )
    return counts


async def _drop_data(session: AsyncSession) -> None:
    """Delete all data in correct order (respecting FK constraints)."""
    for model in [AuditEntryModel, AssignmentModel, FulfillerModel, HubModel]:
        await session.execute(delete(model))
    await session.commit()
    logger.info("Dropped all existing data")


async def seed(data_dir: Path, drop: bool = False) -> dict[str, int]:
    """Seed the SQL store; commits once at the end."""
    async with async_session_factory() as session:
        if drop:
            await _drop_data(session)
        counts = await seed_repositories(
            data_dir,
            SqlHubRepository(session),
            SqlFulfillerRepository(session),
            SqlAssignmentRepository(session),
        )
        await session.commit()
    return counts


async def _verify_data() -> None:
    """Print sanity checks after seeding."""
    async with async_session_factory() as session:
        hubs = (await session.execute(select(func.count(HubModel.id)))).scalar() or 0
        fulfillers = (await session.execute(select(func.count(FulfillerModel.id)))).scalar() or 0
        by_status = dict(
            (await session.execute(
                select(AssignmentModel.status, func.count(AssignmentModel.id))
                .group_by(AssignmentModel.status)
            )).all()
        )

    print(f"\n{'=' * 50}")
    print("SEED VERIFICATION")
    print(f"{'=' * 50}")
    print(f"Hubs:        {hubs}")
    print(f"Fulfillers:  {fulfillers}")
    print(f"Assignments: {sum(by_status.values())}")
    print(f"Status distribution: {by_status}")
    print(f"{'=' * 50}\n")


def main():
    logging.basicConfig(level=settings.log_level, format="%(levelname)s | %(message)s")

    parser = argparse.ArgumentParser(description="Seed titleflow database from CSV files")
    parser.add_argument(
        "--data-dir", type=str, default=settings.csv_data_path,
        help="Directory containing CSV files (default: CSV_DATA_PATH)",
    )
    parser.add_argument(
        "--drop", action="store_true",
        help="Drop existing data before seeding",
    )
    parser.add_argument(
        "--verify-only", action="store_true",
        help="Only run verification, don't seed",
    )
    args = parser.parse_args()

    data_dir = Path(args.data_dir)
    if not args.verify_only and not data_dir.exists():
        logger.error("Data directory not found: %s", data_dir)
        sys.exit(1)

    if args.verify_only:
        asyncio.run(_verify_data())
    else:
        async def run_all():
            await seed(data_dir, drop=args.drop)
            await _verify_data()
        asyncio.run(run_all())


if __name__ == "__main__":
    main()
