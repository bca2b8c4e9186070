"""ScoringPolicy — match score between an assignment and a candidate fulfiller."""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass

from titleflow.domain.entities.assignment import Assignment
from titleflow.domain.entities.fulfiller import Fulfiller
from titleflow.domain.value_objects.enums import AllocationStrategy
from titleflow.domain.value_objects.location import Location

LOCATION_MATCH_POINTS = 100
HUB_MATCH_POINTS = 100
DISTRICT_BONUS = 50
SPECIALIZATION_BONUS = 30
HOME_HUB_BONUS = 20
LOAD_PENALTY = 10


@dataclass(frozen=True)
class ScoreResult:
    score: int
    eligible: bool
    factors: tuple[str, ...] = ()


@dataclass(frozen=True)
class RankedCandidate:
    fulfiller: Fulfiller
    score: int
    active_load: int
    factors: tuple[str, ...] = ()


def _ineligible(why: str) -> ScoreResult:
    return ScoreResult(score=0, eligible=False, factors=(why,))


def _location_for(assignment: Assignment, strategy: AllocationStrategy) -> Location:
    if strategy == AllocationStrategy.REQUESTER_LOCATION:
        return assignment.requester_location
    return assignment.subject_location


def score(
    assignment: Assignment,
    fulfiller: Fulfiller,
    strategy: AllocationStrategy,
    active_load: int,
) -> ScoreResult:
    """Pure function: score one candidate under one strategy.

    Location strategies gate on the state and add bonuses for district,
    specialization and home hub. The hub strategy gates on the home hub and
    adds the specialization bonus. Every strategy subtracts
    LOAD_PENALTY per active case.
    """
    factors: list[str] = []

    if strategy == AllocationStrategy.HUB:
        if fulfiller.home_hub_id is None or fulfiller.home_hub_id != assignment.origin_hub_id:
            return _ineligible("Different home hub")
        points = HUB_MATCH_POINTS
        factors.append(f"Same hub {assignment.origin_hub_id} (+{HUB_MATCH_POINTS})")
    else:
        location = _location_for(assignment, strategy)
        if not fulfiller.covers_state(location.state):
            return _ineligible(f"Does not cover {location.state}")
        points = LOCATION_MATCH_POINTS
        factors.append(f"Covers {location.state} (+{LOCATION_MATCH_POINTS})")
        if fulfiller.covers_district(location.district):
            points += DISTRICT_BONUS
            factors.append(f"Covers {location.district} (+{DISTRICT_BONUS})")

    if fulfiller.has_specialization(assignment.category):
        points += SPECIALIZATION_BONUS
        factors.append(f"Expertise in {assignment.category.value} (+{SPECIALIZATION_BONUS})")

    if strategy != AllocationStrategy.HUB and (
        fulfiller.home_hub_id is not None
        and fulfiller.home_hub_id == assignment.origin_hub_id
    ):
        points += HOME_HUB_BONUS
        factors.append(f"Same hub {assignment.origin_hub_id} (+{HOME_HUB_BONUS})")

    if active_load:
        points -= LOAD_PENALTY * active_load
        factors.append(f"{active_load} active case(s) (-{LOAD_PENALTY * active_load})")

    return ScoreResult(score=points, eligible=True, factors=tuple(factors))


def rank_candidates(
    assignment: Assignment,
    fulfillers: Iterable[Fulfiller],
    strategy: AllocationStrategy,
    loads: Mapping[str, int],
    cap: int,
    exclude: frozenset[str] = frozenset(),
) -> list[RankedCandidate]:
    """Filter to eligible, under-cap candidates and order them best first.

    Ordering is score descending, then lower active load, then fulfiller id,
    so the result never depends on the order *fulfillers* arrives in.

    Args:
        assignment: the assignment being matched.
        fulfillers: every candidate to consider.
        strategy: which scoring formula to apply.
        loads: active load per fulfiller id (missing ids count as 0).
        cap: exclusive upper bound on active load.
        exclude: fulfiller ids that must not be proposed.

    Returns:
        Possibly empty list; empty means allocation is not possible.
    """
    ranked: list[RankedCandidate] = []
    for fulfiller in fulfillers:
        if fulfiller.id in exclude:
            continue
        load = loads.get(fulfiller.id, 0)
        if load >= cap:
            continue
        result = score(assignment, fulfiller, strategy, load)
        if not result.eligible:
            continue
        ranked.append(
            RankedCandidate(
                fulfiller=fulfiller,
                score=result.score,
                active_load=load,
                factors=result.factors,
            )
        )

    ranked.sort(key=lambda c: (-c.score, c.active_load, c.fulfiller.id))
    return ranked
