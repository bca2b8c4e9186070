"""CoveragePolicy — edit-time validation of a fulfiller's service area."""

from __future__ import annotations

from titleflow.domain.entities.fulfiller import Fulfiller
from titleflow.domain.errors import CoverageError
from titleflow.domain.value_objects.geography import districts_for_states, is_known_state


def validate_coverage(fulfiller: Fulfiller) -> None:
    """Check that every state is known and every district lies in a covered state.

    Raises:
        CoverageError: listing the offending states / districts.
    """
    unknown_states = sorted(s for s in fulfiller.states if not is_known_state(s))
    if unknown_states:
        raise CoverageError(f"Unknown states: {', '.join(unknown_states)}")

    allowed = districts_for_states(fulfiller.states)
    stray = sorted(d for d in fulfiller.districts if d not in allowed)
    if stray:
        raise CoverageError(
            f"Districts outside covered states: {', '.join(stray)}"
        )
