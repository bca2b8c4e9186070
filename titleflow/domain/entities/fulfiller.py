"""Fulfiller entity — an advocate who carries out title searches."""

from dataclasses import dataclass, field

from titleflow.domain.value_objects.enums import WorkCategory


@dataclass
class Fulfiller:
    """Candidate worker.

    Workload is deliberately absent: it is derived from assignment records
    by the WorkloadTracker on every read.
    """

    id: str
    name: str
    states: set[str] = field(default_factory=set)
    districts: set[str] = field(default_factory=set)
    specializations: set[WorkCategory] = field(default_factory=set)
    tags: set[str] = field(default_factory=set)
    home_hub_id: str | None = None
    firm_name: str | None = None
    email: str | None = None

    def covers_state(self, state: str) -> bool:
        return state in self.states

    def covers_district(self, district: str) -> bool:
        return district in self.districts

    def has_specialization(self, category: WorkCategory) -> bool:
        return category in self.specializations
