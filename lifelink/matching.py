"""
Matching Query Service

Turns a requested patient blood type into the list of available donors whose
blood that patient can receive.
"""
from dataclasses import dataclass, field

from pymongo.errors import PyMongoError

from .compatibility import BloodType, donors_compatible_with_patient, parse_blood_type
from .exceptions import StoreUnavailable
from .stores import get_donor_store


@dataclass(frozen=True)
class MatchResult:
    requested_blood_type: BloodType
    compatible_blood_types: tuple
    donors: list = field(default_factory=list)

    @property
    def total_donors(self):
        return len(self.donors)


class MatchingService:
    def __init__(self, donor_store):
        self.donor_store = donor_store

    def find_matches(self, requested_blood_type):
        """
        Compatible, available donors for `requested_blood_type`.

        Raises InvalidBloodType before touching the store, and StoreUnavailable
        if the store read fails. An empty donor list is a valid result.
        """
        requested = parse_blood_type(requested_blood_type)
        compatible = donors_compatible_with_patient(requested)

        try:
            donors = self.donor_store.find_available(compatible)
        except PyMongoError as e:
            raise StoreUnavailable(f"Donor store read failed: {e}") from e

        return MatchResult(
            requested_blood_type=requested,
            compatible_blood_types=compatible,
            donors=list(donors),
        )


def find_matches(requested_blood_type, donor_store=None):
    if donor_store is None:
        donor_store = get_donor_store()
    return MatchingService(donor_store).find_matches(requested_blood_type)
