"""
Donor availability.

A donor is offered for matching only while their `isAvailable` flag is set.
The flag is owned by the donor and flipped through the availability update
endpoint; matching reads it but never writes it.
"""
import datetime

from django.conf import settings

AVAILABLE_FILTER = {"isAvailable": True}


def available_donor_filter(blood_types):
    """Mongo filter for available donors whose blood type is in `blood_types`."""
    query = {"bloodType": {"$in": [str(bt) for bt in blood_types]}}
    query.update(AVAILABLE_FILTER)
    return query


def _as_date(value):
    if value is None:
        return None
    if isinstance(value, datetime.datetime):
        return value.date()
    if isinstance(value, datetime.date):
        return value
    if isinstance(value, str):
        # Stored ISO strings, with or without a trailing Z
        return datetime.datetime.fromisoformat(value.replace('Z', '+00:00')).date()
    raise TypeError(f"Unsupported lastDonation value: {value!r}")


def can_donate(last_donation, today=None, cooldown_days=None):
    """
    True once the donation cooldown has elapsed since `last_donation`.

    Donors who never donated are always eligible. This is reported alongside
    match results; it does not remove donors from them.
    """
    last = _as_date(last_donation)
    if last is None:
        return True
    if cooldown_days is None:
        cooldown_days = settings.DONATION_COOLDOWN_DAYS
    today = today or datetime.date.today()
    return (today - last).days >= cooldown_days
