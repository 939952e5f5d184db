"""
Blood Type Compatibility

ABO/Rh red cell compatibility between donor and patient blood types.
Only the donor -> recipient direction is written out; the recipient -> donor
direction is derived from it so the two can never drift apart.
"""
import enum

from .exceptions import CompatibilityTableError, InvalidBloodType


class BloodType(str, enum.Enum):
    # Declaration order is the canonical ordering used in every result
    O_NEG = 'O-'
    O_POS = 'O+'
    A_NEG = 'A-'
    A_POS = 'A+'
    B_NEG = 'B-'
    B_POS = 'B+'
    AB_NEG = 'AB-'
    AB_POS = 'AB+'

    def __str__(self):
        return self.value


ALL_BLOOD_TYPES = tuple(BloodType)
BLOOD_TYPE_CHOICES = [bt.value for bt in ALL_BLOOD_TYPES]

_ORDER = {bt: index for index, bt in enumerate(ALL_BLOOD_TYPES)}
_BY_SYMBOL = {bt.value: bt for bt in ALL_BLOOD_TYPES}


def _can_give(donor, recipient):
    """Textbook rule: the donor carries no antigen the recipient lacks."""
    donor_abo, donor_rh = donor.value[:-1], donor.value[-1]
    recipient_abo, recipient_rh = recipient.value[:-1], recipient.value[-1]

    abo_ok = donor_abo == 'O' or donor_abo == recipient_abo or recipient_abo == 'AB'
    rh_ok = donor_rh == '-' or recipient_rh == '+'
    return abo_ok and rh_ok


# Who can DONATE TO whom (donor -> recipients)
CAN_DONATE_TO = {
    donor: frozenset(r for r in ALL_BLOOD_TYPES if _can_give(donor, r))
    for donor in ALL_BLOOD_TYPES
}


def _invert(relation):
    inverted = {bt: set() for bt in ALL_BLOOD_TYPES}
    for source, targets in relation.items():
        for target in targets:
            inverted[target].add(source)
    return {bt: frozenset(members) for bt, members in inverted.items()}


# Who can RECEIVE FROM whom (recipient -> donors)
CAN_RECEIVE_FROM = _invert(CAN_DONATE_TO)


def check_table(can_donate_to, can_receive_from):
    """
    Raise CompatibilityTableError unless both relations cover all eight types,
    are reflexive and non-empty, and are exact inverses of each other.
    """
    for name, relation in (('can_donate_to', can_donate_to), ('can_receive_from', can_receive_from)):
        missing = set(ALL_BLOOD_TYPES) - set(relation)
        if missing:
            raise CompatibilityTableError(f"{name} is missing {sorted(m.value for m in missing)}")
        for bt in ALL_BLOOD_TYPES:
            if bt not in relation[bt]:
                raise CompatibilityTableError(f"{name}[{bt.value}] does not contain itself")

    for donor in ALL_BLOOD_TYPES:
        for patient in ALL_BLOOD_TYPES:
            forward = patient in can_donate_to[donor]
            backward = donor in can_receive_from[patient]
            if forward != backward:
                raise CompatibilityTableError(
                    f"relations disagree on {donor.value} -> {patient.value}"
                )


check_table(CAN_DONATE_TO, CAN_RECEIVE_FROM)


def parse_blood_type(value):
    """
    Normalise a raw value ('a+', ' AB- ', BloodType.O_NEG) to a BloodType.

    Raises InvalidBloodType for anything outside the eight symbols.
    """
    if isinstance(value, BloodType):
        return value
    if isinstance(value, str):
        blood_type = _BY_SYMBOL.get(value.strip().upper())
        if blood_type is not None:
            return blood_type
    raise InvalidBloodType(value)


def sort_blood_types(blood_types):
    return tuple(sorted(blood_types, key=_ORDER.__getitem__))


def can_donate_to(donor_type):
    return CAN_DONATE_TO[parse_blood_type(donor_type)]


def can_receive_from(patient_type):
    return CAN_RECEIVE_FROM[parse_blood_type(patient_type)]


def donors_compatible_with_patient(patient_type):
    """
    Blood types a patient can receive from, in canonical order.

    For A+ returns (O-, O+, A-, A+).
    """
    return sort_blood_types(can_receive_from(patient_type))


def patients_compatible_with_donor(donor_type):
    """Blood types a donor can give to, in canonical order."""
    return sort_blood_types(can_donate_to(donor_type))


def is_compatible(donor_type, patient_type):
    patient = parse_blood_type(patient_type)
    return patient in can_donate_to(donor_type)
