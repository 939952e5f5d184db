import logging

from rest_framework import serializers

from .availability import can_donate
from .compatibility import parse_blood_type
from .exceptions import InvalidBloodType
from .stores import URGENCY_LEVELS

logger = logging.getLogger(__name__)


class BloodTypeField(serializers.Field):
    default_error_messages = {
        'invalid': 'Must be one of O-, O+, A-, A+, B-, B+, AB-, AB+.',
    }

    def to_internal_value(self, data):
        try:
            return parse_blood_type(data)
        except InvalidBloodType:
            self.fail('invalid')

    def to_representation(self, value):
        return str(value)


class DonorRegistrationSerializer(serializers.Serializer):
    bloodType = BloodTypeField()
    phone = serializers.CharField(max_length=20)
    address = serializers.CharField()
    age = serializers.IntegerField(min_value=18, max_value=65)


class AvailabilitySerializer(serializers.Serializer):
    isAvailable = serializers.BooleanField()


class DonationSerializer(serializers.Serializer):
    lastDonation = serializers.DateTimeField(required=False)


class PatientRequestSerializer(serializers.Serializer):
    bloodType = BloodTypeField()
    phone = serializers.CharField(max_length=20)
    hospital = serializers.CharField()
    urgency = serializers.ChoiceField(choices=URGENCY_LEVELS, default='medium')


class EmailSerializer(serializers.Serializer):
    email = serializers.EmailField()


class VerifyTokenSerializer(serializers.Serializer):
    email = serializers.EmailField()
    token = serializers.CharField()


def _isoformat(value):
    return value.isoformat() if hasattr(value, 'isoformat') else value


def serialize_user(user):
    if not isinstance(user, dict):
        # Join found no user; keep the bare reference
        return {"id": str(user) if user else None, "name": None, "email": None}
    return {"id": str(user["_id"]), "name": user.get("name"), "email": user.get("email")}


def serialize_donor(doc, today=None):
    """DonorSummary: donor fields plus the owning user's display fields."""
    try:
        eligible = can_donate(doc.get("lastDonation"), today=today)
    except (TypeError, ValueError):
        logger.warning("Donor %s has unreadable lastDonation %r", doc["_id"], doc.get("lastDonation"))
        eligible = None

    return {
        "id": str(doc["_id"]),
        "bloodType": doc.get("bloodType"),
        "phone": doc.get("phone"),
        "address": doc.get("address"),
        "age": doc.get("age"),
        "isAvailable": doc.get("isAvailable", True),
        "lastDonation": _isoformat(doc.get("lastDonation")),
        "canDonate": eligible,
        "user": serialize_user(doc.get("user")),
    }


def serialize_patient_request(doc):
    return {
        "id": str(doc["_id"]),
        "user": str(doc["user"]) if doc.get("user") else None,
        "bloodType": doc.get("bloodType"),
        "phone": doc.get("phone"),
        "hospital": doc.get("hospital"),
        "urgency": doc.get("urgency", "medium"),
        "status": doc.get("status", "pending"),
        "createdAt": _isoformat(doc.get("createdAt")),
    }


def serialize_match(result, today=None):
    return {
        "requestedBloodType": str(result.requested_blood_type),
        "compatibleBloodTypes": [str(bt) for bt in result.compatible_blood_types],
        "donors": [serialize_donor(d, today=today) for d in result.donors],
        "totalDonors": result.total_donors,
    }
