"""
Document stores for donors, patient requests and users.

Each store wraps the pymongo collections it needs. Driver errors are not
caught here; callers decide how a failed read is surfaced.
"""
import datetime

from bson import ObjectId
from pymongo import ReturnDocument

from .availability import AVAILABLE_FILTER, available_donor_filter
from .db import get_db

URGENCY_LEVELS = ('low', 'medium', 'high')
REQUEST_STATUSES = ('pending', 'fulfilled')


def utcnow():
    return datetime.datetime.now(datetime.timezone.utc)


def as_object_id(value):
    """ObjectId from a string; raises bson.errors.InvalidId on malformed input."""
    if isinstance(value, ObjectId):
        return value
    return ObjectId(value)


class DonorStore:
    def __init__(self, db):
        self.donors = db.donors
        self.users = db.users

    def find_available(self, blood_types):
        """
        All available donors whose blood type is in `blood_types`, each with
        the owning user's name and email joined in under `user`.
        """
        docs = list(self.donors.find(available_donor_filter(blood_types)))
        return self._populate_users(docs)

    def list_available(self, blood_type=None):
        query = dict(AVAILABLE_FILTER)
        if blood_type is not None:
            query["bloodType"] = str(blood_type)
        docs = list(self.donors.find(query))
        return self._populate_users(docs)

    def create(self, user_id, blood_type, phone, address, age):
        now = utcnow()
        donor = {
            "user": as_object_id(user_id),
            "bloodType": str(blood_type),
            "phone": phone,
            "address": address,
            "age": age,
            "isAvailable": True,
            "lastDonation": None,
            "createdAt": now,
            "updatedAt": now,
        }
        result = self.donors.insert_one(donor)
        donor["_id"] = result.inserted_id
        return donor

    def set_availability(self, donor_id, is_available):
        """Set the availability flag; returns the updated donor or None."""
        return self.donors.find_one_and_update(
            {"_id": as_object_id(donor_id)},
            {"$set": {"isAvailable": bool(is_available), "updatedAt": utcnow()}},
            return_document=ReturnDocument.AFTER
        )

    def record_donation(self, donor_id, when=None):
        when = when or utcnow()
        return self.donors.find_one_and_update(
            {"_id": as_object_id(donor_id)},
            {"$set": {"lastDonation": when, "updatedAt": utcnow()}},
            return_document=ReturnDocument.AFTER
        )

    def _populate_users(self, docs):
        user_ids = list({doc["user"] for doc in docs if doc.get("user")})
        if not user_ids:
            return docs

        users = {
            u["_id"]: u
            for u in self.users.find({"_id": {"$in": user_ids}}, {"name": 1, "email": 1})
        }
        for doc in docs:
            user = users.get(doc.get("user"))
            if user:
                doc["user"] = {"_id": user["_id"], "name": user.get("name"), "email": user.get("email")}
        return docs


class PatientRequestStore:
    def __init__(self, db):
        self.patients = db.patients

    def create(self, user_id, blood_type, phone, hospital, urgency='medium'):
        now = utcnow()
        patient = {
            "user": as_object_id(user_id),
            "bloodType": str(blood_type),
            "phone": phone,
            "hospital": hospital,
            "urgency": urgency,
            "status": "pending",
            "createdAt": now,
            "updatedAt": now,
        }
        result = self.patients.insert_one(patient)
        patient["_id"] = result.inserted_id
        return patient

    def list(self, status=None):
        query = {}
        if status:
            query["status"] = status
        return list(self.patients.find(query).sort("createdAt", -1))

    def mark_fulfilled(self, request_id):
        """pending -> fulfilled. Returns the updated request, or None if no pending request matched."""
        return self.patients.find_one_and_update(
            {"_id": as_object_id(request_id), "status": "pending"},
            {"$set": {"status": "fulfilled", "updatedAt": utcnow()}},
            return_document=ReturnDocument.AFTER
        )


class UserStore:
    def __init__(self, db):
        self.users = db.users

    def get(self, user_id):
        return self.users.find_one({"_id": as_object_id(user_id)})

    def email_exists(self, email):
        return self.users.find_one({"email": email}) is not None


def get_donor_store():
    return DonorStore(get_db())


def get_patient_request_store():
    return PatientRequestStore(get_db())


def get_user_store():
    return UserStore(get_db())
