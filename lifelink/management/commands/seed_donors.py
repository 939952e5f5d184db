import datetime
import random

from django.core.management.base import BaseCommand
from pymongo import ReturnDocument

from lifelink.compatibility import BLOOD_TYPE_CHOICES
from lifelink.db import get_db

CITIES = ["Kathmandu", "Lalitpur", "Bhaktapur", "Pokhara", "Biratnagar", "Chitwan", "Butwal", "Dharan"]
FIRST_NAMES = ["Aarav", "Sita", "Ram", "Gita", "Hari", "Anita", "Bikash", "Sunita", "Rajesh", "Puja"]
LAST_NAMES = ["Sharma", "Shrestha", "Gurung", "Rai", "Thapa", "Karki", "Adhikari", "Tamang"]


def build_donor(index, rng, now):
    """One donor user plus its donor profile. Every third donor is unavailable."""
    name = f"{rng.choice(FIRST_NAMES)} {rng.choice(LAST_NAMES)}"
    user = {
        "name": name,
        "email": f"donor_{index + 1}@lifelink.test",
        "role": "donor",
        "createdAt": now,
    }

    last_donation = None
    if index % 2 == 0:
        last_donation = now - datetime.timedelta(days=rng.randint(1, 365))

    donor = {
        "bloodType": rng.choice(BLOOD_TYPE_CHOICES),
        "phone": f"98{rng.randint(10000000, 99999999)}",
        "address": rng.choice(CITIES),
        "age": rng.randint(18, 65),
        "isAvailable": index % 3 != 2,
        "lastDonation": last_donation,
        "createdAt": now,
        "updatedAt": now,
    }
    return user, donor


class Command(BaseCommand):
    help = "Seed donor users and donor profiles for local development"

    def add_arguments(self, parser):
        parser.add_argument('--count', type=int, default=30)
        parser.add_argument('--seed', type=int, default=None, help="Random seed for reproducible data")

    def handle(self, *args, **options):
        db = get_db()
        rng = random.Random(options['seed'])
        now = datetime.datetime.now(datetime.timezone.utc)

        for index in range(options['count']):
            user, donor = build_donor(index, rng, now)

            # Upsert on email so the command can be re-run
            user_doc = db.users.find_one_and_update(
                {"email": user["email"]},
                {"$set": user},
                upsert=True,
                return_document=ReturnDocument.AFTER
            )
            donor["user"] = user_doc["_id"]
            db.donors.update_one({"user": user_doc["_id"]}, {"$set": donor}, upsert=True)

            status = "AVAILABLE" if donor["isAvailable"] else "UNAVAILABLE"
            self.stdout.write(f"Seeded {user['name']} ({user['email']}) {donor['bloodType']} - {status}")

        self.stdout.write(self.style.SUCCESS(f"Seeded {options['count']} donors"))
