import datetime
from unittest import mock

import jwt
from bson import ObjectId
from django.conf import settings
from django.core.cache import cache
from pymongo.errors import ServerSelectionTimeoutError
from rest_framework.test import APISimpleTestCase

from .fakes import FakeDatabase


def make_token(user_id, expires_in=datetime.timedelta(hours=1)):
    payload = {
        "id": str(user_id),
        "exp": datetime.datetime.now(datetime.timezone.utc) + expires_in,
    }
    return jwt.encode(payload, settings.JWT_SECRET, algorithm="HS256")


class StoreTestCase(APISimpleTestCase):
    """Routes every store lookup to an in-memory database."""

    def setUp(self):
        self.user_id = ObjectId()
        self.db = FakeDatabase(
            users=[{"_id": self.user_id, "name": "Sita Sharma", "email": "sita@example.com", "role": "donor"}],
        )
        patcher = mock.patch('lifelink.stores.get_db', return_value=self.db)
        patcher.start()
        self.addCleanup(patcher.stop)

    def add_donor(self, blood_type, available=True, **extra):
        doc = {
            "_id": ObjectId(),
            "user": self.user_id,
            "bloodType": blood_type,
            "phone": "555-0199",
            "address": "Ward 4",
            "age": 28,
            "isAvailable": available,
            "lastDonation": None,
        }
        doc.update(extra)
        self.db.donors.insert_one(doc)
        return doc

    def auth(self):
        return {"HTTP_AUTHORIZATION": f"Bearer {make_token(self.user_id)}"}


class RootViewTests(APISimpleTestCase):
    def test_root_lists_endpoints(self):
        response = self.client.get('/')

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["status"], 'Running')

    def test_health(self):
        response = self.client.get('/health')

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["status"], 'OK')


class CompatibleDonorsViewTests(StoreTestCase):
    def test_scenario_a_pos(self):
        o_neg = self.add_donor('O-')
        a_pos = self.add_donor('A+')
        self.add_donor('B+', available=False)

        response = self.client.get('/api/patient/donors/A%2B')

        self.assertEqual(response.status_code, 200)
        body = response.json()
        self.assertEqual(body["requestedBloodType"], 'A+')
        self.assertEqual(body["compatibleBloodTypes"], ['O-', 'O+', 'A-', 'A+'])
        self.assertEqual(body["totalDonors"], 2)
        self.assertEqual({d["id"] for d in body["donors"]}, {str(o_neg["_id"]), str(a_pos["_id"])})

    def test_donor_summary_fields(self):
        self.add_donor('O-', lastDonation=datetime.datetime(2020, 1, 1))

        donor = self.client.get('/api/patient/donors/O-').json()["donors"][0]

        self.assertEqual(donor["bloodType"], 'O-')
        self.assertEqual(donor["phone"], '555-0199')
        self.assertEqual(donor["address"], 'Ward 4')
        self.assertTrue(donor["isAvailable"])
        self.assertTrue(donor["canDonate"])
        self.assertEqual(donor["lastDonation"], '2020-01-01T00:00:00')
        self.assertEqual(donor["user"], {"id": str(self.user_id), "name": 'Sita Sharma', "email": 'sita@example.com'})

    def test_unreadable_last_donation_does_not_break_matching(self):
        self.add_donor('O-', lastDonation='01/02/2020')
        self.add_donor('A+', lastDonation=datetime.datetime(2020, 1, 1))

        with self.assertLogs('lifelink.serializers', level='WARNING'):
            response = self.client.get('/api/patient/donors/A%2B')

        self.assertEqual(response.status_code, 200)
        donors = {d["bloodType"]: d for d in response.json()["donors"]}
        self.assertIsNone(donors['O-']["canDonate"])
        self.assertEqual(donors['O-']["lastDonation"], '01/02/2020')
        self.assertTrue(donors['A+']["canDonate"])

    def test_no_donors_is_not_an_error(self):
        response = self.client.get('/api/patient/donors/AB+')

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json(), {
            "requestedBloodType": 'AB+',
            "compatibleBloodTypes": ['O-', 'O+', 'A-', 'A+', 'B-', 'B+', 'AB-', 'AB+'],
            "donors": [],
            "totalDonors": 0,
        })

    def test_invalid_blood_type_is_a_client_error(self):
        response = self.client.get('/api/patient/donors/XYZ')

        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["code"], 'INVALID_BLOOD_TYPE')
        self.assertEqual(self.db.donors.queries, [])

    def test_store_failure_is_service_unavailable(self):
        self.db.donors.error = ServerSelectionTimeoutError("timed out")

        with self.assertLogs('lifelink.handlers', level='ERROR'):
            response = self.client.get('/api/patient/donors/A+')

        self.assertEqual(response.status_code, 503)
        self.assertEqual(response.json()["code"], 'STORE_UNAVAILABLE')


class CompatibilityViewTests(APISimpleTestCase):
    def test_recipients_for_donor(self):
        response = self.client.get('/api/donor/recipients/O+')

        self.assertEqual(response.json(), {
            "donorBloodType": 'O+',
            "compatibleBloodTypes": ['O+', 'A+', 'B+', 'AB+'],
        })

    def test_recipients_rejects_unknown_type(self):
        self.assertEqual(self.client.get('/api/donor/recipients/Q').status_code, 400)

    def test_compatibility_check(self):
        response = self.client.get('/api/compatibility', {"donor": 'A-', "patient": 'AB+'})

        self.assertEqual(response.json(), {"donor": 'A-', "patient": 'AB+', "compatible": True})

    def test_compatibility_check_requires_both_types(self):
        self.assertEqual(self.client.get('/api/compatibility', {"donor": 'A-'}).status_code, 400)


class DonorViewTests(StoreTestCase):
    def test_register_donor(self):
        response = self.client.post(
            '/api/donor/register',
            {"bloodType": 'b-', "phone": '555-0123', "address": 'Baneshwor', "age": 30},
            **self.auth()
        )

        self.assertEqual(response.status_code, 201)
        body = response.json()
        self.assertEqual(body["bloodType"], 'B-')
        self.assertTrue(body["isAvailable"])
        self.assertEqual(self.db.donors.docs[0]["user"], self.user_id)

    def test_register_rejects_out_of_range_age(self):
        for age in (17, 66):
            response = self.client.post(
                '/api/donor/register',
                {"bloodType": 'O+', "phone": '1', "address": 'x', "age": age},
                **self.auth()
            )
            self.assertEqual(response.status_code, 400)
            self.assertIn('age', response.json())

    def test_register_rejects_unknown_blood_type(self):
        response = self.client.post(
            '/api/donor/register',
            {"bloodType": 'C+', "phone": '1', "address": 'x', "age": 30},
            **self.auth()
        )

        self.assertEqual(response.status_code, 400)
        self.assertIn('bloodType', response.json())

    def test_register_requires_token(self):
        response = self.client.post('/api/donor/register', {"bloodType": 'O+'})

        self.assertEqual(response.status_code, 401)
        self.assertEqual(response.json()["code"], 'AUTH_REQUIRED')

    def test_register_rejects_expired_token(self):
        token = make_token(self.user_id, expires_in=datetime.timedelta(seconds=-10))

        response = self.client.post('/api/donor/register', {}, HTTP_AUTHORIZATION=f"Bearer {token}")

        self.assertEqual(response.json()["code"], 'TOKEN_EXPIRED')

    def test_register_rejects_unknown_user(self):
        token = make_token(ObjectId())

        response = self.client.post('/api/donor/register', {}, HTTP_AUTHORIZATION=f"Bearer {token}")

        self.assertEqual(response.status_code, 401)
        self.assertEqual(response.json()["code"], 'USER_NOT_FOUND')

    def test_register_rejects_non_string_user_id(self):
        token = jwt.encode({"id": 12345}, settings.JWT_SECRET, algorithm="HS256")

        response = self.client.post('/api/donor/register', {}, HTTP_AUTHORIZATION=f"Bearer {token}")

        self.assertEqual(response.status_code, 401)
        self.assertEqual(response.json()["code"], 'INVALID_USER_ID')

    def test_list_available_donors(self):
        self.add_donor('O+')
        self.add_donor('O+', available=False)
        self.add_donor('A+')

        all_donors = self.client.get('/api/donor/').json()
        o_pos = self.client.get('/api/donor/', {"bloodType": 'O+'}).json()

        self.assertEqual(len(all_donors), 2)
        self.assertEqual([d["bloodType"] for d in o_pos], ['O+'])

    def test_toggle_availability_removes_donor_from_matches(self):
        donor = self.add_donor('O-')

        response = self.client.put(f'/api/donor/availability/{donor["_id"]}', {"isAvailable": False})

        self.assertEqual(response.status_code, 200)
        self.assertFalse(response.json()["isAvailable"])
        self.assertEqual(self.client.get('/api/patient/donors/O-').json()["totalDonors"], 0)

    def test_availability_unknown_donor(self):
        response = self.client.put(f'/api/donor/availability/{ObjectId()}', {"isAvailable": True})

        self.assertEqual(response.status_code, 404)

    def test_availability_malformed_id(self):
        response = self.client.put('/api/donor/availability/nope', {"isAvailable": True})

        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["code"], 'INVALID_ID')

    def test_availability_requires_flag(self):
        donor = self.add_donor('O-')

        response = self.client.put(f'/api/donor/availability/{donor["_id"]}', {})

        self.assertEqual(response.status_code, 400)

    def test_record_donation(self):
        donor = self.add_donor('A-')

        response = self.client.put(
            f'/api/donor/last-donation/{donor["_id"]}',
            {"lastDonation": datetime.datetime.now(datetime.timezone.utc).isoformat()}
        )

        self.assertEqual(response.status_code, 200)
        self.assertFalse(response.json()["canDonate"])
        # Still offered in matches; cooldown is informational
        self.assertEqual(self.client.get('/api/patient/donors/A-').json()["totalDonors"], 1)


class PatientRequestViewTests(StoreTestCase):
    def test_create_request_defaults(self):
        response = self.client.post(
            '/api/patient/request',
            {"bloodType": 'AB-', "phone": '555-0142', "hospital": 'Bir Hospital'},
            **self.auth()
        )

        self.assertEqual(response.status_code, 201)
        body = response.json()
        self.assertEqual(body["urgency"], 'medium')
        self.assertEqual(body["status"], 'pending')
        self.assertEqual(body["user"], str(self.user_id))

    def test_create_request_rejects_unknown_urgency(self):
        response = self.client.post(
            '/api/patient/request',
            {"bloodType": 'AB-', "phone": '1', "hospital": 'x', "urgency": 'critical'},
            **self.auth()
        )

        self.assertEqual(response.status_code, 400)
        self.assertIn('urgency', response.json())

    def test_list_and_fulfil(self):
        created = self.client.post(
            '/api/patient/request',
            {"bloodType": 'O+', "phone": '1', "hospital": 'Teaching Hospital', "urgency": 'high'},
            **self.auth()
        ).json()

        fulfilled = self.client.put(f'/api/patient/requests/{created["id"]}/fulfil')
        again = self.client.put(f'/api/patient/requests/{created["id"]}/fulfil')

        self.assertEqual(fulfilled.json()["status"], 'fulfilled')
        self.assertEqual(again.status_code, 404)
        self.assertEqual(len(self.client.get('/api/patient/requests').json()), 1)
        self.assertEqual(self.client.get('/api/patient/requests', {"status": 'pending'}).json(), [])

    def test_list_rejects_unknown_status(self):
        self.assertEqual(self.client.get('/api/patient/requests', {"status": 'lost'}).status_code, 400)


class EmailVerificationViewTests(StoreTestCase):
    def setUp(self):
        super().setUp()
        cache.clear()

    def test_issue_and_verify(self):
        issued = self.client.post('/api/email/verify-email', {"email": 'new@example.com'}).json()

        response = self.client.post(
            '/api/email/verify-token',
            {"email": 'new@example.com', "token": issued["verificationCode"]}
        )

        self.assertEqual(response.status_code, 200)
        self.assertTrue(response.json()["verified"])

    def test_registered_email_is_rejected(self):
        response = self.client.post('/api/email/verify-email', {"email": 'sita@example.com'})

        self.assertEqual(response.status_code, 400)

    def test_invalid_email(self):
        self.assertEqual(self.client.post('/api/email/verify-email', {"email": 'nope'}).status_code, 400)

    def test_wrong_code_then_lockout(self):
        self.client.post('/api/email/verify-email', {"email": 'new@example.com'})

        statuses = [
            self.client.post('/api/email/verify-token', {"email": 'new@example.com', "token": 'bad'}).status_code
            for _ in range(settings.VERIFICATION_MAX_ATTEMPTS + 1)
        ]

        self.assertEqual(statuses[:-1], [400] * settings.VERIFICATION_MAX_ATTEMPTS)
        self.assertEqual(statuses[-1], 429)

    def test_no_code_issued(self):
        response = self.client.post('/api/email/verify-token', {"email": 'other@example.com', "token": '123456'})

        self.assertEqual(response.status_code, 400)
