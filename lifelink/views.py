import datetime
import logging

from rest_framework import status
from rest_framework.response import Response
from rest_framework.views import APIView

from .auth_utils import authenticate_request
from .compatibility import is_compatible, parse_blood_type, patients_compatible_with_donor
from .matching import MatchingService
from .serializers import (
    AvailabilitySerializer, DonationSerializer, DonorRegistrationSerializer, EmailSerializer,
    PatientRequestSerializer, VerifyTokenSerializer,
    serialize_donor, serialize_match, serialize_patient_request,
)
from .stores import REQUEST_STATUSES, get_donor_store, get_patient_request_store, get_user_store
from .verification import VerificationCodeStore, VerificationStatus

logger = logging.getLogger(__name__)


class RootView(APIView):
    def get(self, request):
        return Response({
            "message": "LifeLink API Server",
            "status": "Running",
            "endpoints": {
                "health": "/health",
                "donor": "/api/donor",
                "patient": "/api/patient",
                "compatibility": "/api/compatibility",
                "email": "/api/email",
            }
        })


class HealthView(APIView):
    def get(self, request):
        return Response({
            "status": "OK",
            "timestamp": datetime.datetime.now(datetime.timezone.utc).isoformat()
        })


# ==========================================
#  MATCHING
# ==========================================

class CompatibleDonorsView(APIView):
    """GET /api/patient/donors/<bloodType> - available donors a patient can receive from"""
    def get(self, request, blood_type):
        result = MatchingService(get_donor_store()).find_matches(blood_type)
        return Response(serialize_match(result))


class CompatibleRecipientsView(APIView):
    """GET /api/donor/recipients/<bloodType> - blood types a donor can give to"""
    def get(self, request, blood_type):
        donor_type = parse_blood_type(blood_type)
        return Response({
            "donorBloodType": str(donor_type),
            "compatibleBloodTypes": [str(bt) for bt in patients_compatible_with_donor(donor_type)],
        })


class CompatibilityCheckView(APIView):
    def get(self, request):
        donor = request.query_params.get('donor')
        patient = request.query_params.get('patient')
        if not donor or not patient:
            return Response({"error": "donor and patient are required"}, status=status.HTTP_400_BAD_REQUEST)

        donor_type = parse_blood_type(donor)
        patient_type = parse_blood_type(patient)
        return Response({
            "donor": str(donor_type),
            "patient": str(patient_type),
            "compatible": is_compatible(donor_type, patient_type),
        })


# ==========================================
#  DONORS
# ==========================================

class DonorRegisterView(APIView):
    @authenticate_request
    def post(self, request):
        serializer = DonorRegistrationSerializer(data=request.data)
        if not serializer.is_valid():
            return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

        data = serializer.validated_data
        donor = get_donor_store().create(
            user_id=request.user_id,
            blood_type=data["bloodType"],
            phone=data["phone"],
            address=data["address"],
            age=data["age"],
        )
        logger.info("Donor %s registered (%s)", donor["_id"], donor["bloodType"])
        return Response(serialize_donor(donor), status=status.HTTP_201_CREATED)


class DonorListView(APIView):
    def get(self, request):
        blood_type = request.query_params.get('bloodType')
        if blood_type:
            blood_type = parse_blood_type(blood_type)

        donors = get_donor_store().list_available(blood_type)
        return Response([serialize_donor(d) for d in donors])


class DonorAvailabilityView(APIView):
    def put(self, request, donor_id):
        serializer = AvailabilitySerializer(data=request.data)
        if not serializer.is_valid():
            return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

        donor = get_donor_store().set_availability(donor_id, serializer.validated_data['isAvailable'])
        if donor is None:
            return Response({"error": "Donor not found"}, status=status.HTTP_404_NOT_FOUND)
        return Response(serialize_donor(donor))


class DonorDonationView(APIView):
    def put(self, request, donor_id):
        serializer = DonationSerializer(data=request.data)
        if not serializer.is_valid():
            return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

        donor = get_donor_store().record_donation(donor_id, serializer.validated_data.get("lastDonation"))
        if donor is None:
            return Response({"error": "Donor not found"}, status=status.HTTP_404_NOT_FOUND)
        return Response(serialize_donor(donor))


# ==========================================
#  PATIENT REQUESTS
# ==========================================

class PatientRequestCreateView(APIView):
    @authenticate_request
    def post(self, request):
        serializer = PatientRequestSerializer(data=request.data)
        if not serializer.is_valid():
            return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

        data = serializer.validated_data
        patient = get_patient_request_store().create(
            user_id=request.user_id,
            blood_type=data["bloodType"],
            phone=data["phone"],
            hospital=data["hospital"],
            urgency=data["urgency"],
        )
        logger.info("Patient request %s created (%s, %s)", patient["_id"], patient["bloodType"], patient["urgency"])
        return Response(serialize_patient_request(patient), status=status.HTTP_201_CREATED)


class PatientRequestListView(APIView):
    def get(self, request):
        status_filter = request.query_params.get('status')
        if status_filter and status_filter not in REQUEST_STATUSES:
            return Response({"error": f"Unknown status: {status_filter}"}, status=status.HTTP_400_BAD_REQUEST)

        patients = get_patient_request_store().list(status_filter)
        return Response([serialize_patient_request(p) for p in patients])


class PatientRequestFulfilView(APIView):
    def put(self, request, request_id):
        patient = get_patient_request_store().mark_fulfilled(request_id)
        if patient is None:
            return Response({"error": "Request not found or already fulfilled"}, status=status.HTTP_404_NOT_FOUND)
        return Response(serialize_patient_request(patient))


# ==========================================
#  EMAIL VERIFICATION
# ==========================================

class VerifyEmailView(APIView):
    def post(self, request):
        serializer = EmailSerializer(data=request.data)
        if not serializer.is_valid():
            return Response({"error": "Valid email address is required"}, status=status.HTTP_400_BAD_REQUEST)

        email = serializer.validated_data['email'].lower()
        if get_user_store().email_exists(email):
            return Response({"error": "Email already registered"}, status=status.HTTP_400_BAD_REQUEST)

        code = VerificationCodeStore().issue(email)
        logger.info("Verification code issued for %s", email)

        # Delivery is handled by the frontend mail service
        return Response({
            "success": True,
            "message": "Verification code generated",
            "email": email,
            "verificationCode": code,
        })


class VerifyTokenView(APIView):
    def post(self, request):
        serializer = VerifyTokenSerializer(data=request.data)
        if not serializer.is_valid():
            return Response({"error": "Email and verification code are required"}, status=status.HTTP_400_BAD_REQUEST)

        data = serializer.validated_data
        result = VerificationCodeStore().verify(data['email'].lower(), data['token'])

        if result.verified:
            return Response({"success": True, "verified": True, "message": "Email verified successfully"})

        if result.status is VerificationStatus.LOCKED:
            return Response(
                {"error": "Too many attempts. Please request a new code."},
                status=status.HTTP_429_TOO_MANY_REQUESTS
            )

        if result.status is VerificationStatus.MISSING:
            return Response(
                {"error": "No verification code found or code expired. Please request a new code."},
                status=status.HTTP_400_BAD_REQUEST
            )

        return Response(
            {"error": f"Invalid verification code. {result.attempts_remaining} attempts remaining."},
            status=status.HTTP_400_BAD_REQUEST
        )
