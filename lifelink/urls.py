from django.urls import path

from .views import (
    CompatibilityCheckView, CompatibleDonorsView, CompatibleRecipientsView,
    DonorAvailabilityView, DonorDonationView, DonorListView, DonorRegisterView,
    PatientRequestCreateView, PatientRequestFulfilView, PatientRequestListView,
    VerifyEmailView, VerifyTokenView,
)

urlpatterns = [
    # Matching
    path('patient/donors/<str:blood_type>', CompatibleDonorsView.as_view(), name='compatible-donors'),
    path('donor/recipients/<str:blood_type>', CompatibleRecipientsView.as_view(), name='compatible-recipients'),
    path('compatibility', CompatibilityCheckView.as_view(), name='compatibility-check'),

    # Donors
    path('donor/register', DonorRegisterView.as_view(), name='donor-register'),
    path('donor/', DonorListView.as_view(), name='donor-list'),
    path('donor/availability/<str:donor_id>', DonorAvailabilityView.as_view(), name='donor-availability'),
    path('donor/last-donation/<str:donor_id>', DonorDonationView.as_view(), name='donor-last-donation'),

    # Patient requests
    path('patient/request', PatientRequestCreateView.as_view(), name='patient-request'),
    path('patient/requests', PatientRequestListView.as_view(), name='patient-requests'),
    path('patient/requests/<str:request_id>/fulfil', PatientRequestFulfilView.as_view(), name='patient-request-fulfil'),

    # Email verification
    path('email/verify-email', VerifyEmailView.as_view(), name='verify-email'),
    path('email/verify-token', VerifyTokenView.as_view(), name='verify-token'),
]
