"""Patients App URLs.

Prefix: /api/
Routes:
    GET/POST        /api/patients/                    - List/Create patients
    GET/PUT/PATCH   /api/patients/<pk>/               - Retrieve/Update patient
    GET             /api/patients/<pk>/test-validity/ - Test validity summary
    GET             /api/patients/<pk>/history/       - Visit history
    GET             /api/patients/<pk>/trends/        - Lab-value trends
"""

from django.urls import path

from renal_backend.patients.views import (
    PatientHistoryView,
    PatientListCreateView,
    PatientRetrieveUpdateView,
    PatientTestValidityView,
    PatientTrendsView,
)

app_name = 'patients'

urlpatterns = [
    path('patients/', PatientListCreateView.as_view(), name='list'),
    path('patients/<int:pk>/', PatientRetrieveUpdateView.as_view(), name='detail'),
    path('patients/<int:pk>/test-validity/', PatientTestValidityView.as_view(), name='test-validity'),
    path('patients/<int:pk>/history/', PatientHistoryView.as_view(), name='history'),
    path('patients/<int:pk>/trends/', PatientTrendsView.as_view(), name='trends'),
]
