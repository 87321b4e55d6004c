from django.db import transaction
from django.db.models import Q

from rest_framework import generics, status
from rest_framework.response import Response

from renal_backend.clinical.exceptions import CatalogResolutionError, InvalidInput
from renal_backend.clinical.services import history, validity
from renal_backend.clinical.services.visits import record_visit
from renal_backend.core.permissions import doctor_scope
from renal_backend.core.utils import log_patient_action
from renal_backend.patients.models import Patient
from renal_backend.patients.permissions import PatientPermission
from renal_backend.patients.serializers import PatientReadSerializer, PatientWriteSerializer


class PatientListCreateView(generics.ListCreateAPIView):
    """List patients or create a new patient (optionally with the first visit).

    GET supports ``?search=`` on name and national ID.
    """

    permission_classes = [PatientPermission]

    def get_queryset(self):
        qs = doctor_scope(
            Patient.objects.using('default').select_related('doctor', 'doctor__role'),
            self.request,
        )
        search = (self.request.query_params.get('search') or '').strip()
        if search:
            qs = qs.filter(Q(name__icontains=search) | Q(national_id__icontains=search))
        return qs.order_by('name', 'id')

    def get_serializer_class(self):
        if self.request.method == 'POST':
            return PatientWriteSerializer
        return PatientReadSerializer

    def create(self, request, *args, **kwargs):
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        test_values = serializer.validated_data.get('test_values')

        recorded = None
        try:
            with transaction.atomic(using='default'):
                patient = serializer.save()
                if test_values:
                    recorded = record_visit(patient, test_values, request.user)
        except InvalidInput as e:
            return Response(e.to_dict(), status=status.HTTP_400_BAD_REQUEST)
        except CatalogResolutionError as e:
            return Response(e.to_dict(), status=status.HTTP_500_INTERNAL_SERVER_ERROR)

        log_patient_action(request.user, 'patient_created', patient_id=patient.id)

        out = PatientReadSerializer(patient).data
        if recorded is not None:
            out['first_visit'] = {
                'visit_id': recorded.visit.id,
                'classification': recorded.classification.to_dict(),
            }
        return Response(out, status=status.HTTP_201_CREATED)


class PatientRetrieveUpdateView(generics.RetrieveUpdateAPIView):
    """Retrieve or update a patient."""

    permission_classes = [PatientPermission]

    def get_queryset(self):
        return doctor_scope(Patient.objects.using('default').select_related('doctor'), self.request)

    def get_serializer_class(self):
        if self.request.method in ['PUT', 'PATCH']:
            return PatientWriteSerializer
        return PatientReadSerializer

    def retrieve(self, request, *args, **kwargs):
        response = super().retrieve(request, *args, **kwargs)
        log_patient_action(request.user, 'patient_view', patient_id=response.data.get('id'))
        return response

    def update(self, request, *args, **kwargs):
        partial = kwargs.pop('partial', False)
        instance = self.get_object()
        serializer = self.get_serializer(instance, data=request.data, partial=partial)
        serializer.is_valid(raise_exception=True)
        patient = serializer.save()
        log_patient_action(request.user, 'patient_updated', patient_id=patient.id)
        return Response(PatientReadSerializer(patient).data, status=status.HTTP_200_OK)


class PatientTestValidityView(generics.GenericAPIView):
    """Validity of the patient's latest result per test type.

    GET /api/patients/<pk>/test-validity/
    """

    permission_classes = [PatientPermission]

    def get_queryset(self):
        return doctor_scope(Patient.objects.using('default').all(), self.request)

    def get(self, request, *args, **kwargs):
        patient = self.get_object()
        return Response(validity.test_validity(patient), status=status.HTTP_200_OK)


class PatientHistoryView(generics.GenericAPIView):
    """Visit history with situation, test results, recommendations and prescriptions.

    GET /api/patients/<pk>/history/
    """

    permission_classes = [PatientPermission]

    def get_queryset(self):
        return doctor_scope(Patient.objects.using('default').all(), self.request)

    def get(self, request, *args, **kwargs):
        patient = self.get_object()
        log_patient_action(request.user, 'patient_history_view', patient_id=patient.id)
        return Response(history.patient_history(patient), status=status.HTTP_200_OK)


class PatientTrendsView(generics.GenericAPIView):
    """Lab-value trends over the visit timeline.

    GET /api/patients/<pk>/trends/
    """

    permission_classes = [PatientPermission]

    def get_queryset(self):
        return doctor_scope(Patient.objects.using('default').all(), self.request)

    def get(self, request, *args, **kwargs):
        patient = self.get_object()
        return Response(history.patient_trends(patient), status=status.HTTP_200_OK)
