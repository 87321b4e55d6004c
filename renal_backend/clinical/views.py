import logging

from rest_framework import generics, status
from rest_framework.response import Response

from renal_backend.core.permissions import doctor_scope
from renal_backend.core.utils import log_patient_action

from .exceptions import (
	CatalogResolutionError,
	ClinicalError,
	InvalidInput,
	NotLinkedError,
	UpdateFailed,
	VisitNotFound,
)
from .models import MedicationPrescription, Situation, Visit
from .permissions import ClinicalPreviewPermission, SituationCatalogPermission, VisitPermission
from .serializers import (
	AssignedRecommendationSerializer,
	ClassifyInputSerializer,
	MedicationPrescriptionSerializer,
	PrescriptionSaveSerializer,
	RecommendationAssignSerializer,
	SituationSerializer,
	TestResultEditSerializer,
	VisitCreateSerializer,
	VisitSerializer,
)
from .services.archive import delete_visit
from .services.classification import CORRECTED_CALCIUM, build_test_values, classify
from .services.matching import suggest_prescription
from .services.prescriptions import previous_visit_prescriptions, save_prescriptions
from .services.recommendations import (
	assign_recommendations,
	assigned_recommendations,
	recommendations_for_situation,
)
from .services.repository import ClinicalRepository
from .services.revision import revise_visit
from .services.situations import resolve_situation
from .services.visits import record_visit

logger = logging.getLogger(__name__)

ERROR_STATUS = {
	InvalidInput: status.HTTP_400_BAD_REQUEST,
	NotLinkedError: status.HTTP_400_BAD_REQUEST,
	VisitNotFound: status.HTTP_404_NOT_FOUND,
	CatalogResolutionError: status.HTTP_500_INTERNAL_SERVER_ERROR,
	UpdateFailed: status.HTTP_500_INTERNAL_SERVER_ERROR,
}


def _error_response(exc: ClinicalError) -> Response:
	"""Translate a clinical exception to a DRF response."""
	code = ERROR_STATUS.get(type(exc), status.HTTP_400_BAD_REQUEST)
	if code >= 500:
		logger.error('Clinical request failed: %s', exc)
	return Response(exc.to_dict(), status=code)


def _preview_values(data):
	"""TestValues for the preview endpoints; CaCorrected is derived, never submitted."""
	if data['test_values'].get(CORRECTED_CALCIUM) not in (None, ''):
		raise InvalidInput(
			'CaCorrected is calculated from Ca and Albumin and cannot be submitted',
			field=CORRECTED_CALCIUM,
		)
	return build_test_values(data['test_values'], previous_pth=data.get('previous_pth'))


def _visit_queryset(request):
	qs = Visit.objects.using('default').select_related(
		'patient',
		'doctor',
		'situation',
		'last_modified_by',
	)
	return doctor_scope(qs, request, field='patient__doctor')


# -----------------------------------------------------------------------------
# Reference data & previews
# -----------------------------------------------------------------------------


class SituationListView(generics.ListAPIView):
	"""The 66 clinical situations (unpaginated reference data)."""

	permission_classes = [SituationCatalogPermission]
	serializer_class = SituationSerializer
	pagination_class = None

	def get_queryset(self):
		qs = Situation.objects.using('default').all()
		group = self.request.query_params.get('group')
		if group in ('1', '2'):
			qs = qs.filter(group=int(group))
		return qs.order_by('id')


class SituationRecommendationsView(generics.GenericAPIView):
	"""
	Recommendation templates of a situation.

	GET /api/clinical/situations/<pk>/recommendations/
	"""

	permission_classes = [SituationCatalogPermission]

	def get_queryset(self):
		return Situation.objects.using('default').all()

	def get(self, request, *args, **kwargs):
		situation = self.get_object()
		return Response(
			{
				'situation': SituationSerializer(situation).data,
				'recommendations': recommendations_for_situation(situation.id),
			},
			status=status.HTTP_200_OK,
		)


class ClassifyView(generics.GenericAPIView):
	"""
	Classification preview. Nothing is written.

	POST /api/clinical/classify/
	Body: {"test_values": {"PTH": 450, "Ca": 9.1, ...}, "previous_pth": 380}
	"""

	permission_classes = [ClinicalPreviewPermission]
	serializer_class = ClassifyInputSerializer

	def post(self, request, *args, **kwargs):
		serializer = self.get_serializer(data=request.data)
		serializer.is_valid(raise_exception=True)

		try:
			values = _preview_values(serializer.validated_data)
			classification = classify(values)
			situation = resolve_situation(classification, ClinicalRepository())
		except ClinicalError as e:
			return _error_response(e)

		return Response(
			{
				'classification': classification.to_dict(),
				'corrected_calcium': values.corrected_calcium,
				'effective_previous_pth': values.effective_previous_pth,
				'situation': SituationSerializer(situation).data,
			},
			status=status.HTTP_200_OK,
		)


class ClosestMedicationView(generics.GenericAPIView):
	"""
	Starting prescription from the closest historical visit.

	POST /api/clinical/medications/closest/
	Body: {"test_values": {...}, "previous_pth": 380}
	"""

	permission_classes = [ClinicalPreviewPermission]
	serializer_class = ClassifyInputSerializer

	def post(self, request, *args, **kwargs):
		serializer = self.get_serializer(data=request.data)
		serializer.is_valid(raise_exception=True)

		try:
			values = _preview_values(serializer.validated_data)
		except ClinicalError as e:
			return _error_response(e)

		return Response(suggest_prescription(values, ClinicalRepository()), status=status.HTTP_200_OK)


# -----------------------------------------------------------------------------
# Visits
# -----------------------------------------------------------------------------


class VisitCreateView(generics.CreateAPIView):
	"""
	Record a visit with its lab values.

	POST /api/clinical/visits/
	Body: {"patient": 1, "test_values": {...}, "notes": "", "report_date": "..."}
	"""

	permission_classes = [VisitPermission]
	serializer_class = VisitCreateSerializer

	def create(self, request, *args, **kwargs):
		serializer = self.get_serializer(data=request.data)
		serializer.is_valid(raise_exception=True)
		data = serializer.validated_data

		try:
			recorded = record_visit(
				data['patient'],
				data['test_values'],
				request.user,
				notes=data.get('notes', ''),
				report_date=data.get('report_date'),
			)
		except ClinicalError as e:
			return _error_response(e)

		visit = _visit_queryset(request).get(pk=recorded.visit.pk)
		out = VisitSerializer(visit).data
		out['classification'] = recorded.classification.to_dict()
		out['previous_pth'] = recorded.previous_pth
		return Response(out, status=status.HTTP_201_CREATED)


class VisitDetailView(generics.RetrieveDestroyAPIView):
	"""
	GET    /api/clinical/visits/<pk>/  - visit detail
	DELETE /api/clinical/visits/<pk>/  - archive and delete the visit
	Body (DELETE, optional): {"deletion_reason": "..."}
	"""

	permission_classes = [VisitPermission]
	serializer_class = VisitSerializer

	def get_queryset(self):
		return _visit_queryset(self.request)

	def retrieve(self, request, *args, **kwargs):
		visit = self.get_object()
		log_patient_action(request.user, 'visit_view', patient_id=visit.patient_id, meta={'visit_id': visit.id})
		return Response(self.get_serializer(visit).data, status=status.HTTP_200_OK)

	def destroy(self, request, *args, **kwargs):
		visit = self.get_object()
		reason = str(request.data.get('deletion_reason') or '').strip()

		try:
			result = delete_visit(visit.id, request.user, reason=reason)
		except ClinicalError as e:
			return _error_response(e)

		return Response(result, status=status.HTTP_200_OK)


class VisitTestResultsView(generics.GenericAPIView):
	"""
	Revise test values of a visit.

	PUT /api/clinical/visits/<pk>/test-results/
	Body: {"test_results": {"<test_result_id>": <new value>, ...}}

	Recomputes corrected calcium and the classification, reassigns the
	situation and outdates active prescriptions when the change is
	significant. The response carries the revision outcome and the
	updated visit.
	"""

	permission_classes = [VisitPermission]
	serializer_class = TestResultEditSerializer

	def get_queryset(self):
		return _visit_queryset(self.request)

	def put(self, request, *args, **kwargs):
		visit = self.get_object()
		serializer = self.get_serializer(data=request.data)
		serializer.is_valid(raise_exception=True)

		try:
			outcome = revise_visit(visit.id, serializer.validated_data['test_results'], request.user)
		except ClinicalError as e:
			return _error_response(e)

		out = outcome.to_dict()
		out['visit'] = VisitSerializer(self.get_queryset().get(pk=visit.pk)).data
		return Response(out, status=status.HTTP_200_OK)


# -----------------------------------------------------------------------------
# Prescriptions
# -----------------------------------------------------------------------------


class VisitPrescriptionsView(generics.GenericAPIView):
	"""
	GET  /api/clinical/visits/<pk>/prescriptions/  - active and outdated prescriptions
	POST /api/clinical/visits/<pk>/prescriptions/  - replace the active prescriptions
	"""

	permission_classes = [VisitPermission]
	serializer_class = PrescriptionSaveSerializer

	def get_queryset(self):
		return _visit_queryset(self.request)

	def get(self, request, *args, **kwargs):
		visit = self.get_object()
		rows = (
			MedicationPrescription.objects.using('default')
			.filter(visit=visit)
			.select_related('medication_type', 'prescribed_by', 'outdated_by')
			.order_by('medication_type_id', 'id')
		)
		active = [p for p in rows if not p.is_outdated]
		outdated = [p for p in rows if p.is_outdated]
		return Response(
			{
				'visit_id': visit.id,
				'active': MedicationPrescriptionSerializer(active, many=True).data,
				'outdated': MedicationPrescriptionSerializer(outdated, many=True).data,
				'requires_review': bool(outdated) and not active,
			},
			status=status.HTTP_200_OK,
		)

	def post(self, request, *args, **kwargs):
		visit = self.get_object()
		serializer = self.get_serializer(data=request.data)
		serializer.is_valid(raise_exception=True)

		try:
			active = save_prescriptions(visit, serializer.validated_data['medications'], request.user)
		except ClinicalError as e:
			return _error_response(e)

		return Response(
			{
				'visit_id': visit.id,
				'active': MedicationPrescriptionSerializer(active, many=True).data,
			},
			status=status.HTTP_200_OK,
		)


class PreviousPrescriptionsView(generics.GenericAPIView):
	"""
	Active prescriptions of the patient's visit before this one.

	GET /api/clinical/visits/<pk>/prescriptions/previous/
	"""

	permission_classes = [VisitPermission]

	def get_queryset(self):
		return _visit_queryset(self.request)

	def get(self, request, *args, **kwargs):
		visit = self.get_object()
		previous, prescriptions = previous_visit_prescriptions(visit)
		return Response(
			{
				'visit_id': visit.id,
				'previous_visit': (
					{'id': previous.id, 'report_date': previous.report_date} if previous is not None else None
				),
				'prescriptions': MedicationPrescriptionSerializer(prescriptions, many=True).data,
			},
			status=status.HTTP_200_OK,
		)


# -----------------------------------------------------------------------------
# Recommendations
# -----------------------------------------------------------------------------


class VisitRecommendationsView(generics.GenericAPIView):
	"""
	GET  /api/clinical/visits/<pk>/recommendations/  - assigned recommendations
	POST /api/clinical/visits/<pk>/recommendations/  - replace them
	Body: {"recommendations": [{"question_id": 1, "selected_option_id": 3}, ...]}
	"""

	permission_classes = [VisitPermission]
	serializer_class = RecommendationAssignSerializer

	def get_queryset(self):
		return _visit_queryset(self.request)

	def _payload(self, visit, rows):
		return {
			'visit_id': visit.id,
			'situation_id': visit.situation_id,
			'recommendations': AssignedRecommendationSerializer(rows, many=True).data,
		}

	def get(self, request, *args, **kwargs):
		visit = self.get_object()
		return Response(self._payload(visit, assigned_recommendations(visit.id)), status=status.HTTP_200_OK)

	def post(self, request, *args, **kwargs):
		visit = self.get_object()
		serializer = self.get_serializer(data=request.data)
		serializer.is_valid(raise_exception=True)

		try:
			rows = assign_recommendations(visit, serializer.validated_data['recommendations'], request.user)
		except ClinicalError as e:
			return _error_response(e)

		return Response(self._payload(visit, rows), status=status.HTTP_200_OK)
