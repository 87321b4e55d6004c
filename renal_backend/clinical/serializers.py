from rest_framework import serializers

from renal_backend.core.serializers import UserBriefSerializer
from renal_backend.patients.models import Patient

from .models import (
	AssignedRecommendation,
	MedicationPrescription,
	MedicationType,
	Situation,
	TestResult,
	TestType,
	Visit,
)


# -----------------------------------------------------------------------------
# Reference data
# -----------------------------------------------------------------------------


class TestTypeSerializer(serializers.ModelSerializer):
	class Meta:
		model = TestType
		fields = ['id', 'code', 'name', 'unit', 'validity_months']
		read_only_fields = fields


class SituationSerializer(serializers.ModelSerializer):
	group_label = serializers.CharField(source='get_group_display', read_only=True)
	bucket_label = serializers.CharField(source='get_bucket_display', read_only=True)

	class Meta:
		model = Situation
		fields = ['id', 'group', 'group_label', 'bucket', 'bucket_label', 'code', 'description']
		read_only_fields = fields


class MedicationTypeSerializer(serializers.ModelSerializer):
	class Meta:
		model = MedicationType
		fields = ['id', 'name', 'unit', 'group_name']
		read_only_fields = fields


# -----------------------------------------------------------------------------
# Visits
# -----------------------------------------------------------------------------


class TestResultSerializer(serializers.ModelSerializer):
	code = serializers.CharField(source='test_type.code', read_only=True)
	name = serializers.CharField(source='test_type.name', read_only=True)
	unit = serializers.CharField(source='test_type.unit', read_only=True)
	last_modified_by = UserBriefSerializer(read_only=True)

	class Meta:
		model = TestResult
		fields = [
			'id',
			'code',
			'name',
			'unit',
			'value',
			'test_date',
			'last_modified',
			'last_modified_by',
		]
		read_only_fields = fields


class MedicationPrescriptionSerializer(serializers.ModelSerializer):
	medication_type_id = serializers.IntegerField(read_only=True)
	name = serializers.CharField(source='medication_type.name', read_only=True)
	unit = serializers.CharField(source='medication_type.unit', read_only=True)
	group_name = serializers.CharField(source='medication_type.group_name', read_only=True)
	prescribed_by = UserBriefSerializer(read_only=True)
	outdated_by = UserBriefSerializer(read_only=True)

	class Meta:
		model = MedicationPrescription
		fields = [
			'id',
			'visit_id',
			'medication_type_id',
			'name',
			'unit',
			'group_name',
			'dosage',
			'prescribed_by',
			'created_at',
			'is_outdated',
			'outdated_at',
			'outdated_reason',
			'outdated_by',
		]
		read_only_fields = fields


class VisitSerializer(serializers.ModelSerializer):
	"""Visit with lab values, situation and its full prescription history."""

	doctor = UserBriefSerializer(read_only=True)
	last_modified_by = UserBriefSerializer(read_only=True)
	situation = SituationSerializer(read_only=True)
	test_results = TestResultSerializer(many=True, read_only=True)
	prescriptions = MedicationPrescriptionSerializer(many=True, read_only=True)

	class Meta:
		model = Visit
		fields = [
			'id',
			'patient_id',
			'doctor',
			'report_date',
			'notes',
			'situation',
			'test_results',
			'prescriptions',
			'created_at',
			'last_modified',
			'last_modified_by',
		]
		read_only_fields = fields


class VisitCreateSerializer(serializers.Serializer):
	"""Input for recording a visit.

	Doctors can only record visits for their own patients.
	"""

	patient = serializers.PrimaryKeyRelatedField(queryset=Patient.objects.using('default').all())
	test_values = serializers.DictField(allow_empty=False)
	notes = serializers.CharField(required=False, allow_blank=True, default='')
	report_date = serializers.DateTimeField(required=False)

	def validate_patient(self, value):
		request = self.context.get('request')
		role_name = getattr(getattr(getattr(request, 'user', None), 'role', None), 'name', None)
		if role_name == 'doctor' and value.doctor_id != request.user.id:
			raise serializers.ValidationError('Doctors can only record visits for their own patients.')
		return value


class ClassifyInputSerializer(serializers.Serializer):
	"""Input for the classification preview and the closest-medication lookup."""

	test_values = serializers.DictField(allow_empty=False)
	previous_pth = serializers.FloatField(required=False, allow_null=True, default=None)


class TestResultEditSerializer(serializers.Serializer):
	"""``{"test_results": {"<test_result_id>": <new value>, ...}}``"""

	test_results = serializers.DictField(allow_empty=False)


class PrescriptionSaveSerializer(serializers.Serializer):
	"""``{"medications": [{"medication_type_id": 1, "dosage": 2.5}, ...]}``

	An empty list clears the visit's active prescriptions.
	"""

	medications = serializers.ListField(child=serializers.DictField(), allow_empty=True)


# -----------------------------------------------------------------------------
# Recommendations
# -----------------------------------------------------------------------------


class AssignedRecommendationSerializer(serializers.ModelSerializer):
	question_text = serializers.CharField(source='question.text', read_only=True)
	selected_option_text = serializers.CharField(source='selected_option.text', read_only=True)
	assigned_by = UserBriefSerializer(read_only=True)

	class Meta:
		model = AssignedRecommendation
		fields = [
			'id',
			'question_id',
			'question_text',
			'selected_option_id',
			'selected_option_text',
			'assigned_by',
			'created_at',
		]
		read_only_fields = fields


class RecommendationAssignSerializer(serializers.Serializer):
	"""``{"recommendations": [{"question_id": 1, "selected_option_id": 3}, ...]}``

	An empty list clears the visit's recommendations.
	"""

	recommendations = serializers.ListField(child=serializers.DictField(), allow_empty=True)
