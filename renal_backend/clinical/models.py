"""Domain models for lab visits, situation catalog and medication.

Medical-domain note:

- A ``Visit`` is one encounter (lab report) of a patient. Its test results are
    linked to it and its ``situation`` is derived by the classification engine.
- ``Situation`` is static reference data (66 rows, seeded by a data migration).
- Prescriptions are never deleted when they become invalid; they are flagged
    ``is_outdated`` with an audit trail instead.

All ORM access for these models uses the ``default`` database alias.
"""

from django.conf import settings
from django.db import models
from django.db.models import Q
from django.utils import timezone


class TestType(models.Model):
	"""Catalog of lab tests.

	``code`` is the stable identifier used by the classification engine
	(``PTH``, ``Ca``, ``Albumin``, ``CaCorrected``, ``Phos``, ``Echo``, ``LARad``).
	"""
	code = models.CharField(max_length=32, unique=True, db_index=True)
	name = models.CharField(max_length=100)
	unit = models.CharField(max_length=32, blank=True, default='')
	validity_months = models.PositiveSmallIntegerField(default=1)

	class Meta:
		ordering = ['name', 'id']

	def __str__(self) -> str:
		return self.code


class Situation(models.Model):
	"""Clinical situation (T1..T33 per group).

	The primary key is part of the reference data: group 1 uses ids 1-33,
	group 2 uses ids 34-66.
	"""
	GROUP_VASCULAR_POSITIVE = 1
	GROUP_VASCULAR_NEGATIVE = 2
	GROUP_CHOICES = [
		(GROUP_VASCULAR_POSITIVE, 'Vascular positive'),
		(GROUP_VASCULAR_NEGATIVE, 'Vascular negative'),
	]

	BUCKET_HIGH_TURNOVER = 1
	BUCKET_WITHIN_RANGE = 2
	BUCKET_LOW_TURNOVER = 3
	BUCKET_CHOICES = [
		(BUCKET_HIGH_TURNOVER, 'High turnover'),
		(BUCKET_WITHIN_RANGE, 'Within range'),
		(BUCKET_LOW_TURNOVER, 'Low turnover'),
	]

	id = models.PositiveSmallIntegerField(primary_key=True)
	group = models.PositiveSmallIntegerField(choices=GROUP_CHOICES)
	bucket = models.PositiveSmallIntegerField(choices=BUCKET_CHOICES)
	code = models.CharField(max_length=8)
	description = models.TextField(blank=True, default='')

	class Meta:
		ordering = ['id']
		constraints = [
			models.UniqueConstraint(fields=['group', 'code'], name='unique_situation_group_code'),
		]

	def __str__(self) -> str:
		return f"Group {self.group} {self.code}"


class Visit(models.Model):
	"""One encounter of a patient (lab report).

	``situation`` is mutated in place whenever the engine recomputes the
	classification; editing test values never creates a new visit.
	"""
	patient = models.ForeignKey(
		'patients.Patient',
		on_delete=models.CASCADE,
		related_name='visits',
	)
	doctor = models.ForeignKey(
		settings.AUTH_USER_MODEL,
		on_delete=models.SET_NULL,
		null=True,
		blank=True,
		related_name='visits',
	)
	report_date = models.DateTimeField(default=timezone.now, db_index=True)
	notes = models.TextField(blank=True, default='')
	situation = models.ForeignKey(
		Situation,
		on_delete=models.PROTECT,
		null=True,
		blank=True,
		related_name='visits',
	)
	created_at = models.DateTimeField(auto_now_add=True)
	last_modified = models.DateTimeField(null=True, blank=True)
	last_modified_by = models.ForeignKey(
		settings.AUTH_USER_MODEL,
		on_delete=models.SET_NULL,
		null=True,
		blank=True,
		related_name='+',
	)

	class Meta:
		ordering = ['-report_date', '-id']
		indexes = [
			models.Index(fields=['patient', 'report_date'], name='clinical_visit_patient_dt_idx'),
		]

	def __str__(self) -> str:
		return f"Visit #{self.id} (patient_id={self.patient_id}, {self.report_date:%Y-%m-%d})"


class TestResult(models.Model):
	"""A single lab value linked to a visit."""
	visit = models.ForeignKey(
		Visit,
		on_delete=models.CASCADE,
		related_name='test_results',
	)
	test_type = models.ForeignKey(
		TestType,
		on_delete=models.PROTECT,
		related_name='results',
	)
	value = models.FloatField()
	test_date = models.DateTimeField(default=timezone.now)
	entered_by = models.ForeignKey(
		settings.AUTH_USER_MODEL,
		on_delete=models.SET_NULL,
		null=True,
		blank=True,
		related_name='+',
	)
	last_modified = models.DateTimeField(null=True, blank=True)
	last_modified_by = models.ForeignKey(
		settings.AUTH_USER_MODEL,
		on_delete=models.SET_NULL,
		null=True,
		blank=True,
		related_name='+',
	)

	class Meta:
		ordering = ['visit_id', 'test_type_id']
		constraints = [
			models.UniqueConstraint(fields=['visit', 'test_type'], name='unique_test_type_per_visit'),
		]

	def __str__(self) -> str:
		return f"{self.test_type_id}={self.value} (visit_id={self.visit_id})"


class MedicationType(models.Model):
	name = models.CharField(max_length=100)
	unit = models.CharField(max_length=32, blank=True, default='')
	group_name = models.CharField(max_length=100, blank=True, default='')

	class Meta:
		ordering = ['group_name', 'name', 'id']

	def __str__(self) -> str:
		return self.name


class MedicationPrescription(models.Model):
	"""Medication prescribed for a visit.

	Invariant: at most one active (non-outdated) prescription per
	(visit, medication_type). Outdated prescriptions keep their history.
	"""
	visit = models.ForeignKey(
		Visit,
		on_delete=models.CASCADE,
		related_name='prescriptions',
	)
	medication_type = models.ForeignKey(
		MedicationType,
		on_delete=models.PROTECT,
		related_name='prescriptions',
	)
	dosage = models.FloatField()
	prescribed_by = models.ForeignKey(
		settings.AUTH_USER_MODEL,
		on_delete=models.SET_NULL,
		null=True,
		blank=True,
		related_name='+',
	)
	created_at = models.DateTimeField(auto_now_add=True)
	is_outdated = models.BooleanField(default=False, db_index=True)
	outdated_at = models.DateTimeField(null=True, blank=True)
	outdated_reason = models.TextField(blank=True, default='')
	outdated_by = models.ForeignKey(
		settings.AUTH_USER_MODEL,
		on_delete=models.SET_NULL,
		null=True,
		blank=True,
		related_name='+',
	)

	class Meta:
		ordering = ['visit_id', 'medication_type_id', 'id']
		constraints = [
			models.UniqueConstraint(
				fields=['visit', 'medication_type'],
				condition=Q(is_outdated=False),
				name='unique_active_prescription_per_type',
			),
		]

	def __str__(self) -> str:
		state = 'outdated' if self.is_outdated else 'active'
		return f"{self.medication_type_id} {self.dosage} ({state}, visit_id={self.visit_id})"


class Question(models.Model):
	"""Treatment question asked for one or more situations."""
	text = models.TextField()

	class Meta:
		ordering = ['id']

	def __str__(self) -> str:
		return self.text[:60]


class Option(models.Model):
	"""Possible answer to a question."""
	question = models.ForeignKey(
		Question,
		on_delete=models.CASCADE,
		related_name='options',
	)
	text = models.TextField()

	class Meta:
		ordering = ['question_id', 'id']

	def __str__(self) -> str:
		return self.text[:60]


class RecommendationTemplate(models.Model):
	"""Question (with its default answer) recommended for a situation."""
	situation = models.ForeignKey(
		Situation,
		on_delete=models.CASCADE,
		related_name='recommendation_templates',
	)
	question = models.ForeignKey(
		Question,
		on_delete=models.CASCADE,
		related_name='templates',
	)
	default_option = models.ForeignKey(
		Option,
		on_delete=models.SET_NULL,
		null=True,
		blank=True,
		related_name='+',
	)

	class Meta:
		ordering = ['situation_id', 'question_id']
		constraints = [
			models.UniqueConstraint(fields=['situation', 'question'], name='unique_template_question'),
		]

	def __str__(self) -> str:
		return f"Situation {self.situation_id} / question {self.question_id}"


class AssignedRecommendation(models.Model):
	"""Answer chosen for a question on a visit.

	The set of a visit is replaced as a whole on every assignment.
	"""
	visit = models.ForeignKey(
		Visit,
		on_delete=models.CASCADE,
		related_name='recommendations',
	)
	question = models.ForeignKey(
		Question,
		on_delete=models.PROTECT,
		related_name='+',
	)
	selected_option = models.ForeignKey(
		Option,
		on_delete=models.PROTECT,
		related_name='+',
	)
	assigned_by = models.ForeignKey(
		settings.AUTH_USER_MODEL,
		on_delete=models.SET_NULL,
		null=True,
		blank=True,
		related_name='+',
	)
	created_at = models.DateTimeField(auto_now_add=True)

	class Meta:
		ordering = ['visit_id', 'question_id']
		constraints = [
			models.UniqueConstraint(fields=['visit', 'question'], name='unique_recommendation_per_question'),
		]

	def __str__(self) -> str:
		return f"Question {self.question_id} -> option {self.selected_option_id} (visit_id={self.visit_id})"


class ArchivedVisit(models.Model):
	"""Snapshot of a deleted visit.

	Ids are plain integers: the visit and its rows are gone once archived.
	"""
	visit_id = models.BigIntegerField(db_index=True)
	patient_id = models.BigIntegerField(db_index=True)
	report_data = models.JSONField()
	test_results = models.JSONField(default=list)
	recommendations = models.JSONField(default=list)
	medications = models.JSONField(default=list)
	deleted_by = models.ForeignKey(
		settings.AUTH_USER_MODEL,
		on_delete=models.SET_NULL,
		null=True,
		blank=True,
		related_name='+',
	)
	deletion_reason = models.TextField(blank=True, default='')
	deleted_at = models.DateTimeField(auto_now_add=True)

	class Meta:
		ordering = ['-deleted_at', '-id']

	def __str__(self) -> str:
		return f"Archived visit #{self.visit_id} (patient_id={self.patient_id})"
