from django.conf import settings
from django.db import migrations, models
import django.db.models.deletion
import django.utils.timezone


class Migration(migrations.Migration):

	initial = True

	dependencies = [
		("patients", "0001_initial"),
		migrations.swappable_dependency(settings.AUTH_USER_MODEL),
	]

	operations = [
		migrations.CreateModel(
			name="TestType",
			fields=[
				("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
				("code", models.CharField(db_index=True, max_length=32, unique=True)),
				("name", models.CharField(max_length=100)),
				("unit", models.CharField(blank=True, default="", max_length=32)),
				("validity_months", models.PositiveSmallIntegerField(default=1)),
			],
			options={
				"ordering": ["name", "id"],
			},
		),
		migrations.CreateModel(
			name="Situation",
			fields=[
				("id", models.PositiveSmallIntegerField(primary_key=True, serialize=False)),
				(
					"group",
					models.PositiveSmallIntegerField(
						choices=[(1, "Vascular positive"), (2, "Vascular negative")],
					),
				),
				(
					"bucket",
					models.PositiveSmallIntegerField(
						choices=[(1, "High turnover"), (2, "Within range"), (3, "Low turnover")],
					),
				),
				("code", models.CharField(max_length=8)),
				("description", models.TextField(blank=True, default="")),
			],
			options={
				"ordering": ["id"],
				"constraints": [
					models.UniqueConstraint(fields=("group", "code"), name="unique_situation_group_code"),
				],
			},
		),
		migrations.CreateModel(
			name="MedicationType",
			fields=[
				("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
				("name", models.CharField(max_length=100)),
				("unit", models.CharField(blank=True, default="", max_length=32)),
				("group_name", models.CharField(blank=True, default="", max_length=100)),
			],
			options={
				"ordering": ["group_name", "name", "id"],
			},
		),
		migrations.CreateModel(
			name="Visit",
			fields=[
				("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
				("report_date", models.DateTimeField(db_index=True, default=django.utils.timezone.now)),
				("notes", models.TextField(blank=True, default="")),
				("created_at", models.DateTimeField(auto_now_add=True)),
				("last_modified", models.DateTimeField(blank=True, null=True)),
				(
					"doctor",
					models.ForeignKey(
						blank=True,
						null=True,
						on_delete=django.db.models.deletion.SET_NULL,
						related_name="visits",
						to=settings.AUTH_USER_MODEL,
					),
				),
				(
					"last_modified_by",
					models.ForeignKey(
						blank=True,
						null=True,
						on_delete=django.db.models.deletion.SET_NULL,
						related_name="+",
						to=settings.AUTH_USER_MODEL,
					),
				),
				(
					"patient",
					models.ForeignKey(
						on_delete=django.db.models.deletion.CASCADE,
						related_name="visits",
						to="patients.patient",
					),
				),
				(
					"situation",
					models.ForeignKey(
						blank=True,
						null=True,
						on_delete=django.db.models.deletion.PROTECT,
						related_name="visits",
						to="clinical.situation",
					),
				),
			],
			options={
				"ordering": ["-report_date", "-id"],
				"indexes": [
					models.Index(fields=["patient", "report_date"], name="clinical_visit_patient_dt_idx"),
				],
			},
		),
		migrations.CreateModel(
			name="TestResult",
			fields=[
				("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
				("value", models.FloatField()),
				("test_date", models.DateTimeField(default=django.utils.timezone.now)),
				("last_modified", models.DateTimeField(blank=True, null=True)),
				(
					"entered_by",
					models.ForeignKey(
						blank=True,
						null=True,
						on_delete=django.db.models.deletion.SET_NULL,
						related_name="+",
						to=settings.AUTH_USER_MODEL,
					),
				),
				(
					"last_modified_by",
					models.ForeignKey(
						blank=True,
						null=True,
						on_delete=django.db.models.deletion.SET_NULL,
						related_name="+",
						to=settings.AUTH_USER_MODEL,
					),
				),
				(
					"test_type",
					models.ForeignKey(
						on_delete=django.db.models.deletion.PROTECT,
						related_name="results",
						to="clinical.testtype",
					),
				),
				(
					"visit",
					models.ForeignKey(
						on_delete=django.db.models.deletion.CASCADE,
						related_name="test_results",
						to="clinical.visit",
					),
				),
			],
			options={
				"ordering": ["visit_id", "test_type_id"],
				"constraints": [
					models.UniqueConstraint(fields=("visit", "test_type"), name="unique_test_type_per_visit"),
				],
			},
		),
		migrations.CreateModel(
			name="MedicationPrescription",
			fields=[
				("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
				("dosage", models.FloatField()),
				("created_at", models.DateTimeField(auto_now_add=True)),
				("is_outdated", models.BooleanField(db_index=True, default=False)),
				("outdated_at", models.DateTimeField(blank=True, null=True)),
				("outdated_reason", models.TextField(blank=True, default="")),
				(
					"medication_type",
					models.ForeignKey(
						on_delete=django.db.models.deletion.PROTECT,
						related_name="prescriptions",
						to="clinical.medicationtype",
					),
				),
				(
					"outdated_by",
					models.ForeignKey(
						blank=True,
						null=True,
						on_delete=django.db.models.deletion.SET_NULL,
						related_name="+",
						to=settings.AUTH_USER_MODEL,
					),
				),
				(
					"prescribed_by",
					models.ForeignKey(
						blank=True,
						null=True,
						on_delete=django.db.models.deletion.SET_NULL,
						related_name="+",
						to=settings.AUTH_USER_MODEL,
					),
				),
				(
					"visit",
					models.ForeignKey(
						on_delete=django.db.models.deletion.CASCADE,
						related_name="prescriptions",
						to="clinical.visit",
					),
				),
			],
			options={
				"ordering": ["visit_id", "medication_type_id", "id"],
				"constraints": [
					models.UniqueConstraint(
						condition=models.Q(("is_outdated", False)),
						fields=("visit", "medication_type"),
						name="unique_active_prescription_per_type",
					),
				],
			},
		),
	]
