from django.conf import settings
from django.db import migrations, models
import django.db.models.deletion


class Migration(migrations.Migration):

	dependencies = [
		("clinical", "0002_seed_reference_data"),
		migrations.swappable_dependency(settings.AUTH_USER_MODEL),
	]

	operations = [
		migrations.CreateModel(
			name="Question",
			fields=[
				("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
				("text", models.TextField()),
			],
			options={
				"ordering": ["id"],
			},
		),
		migrations.CreateModel(
			name="Option",
			fields=[
				("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
				("text", models.TextField()),
				(
					"question",
					models.ForeignKey(
						on_delete=django.db.models.deletion.CASCADE,
						related_name="options",
						to="clinical.question",
					),
				),
			],
			options={
				"ordering": ["question_id", "id"],
			},
		),
		migrations.CreateModel(
			name="RecommendationTemplate",
			fields=[
				("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
				(
					"default_option",
					models.ForeignKey(
						blank=True,
						null=True,
						on_delete=django.db.models.deletion.SET_NULL,
						related_name="+",
						to="clinical.option",
					),
				),
				(
					"question",
					models.ForeignKey(
						on_delete=django.db.models.deletion.CASCADE,
						related_name="templates",
						to="clinical.question",
					),
				),
				(
					"situation",
					models.ForeignKey(
						on_delete=django.db.models.deletion.CASCADE,
						related_name="recommendation_templates",
						to="clinical.situation",
					),
				),
			],
			options={
				"ordering": ["situation_id", "question_id"],
				"constraints": [
					models.UniqueConstraint(fields=("situation", "question"), name="unique_template_question"),
				],
			},
		),
		migrations.CreateModel(
			name="AssignedRecommendation",
			fields=[
				("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
				("created_at", models.DateTimeField(auto_now_add=True)),
				(
					"assigned_by",
					models.ForeignKey(
						blank=True,
						null=True,
						on_delete=django.db.models.deletion.SET_NULL,
						related_name="+",
						to=settings.AUTH_USER_MODEL,
					),
				),
				(
					"question",
					models.ForeignKey(
						on_delete=django.db.models.deletion.PROTECT,
						related_name="+",
						to="clinical.question",
					),
				),
				(
					"selected_option",
					models.ForeignKey(
						on_delete=django.db.models.deletion.PROTECT,
						related_name="+",
						to="clinical.option",
					),
				),
				(
					"visit",
					models.ForeignKey(
						on_delete=django.db.models.deletion.CASCADE,
						related_name="recommendations",
						to="clinical.visit",
					),
				),
			],
			options={
				"ordering": ["visit_id", "question_id"],
				"constraints": [
					models.UniqueConstraint(fields=("visit", "question"), name="unique_recommendation_per_question"),
				],
			},
		),
		migrations.CreateModel(
			name="ArchivedVisit",
			fields=[
				("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
				("visit_id", models.BigIntegerField(db_index=True)),
				("patient_id", models.BigIntegerField(db_index=True)),
				("report_data", models.JSONField()),
				("test_results", models.JSONField(default=list)),
				("recommendations", models.JSONField(default=list)),
				("medications", models.JSONField(default=list)),
				("deletion_reason", models.TextField(blank=True, default="")),
				("deleted_at", models.DateTimeField(auto_now_add=True)),
				(
					"deleted_by",
					models.ForeignKey(
						blank=True,
						null=True,
						on_delete=django.db.models.deletion.SET_NULL,
						related_name="+",
						to=settings.AUTH_USER_MODEL,
					),
				),
			],
			options={
				"ordering": ["-deleted_at", "-id"],
			},
		),
	]
