from django.conf import settings
from django.db import migrations, models
import django.db.models.deletion


class Migration(migrations.Migration):

	initial = True

	dependencies = [
		migrations.swappable_dependency(settings.AUTH_USER_MODEL),
	]

	operations = [
		migrations.CreateModel(
			name="Patient",
			fields=[
				("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
				("name", models.CharField(max_length=200)),
				("age", models.PositiveSmallIntegerField()),
				(
					"gender",
					models.CharField(
						choices=[("male", "Male"), ("female", "Female"), ("other", "Other")],
						max_length=16,
					),
				),
				("national_id", models.CharField(db_index=True, max_length=32, unique=True)),
				("contact_info", models.CharField(blank=True, default="", max_length=255)),
				("created_at", models.DateTimeField(auto_now_add=True)),
				("updated_at", models.DateTimeField(auto_now=True)),
				(
					"doctor",
					models.ForeignKey(
						on_delete=django.db.models.deletion.PROTECT,
						related_name="patients",
						to=settings.AUTH_USER_MODEL,
					),
				),
			],
			options={
				"verbose_name": "Patient",
				"verbose_name_plural": "Patients",
				"ordering": ["name", "id"],
			},
		),
	]
