from django.db import migrations

from renal_backend.clinical.services.situations import situation_catalog


TEST_TYPES = [
	# code, name, unit, validity_months
	("PTH", "Parathyroid hormone", "pg/mL", 3),
	("Ca", "Calcium", "mg/dL", 1),
	("Albumin", "Albumin", "g/dL", 1),
	("CaCorrected", "Corrected calcium", "mg/dL", 1),
	("Phos", "Phosphate", "mg/dL", 1),
	("Echo", "Echocardiography (valve calcification)", "", 12),
	("LARad", "Lateral abdominal radiography (calcification score)", "", 12),
]


def seed_reference_data(apps, schema_editor):
	db_alias = schema_editor.connection.alias
	TestType = apps.get_model("clinical", "TestType")
	Situation = apps.get_model("clinical", "Situation")

	for code, name, unit, validity_months in TEST_TYPES:
		TestType.objects.using(db_alias).update_or_create(
			code=code,
			defaults={"name": name, "unit": unit, "validity_months": validity_months},
		)

	for definition in situation_catalog():
		Situation.objects.using(db_alias).update_or_create(
			id=definition.id,
			defaults={
				"group": definition.group,
				"bucket": definition.bucket,
				"code": definition.code,
				"description": definition.description,
			},
		)


def remove_reference_data(apps, schema_editor):
	db_alias = schema_editor.connection.alias
	apps.get_model("clinical", "Situation").objects.using(db_alias).all().delete()
	apps.get_model("clinical", "TestType").objects.using(db_alias).filter(
		code__in=[code for code, *_ in TEST_TYPES],
	).delete()


class Migration(migrations.Migration):

	dependencies = [
		("clinical", "0001_initial"),
	]

	operations = [
		migrations.RunPython(seed_reference_data, remove_reference_data),
	]
