import random
from datetime import timedelta

from django.contrib.auth import get_user_model
from django.db import transaction
from django.utils import timezone

from renal_backend.patients.models import Patient

from .models import MedicationType, Option, Question, RecommendationTemplate, Situation
from .services.prescriptions import save_prescriptions
from .services.visits import record_visit

User = get_user_model()

RANDOM_SEED = 42
SEED_NATIONAL_ID_PREFIX = "SEED-"

MEDICATION_TYPES = [
    # name, unit, group_name
    ("Calcium carbonate", "mg", "Phosphate binders"),
    ("Sevelamer carbonate", "mg", "Phosphate binders"),
    ("Lanthanum carbonate", "mg", "Phosphate binders"),
    ("Calcitriol", "mcg", "Vitamin D"),
    ("Alfacalcidol", "mcg", "Vitamin D"),
    ("Paricalcitol", "mcg", "Vitamin D"),
    ("Cinacalcet", "mg", "Calcimimetics"),
    ("Etelcalcetide", "mg", "Calcimimetics"),
]

# question, options, default option per bucket (1 high, 2 within range, 3 low turnover)
RECOMMENDATION_QUESTIONS = [
    (
        "Active vitamin D dose",
        ["Increase", "Keep", "Reduce", "Stop"],
        {1: "Increase", 2: "Keep", 3: "Reduce"},
    ),
    (
        "Calcimimetic",
        ["Start or increase", "Keep", "Reduce or stop"],
        {1: "Start or increase", 2: "Keep", 3: "Reduce or stop"},
    ),
    (
        "Phosphate binder",
        ["Start or increase", "Keep", "Reduce"],
        {1: "Keep", 2: "Keep", 3: "Keep"},
    ),
    (
        "Next PTH check",
        ["In 1 month", "In 3 months", "In 6 months"],
        {1: "In 1 month", 2: "In 3 months", 3: "In 1 month"},
    ),
]


def seed_clinical(flush: bool = False) -> dict:
    """
    Seedet:
    - Medikamententypen
    - Empfehlungsfragen mit Optionen und Vorlagen je Situation
    - Demo-Patienten mit je zwei Visiten (über die Klassifikations-Engine)
    - Verordnungen für die erste Visite

    Wenn flush=True:
        - Löscht nur Patienten mit National-ID 'SEED-...' (Visiten kaskadieren)
        - Testarten und Situationen bleiben unangetastet
    """
    random.seed(RANDOM_SEED)
    stats: dict[str, int] = {}

    with transaction.atomic():
        if flush:
            Patient.objects.filter(national_id__startswith=SEED_NATIONAL_ID_PREFIX).delete()

        medication_types = _seed_medication_types()
        stats["clinical_medication_types"] = len(medication_types)
        stats["clinical_recommendation_templates"] = _seed_recommendation_templates()

        doctors = list(User.objects.filter(role__name="doctor", is_active=True).order_by("id"))
        if not doctors or Patient.objects.filter(national_id__startswith=SEED_NATIONAL_ID_PREFIX).exists():
            stats["clinical_patients"] = 0
            stats["clinical_visits"] = 0
            return stats

        patients, visits = _seed_patients(doctors, medication_types)
        stats["clinical_patients"] = patients
        stats["clinical_visits"] = visits

    return stats


def _seed_medication_types() -> list[MedicationType]:
    types: list[MedicationType] = []
    for name, unit, group_name in MEDICATION_TYPES:
        med, _created = MedicationType.objects.get_or_create(
            name=name,
            defaults={"unit": unit, "group_name": group_name},
        )
        types.append(med)
    return types


def _random_lab_values() -> dict[str, float]:
    return {
        "PTH": round(random.uniform(60, 900), 0),
        "Ca": round(random.uniform(7.2, 10.8), 1),
        "Albumin": round(random.uniform(2.8, 4.6), 1),
        "Phos": round(random.uniform(2.8, 7.5), 1),
        "Echo": random.choice([0, 1]),
        "LARad": random.randint(0, 12),
    }


def _seed_patients(doctors, medication_types) -> tuple[int, int]:
    first_names = ["Ali", "Omar", "Karim", "Sara", "Layla", "Mariam", "Yusuf", "Noura", "Amina", "Hassan"]
    last_names = ["Ahmad", "Salim", "Haddad", "Khalil", "Rahman", "Faruq"]

    now = timezone.now()
    patient_count = 0
    visit_count = 0

    for i in range(12):
        first_name = random.choice(first_names)
        doctor = doctors[i % len(doctors)]
        patient = Patient.objects.create(
            name=f"{first_name} {random.choice(last_names)}",
            age=random.randint(25, 85),
            gender="female" if first_name in ("Sara", "Layla", "Mariam", "Noura", "Amina") else "male",
            national_id=f"{SEED_NATIONAL_ID_PREFIX}{1000 + i}",
            contact_info=f"+20 10 {random.randint(1000000, 9999999)}",
            doctor=doctor,
        )
        patient_count += 1

        first = record_visit(
            patient,
            _random_lab_values(),
            doctor,
            notes="Seed: initial visit",
            report_date=now - timedelta(days=random.randint(45, 120)),
        )
        save_prescriptions(
            first.visit,
            [
                {"medication_type_id": med.id, "dosage": random.choice([0, 0, 250, 500, 0.25, 30])}
                for med in medication_types
            ],
            doctor,
        )
        record_visit(
            patient,
            _random_lab_values(),
            doctor,
            notes="Seed: follow-up",
            report_date=now - timedelta(days=random.randint(1, 30)),
        )
        visit_count += 2

    return patient_count, visit_count


def _seed_recommendation_templates() -> int:
    """Attach every question to every situation; the default follows the bucket."""
    situations = list(Situation.objects.order_by("id"))
    count = 0
    for text, option_texts, defaults in RECOMMENDATION_QUESTIONS:
        question, _created = Question.objects.get_or_create(text=text)
        options = {}
        for option_text in option_texts:
            option, _created = Option.objects.get_or_create(question=question, text=option_text)
            options[option_text] = option
        for situation in situations:
            RecommendationTemplate.objects.get_or_create(
                situation=situation,
                question=question,
                defaults={"default_option": options[defaults[situation.bucket]]},
            )
            count += 1
    return count
