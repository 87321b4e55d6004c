"""
Clinical App - Admin für Visiten, Laborwerte, Situationen und Medikation
"""

from django.contrib import admin
from django.utils.html import format_html
from django.utils.safestring import mark_safe

from .models import (
    ArchivedVisit,
    AssignedRecommendation,
    MedicationPrescription,
    MedicationType,
    Option,
    Question,
    RecommendationTemplate,
    Situation,
    TestResult,
    TestType,
    Visit,
)


# ============================================================================
# Inline Classes
# ============================================================================
class TestResultInline(admin.TabularInline):
    """Inline für Laborwerte einer Visite"""
    model = TestResult
    extra = 0
    fields = ("test_type", "value", "test_date", "last_modified", "last_modified_by")
    readonly_fields = ("last_modified", "last_modified_by")


class MedicationPrescriptionInline(admin.TabularInline):
    """Inline für Verordnungen einer Visite"""
    model = MedicationPrescription
    extra = 0
    fields = ("medication_type", "dosage", "is_outdated", "outdated_at", "outdated_reason")
    readonly_fields = ("is_outdated", "outdated_at", "outdated_reason")


# ============================================================================
# Reference data
# ============================================================================
@admin.register(TestType)
class TestTypeAdmin(admin.ModelAdmin):
    list_display = ("code", "name", "unit", "validity_months")
    search_fields = ("code", "name")
    ordering = ("name",)


@admin.register(Situation)
class SituationAdmin(admin.ModelAdmin):
    """Stammdaten; Änderungen nur über Migrationen"""

    list_display = ("id", "group", "bucket", "code", "description")
    list_filter = ("group", "bucket")
    ordering = ("id",)
    list_per_page = 66

    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False


@admin.register(MedicationType)
class MedicationTypeAdmin(admin.ModelAdmin):
    list_display = ("name", "unit", "group_name")
    list_filter = ("group_name",)
    search_fields = ("name",)


# ============================================================================
# Visit Admin
# ============================================================================
@admin.register(Visit)
class VisitAdmin(admin.ModelAdmin):
    """Admin für Visiten"""

    list_display = ("id", "patient", "report_date", "situation_badge", "doctor", "last_modified")
    list_filter = ("situation__group", "situation__bucket", "report_date")
    search_fields = ("patient__name", "patient__national_id")
    ordering = ("-report_date",)
    list_per_page = 50
    list_select_related = ("patient", "situation", "doctor")
    readonly_fields = ("id", "situation", "created_at", "last_modified", "last_modified_by")
    inlines = [TestResultInline, MedicationPrescriptionInline]

    def situation_badge(self, obj):
        """Gruppe / Situation als Badge"""
        if obj.situation is None:
            return mark_safe('<span style="color: #9AA0A6;">—</span>')
        color = "#EA4335" if obj.situation.group == 1 else "#1A73E8"
        return format_html(
            '<span class="status-badge" style="background-color: {}; color: white;">G{} {}</span>',
            color, obj.situation.group, obj.situation.code
        )
    situation_badge.short_description = "Situation"


@admin.register(MedicationPrescription)
class MedicationPrescriptionAdmin(admin.ModelAdmin):
    list_display = ("id", "visit", "medication_type", "dosage", "status_badge", "outdated_at")
    list_filter = ("is_outdated", "medication_type")
    list_select_related = ("visit", "medication_type")
    readonly_fields = ("created_at", "outdated_at", "outdated_reason", "outdated_by")

    def status_badge(self, obj):
        """Aktiv / veraltet"""
        if obj.is_outdated:
            return mark_safe('<span class="status-badge" style="background-color: #FBBC05; color: white;">Veraltet</span>')
        return mark_safe('<span class="status-badge" style="background-color: #34A853; color: white;">Aktiv</span>')
    status_badge.short_description = "Status"


# ============================================================================
# Recommendations
# ============================================================================
class OptionInline(admin.TabularInline):
    """Inline für Antwortoptionen einer Frage"""
    model = Option
    extra = 0


@admin.register(Question)
class QuestionAdmin(admin.ModelAdmin):
    list_display = ("id", "text")
    search_fields = ("text",)
    inlines = [OptionInline]


@admin.register(RecommendationTemplate)
class RecommendationTemplateAdmin(admin.ModelAdmin):
    list_display = ("situation", "question", "default_option")
    list_filter = ("situation__group", "situation__bucket")
    list_select_related = ("situation", "question", "default_option")
    ordering = ("situation_id", "question_id")


@admin.register(AssignedRecommendation)
class AssignedRecommendationAdmin(admin.ModelAdmin):
    list_display = ("id", "visit", "question", "selected_option", "assigned_by", "created_at")
    list_select_related = ("visit", "question", "selected_option", "assigned_by")
    readonly_fields = ("created_at",)


@admin.register(ArchivedVisit)
class ArchivedVisitAdmin(admin.ModelAdmin):
    """Archiv gelöschter Visiten; nur lesbar"""

    list_display = ("visit_id", "patient_id", "deleted_by", "deleted_at", "deletion_reason")
    search_fields = ("visit_id", "patient_id", "deletion_reason")
    ordering = ("-deleted_at",)

    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False
