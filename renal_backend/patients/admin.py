"""
Patients App - Admin für Patienten
"""

from django.contrib import admin

from renal_backend.patients.models import Patient


@admin.register(Patient)
class PatientAdmin(admin.ModelAdmin):
    list_display = ("id", "name", "national_id", "age", "gender", "doctor", "created_at")
    list_filter = ("gender", "doctor", "created_at")
    search_fields = ("name", "national_id")
    ordering = ("name",)
    list_per_page = 50
    readonly_fields = ("id", "created_at", "updated_at")
    list_select_related = ("doctor",)

    fieldsets = (
        ("Patient", {
            "fields": ("name", "age", "gender", "national_id", "contact_info", "doctor")
        }),
        ("System", {
            "fields": ("id", "created_at", "updated_at"),
            "classes": ("collapse",)
        }),
    )
