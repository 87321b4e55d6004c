"""
Core - Admin für Benutzer, Rollen und Audit-Log
"""

from django.contrib import admin
from django.contrib.auth.admin import UserAdmin as DjangoUserAdmin

from .models import AuditLog, Role, User


admin.site.site_header = "Renal Clinic Administration"
admin.site.site_title = "Renal Clinic Admin"


@admin.register(Role)
class RoleAdmin(admin.ModelAdmin):
	list_display = ("name", "label", "user_count")
	search_fields = ("name", "label")
	ordering = ("name",)

	def user_count(self, obj):
		return obj.users.count()
	user_count.short_description = "Users"


@admin.register(User)
class UserAdmin(DjangoUserAdmin):
	list_display = ("username", "email", "first_name", "last_name", "role", "is_active")
	list_filter = ("role", "is_staff", "is_active", "is_superuser")
	search_fields = ("username", "email", "first_name", "last_name")
	ordering = ("username",)

	fieldsets = (
		("Authentication", {"fields": ("username", "password")}),
		("Personal data", {"fields": ("first_name", "last_name", "email", "role")}),
		("Permissions", {
			"fields": ("is_active", "is_staff", "is_superuser", "groups", "user_permissions"),
			"classes": ("collapse",),
		}),
		("Timestamps", {"fields": ("last_login", "date_joined"), "classes": ("collapse",)}),
	)
	add_fieldsets = (
		(None, {
			"classes": ("wide",),
			"fields": ("username", "password1", "password2", "email", "role", "first_name", "last_name"),
		}),
	)
	readonly_fields = ("last_login", "date_joined")


@admin.register(AuditLog)
class AuditLogAdmin(admin.ModelAdmin):
	"""Audit-Logs sind read-only."""

	list_display = ("id", "timestamp", "user", "role_name", "action", "patient_id")
	list_filter = ("action", "role_name", "timestamp")
	search_fields = ("user__username", "action", "patient_id")
	ordering = ("-timestamp", "-id")
	date_hierarchy = "timestamp"
	readonly_fields = ("id", "user", "role_name", "action", "patient_id", "timestamp", "meta")

	def has_add_permission(self, request):
		return False

	def has_change_permission(self, request, obj=None):
		return False

	def has_delete_permission(self, request, obj=None):
		return request.user.is_superuser
