from rest_framework.permissions import SAFE_METHODS

from renal_backend.core.permissions import PatientOwnershipPermission, RBACPermission


class VisitPermission(PatientOwnershipPermission):
	"""RBAC für Visiten, Laborwerte und Verordnungen.

	- admin: alles
	- doctor: nur Visiten eigener Patienten (read/write)
	- nurse: nur read
	"""

	read_roles = {"admin", "doctor", "nurse"}
	write_roles = {"admin", "doctor"}

	def _patient_of(self, obj):
		return getattr(obj, "patient", obj)


class SituationCatalogPermission(RBACPermission):
	"""Reference data: readable by every clinical role, never writable via API."""

	read_roles = {"admin", "doctor", "nurse"}
	write_roles = set()


class ClinicalPreviewPermission(RBACPermission):
	"""POST endpoints that compute without writing (classify, closest medication).

	- admin, doctor: allowed
	- nurse: denied (treatment suggestions are a prescriber concern)
	"""

	read_roles = {"admin", "doctor"}
	write_roles = {"admin", "doctor"}

	def has_permission(self, request, view):
		if request.method not in SAFE_METHODS and request.method != "POST":
			return False
		return super().has_permission(request, view)
