"""URL Configuration.

API-Routen:
    /api/auth/      - Authentication (core)
    /api/health/    - Health check (core)
    /api/patients/  - Patienten (patients)
    /api/clinical/  - Visits, Laborwerte, Klassifikation, Medikation (clinical)
"""

from django.contrib import admin
from django.http import HttpResponse
from django.urls import include, path


def root(request):
    """Plain-text root endpoint (acts like a simple healthcheck)."""
    return HttpResponse("Renal clinic backend is running.")


urlpatterns = [
    path("", root, name="root"),
    path("admin/", admin.site.urls),

    path("api/", include("renal_backend.core.urls")),
    path("api/", include("renal_backend.patients.urls")),
    path("api/clinical/", include("renal_backend.clinical.urls")),
]
