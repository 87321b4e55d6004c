"""Clinical App URLs.

Prefix: /api/clinical/
Routes:
    GET   situations/                           - Situation catalog
    GET   situations/<pk>/recommendations/      - Recommendation templates of a situation
    POST  classify/                             - Classification preview (no writes)
    POST  medications/closest/                  - Nearest-match prescription suggestion
    POST  visits/                               - Record a visit
    GET   visits/<pk>/                          - Visit detail
    DELETE visits/<pk>/                         - Archive and delete a visit
    PUT   visits/<pk>/test-results/             - Revise test values (cascade)
    GET   visits/<pk>/prescriptions/            - Active and outdated prescriptions
    POST  visits/<pk>/prescriptions/            - Save prescriptions
    GET   visits/<pk>/prescriptions/previous/   - Previous visit's prescriptions
    GET   visits/<pk>/recommendations/          - Assigned recommendations
    POST  visits/<pk>/recommendations/          - Assign recommendations
"""

from django.urls import path

from .views import (
	ClassifyView,
	ClosestMedicationView,
	PreviousPrescriptionsView,
	SituationListView,
	SituationRecommendationsView,
	VisitCreateView,
	VisitDetailView,
	VisitPrescriptionsView,
	VisitRecommendationsView,
	VisitTestResultsView,
)

app_name = 'clinical'

urlpatterns = [
	path('situations/', SituationListView.as_view(), name='situations'),
	path(
		'situations/<int:pk>/recommendations/',
		SituationRecommendationsView.as_view(),
		name='situation_recommendations',
	),
	path('classify/', ClassifyView.as_view(), name='classify'),
	path('medications/closest/', ClosestMedicationView.as_view(), name='medications_closest'),
	path('visits/', VisitCreateView.as_view(), name='visits'),
	path('visits/<int:pk>/', VisitDetailView.as_view(), name='visit_detail'),
	path('visits/<int:pk>/test-results/', VisitTestResultsView.as_view(), name='visit_test_results'),
	path('visits/<int:pk>/prescriptions/', VisitPrescriptionsView.as_view(), name='visit_prescriptions'),
	path(
		'visits/<int:pk>/prescriptions/previous/',
		PreviousPrescriptionsView.as_view(),
		name='visit_prescriptions_previous',
	),
	path('visits/<int:pk>/recommendations/', VisitRecommendationsView.as_view(), name='visit_recommendations'),
]
