"""
Scouting URLs

Session routes mount at /api/scouting/sessions/, photo routes at
/api/scouting/photos/ and the cloud sync routes at /api/cloud/sync/.
"""
from django.urls import path
from .views import (
    SessionListCreateView,
    SessionDetailView,
    SessionStartView,
    SessionSubmitView,
    SessionCompleteView,
    SessionReopenView,
    SessionSyncAckView,
    SessionAuditView,
    ObservationUpsertView,
    ObservationBulkUpsertView,
    ObservationDeleteView,
    SessionSyncView,
    PhotoRegisterView,
    PhotoConfirmView,
)

app_name = 'scouting'

urlpatterns = [
    # Change feed (must come before detail routes)
    path('sync/', SessionSyncView.as_view(), name='session-sync'),

    path('', SessionListCreateView.as_view(), name='sessions'),
    path('<uuid:session_id>/', SessionDetailView.as_view(), name='session-detail'),

    # Lifecycle transitions
    path('<uuid:session_id>/start/', SessionStartView.as_view(), name='session-start'),
    path('<uuid:session_id>/submit/', SessionSubmitView.as_view(), name='session-submit'),
    path('<uuid:session_id>/complete/', SessionCompleteView.as_view(), name='session-complete'),
    path('<uuid:session_id>/reopen/', SessionReopenView.as_view(), name='session-reopen'),
    path('<uuid:session_id>/sync-ack/', SessionSyncAckView.as_view(), name='session-sync-ack'),
    path('<uuid:session_id>/audit/', SessionAuditView.as_view(), name='session-audit'),

    # Observations
    path('<uuid:session_id>/observations/', ObservationUpsertView.as_view(), name='observation-upsert'),
    path('<uuid:session_id>/observations/bulk/', ObservationBulkUpsertView.as_view(), name='observation-bulk'),
    path(
        '<uuid:session_id>/observations/<uuid:observation_id>/',
        ObservationDeleteView.as_view(),
        name='observation-delete'
    ),
]

photo_urlpatterns = [
    path('register/', PhotoRegisterView.as_view(), name='photo-register'),
    path('confirm/', PhotoConfirmView.as_view(), name='photo-confirm'),
]

cloud_sync_urlpatterns = [
    path('sessions/', SessionSyncView.as_view(), name='cloud-session-sync'),
    path('photos/register/', PhotoRegisterView.as_view(), name='cloud-photo-register'),
    path('photos/confirm/', PhotoConfirmView.as_view(), name='cloud-photo-confirm'),
]
