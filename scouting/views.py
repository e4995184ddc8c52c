"""
Scouting API Views

Thin HTTP binding over the scouting services. Each view validates the
payload shape, builds the Actor and DeviceContext from the request and
hands off to a service; domain errors are rendered by
scouting.exception_handler.
"""

from rest_framework import status
from rest_framework.pagination import PageNumberPagination
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView
import logging

from scouting.filters import ScoutingSessionFilter
from scouting.serializers import (
    SessionListQuerySerializer,
    SessionCreateSerializer,
    SessionUpdateSerializer,
    VersionSerializer,
    SessionTransitionSerializer,
    ReopenSerializer,
    ObservationUpsertSerializer,
    BulkObservationSerializer,
    ObservationDeleteSerializer,
    ChangeFeedQuerySerializer,
    PhotoRegisterSerializer,
    PhotoConfirmSerializer,
    ScoutingSessionSerializer,
    ScoutingObservationSerializer,
    SessionAuditEventSerializer,
    ScoutingPhotoSerializer,
    serialize_change_feed,
)
from scouting.services import (
    Actor,
    DeviceContext,
    SessionLifecycleService,
    ObservationReconciler,
    SyncCoordinator,
)
from scouting.services.lifecycle import METADATA_FIELDS

logger = logging.getLogger(__name__)


class StandardResultsSetPagination(PageNumberPagination):
    """Standard pagination for scouting session lists."""
    page_size = 20
    page_size_query_param = 'page_size'
    max_page_size = 100

    def get_paginated_response_data(self, data):
        """Return pagination metadata along with results."""
        return {
            'count': self.page.paginator.count,
            'total_pages': self.page.paginator.num_pages,
            'current_page': self.page.number,
            'page_size': self.get_page_size(self.request),
            'next': self.get_next_link(),
            'previous': self.get_previous_link(),
            'results': data,
        }


def _invalid(errors):
    return Response(
        {'error': 'Invalid request', 'code': 'VALIDATION_ERROR', 'details': errors},
        status=status.HTTP_400_BAD_REQUEST
    )


def _context(request):
    return Actor.from_user(request.user), DeviceContext.from_request(request)


def _version_param(request):
    """Version from the body or, for DELETE without a body, the query string."""
    data = request.data if hasattr(request.data, 'get') else {}
    raw = data.get('version', request.query_params.get('version'))
    serializer = ObservationDeleteSerializer(data={'version': raw})
    serializer.is_valid(raise_exception=True)
    return serializer.validated_data.get('version')


# =============================================================================
# SESSIONS
# =============================================================================

class SessionListCreateView(APIView):
    """
    GET /api/scouting/sessions/?farm_id=<uuid>&status=&date_from=&date_to=&scout=
    POST /api/scouting/sessions/
    """
    permission_classes = [IsAuthenticated]
    pagination_class = StandardResultsSetPagination

    def get(self, request):
        query = SessionListQuerySerializer(data={'farm_id': request.query_params.get('farm_id')})
        if not query.is_valid():
            return _invalid(query.errors)

        queryset = SessionLifecycleService().list(query.validated_data['farm_id'])
        filterset = ScoutingSessionFilter(request.query_params, queryset=queryset)
        if not filterset.is_valid():
            return _invalid(filterset.errors)

        paginator = self.pagination_class()
        page = paginator.paginate_queryset(filterset.qs, request, view=self)
        data = ScoutingSessionSerializer(page, many=True).data
        return Response(paginator.get_paginated_response_data(data))

    def post(self, request):
        serializer = SessionCreateSerializer(data=request.data)
        if not serializer.is_valid():
            return _invalid(serializer.errors)

        data = serializer.validated_data
        actor, device = _context(request)
        session = SessionLifecycleService().create(
            actor,
            farm_id=data['farm_id'],
            targets=data['targets'],
            session_date=data['session_date'],
            scout_id=data.get('scout_id'),
            manager_id=data.get('manager_id'),
            metadata={key: data[key] for key in METADATA_FIELDS if key in data},
            session_id=data.get('session_id'),
            device=device,
        )
        return Response(ScoutingSessionSerializer(session).data, status=status.HTTP_201_CREATED)


class SessionDetailView(APIView):
    """
    GET /api/scouting/sessions/{id}/
    PATCH /api/scouting/sessions/{id}/
    DELETE /api/scouting/sessions/{id}/?version=<n>
    """
    permission_classes = [IsAuthenticated]

    def get(self, request, session_id):
        session = SessionLifecycleService().get(session_id)
        return Response(ScoutingSessionSerializer(session).data)

    def patch(self, request, session_id):
        serializer = SessionUpdateSerializer(data=request.data)
        if not serializer.is_valid():
            return _invalid(serializer.errors)

        patch = dict(serializer.validated_data)
        version = patch.pop('version')
        actor, device = _context(request)
        session = SessionLifecycleService().update(actor, session_id, version, patch, device=device)
        return Response(ScoutingSessionSerializer(session).data)

    def delete(self, request, session_id):
        actor, device = _context(request)
        session = SessionLifecycleService().delete(actor, session_id, _version_param(request), device=device)
        return Response(ScoutingSessionSerializer(session).data)


class SessionStartView(APIView):
    """POST /api/scouting/sessions/{id}/start/"""
    permission_classes = [IsAuthenticated]

    def post(self, request, session_id):
        serializer = VersionSerializer(data=request.data)
        if not serializer.is_valid():
            return _invalid(serializer.errors)

        actor, device = _context(request)
        session = SessionLifecycleService().start(
            actor, session_id, version=serializer.validated_data.get('version'), device=device
        )
        return Response(ScoutingSessionSerializer(session).data)


class SessionSubmitView(APIView):
    """POST /api/scouting/sessions/{id}/submit/"""
    permission_classes = [IsAuthenticated]

    def post(self, request, session_id):
        serializer = SessionTransitionSerializer(data=request.data)
        if not serializer.is_valid():
            return _invalid(serializer.errors)

        data = serializer.validated_data
        actor, device = _context(request)
        session = SessionLifecycleService().submit(
            actor, session_id,
            version=data.get('version'),
            confirmation_acknowledged=data['confirmation_acknowledged'],
            comment=data['comment'],
            device=device,
        )
        return Response(ScoutingSessionSerializer(session).data)


class SessionCompleteView(APIView):
    """POST /api/scouting/sessions/{id}/complete/"""
    permission_classes = [IsAuthenticated]

    def post(self, request, session_id):
        serializer = SessionTransitionSerializer(data=request.data)
        if not serializer.is_valid():
            return _invalid(serializer.errors)

        data = serializer.validated_data
        actor, device = _context(request)
        session = SessionLifecycleService().complete(
            actor, session_id,
            version=data.get('version'),
            confirmation_acknowledged=data['confirmation_acknowledged'],
            comment=data['comment'],
            device=device,
        )
        return Response(ScoutingSessionSerializer(session).data)


class SessionReopenView(APIView):
    """POST /api/scouting/sessions/{id}/reopen/"""
    permission_classes = [IsAuthenticated]

    def post(self, request, session_id):
        serializer = ReopenSerializer(data=request.data)
        if not serializer.is_valid():
            return _invalid(serializer.errors)

        data = serializer.validated_data
        actor, device = _context(request)
        session = SessionLifecycleService().reopen(
            actor, session_id, data['comment'], version=data.get('version'), device=device
        )
        return Response(ScoutingSessionSerializer(session).data)


class SessionSyncAckView(APIView):
    """POST /api/scouting/sessions/{id}/sync-ack/"""
    permission_classes = [IsAuthenticated]

    def post(self, request, session_id):
        serializer = VersionSerializer(data=request.data)
        if not serializer.is_valid():
            return _invalid(serializer.errors)

        actor, device = _context(request)
        session = SessionLifecycleService().mark_synced(
            actor, session_id, serializer.validated_data.get('version'), device=device
        )
        return Response(ScoutingSessionSerializer(session).data)


class SessionAuditView(APIView):
    """GET /api/scouting/sessions/{id}/audit/"""
    permission_classes = [IsAuthenticated]

    def get(self, request, session_id):
        events = SessionLifecycleService().audit_trail(session_id)
        return Response(SessionAuditEventSerializer(events, many=True).data)


# =============================================================================
# OBSERVATIONS
# =============================================================================

class ObservationUpsertView(APIView):
    """POST /api/scouting/sessions/{id}/observations/"""
    permission_classes = [IsAuthenticated]

    def post(self, request, session_id):
        serializer = ObservationUpsertSerializer(data=request.data)
        if not serializer.is_valid():
            return _invalid(serializer.errors)

        actor, device = _context(request)
        observation = ObservationReconciler().upsert(
            actor, session_id, device=device, **serializer.to_service_kwargs()
        )
        return Response(ScoutingObservationSerializer(observation).data)


class ObservationBulkUpsertView(APIView):
    """POST /api/scouting/sessions/{id}/observations/bulk/"""
    permission_classes = [IsAuthenticated]

    def post(self, request, session_id):
        serializer = BulkObservationSerializer(data=request.data)
        if not serializer.is_valid():
            return _invalid(serializer.errors)

        item_serializer = ObservationUpsertSerializer()
        items = [
            item_serializer.to_service_kwargs(item)
            for item in serializer.validated_data['observations']
        ]
        actor, device = _context(request)
        observations = ObservationReconciler().bulk_upsert(actor, session_id, items, device=device)
        return Response({
            'session_id': str(session_id),
            'observations': ScoutingObservationSerializer(observations, many=True).data,
        })


class ObservationDeleteView(APIView):
    """DELETE /api/scouting/sessions/{id}/observations/{observation_id}/?version=<n>"""
    permission_classes = [IsAuthenticated]

    def delete(self, request, session_id, observation_id):
        actor, device = _context(request)
        observation = ObservationReconciler().delete(
            actor, session_id, observation_id, version=_version_param(request), device=device
        )
        return Response(ScoutingObservationSerializer(observation).data)


# =============================================================================
# SYNC
# =============================================================================

class SessionSyncView(APIView):
    """
    GET /api/scouting/sessions/sync/?farm_id=&since=&include_deleted=&cursor=&limit=
    POST /api/cloud/sync/sessions/  (same fields in the body)
    """
    permission_classes = [IsAuthenticated]

    def get(self, request):
        return self._feed(request.query_params)

    def post(self, request):
        return self._feed(request.data)

    def _feed(self, params):
        serializer = ChangeFeedQuerySerializer(data=params)
        if not serializer.is_valid():
            return _invalid(serializer.errors)

        data = serializer.validated_data
        page = SyncCoordinator().change_feed(
            data['farm_id'],
            data.get('since'),
            include_deleted=data['include_deleted'],
            cursor=data.get('cursor') or None,
            limit=data.get('limit'),
        )
        return Response(serialize_change_feed(page))


class PhotoRegisterView(APIView):
    """POST /api/scouting/photos/register/"""
    permission_classes = [IsAuthenticated]

    def post(self, request):
        serializer = PhotoRegisterSerializer(data=request.data)
        if not serializer.is_valid():
            return _invalid(serializer.errors)

        data = serializer.validated_data
        actor, _ = _context(request)
        photo = SyncCoordinator().register_photo_metadata(
            actor,
            data['session_id'],
            data['local_photo_id'],
            purpose=data['purpose'],
            observation_id=data.get('observation_id'),
            captured_at=data.get('captured_at'),
        )
        return Response(ScoutingPhotoSerializer(photo).data, status=status.HTTP_201_CREATED)


class PhotoConfirmView(APIView):
    """POST /api/scouting/photos/confirm/"""
    permission_classes = [IsAuthenticated]

    def post(self, request):
        serializer = PhotoConfirmSerializer(data=request.data)
        if not serializer.is_valid():
            return _invalid(serializer.errors)

        data = serializer.validated_data
        actor, _ = _context(request)
        photo = SyncCoordinator().confirm_upload(
            actor, data['session_id'], data['local_photo_id'], data['object_key']
        )
        return Response(ScoutingPhotoSerializer(photo).data)
