"""
API tests for the scouting endpoints.

Run with: pytest tests/integration/test_scouting_api.py -v
"""

import pytest
from datetime import timedelta
from django.utils import timezone
from rest_framework import status
import uuid

from scouting.models import ScoutingSession, SessionAuditEvent, AuditAction

pytestmark = pytest.mark.django_db


SESSIONS_URL = '/api/scouting/sessions/'
SYNC_URL = '/api/scouting/sessions/sync/'
DEVICE_HEADERS = {
    'HTTP_X_DEVICE_ID': 'tablet-11',
    'HTTP_X_DEVICE_TYPE': 'IOS',
    'HTTP_X_DEVICE_LOCATION': 'House 1 door',
}


def session_url(session_id, suffix=''):
    return f'{SESSIONS_URL}{session_id}/{suffix}'


@pytest.fixture
def create_payload(farm, greenhouse, scout_user):
    return {
        'farm_id': str(farm.id),
        'session_date': '2026-03-01',
        'scout_id': str(scout_user.id),
        'crop_type': 'Roses',
        'targets': [{'greenhouse_id': str(greenhouse.id), 'include_all_bays': True}],
    }


class TestAuthentication:

    def test_requires_authentication(self, api_client, farm):
        response = api_client.get(SESSIONS_URL, {'farm_id': str(farm.id)})
        assert response.status_code == status.HTTP_401_UNAUTHORIZED


class TestSessionEndpoints:

    def test_create_session(self, manager_client, create_payload):
        response = manager_client.post(SESSIONS_URL, create_payload, format='json', **DEVICE_HEADERS)
        assert response.status_code == status.HTTP_201_CREATED
        body = response.json()
        assert body['status'] == 'NEW'
        assert body['version'] == 1
        assert body['crop_type'] == 'Roses'
        assert len(body['targets']) == 1

        event = SessionAuditEvent.objects.get(session_id=body['id'])
        assert event.device_id == 'tablet-11'
        assert event.device_type == 'IOS'
        assert event.location == 'House 1 door'

    def test_create_with_client_id_is_retry_safe(self, manager_client, create_payload):
        create_payload['session_id'] = str(uuid.uuid4())
        first = manager_client.post(SESSIONS_URL, create_payload, format='json')
        second = manager_client.post(SESSIONS_URL, create_payload, format='json')
        assert first.json()['id'] == second.json()['id'] == create_payload['session_id']
        assert ScoutingSession.objects.count() == 1

    def test_create_validation_error_shape(self, manager_client, create_payload):
        create_payload['targets'] = []
        response = manager_client.post(SESSIONS_URL, create_payload, format='json')
        assert response.status_code == status.HTTP_400_BAD_REQUEST
        body = response.json()
        assert body['code'] == 'VALIDATION_ERROR'
        assert 'error' in body

    def test_create_with_unknown_manager(self, manager_client, create_payload):
        create_payload['manager_id'] = str(uuid.uuid4())
        response = manager_client.post(SESSIONS_URL, create_payload, format='json')
        assert response.status_code == status.HTTP_404_NOT_FOUND
        assert response.json()['code'] == 'NOT_FOUND'
        assert ScoutingSession.objects.count() == 0

    def test_list_and_filter(self, manager_client, session, started_session, farm, lifecycle, manager,
                             greenhouse):
        from datetime import date

        lifecycle.create(manager, farm.id, [{'greenhouse_id': greenhouse.id}], session_date=date(2026, 3, 10))

        response = manager_client.get(SESSIONS_URL, {'farm_id': str(farm.id)})
        assert response.status_code == status.HTTP_200_OK
        assert response.json()['count'] == 2

        response = manager_client.get(SESSIONS_URL, {'farm_id': str(farm.id), 'status': 'IN_PROGRESS'})
        results = response.json()['results']
        assert [row['id'] for row in results] == [str(session.id)]

    def test_list_requires_farm(self, manager_client):
        response = manager_client.get(SESSIONS_URL)
        assert response.status_code == status.HTTP_400_BAD_REQUEST

    def test_get_unknown_session(self, manager_client):
        response = manager_client.get(session_url(uuid.uuid4()))
        assert response.status_code == status.HTTP_404_NOT_FOUND
        assert response.json()['code'] == 'NOT_FOUND'

    def test_patch_with_stale_version(self, manager_client, session):
        ok = manager_client.patch(session_url(session.id), {'version': 1, 'notes': 'wear gloves'}, format='json')
        assert ok.status_code == status.HTTP_200_OK
        assert ok.json()['version'] == 2

        stale = manager_client.patch(session_url(session.id), {'version': 1, 'notes': 'again'}, format='json')
        assert stale.status_code == status.HTTP_409_CONFLICT
        body = stale.json()
        assert body['code'] == 'VERSION_CONFLICT'
        assert body['details']['current_version'] == 2

    def test_delete_session(self, manager_client, session):
        response = manager_client.delete(f"{session_url(session.id)}?version=1")
        assert response.status_code == status.HTTP_200_OK
        assert response.json()['deleted'] is True
        assert manager_client.get(session_url(session.id)).status_code == status.HTTP_404_NOT_FOUND


class TestLifecycleEndpoints:

    def test_full_flow(self, manager_client, scout_client, session, target, farm):
        since = (timezone.now() - timedelta(minutes=5)).isoformat()

        started = scout_client.post(session_url(session.id, 'start/'), {}, format='json')
        assert started.status_code == status.HTTP_200_OK
        assert started.json()['status'] == 'IN_PROGRESS'

        observation = scout_client.post(session_url(session.id, 'observations/'), {
            'session_target_id': str(target.id),
            'bay_index': 1, 'bench_index': 1, 'spot_index': 1,
            'species_code': 'APHID', 'count': 5,
            'client_request_id': str(uuid.uuid4()),
        }, format='json')
        assert observation.status_code == status.HTTP_200_OK
        assert observation.json()['category'] == 'PEST'

        feed = scout_client.get(SYNC_URL, {'farm_id': str(farm.id), 'since': since})
        assert feed.status_code == status.HTTP_200_OK
        assert [row['id'] for row in feed.json()['observations']] == [observation.json()['id']]

        version = started.json()['version']
        forbidden = scout_client.post(session_url(session.id, 'complete/'), {
            'version': version, 'confirmation_acknowledged': True,
        }, format='json')
        assert forbidden.status_code == status.HTTP_403_FORBIDDEN
        assert forbidden.json()['code'] == 'FORBIDDEN'

        unconfirmed = manager_client.post(session_url(session.id, 'complete/'), {
            'version': version, 'confirmation_acknowledged': False,
        }, format='json')
        assert unconfirmed.status_code == status.HTTP_400_BAD_REQUEST

        completed = manager_client.post(session_url(session.id, 'complete/'), {
            'version': version, 'confirmation_acknowledged': True,
        }, format='json')
        assert completed.status_code == status.HTTP_200_OK
        assert completed.json()['status'] == 'COMPLETED'

        reopened = manager_client.post(session_url(session.id, 'reopen/'), {'comment': 'recount'}, format='json')
        assert reopened.status_code == status.HTTP_200_OK
        assert reopened.json()['completed_at'] is None

        audit = manager_client.get(session_url(session.id, 'audit/'))
        assert [event['action'] for event in audit.json()] == [
            AuditAction.CREATED,
            AuditAction.STARTED,
            AuditAction.OBSERVATION_ADDED,
            AuditAction.COMPLETED,
            AuditAction.REOPENED,
        ]

    def test_invalid_transition(self, manager_client, session):
        response = manager_client.post(session_url(session.id, 'submit/'), {'version': 1}, format='json')
        assert response.status_code == status.HTTP_409_CONFLICT
        assert response.json()['code'] == 'INVALID_TRANSITION'

    def test_submit_and_sync_ack(self, scout_client, started_session):
        submitted = scout_client.post(session_url(started_session.id, 'submit/'), {
            'version': started_session.version, 'confirmation_acknowledged': True,
        }, format='json')
        assert submitted.status_code == status.HTTP_200_OK
        assert submitted.json()['status'] == 'SUBMITTED'

        acked = scout_client.post(session_url(started_session.id, 'sync-ack/'), {
            'version': submitted.json()['version'],
        }, format='json')
        assert acked.status_code == status.HTTP_200_OK
        assert acked.json()['sync_status'] == 'SYNCED'


class TestObservationEndpoints:

    def test_idempotency_mismatch(self, scout_client, started_session, target):
        key = str(uuid.uuid4())
        payload = {
            'session_target_id': str(target.id),
            'bay_index': 1, 'bench_index': 1, 'spot_index': 1,
            'species_code': 'THRIPS', 'count': 2, 'client_request_id': key,
        }
        assert scout_client.post(session_url(started_session.id, 'observations/'), payload,
                                 format='json').status_code == status.HTTP_200_OK
        payload['spot_index'] = 2
        response = scout_client.post(session_url(started_session.id, 'observations/'), payload, format='json')
        assert response.status_code == status.HTTP_409_CONFLICT
        assert response.json()['code'] == 'IDEMPOTENCY_MISMATCH'

    def test_bulk_and_delete(self, scout_client, started_session, target):
        items = [
            {
                'session_target_id': str(target.id),
                'bay_index': 2, 'bench_index': 1, 'spot_index': spot,
                'species_code': 'RED_SPIDER_MITE', 'count': spot,
            }
            for spot in range(3)
        ]
        response = scout_client.post(session_url(started_session.id, 'observations/bulk/'),
                                     {'observations': items}, format='json')
        assert response.status_code == status.HTTP_200_OK
        observations = response.json()['observations']
        assert len(observations) == 3

        deleted = scout_client.delete(
            session_url(started_session.id, f"observations/{observations[0]['id']}/")
        )
        assert deleted.status_code == status.HTTP_200_OK
        assert deleted.json()['deleted'] is True

    def test_negative_count_rejected(self, scout_client, started_session, target):
        response = scout_client.post(session_url(started_session.id, 'observations/'), {
            'session_target_id': str(target.id),
            'bay_index': 1, 'bench_index': 1, 'spot_index': 1,
            'species_code': 'APHID', 'count': -3,
        }, format='json')
        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert 'count' in response.json()['details']


class TestSyncEndpoints:

    def test_since_required(self, scout_client, farm):
        response = scout_client.get(SYNC_URL, {'farm_id': str(farm.id)})
        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.json()['code'] == 'VALIDATION_ERROR'

    def test_cloud_sync_post(self, scout_client, session, farm):
        since = (timezone.now() - timedelta(days=3650)).isoformat()
        response = scout_client.post('/api/cloud/sync/sessions/', {
            'farm_id': str(farm.id), 'since': since, 'include_deleted': True,
        }, format='json')
        assert response.status_code == status.HTTP_200_OK
        body = response.json()
        assert [row['id'] for row in body['sessions']] == [str(session.id)]
        assert body['has_more'] is False
        assert body['watermark']

    def test_photo_register_and_confirm(self, scout_client, session):
        registered = scout_client.post('/api/scouting/photos/register/', {
            'session_id': str(session.id), 'local_photo_id': 'IMG_42', 'purpose': 'mildew',
        }, format='json')
        assert registered.status_code == status.HTTP_201_CREATED

        confirmed = scout_client.post('/api/cloud/sync/photos/confirm/', {
            'session_id': str(session.id), 'local_photo_id': 'IMG_42', 'object_key': 'photos/IMG_42.jpg',
        }, format='json')
        assert confirmed.status_code == status.HTTP_200_OK
        assert confirmed.json()['object_key'] == 'photos/IMG_42.jpg'

        again = scout_client.post('/api/scouting/photos/confirm/', {
            'session_id': str(session.id), 'local_photo_id': 'IMG_42', 'object_key': 'photos/other.jpg',
        }, format='json')
        assert again.status_code == status.HTTP_409_CONFLICT
        assert again.json()['code'] == 'PHOTO_CONFLICT'
