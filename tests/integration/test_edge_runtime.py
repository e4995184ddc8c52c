"""
Tests for the edge runtime: writes stay PENDING_UPLOAD until a device
acknowledges them, and the periodic task reports what is still pending.
"""

import pytest
from io import StringIO
from django.core.management import call_command

from scouting.models import SyncStatus, SessionAuditEvent, AuditAction
from scouting.services import Coordinate
from scouting.tasks import report_pending_uploads

pytestmark = pytest.mark.django_db


@pytest.fixture
def edge_mode(settings):
    settings.SCOUTING_RUNTIME_MODE = 'edge'


class TestEdgeWrites:

    def test_writes_are_pending_upload(self, edge_mode, session, target, reconciler, scout):
        observation = reconciler.upsert(scout, session.id, target.id, Coordinate(1, 1, 1), 'APHID', 5)
        assert session.sync_status == SyncStatus.PENDING_UPLOAD
        assert observation.sync_status == SyncStatus.PENDING_UPLOAD

    def test_mark_synced_acknowledges(self, edge_mode, session, lifecycle, manager):
        synced = lifecycle.mark_synced(manager, session.id, session.version)
        assert synced.sync_status == SyncStatus.SYNCED
        assert SessionAuditEvent.objects.filter(session_id=session.id, action=AuditAction.SYNCED).count() == 1

    def test_pending_counts(self, edge_mode, session, target, reconciler, scout, sync):
        reconciler.upsert(scout, session.id, target.id, Coordinate(1, 1, 1), 'APHID', 5)
        sync.register_photo_metadata(scout, session.id, 'IMG_0001')
        assert sync.pending_upload_counts() == {'sessions': 1, 'observations': 1, 'photos': 1}


class TestReportPendingUploads:

    def test_task_reports_counts_in_edge_mode(self, edge_mode, session):
        result = report_pending_uploads.delay().get()
        assert result == {'sessions': 1, 'observations': 0, 'photos': 0}

    def test_task_is_noop_in_cloud_mode(self, session):
        assert report_pending_uploads() is None

    def test_management_command(self, edge_mode, session):
        out = StringIO()
        call_command('report_pending_uploads', stdout=out)
        output = out.getvalue()
        assert 'sessions: 1' in output
        assert 'pending upload' in output
