"""
Tests for the photo metadata handshake (register, then confirm upload).
"""

import pytest
from datetime import timedelta
import uuid

from scouting.exceptions import ScoutingValidationError, ResourceNotFound, PhotoConflict
from scouting.models import ScoutingPhoto, SyncStatus
from scouting.services import Coordinate

pytestmark = pytest.mark.django_db


@pytest.fixture
def other_session(lifecycle, manager, farm, second_greenhouse, session):
    return lifecycle.create(
        manager, farm.id, [{'greenhouse_id': second_greenhouse.id}], session_date=session.session_date
    )


class TestRegisterPhoto:

    def test_register(self, sync, scout, session):
        photo = sync.register_photo_metadata(scout, session.id, 'IMG_0001', purpose='leaf damage')
        assert photo.farm_id == session.farm_id
        assert photo.object_key is None
        assert photo.sync_status == SyncStatus.PENDING_UPLOAD

    def test_register_is_idempotent(self, sync, scout, session):
        first = sync.register_photo_metadata(scout, session.id, 'IMG_0001')
        again = sync.register_photo_metadata(scout, session.id, 'IMG_0001')
        assert again.id == first.id
        assert ScoutingPhoto.objects.count() == 1

    def test_same_local_id_on_other_session_conflicts(self, sync, scout, session, other_session):
        sync.register_photo_metadata(scout, session.id, 'IMG_0001')
        with pytest.raises(PhotoConflict):
            sync.register_photo_metadata(scout, other_session.id, 'IMG_0001')

    def test_linked_observation_must_belong_to_session(self, sync, reconciler, scout, session, target,
                                                      other_session):
        observation = reconciler.upsert(scout, session.id, target.id, Coordinate(1, 1, 1), 'APHID', 5)
        photo = sync.register_photo_metadata(scout, session.id, 'IMG_0002', observation_id=observation.id)
        assert photo.observation_id == observation.id
        with pytest.raises(ScoutingValidationError):
            sync.register_photo_metadata(scout, other_session.id, 'IMG_0003', observation_id=observation.id)

    def test_blank_local_id(self, sync, scout, session):
        with pytest.raises(ScoutingValidationError):
            sync.register_photo_metadata(scout, session.id, '   ')

    def test_unknown_session(self, sync, scout):
        with pytest.raises(ResourceNotFound):
            sync.register_photo_metadata(scout, uuid.uuid4(), 'IMG_0001')


class TestConfirmUpload:

    def test_confirm(self, sync, scout, session):
        registered = sync.register_photo_metadata(scout, session.id, 'IMG_0001')
        confirmed = sync.confirm_upload(scout, session.id, 'IMG_0001', 'farms/rw/IMG_0001.jpg')
        assert confirmed.object_key == 'farms/rw/IMG_0001.jpg'
        assert confirmed.sync_status == SyncStatus.SYNCED
        assert confirmed.updated_at > registered.updated_at

    def test_confirm_twice_conflicts(self, sync, scout, session):
        sync.register_photo_metadata(scout, session.id, 'IMG_0001')
        sync.confirm_upload(scout, session.id, 'IMG_0001', 'key-1')
        with pytest.raises(PhotoConflict):
            sync.confirm_upload(scout, session.id, 'IMG_0001', 'key-2')
        assert ScoutingPhoto.objects.get().object_key == 'key-1'

    def test_confirm_unregistered(self, sync, scout, session):
        with pytest.raises(ResourceNotFound):
            sync.confirm_upload(scout, session.id, 'IMG_9999', 'key')

    def test_confirm_requires_object_key(self, sync, scout, session):
        sync.register_photo_metadata(scout, session.id, 'IMG_0001')
        with pytest.raises(ScoutingValidationError):
            sync.confirm_upload(scout, session.id, 'IMG_0001', '')

    def test_confirmed_photo_appears_in_feed(self, sync, scout, session, clock):
        since = clock.current
        sync.register_photo_metadata(scout, session.id, 'IMG_0001')
        confirmed = sync.confirm_upload(scout, session.id, 'IMG_0001', 'key-1')
        page = sync.change_feed(session.farm_id, since - timedelta(seconds=1))
        assert [photo.id for photo in page.photos] == [confirmed.id]
        assert page.photos[0].object_key == 'key-1'
