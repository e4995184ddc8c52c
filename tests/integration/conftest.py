"""
Shared fixtures for the scouting integration tests.
"""

import pytest
from datetime import date, datetime, timedelta, timezone as dt_timezone
from rest_framework.test import APIClient

from farms.models import Farm, Greenhouse, FieldBlock
from scouting.services import (
    Actor,
    DeviceContext,
    SessionLifecycleService,
    ObservationReconciler,
    SyncCoordinator,
)


CLOCK_START = datetime(2026, 3, 2, 8, 0, tzinfo=dt_timezone.utc)
PAST_DATE = date(2026, 3, 1)
FUTURE_DATE = date(2026, 3, 10)


class TickingClock:
    """Deterministic clock that moves forward one second per reading."""

    def __init__(self, start=CLOCK_START, step=timedelta(seconds=1)):
        self.current = start
        self.step = step

    def __call__(self):
        self.current = self.current + self.step
        return self.current


# =============================================================================
# FIXTURES
# =============================================================================

@pytest.fixture
def clock():
    return TickingClock()


@pytest.fixture
def manager_user(django_user_model):
    return django_user_model.objects.create_user(
        username='scout_manager',
        email='manager@farm.test',
        password='testpass123',
        role='MANAGER',
        first_name='Mara',
        last_name='Manager',
    )


@pytest.fixture
def scout_user(django_user_model):
    return django_user_model.objects.create_user(
        username='field_scout',
        email='scout@farm.test',
        password='testpass123',
        role='SCOUT',
        first_name='Sam',
        last_name='Scout',
    )


@pytest.fixture
def manager(manager_user):
    return Actor.from_user(manager_user)


@pytest.fixture
def scout(scout_user):
    return Actor.from_user(scout_user)


@pytest.fixture
def device():
    return DeviceContext(device_id='tablet-07', device_type='ANDROID', location='Block A')


@pytest.fixture
def farm(manager_user):
    return Farm.objects.create(name='Rosewood Farm', farm_tag='RW', owner=manager_user)


@pytest.fixture
def greenhouse(farm):
    return Greenhouse.objects.create(farm=farm, name='House 1')


@pytest.fixture
def second_greenhouse(farm):
    return Greenhouse.objects.create(farm=farm, name='House 2')


@pytest.fixture
def field_block(farm):
    return FieldBlock.objects.create(farm=farm, name='North Field')


@pytest.fixture
def other_farm():
    return Farm.objects.create(name='Hilltop Farm')


@pytest.fixture
def other_greenhouse(other_farm):
    return Greenhouse.objects.create(farm=other_farm, name='Hilltop House')


@pytest.fixture
def lifecycle(clock):
    return SessionLifecycleService(clock=clock)


@pytest.fixture
def reconciler(clock):
    return ObservationReconciler(clock=clock)


@pytest.fixture
def sync(clock):
    return SyncCoordinator(clock=clock)


@pytest.fixture
def session(lifecycle, manager, farm, greenhouse, scout_user, device):
    """A NEW session on the farm with a single greenhouse target."""
    return lifecycle.create(
        manager,
        farm_id=farm.id,
        targets=[{'greenhouse_id': greenhouse.id}],
        session_date=PAST_DATE,
        scout_id=scout_user.id,
        device=device,
    )


@pytest.fixture
def target(session):
    return session.targets.get()


@pytest.fixture
def started_session(lifecycle, scout, session):
    return lifecycle.start(scout, session.id)


@pytest.fixture
def api_client():
    return APIClient()


@pytest.fixture
def manager_client(api_client, manager_user):
    api_client.force_authenticate(user=manager_user)
    return api_client


@pytest.fixture
def scout_client(scout_user):
    client = APIClient()
    client.force_authenticate(user=scout_user)
    return client
