"""
Scouting service layer.

Views build an Actor/DeviceContext from the request and call into these
services; nothing here depends on DRF.
"""

from scouting.services.context import Actor, DeviceContext, NO_DEVICE
from scouting.services.lifecycle import SessionLifecycleService
from scouting.services.observations import ObservationReconciler, Coordinate
from scouting.services.photos import PhotoRegistry
from scouting.services.sync import SyncCoordinator, ChangeFeedPage

__all__ = [
    'Actor',
    'DeviceContext',
    'NO_DEVICE',
    'SessionLifecycleService',
    'ObservationReconciler',
    'Coordinate',
    'PhotoRegistry',
    'SyncCoordinator',
    'ChangeFeedPage',
]
