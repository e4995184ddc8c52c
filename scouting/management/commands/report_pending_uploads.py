"""
Report Pending Uploads Management Command

Prints how many sessions, observations and photos on this runtime are
still marked PENDING_UPLOAD:

    python manage.py report_pending_uploads
"""

from django.core.management.base import BaseCommand
from django.utils import timezone
from scouting.services.sync import SyncCoordinator


class Command(BaseCommand):
    help = 'Report scouting rows still waiting to be uploaded'

    def handle(self, *args, **options):
        self.stdout.write(f'[{timezone.now().strftime("%Y-%m-%d %H:%M:%S")}] '
                          f'Counting pending uploads...')

        counts = SyncCoordinator().pending_upload_counts()
        total = sum(counts.values())

        for name, count in counts.items():
            self.stdout.write(f'  {name}: {count}')

        if total:
            self.stdout.write(self.style.WARNING(f'{total} row(s) pending upload'))
        else:
            self.stdout.write(self.style.SUCCESS('Nothing pending upload'))
