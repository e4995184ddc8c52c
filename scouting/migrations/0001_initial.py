import django.core.validators
import django.db.models.deletion
import django.utils.timezone
import uuid
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ('farms', '0001_initial'),
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name='ScoutingSession',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('session_date', models.DateField(db_index=True)),
                ('week_number', models.PositiveSmallIntegerField(blank=True, null=True)),
                ('crop_type', models.CharField(blank=True, max_length=100)),
                ('crop_variety', models.CharField(blank=True, max_length=100)),
                ('temperature', models.DecimalField(blank=True, decimal_places=2, max_digits=5, null=True)),
                ('relative_humidity', models.DecimalField(blank=True, decimal_places=2, max_digits=5, null=True)),
                ('observation_time', models.TimeField(blank=True, null=True)),
                ('weather_notes', models.TextField(blank=True)),
                ('notes', models.TextField(blank=True)),
                ('recommendations', models.JSONField(blank=True, default=dict, help_text='Keyed by BIOLOGICAL_CONTROL, CHEMICAL_SPRAYS, OTHER_METHODS')),
                ('status', models.CharField(choices=[('NEW', 'New'), ('SCHEDULED', 'Scheduled'), ('IN_PROGRESS', 'In Progress'), ('SUBMITTED', 'Submitted'), ('COMPLETED', 'Completed')], db_index=True, default='NEW', max_length=20)),
                ('version', models.PositiveIntegerField(default=1)),
                ('sync_status', models.CharField(choices=[('LOCAL_ONLY', 'Local Only'), ('PENDING_UPLOAD', 'Pending Upload'), ('SYNCED', 'Synced'), ('CONFLICT', 'Conflict')], default='SYNCED', max_length=20)),
                ('started_at', models.DateTimeField(blank=True, null=True)),
                ('submitted_at', models.DateTimeField(blank=True, null=True)),
                ('completed_at', models.DateTimeField(blank=True, null=True)),
                ('confirmation_acknowledged', models.BooleanField(default=False)),
                ('reopen_comment', models.TextField(blank=True)),
                ('deleted', models.BooleanField(default=False)),
                ('deleted_at', models.DateTimeField(blank=True, null=True)),
                ('created_at', models.DateTimeField(default=django.utils.timezone.now)),
                ('updated_at', models.DateTimeField(default=django.utils.timezone.now)),
                ('farm', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='scouting_sessions', to='farms.farm')),
                ('manager', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='managed_scouting_sessions', to=settings.AUTH_USER_MODEL)),
                ('scout', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='scouting_sessions', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'db_table': 'scouting_sessions',
                'ordering': ['-session_date', '-created_at'],
                'indexes': [
                    models.Index(fields=['farm', 'updated_at', 'id'], name='scout_session_feed_idx'),
                    models.Index(fields=['farm', 'status'], name='scout_session_status_idx'),
                ],
            },
        ),
        migrations.CreateModel(
            name='SessionTarget',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('include_all_bays', models.BooleanField(default=True)),
                ('include_all_benches', models.BooleanField(default=True)),
                ('bay_tags', models.JSONField(blank=True, default=list)),
                ('bench_tags', models.JSONField(blank=True, default=list)),
                ('field_block', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.PROTECT, related_name='session_targets', to='farms.fieldblock')),
                ('greenhouse', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.PROTECT, related_name='session_targets', to='farms.greenhouse')),
                ('session', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='targets', to='scouting.scoutingsession')),
            ],
            options={
                'db_table': 'scouting_session_targets',
                'constraints': [
                    models.CheckConstraint(
                        condition=(
                            models.Q(('field_block__isnull', True), ('greenhouse__isnull', False))
                            | models.Q(('field_block__isnull', False), ('greenhouse__isnull', True))
                        ),
                        name='session_target_one_structure',
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name='ScoutingObservation',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('species_code', models.CharField(max_length=64)),
                ('category', models.CharField(choices=[('PEST', 'Pest'), ('DISEASE', 'Disease'), ('BENEFICIAL', 'Beneficial')], max_length=20)),
                ('bay_index', models.PositiveIntegerField()),
                ('bench_index', models.PositiveIntegerField()),
                ('spot_index', models.PositiveIntegerField()),
                ('bay_label', models.CharField(blank=True, max_length=100, null=True)),
                ('bench_label', models.CharField(blank=True, max_length=100, null=True)),
                ('count', models.PositiveIntegerField(validators=[django.core.validators.MinValueValidator(0)])),
                ('notes', models.TextField(blank=True)),
                ('version', models.PositiveIntegerField(default=1)),
                ('sync_status', models.CharField(choices=[('LOCAL_ONLY', 'Local Only'), ('PENDING_UPLOAD', 'Pending Upload'), ('SYNCED', 'Synced'), ('CONFLICT', 'Conflict')], default='SYNCED', max_length=20)),
                ('client_request_id', models.UUIDField(blank=True, null=True, unique=True)),
                ('deleted', models.BooleanField(default=False)),
                ('deleted_at', models.DateTimeField(blank=True, null=True)),
                ('created_at', models.DateTimeField(default=django.utils.timezone.now)),
                ('updated_at', models.DateTimeField(default=django.utils.timezone.now)),
                ('session', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='observations', to='scouting.scoutingsession')),
                ('session_target', models.ForeignKey(null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='observations', to='scouting.sessiontarget')),
            ],
            options={
                'db_table': 'scouting_observations',
                'ordering': ['bay_index', 'bench_index', 'spot_index', 'species_code'],
                'indexes': [
                    models.Index(fields=['session', 'updated_at'], name='scout_obs_session_upd_idx'),
                    models.Index(fields=['updated_at', 'id'], name='scout_obs_feed_idx'),
                ],
                'constraints': [
                    models.UniqueConstraint(
                        condition=models.Q(('deleted', False)),
                        fields=('session', 'session_target', 'bay_index', 'bench_index', 'spot_index', 'species_code'),
                        name='unique_live_observation_cell',
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name='SessionAuditEvent',
            fields=[
                ('id', models.BigAutoField(primary_key=True, serialize=False)),
                ('action', models.CharField(choices=[('CREATED', 'Created'), ('STARTED', 'Started'), ('SUBMITTED', 'Submitted'), ('TARGETS_UPDATED', 'Targets Updated'), ('OBSERVATION_ADDED', 'Observation Added'), ('OBSERVATION_UPDATED', 'Observation Updated'), ('OBSERVATION_DELETED', 'Observation Deleted'), ('COMPLETED', 'Completed'), ('REOPENED', 'Reopened'), ('SYNCED', 'Synced'), ('DELETED', 'Deleted')], db_index=True, max_length=30)),
                ('actor_id', models.UUIDField(blank=True, null=True)),
                ('actor_name', models.CharField(blank=True, max_length=255)),
                ('actor_email', models.CharField(blank=True, max_length=255)),
                ('actor_role', models.CharField(blank=True, max_length=50)),
                ('device_id', models.CharField(blank=True, max_length=255)),
                ('device_type', models.CharField(blank=True, max_length=100)),
                ('location', models.CharField(blank=True, max_length=255)),
                ('comment', models.TextField(blank=True)),
                ('occurred_at', models.DateTimeField(db_index=True)),
                ('farm', models.ForeignKey(db_constraint=False, on_delete=django.db.models.deletion.DO_NOTHING, related_name='+', to='farms.farm')),
                ('session', models.ForeignKey(db_constraint=False, on_delete=django.db.models.deletion.DO_NOTHING, related_name='audit_events', to='scouting.scoutingsession')),
            ],
            options={
                'db_table': 'scouting_session_audit_events',
                'ordering': ['occurred_at', 'id'],
                'indexes': [
                    models.Index(fields=['session', 'occurred_at', 'id'], name='scout_audit_session_idx'),
                ],
            },
        ),
        migrations.CreateModel(
            name='ScoutingPhoto',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('local_photo_id', models.CharField(max_length=255)),
                ('purpose', models.CharField(blank=True, max_length=255)),
                ('object_key', models.CharField(blank=True, max_length=1024, null=True)),
                ('captured_at', models.DateTimeField(blank=True, null=True)),
                ('sync_status', models.CharField(choices=[('LOCAL_ONLY', 'Local Only'), ('PENDING_UPLOAD', 'Pending Upload'), ('SYNCED', 'Synced'), ('CONFLICT', 'Conflict')], default='LOCAL_ONLY', max_length=20)),
                ('created_at', models.DateTimeField(default=django.utils.timezone.now)),
                ('updated_at', models.DateTimeField(default=django.utils.timezone.now)),
                ('farm', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='scouting_photos', to='farms.farm')),
                ('observation', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='photos', to='scouting.scoutingobservation')),
                ('session', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='photos', to='scouting.scoutingsession')),
            ],
            options={
                'db_table': 'scouting_photos',
                'ordering': ['-created_at'],
                'indexes': [
                    models.Index(fields=['farm', 'updated_at', 'id'], name='scout_photo_feed_idx'),
                ],
                'constraints': [
                    models.UniqueConstraint(fields=('farm', 'local_photo_id'), name='unique_farm_local_photo'),
                ],
            },
        ),
        migrations.CreateModel(
            name='ObservationRequest',
            fields=[
                ('client_request_id', models.UUIDField(primary_key=True, serialize=False)),
                ('payload_fingerprint', models.CharField(max_length=64)),
                ('created_at', models.DateTimeField(default=django.utils.timezone.now)),
                ('observation', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='requests', to='scouting.scoutingobservation')),
            ],
            options={
                'db_table': 'scouting_observation_requests',
            },
        ),
    ]
