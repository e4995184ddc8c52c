import django_filters

from scouting.models import ScoutingSession, SessionStatus


class ScoutingSessionFilter(django_filters.FilterSet):
    """Query filters for session lists: ?status=&date_from=&date_to=&scout="""

    status = django_filters.MultipleChoiceFilter(choices=SessionStatus.choices)
    date_from = django_filters.DateFilter(field_name='session_date', lookup_expr='gte')
    date_to = django_filters.DateFilter(field_name='session_date', lookup_expr='lte')
    scout = django_filters.UUIDFilter(field_name='scout_id')
    week_number = django_filters.NumberFilter()

    class Meta:
        model = ScoutingSession
        fields = ['status', 'scout', 'week_number']
