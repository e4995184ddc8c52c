from django.apps import AppConfig


class ScoutingConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "scouting"
    verbose_name = "Pest & Disease Scouting"
