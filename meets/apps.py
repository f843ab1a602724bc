from django.apps import AppConfig


class MeetsConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "meets"
    verbose_name = "Meet Entries"
