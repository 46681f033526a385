from django.apps import AppConfig


class ComplaintsConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "complaints"
    verbose_name = "Civic complaints"

    def ready(self):
        from . import notifications  # noqa: F401
