# core/apps.py

from django.apps import AppConfig
import logging


class CoreConfig(AppConfig):
    """App configuration for the reservations core."""

    default_auto_field = 'django.db.models.BigAutoField'
    name = 'core'
    verbose_name = "Reservations"

    def ready(self):
        """
        Import signal modules when Django app registry is fully loaded.
        Audit receivers must be connected before the first model save.
        """
        import core.signals  # noqa: F401  # Import solely for side effects
        logging.getLogger(__name__).debug("core.signals module loaded.")
