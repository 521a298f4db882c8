import logging
import signal
import sys

from django.conf import settings
from django.core.management import call_command
from django.core.management.base import BaseCommand
from django.db import OperationalError, connections

logger = logging.getLogger("core")


class Command(BaseCommand):
    help = (
        "Check the database connection, then serve the API with Django's development "
        "server until SIGTERM. In production run restaurant_reservations.wsgi:application "
        "(or asgi:application) under a WSGI/ASGI server instead."
    )

    def add_arguments(self, parser):
        parser.add_argument("--host", default="0.0.0.0")
        parser.add_argument("--port", type=int, default=None, help="Defaults to the PORT setting")
        parser.add_argument("--database", default="default")

    def handle(self, *args, **options):
        alias = options["database"]
        try:
            connections[alias].ensure_connection()
        except OperationalError as exc:
            logger.critical(f"Database connection error ({alias}): {exc}")
            sys.exit(1)
        logger.info(f"Connected to database '{alias}'.")

        signal.signal(signal.SIGTERM, self._shutdown)

        port = options["port"] or settings.PORT
        logger.info(f"Server is running on port {port}")
        call_command("runserver", f"{options['host']}:{port}", use_reloader=False)

    def _shutdown(self, signum, frame):
        logger.info("Shutting down...")
        connections.close_all()
        sys.exit(0)
