# restaurant_reservations/asgi.py

import os
from django.core.asgi import get_asgi_application

# -----------------------------------------------------------------------------
# Environment setup
# -----------------------------------------------------------------------------
os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'restaurant_reservations.settings')

# -----------------------------------------------------------------------------
# ASGI application configuration
# -----------------------------------------------------------------------------
# Plain HTTP; serve with any ASGI server (uvicorn, daphne, hypercorn).
application = get_asgi_application()
