"""
Time-of-day handling for reservations.

Reservations keep their time as a string, and conflicts are found by exact
string equality. Normalizing every incoming value to 24-hour ``HH:MM``
makes "7:00 PM" and "19:00" land on the same slot.
"""

from datetime import datetime

SLOT_FORMAT = "%H:%M"

ACCEPTED_FORMATS = (
    "%H:%M",
    "%H:%M:%S",
    "%H.%M",
    "%I:%M %p",
    "%I:%M%p",
    "%I:%M:%S %p",
    "%I %p",
    "%I%p",
)


def parse_time(value):
    """Return a ``datetime.time`` for ``value``, or None if no format matches."""
    text = str(value).strip().upper()
    for fmt in ACCEPTED_FORMATS:
        try:
            return datetime.strptime(text, fmt).time()
        except ValueError:
            continue
    return None


def normalize_time(value) -> str:
    """
    Return ``value`` as a 24-hour ``HH:MM`` string.

    Unrecognized values come back stripped but otherwise unchanged so they
    still take part in exact-match conflict checks.
    """
    parsed = parse_time(value)
    if parsed is None:
        return str(value).strip()
    return parsed.strftime(SLOT_FORMAT)
