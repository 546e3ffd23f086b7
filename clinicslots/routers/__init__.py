# clinicslots/routers/__init__.py
from . import health
from . import providers
from . import appointments
from . import calendar

__all__ = ["health", "providers", "appointments", "calendar"]
