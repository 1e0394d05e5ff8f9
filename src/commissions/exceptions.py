"""Commission engine errors."""
from django.core.exceptions import ImproperlyConfigured


class CommissionConfigurationError(ImproperlyConfigured):
    """Roster, quota or rate configuration that cannot produce sane numbers."""
