from .models import AccessGrant
from .service import AccessGrantLedger

__all__ = ["AccessGrant", "AccessGrantLedger"]
