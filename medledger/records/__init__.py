# Service lives in records.service; importing it here would cycle through
# access.service, which needs these models.
from .ids import derive_record_id
from .models import LedgerState, PatientRecord

__all__ = ["LedgerState", "PatientRecord", "derive_record_id"]
