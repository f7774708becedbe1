"""
Mutation gateway: authorization, pause enforcement, write serialization and
audit emission for every ledger write.
"""

from .locks import WriteLocks
from .service import MutationGateway

__all__ = ["MutationGateway", "WriteLocks"]
