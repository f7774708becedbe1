from .models import Role, RoleAssignment
from .service import RoleRegistry

__all__ = ["Role", "RoleAssignment", "RoleRegistry"]
