from .auth import AuthManager, get_auth_manager, get_current_principal

__all__ = ["AuthManager", "get_auth_manager", "get_current_principal"]
