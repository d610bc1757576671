from .auth import login_required, require_capability, create_jwt, has_capability

__all__ = ["login_required", "require_capability", "create_jwt", "has_capability"]
