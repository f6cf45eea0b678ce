"""FastAPI dependencies."""
from lms_api.dependencies.auth import get_admin_user, get_current_user

__all__ = ["get_admin_user", "get_current_user"]
