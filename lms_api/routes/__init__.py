"""API route modules."""
from lms_api.routes import attempts, auth, courses, tryouts

__all__ = ["attempts", "auth", "courses", "tryouts"]
