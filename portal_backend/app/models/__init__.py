from app.models.photo import StudentPhoto
from app.models.portal_session import PortalSession

__all__ = ["PortalSession", "StudentPhoto"]
