from paperrepo.application.services.access_policy import AccessDecision, evaluate_download_access
from paperrepo.application.services.auth_service import AuthService
from paperrepo.application.services.catalog_service import PaperCatalogService
from paperrepo.application.services.notification_service import EmailNotificationDispatcher

__all__ = [
    "AccessDecision",
    "evaluate_download_access",
    "AuthService",
    "PaperCatalogService",
    "EmailNotificationDispatcher",
]
