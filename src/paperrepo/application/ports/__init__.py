"""Application ports (interfaces) used by the application layer."""

from .notification_port import NotificationPort
from .paper_catalog_port import PaperCatalogPort
from .paper_request_port import PaperRequestPort
from .user_directory_port import UserDirectoryPort

__all__ = [
    "NotificationPort",
    "PaperCatalogPort",
    "PaperRequestPort",
    "UserDirectoryPort",
]
