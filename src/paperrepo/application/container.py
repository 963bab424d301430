from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Optional

from paperrepo.application.ports import (
    NotificationPort,
    PaperCatalogPort,
    PaperRequestPort,
    UserDirectoryPort,
)
from paperrepo.application.services.auth_service import AuthService
from paperrepo.application.services.catalog_service import PaperCatalogService
from paperrepo.application.services.mail_transport import build_mail_transport
from paperrepo.application.services.notification_service import EmailNotificationDispatcher
from paperrepo.application.workflows.paper_request_workflow import PaperRequestWorkflow
from paperrepo.config import Settings


@dataclass
class ServiceContainer:
    """Everything a request handler needs, built once per application."""

    settings: Settings
    users: UserDirectoryPort
    papers: PaperCatalogPort
    requests: PaperRequestPort
    verifications: Any
    notifier: NotificationPort
    auth: AuthService
    catalog: PaperCatalogService
    workflow: PaperRequestWorkflow
    on_close: Optional[Callable[[], None]] = None

    def close(self) -> None:
        """Release storage resources (the database engine pool)."""
        if self.on_close is not None:
            self.on_close()


def assemble_container(
    settings: Settings,
    *,
    users: UserDirectoryPort,
    papers: PaperCatalogPort,
    requests: PaperRequestPort,
    verifications: Any,
    notifier: NotificationPort,
    on_close: Optional[Callable[[], None]] = None,
) -> ServiceContainer:
    """Wire services on top of already constructed collaborators."""
    return ServiceContainer(
        on_close=on_close,
        settings=settings,
        users=users,
        papers=papers,
        requests=requests,
        verifications=verifications,
        notifier=notifier,
        auth=AuthService(
            users=users,
            verifications=verifications,
            notifier=notifier,
            otp_ttl_minutes=settings.otp_ttl_minutes,
            bcrypt_rounds=settings.bcrypt_rounds,
        ),
        catalog=PaperCatalogService(
            papers=papers,
            users=users,
            max_upload_bytes=settings.max_upload_bytes,
        ),
        workflow=PaperRequestWorkflow(
            requests=requests,
            papers=papers,
            users=users,
            notifier=notifier,
        ),
    )


def build_container(
    settings: Optional[Settings] = None,
    *,
    notifier: Optional[NotificationPort] = None,
) -> ServiceContainer:
    """SQLAlchemy stores on ``settings.db_url`` plus the configured mail transport."""
    from paperrepo.infrastructure.stores.paper_request_store import SqlAlchemyPaperRequestStore
    from paperrepo.infrastructure.stores.paper_store import SqlAlchemyPaperStore
    from paperrepo.infrastructure.stores.sqlalchemy_db import SessionProvider
    from paperrepo.infrastructure.stores.user_store import SqlAlchemyUserStore
    from paperrepo.infrastructure.stores.verification_store import EmailVerificationStore

    settings = settings or Settings.from_env()
    if notifier is None:
        notifier = EmailNotificationDispatcher(
            build_mail_transport(settings), site_name=settings.site_name
        )
    provider = SessionProvider(settings.db_url)
    return assemble_container(
        settings,
        users=SqlAlchemyUserStore(provider=provider),
        papers=SqlAlchemyPaperStore(provider=provider),
        requests=SqlAlchemyPaperRequestStore(provider=provider),
        verifications=EmailVerificationStore(provider=provider),
        notifier=notifier,
        on_close=provider.dispose,
    )
