from __future__ import annotations

from paperrepo.application.container import assemble_container, build_container
from paperrepo.config import Settings
from tests.fakes import (
    InMemoryPaperCatalog,
    InMemoryPaperRequestStore,
    InMemoryUserDirectory,
    InMemoryVerificationStore,
    RecordingNotifier,
)


def test_stores_share_the_container_provider(db_url):
    container = build_container(Settings(db_url=db_url, bcrypt_rounds=4), notifier=RecordingNotifier())
    try:
        providers = {
            id(store._provider)
            for store in (
                container.users,
                container.papers,
                container.requests,
                container.verifications,
            )
        }
        assert len(providers) == 1
        assert container.users.db_url == db_url
    finally:
        container.close()


def test_containers_do_not_share_engines(db_url):
    first = build_container(Settings(db_url=db_url, bcrypt_rounds=4), notifier=RecordingNotifier())
    second = build_container(Settings(db_url=db_url, bcrypt_rounds=4), notifier=RecordingNotifier())
    try:
        assert first.users._provider.engine is not second.users._provider.engine

        first.auth.create_account(email="admin@uni.edu", password="secret1", role="admin")
        first.close()

        # the other container keeps working on the same database
        assert second.users.get_user_by_email("admin@uni.edu") is not None
    finally:
        second.close()


def test_close_without_storage_is_a_no_op():
    container = assemble_container(
        Settings(),
        users=InMemoryUserDirectory(),
        papers=InMemoryPaperCatalog(),
        requests=InMemoryPaperRequestStore(),
        verifications=InMemoryVerificationStore(),
        notifier=RecordingNotifier(),
    )
    container.close()
