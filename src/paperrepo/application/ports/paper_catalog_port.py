"""PaperCatalogPort: paper metadata and binary content."""

from __future__ import annotations

from typing import Any, Dict, List, Optional, Protocol, runtime_checkable

from paperrepo.domain.paper import Paper, PaperComment


@runtime_checkable
class PaperCatalogPort(Protocol):
    def get_paper(self, paper_id: Optional[str]) -> Optional[Paper]: ...

    def get_content(self, paper_id: str) -> Optional[bytes]: ...

    def create_paper(
        self,
        *,
        owner_id: str,
        filename: str,
        content_type: str,
        content: bytes,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> Paper: ...

    def update_metadata(self, paper_id: str, changes: Dict[str, Any]) -> Optional[Paper]: ...

    def delete_paper(self, paper_id: str) -> bool: ...

    def vote(self, paper_id: str, user_id: str, action: str) -> Optional[Paper]: ...

    def add_comment(
        self,
        paper_id: str,
        *,
        user_id: str,
        content: str,
        user_email: str = "",
        parent_comment_id: Optional[str] = None,
    ) -> Optional[PaperComment]: ...

    def increment_counter(self, paper_id: str, counter: str) -> bool: ...

    def list_papers(self, *, owner_id: Optional[str] = None) -> List[Paper]: ...

    def list_papers_for_user(self, user_id: str) -> List[Paper]: ...
