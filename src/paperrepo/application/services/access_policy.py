"""Download permission rules.

Evaluated in order, first match wins:
  1. no viewer            -> denied
  2. administrator        -> allowed
  3. moderator            -> allowed
  4. owner of the paper   -> allowed
  5. anyone else          -> denied, must request access

Listed co-authors get no bypass; they go through the request workflow like
any other reader.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Optional

from paperrepo.domain.paper import Paper
from paperrepo.domain.user import User, UserRole

SIGN_IN_REQUIRED = "Please sign in to download papers"
ADMIN_ACCESS = "Administrator access"
MODERATOR_ACCESS = "Moderator access"
OWNER_ACCESS = "Paper owner access"
REQUEST_REQUIRED = "You need to request access from the administrator to download this paper"
USER_NOT_FOUND = "User not found"


@dataclass(frozen=True)
class AccessDecision:
    allowed: bool
    reason: str

    def to_dict(self, paper: Optional[Paper] = None) -> Dict[str, Any]:
        data: Dict[str, Any] = {"canDownload": self.allowed, "reason": self.reason}
        if paper is not None:
            data["paperTitle"] = paper.title
        return data


def evaluate_download_access(paper: Paper, viewer: Optional[User]) -> AccessDecision:
    if viewer is None:
        return AccessDecision(False, SIGN_IN_REQUIRED)
    if viewer.role == UserRole.ADMIN.value:
        return AccessDecision(True, ADMIN_ACCESS)
    if viewer.role == UserRole.MODERATOR.value:
        return AccessDecision(True, MODERATOR_ACCESS)
    if paper.is_owner(viewer.id):
        return AccessDecision(True, OWNER_ACCESS)
    return AccessDecision(False, REQUEST_REQUIRED)
