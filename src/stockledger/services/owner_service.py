from __future__ import annotations

import logging
from typing import Optional

from stockledger.domain.errors import NotFoundError, ValidationError
from stockledger.domain.models import Account, AccountRole

log = logging.getLogger(__name__)


class OwnerService:
    """Maps a caller account to the owner of the catalog it works on.

    Managers own their catalog; collaborators act on their manager's.
    """

    def __init__(self, repo):
        self.repo = repo

    def register_account(
        self,
        name: str,
        role: AccountRole | str = AccountRole.MANAGER,
        parent_id: Optional[int] = None,
    ) -> Account:
        name = (name or "").strip()
        if not name:
            raise ValidationError("Account name is required.")
        try:
            role = AccountRole(role)
        except ValueError as e:
            raise ValidationError(f"Unknown role '{role}'.") from e

        if role is AccountRole.COLLABORATOR:
            if parent_id is None:
                raise ValidationError("Collaborators need a manager account.")
            parent = self.repo.get_account(int(parent_id))
            if not parent or parent.role is not AccountRole.MANAGER:
                raise ValidationError("Collaborators must belong to an existing manager.")
        else:
            parent_id = None

        aid = self.repo.add_account(name, role.value, parent_id)
        log.info("account_registered account_id=%s role=%s parent_id=%s", aid, role.value, parent_id)
        return self.get_account(aid)

    def get_account(self, account_id: int) -> Account:
        acc = self.repo.get_account(int(account_id))
        if not acc:
            raise NotFoundError("Account not found.")
        return acc

    def resolve_owner_id(self, account_id: int) -> int:
        acc = self.get_account(account_id)
        if acc.role is AccountRole.COLLABORATOR and acc.parent_id is not None:
            return int(acc.parent_id)
        return acc.id
