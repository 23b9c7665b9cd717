"""
Healthcare Portal - Role-Scoped Resource Guard

Two checks stand between an authenticated session and tenant data:

1. Role policy: which resource permissions a role holds, loaded from
   policies.yaml. Deny-by-default.
2. Organization scope: every query on tenant data carries the predicate
   organization_id == <signed-in account id>. Ids supplied by the caller
   are never trusted for ownership.

Both failures surface as 404 Not Found, never 403, so a probe cannot
confirm that another organization's record (or route) exists.
"""

import logging
from enum import Enum
from pathlib import Path
from typing import Dict, Optional, Set, Type, TypeVar
from uuid import UUID

import yaml
from fastapi import Depends
from sqlmodel import Session as DBSession, SQLModel, select

from healthportal.auth.dependencies import AuthenticatedAccount, get_current_account
from healthportal.auth.models import Role
from healthportal.exceptions import NotFoundError

logger = logging.getLogger(__name__)


POLICY_PATH = Path(__file__).parent / "policies.yaml"

ModelT = TypeVar("ModelT", bound=SQLModel)


class Permission(str, Enum):
    """Resource permissions, resource:action style."""
    READ_CONSULTATION_REQUESTS = "read:consultation_requests"
    WRITE_CONSULTATION_REQUESTS = "write:consultation_requests"
    READ_APPOINTMENTS = "read:appointments"


class ScopePolicy:
    """
    Role-to-permission mapping loaded from policies.yaml.

    Singleton; the file is read once per process.
    """

    _instance: Optional["ScopePolicy"] = None
    _policies: Dict[str, Set[str]] = {}

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
            cls._instance._load_policies(POLICY_PATH)
        return cls._instance

    def _load_policies(self, policy_path: Path):
        """Load policies from YAML configuration file."""
        if not policy_path.exists():
            # Default deny-all if no policy file
            logger.warning("Policy file %s missing; denying all scoped routes", policy_path)
            self._policies = {}
            return

        with open(policy_path, "r") as f:
            config = yaml.safe_load(f) or {}

        self._policies = {
            role: set(perms or [])
            for role, perms in config.get("roles", {}).items()
        }

    def has_permission(self, role: Role, permission: Permission) -> bool:
        """
        Check if a role has a specific permission.

        Args:
            role: Account role
            permission: Required permission

        Returns:
            True if permitted, False otherwise (deny-by-default)
        """
        key = role.value if isinstance(role, Role) else str(role)
        role_perms = self._policies.get(key, set())
        return permission.value in role_perms


class OrganizationScope:
    """
    Query helper bound to the signed-in organization.

    Usage:
        statement = scope.scoped(select(Appointment), Appointment)
        record = scope.get_owned(db, ConsultationRequest, request_id)
    """

    def __init__(self, current: AuthenticatedAccount):
        self.current = current

    @property
    def organization_id(self) -> UUID:
        return self.current.account_id

    @property
    def role(self) -> Role:
        return self.current.role

    def scoped(self, statement, model: Type[ModelT]):
        """Add the mandatory organization predicate to a statement."""
        return statement.where(model.organization_id == self.organization_id)

    def get_owned(self, db: DBSession, model: Type[ModelT], record_id: UUID) -> ModelT:
        """
        Fetch a record owned by this organization.

        Raises:
            NotFoundError: record missing or owned by another organization
        """
        statement = self.scoped(select(model).where(model.id == record_id), model)
        record = db.exec(statement).first()
        if record is None:
            logger.info("%s %s not visible to %s", model.__name__, record_id, self.organization_id)
            raise NotFoundError()
        return record

    def stamp(self, record: ModelT) -> ModelT:
        """Assign ownership on create, overriding anything from the request."""
        record.organization_id = self.organization_id
        return record


def require_permission(permission: Permission):
    """
    Dependency factory enforcing a role permission and yielding the scope.

    Usage:
        @router.get("/appointments")
        async def list_appointments(
            scope: OrganizationScope = Depends(require_permission(Permission.READ_APPOINTMENTS)),
        ):
            ...

    Raises:
        NotFoundError (404): the role lacks the permission
    """
    async def dependency(
        current: AuthenticatedAccount = Depends(get_current_account),
    ) -> OrganizationScope:
        if not ScopePolicy().has_permission(current.role, permission):
            logger.info(
                "Denied %s for account %s (role=%s)",
                permission.value, current.account_id, current.role.value,
            )
            raise NotFoundError()
        return OrganizationScope(current)

    return dependency
