from dataclasses import dataclass

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from fixit_api.auth import jwt_handler
from fixit_api.core.errors import AuthError, ForbiddenError
from fixit_api.database import get_db
from fixit_api.models.user import ROLE_ADMIN, ROLE_STUDENT, User

security = HTTPBearer(auto_error=False)

CREATE_ISSUE = "issues:create"
READ_OWN_ISSUES = "issues:read_own"
READ_ALL_ISSUES = "issues:read_all"
UPDATE_ISSUE_STATUS = "issues:update_status"
UPDATE_ISSUE_REMARKS = "issues:update_remarks"

ROLE_CAPABILITIES = {
    ROLE_STUDENT: frozenset({CREATE_ISSUE, READ_OWN_ISSUES}),
    ROLE_ADMIN: frozenset({
        CREATE_ISSUE,
        READ_OWN_ISSUES,
        READ_ALL_ISSUES,
        UPDATE_ISSUE_STATUS,
        UPDATE_ISSUE_REMARKS,
    }),
}


@dataclass(frozen=True)
class Principal:
    """Identity attached to a request once its token has been validated."""

    id: str
    role: str
    name: str
    email: str

    @property
    def capabilities(self) -> frozenset[str]:
        return ROLE_CAPABILITIES.get(self.role, frozenset())

    def can(self, capability: str) -> bool:
        return capability in self.capabilities

    @classmethod
    def from_user(cls, user: User) -> "Principal":
        return cls(id=user.id, role=user.role, name=user.name, email=user.email)


def authenticate(token: str | None, db: Session) -> Principal:
    if not token:
        raise AuthError("Not authorized, token missing")

    try:
        payload = jwt_handler.decode_access_token(token)
    except Exception as exc:
        raise AuthError("Not authorized, token invalid or expired") from exc

    user_id = payload.get("id")
    if not user_id:
        raise AuthError("Invalid token format")

    user = db.query(User).filter(User.id == str(user_id)).first()
    if user is None:
        raise AuthError("User not found")
    return Principal.from_user(user)


def get_current_principal(
    credentials: HTTPAuthorizationCredentials | None = Depends(security),
    db: Session = Depends(get_db),
) -> Principal:
    token = credentials.credentials if credentials else None
    return authenticate(token, db)


def authorize_admin(principal: Principal) -> None:
    if principal.role != ROLE_ADMIN:
        raise ForbiddenError("Access denied. Admins only.")


def require_capabilities(*required: str):
    """Build a route dependency that admits principals holding every capability."""
    required_set = frozenset(required)

    def guard(principal: Principal = Depends(get_current_principal)) -> Principal:
        missing = required_set - principal.capabilities
        if missing:
            raise ForbiddenError("Access denied. Admins only.")
        return principal

    guard.required_capabilities = required_set
    return guard
