from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Protocol

from itsdangerous import BadData, SignatureExpired, URLSafeTimedSerializer
from werkzeug.security import check_password_hash, generate_password_hash

from ..app_logger import get_logger
from ..common.validators import require_enum, require_min_length, require_non_empty
from ..core.constants import DEFAULT_TOKEN_MAX_AGE_SECONDS
from ..core.enums import Role
from ..core.exceptions import AuthenticationError, ValidationError
from .model import Principal
from .repository import StaffRepository

logger = get_logger(__name__)

TOKEN_SALT = "class-attendance-auth"


class TokenVerifier(Protocol):
    def issue(self, principal: Principal) -> str:
        raise NotImplementedError

    def verify(self, token: str) -> Principal:
        raise NotImplementedError


class SignedTokenVerifier(TokenVerifier):
    """Bearer tokens signed with the app secret and stamped with their issue time."""

    def __init__(self, secret_key: str, *, max_age_seconds: int = DEFAULT_TOKEN_MAX_AGE_SECONDS):
        self._serializer = URLSafeTimedSerializer(secret_key, salt=TOKEN_SALT)
        self._max_age = int(max_age_seconds)

    def issue(self, principal: Principal) -> str:
        return self._serializer.dumps({"username": principal.username, "role": principal.role.value})

    def verify(self, token: str) -> Principal:
        if not token:
            raise AuthenticationError("Authentication token is missing")
        try:
            data = self._serializer.loads(token, max_age=self._max_age)
        except SignatureExpired:
            raise AuthenticationError("Session expired, please log in again")
        except BadData:
            raise AuthenticationError("Invalid authentication token")

        try:
            return Principal(username=str(data["username"]), role=Role(data["role"]))
        except (KeyError, TypeError, ValueError):
            raise AuthenticationError("Invalid authentication token")


@dataclass(frozen=True)
class LoginResult:
    token: str
    principal: Principal
    name: str


class AuthService:
    """Use case: staff/admin login and password change."""

    def __init__(self, staff: StaffRepository, tokens: TokenVerifier):
        self._staff = staff
        self._tokens = tokens

    def authenticate(self, username: str, password: str, role: str) -> LoginResult:
        wanted = require_enum(Role, role, "role")
        username = require_non_empty(username, "Username")
        password = require_non_empty(password, "Password")

        account = self._staff.get_by_username(username)
        if not account or not account.is_active or account.role != wanted:
            raise AuthenticationError("Invalid credentials")
        if not _password_matches(account.password_hash, password):
            raise AuthenticationError("Invalid credentials")

        principal = Principal(username=account.username, role=account.role)
        logger.info("%s %s logged in", account.role.value, account.username)
        return LoginResult(token=self._tokens.issue(principal), principal=principal, name=account.name)

    def change_password(self, principal: Principal, current_password: str, new_password: str) -> None:
        if not current_password or not new_password:
            raise ValidationError("Both current password and new password are required")
        require_min_length(new_password, "New password", 6)

        account = self._staff.get_by_username(principal.username)
        if not account:
            raise AuthenticationError("Account not found")
        if not _password_matches(account.password_hash, current_password):
            raise AuthenticationError("Current password is incorrect")

        self._staff.set_password_hash(account.username, generate_password_hash(new_password))
        logger.info("password changed for %s", account.username)

    def verify_token(self, token: Optional[str]) -> Principal:
        return self._tokens.verify(token or "")


def _password_matches(password_hash: str, password: str) -> bool:
    try:
        return check_password_hash(password_hash, password)
    except ValueError:
        # e.g. placeholder hashes like 'CHANGE_ME'
        return False
