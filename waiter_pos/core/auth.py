import hmac
from dataclasses import dataclass

from .config_store import get_admin_password, set_config_value
from .errors import AdminRequired


@dataclass(slots=True, frozen=True)
class AuthContext:
    username: str
    role: str  # 'admin' only for now

    @property
    def is_admin(self) -> bool:
        return self.role == "admin"


def authenticate(password: str, username: str = "owner"):
    """Check the shared admin password; returns an AuthContext or None."""
    expected = get_admin_password()
    supplied = (password or "").strip()
    if not expected or not hmac.compare_digest(supplied.encode("utf-8"), expected.encode("utf-8")):
        return None
    return AuthContext(username=username, role="admin")


def require_admin(auth) -> AuthContext:
    if not isinstance(auth, AuthContext) or not auth.is_admin:
        raise AdminRequired()
    return auth


def change_admin_password(auth, new_password: str) -> None:
    require_admin(auth)
    cleaned = (new_password or "").strip()
    if not cleaned:
        raise ValueError("Password is required")
    set_config_value("admin_password", cleaned)
