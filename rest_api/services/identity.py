"""
Identity Provider.

Signs users in against their UserProfile (one lookup, single role field),
keeps the current session identity and tells listeners whenever it
changes. The HTTP layer is stateless and only uses authenticate();
in-process clients (AppState) drive sign_in()/sign_out().
"""

from __future__ import annotations

import threading
from dataclasses import dataclass
from typing import Any, Callable

from shared.config.constants import Collections, Roles, STAFF_ROLES
from shared.config.logging import auth_logger as logger, audit_auth_event, mask_email
from shared.security.password import hash_password, verify_password
from shared.utils.exceptions import (
    AuthenticationError,
    DuplicateEntityError,
    InsufficientRoleError,
    NotApprovedError,
    NotFoundError,
    ValidationError,
)
from rest_api.models import utcnow
from rest_api.services.store import DocumentStore, Query

# Roles that can sign themselves up; admins are provisioned out of band
SELF_SERVICE_STAFF_ROLES = frozenset(STAFF_ROLES - {Roles.ADMIN})


@dataclass(frozen=True)
class SessionIdentity:
    """Who is signed in. display_name doubles as the customer order key."""

    uid: str
    email: str
    role: str
    display_name: str

    @classmethod
    def from_profile(cls, profile: dict[str, Any]) -> "SessionIdentity":
        return cls(
            uid=profile["id"],
            email=profile["email"],
            role=profile["role"],
            display_name=display_name_of(profile),
        )

    @classmethod
    def from_claims(cls, claims: dict[str, Any]) -> "SessionIdentity":
        """Rebuild from verified JWT claims."""
        return cls(
            uid=claims["sub"],
            email=claims.get("email", ""),
            role=claims["role"],
            display_name=claims.get("name") or claims.get("email", ""),
        )

    def to_claims(self) -> dict[str, Any]:
        return {"sub": self.uid, "email": self.email, "role": self.role, "name": self.display_name}


def display_name_of(profile: dict[str, Any]) -> str:
    parts = [profile.get("first_name") or "", profile.get("last_name") or ""]
    return " ".join(p.strip() for p in parts if p.strip()) or profile["email"]


def _public_profile(profile: dict[str, Any]) -> dict[str, Any]:
    return {key: value for key, value in profile.items() if key != "password_hash"}


def _require_admin(actor: SessionIdentity) -> None:
    if actor.role != Roles.ADMIN:
        raise InsufficientRoleError([Roles.ADMIN], actor=actor.uid)


AuthStateCallback = Callable[[SessionIdentity | None], None]


class IdentityProvider:
    """
    Usage:
        identity = IdentityProvider(store)
        unsubscribe = identity.on_auth_state_changed(render)
        identity.sign_in("ann@example.com", "secret")
        identity.sign_out()
    """

    def __init__(self, store: DocumentStore):
        self._store = store
        self._current: SessionIdentity | None = None
        self._listeners: list[AuthStateCallback] = []
        self._lock = threading.Lock()

    # =========================================================================
    # Credentials
    # =========================================================================

    def authenticate(self, email: str, password: str) -> SessionIdentity:
        """
        Verify credentials without changing the current session.

        Raises:
            AuthenticationError: Unknown email or wrong password.
            NotApprovedError: Staff account not yet approved.
        """
        email = email.strip().lower()
        profile = self._store.find_one(Collections.USERS, email=email)

        if profile is None:
            logger.warning("LOGIN_FAILED: User not found", email=mask_email(email))
            audit_auth_event("LOGIN_FAILED", None, email, False, reason="unknown_user")
            raise AuthenticationError("Invalid email or password")

        if not verify_password(password, profile["password_hash"]):
            logger.warning("LOGIN_FAILED: Invalid password", email=mask_email(email), user_id=profile["id"])
            audit_auth_event("LOGIN_FAILED", profile["id"], email, False, reason="bad_password")
            raise AuthenticationError("Invalid email or password")

        if not profile["approved"]:
            audit_auth_event("LOGIN_FAILED", profile["id"], email, False, reason="not_approved")
            raise NotApprovedError(user_id=profile["id"])

        audit_auth_event("LOGIN_SUCCESS", profile["id"], email, True, role=profile["role"])
        return SessionIdentity.from_profile(profile)

    def register_customer(
        self,
        email: str,
        password: str,
        first_name: str,
        last_name: str | None = None,
    ) -> SessionIdentity:
        """
        Self sign-up. Customers are approved immediately.

        Raises:
            DuplicateEntityError: Email already registered.
        """
        profile = self._create_profile(email, password, first_name, last_name, Roles.CUSTOMER, approved=True)
        logger.info("Customer registered", user_id=profile["id"], email=mask_email(profile["email"]))
        return SessionIdentity.from_profile(profile)

    def register_staff(
        self,
        email: str,
        password: str,
        first_name: str,
        last_name: str | None,
        role: str,
    ) -> dict[str, Any]:
        """
        Staff sign-up. The account cannot sign in until an admin approves it.

        Returns:
            The new profile (without the password hash).

        Raises:
            ValidationError: role is not a self-service staff role.
            DuplicateEntityError: Email already registered.
        """
        if role not in SELF_SERVICE_STAFF_ROLES:
            raise ValidationError(f"Cannot sign up as '{role}'", field="role")
        profile = self._create_profile(email, password, first_name, last_name, role, approved=False)
        logger.info("Staff registered, awaiting approval", user_id=profile["id"], role=role)
        audit_auth_event("STAFF_REGISTERED", profile["id"], profile["email"], True, role=role)
        return _public_profile(profile)

    def _create_profile(
        self,
        email: str,
        password: str,
        first_name: str,
        last_name: str | None,
        role: str,
        approved: bool,
    ) -> dict[str, Any]:
        email = email.strip().lower()
        if self._store.find_one(Collections.USERS, email=email) is not None:
            raise DuplicateEntityError("Account", mask_email(email))
        return self._store.create(
            Collections.USERS,
            {
                "email": email,
                "password_hash": hash_password(password),
                "first_name": first_name.strip(),
                "last_name": last_name.strip() if last_name else None,
                "role": role,
                "approved": approved,
            },
        )

    # =========================================================================
    # Staff approval (admin)
    # =========================================================================

    def pending_staff(self, actor: SessionIdentity) -> list[dict[str, Any]]:
        """Staff sign-ups nobody has approved or rejected yet, oldest first."""
        _require_admin(actor)
        profiles = self._store.query(
            Query(Collections.USERS)
            .where("role", "in", sorted(SELF_SERVICE_STAFF_ROLES))
            .where("approved", "==", False)
            .where("reviewed_at", "is-null")
            .order_by("created_at")
        )
        return [_public_profile(p) for p in profiles]

    def set_approval(self, uid: str, approved: bool, actor: SessionIdentity) -> dict[str, Any]:
        """
        Approve or reject a staff account. Rejecting an approved account
        revokes it; the next sign-in is refused.

        Raises:
            InsufficientRoleError: Caller is not an admin.
            NotFoundError: No such account.
            ValidationError: The account is a customer or an admin.
        """
        _require_admin(actor)
        profile = self._store.get(Collections.USERS, uid)
        if profile is None:
            raise NotFoundError("Account", uid)
        if profile["role"] not in SELF_SERVICE_STAFF_ROLES:
            raise ValidationError(f"'{profile['role']}' accounts do not need approval", field="role")

        profile = self._store.update(
            Collections.USERS,
            uid,
            {
                "approved": approved,
                "reviewed_by": actor.uid,
                "reviewed_at": utcnow(),
                "updated_by": actor.uid,
            },
        )
        event = "STAFF_APPROVED" if approved else "STAFF_REJECTED"
        audit_auth_event(event, uid, profile["email"], True, role=profile["role"], reviewed_by=actor.uid)
        return _public_profile(profile)

    def resolve(self, uid: str) -> SessionIdentity | None:
        profile = self._store.get(Collections.USERS, uid)
        return SessionIdentity.from_profile(profile) if profile else None

    # =========================================================================
    # Session state
    # =========================================================================

    def sign_in(self, email: str, password: str) -> SessionIdentity:
        identity = self.authenticate(email, password)
        self._set_current(identity)
        return identity

    def sign_out(self) -> None:
        if self._current is not None:
            logger.info("Signed out", user_id=self._current.uid)
        self._set_current(None)

    def current_user(self) -> SessionIdentity | None:
        return self._current

    def on_auth_state_changed(self, callback: AuthStateCallback) -> Callable[[], None]:
        """
        Register a callback; it fires now with the current identity and
        again on every sign-in or sign-out. Returns an unsubscribe function.
        """
        with self._lock:
            self._listeners.append(callback)
        callback(self._current)

        def unsubscribe() -> None:
            with self._lock:
                if callback in self._listeners:
                    self._listeners.remove(callback)

        return unsubscribe

    def _set_current(self, identity: SessionIdentity | None) -> None:
        with self._lock:
            changed = identity != self._current
            self._current = identity
            listeners = list(self._listeners)
        if not changed:
            return
        for listener in listeners:
            try:
                listener(identity)
            except Exception as e:
                logger.error("Auth state listener failed", error=str(e), exc_info=True)
