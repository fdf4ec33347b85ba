"""
Identity provider: Google OAuth sign-in and Flask-Login session handling.
"""
import logging
from dataclasses import dataclass
from typing import Optional

import requests
from authlib.integrations.base_client import OAuthError
from flask_login import current_user, login_user, logout_user
from sqlalchemy.exc import SQLAlchemyError

from tictactoe import db
from tictactoe.models import User, LogEntry

logger = logging.getLogger(__name__)

GOOGLE_USERINFO_URL = "https://www.googleapis.com/oauth2/v2/userinfo"


class AuthError(Exception):
    """Raised when sign-in is denied, cancelled or cannot complete."""


@dataclass(frozen=True)
class UserIdentity:
    id: int
    email: str
    name: str

    @classmethod
    def from_user(cls, user):
        return cls(id=user.id, email=user.email, name=user.short_name)


class IdentityProvider:
    """Wraps the registered OAuth clients and the Flask-Login session."""

    def __init__(self, oauth):
        self.oauth = oauth

    def is_configured(self, provider="google"):
        return self.oauth.create_client(provider) is not None

    def get_current_user(self) -> Optional[UserIdentity]:
        if current_user and current_user.is_authenticated:
            return UserIdentity.from_user(current_user)
        return None

    def authorize_redirect(self, redirect_uri, provider="google"):
        """Start the OAuth flow; returns the redirect response."""
        client = self.oauth.create_client(provider)
        if client is None:
            raise AuthError(f"{provider} login is not configured")
        return client.authorize_redirect(redirect_uri)

    def sign_in_with_oauth(self, provider="google") -> UserIdentity:
        """
        Finish the OAuth flow for the current callback request.

        Finds the user by Google id, links an existing account with the same
        email, or registers a new account, then logs the user in.

        Raises:
            AuthError: If the provider is not configured, the user denied
                access or the profile is incomplete.
        """
        client = self.oauth.create_client(provider)
        if client is None:
            raise AuthError(f"{provider} login is not configured")

        try:
            token = client.authorize_access_token()
            resp = client.get(GOOGLE_USERINFO_URL, token=token)
            resp.raise_for_status()
            user_info = resp.json()
        except (OAuthError, requests.exceptions.RequestException, ValueError) as e:
            raise AuthError(f"{provider} sign-in failed: {e}") from e

        google_id = user_info.get("id")
        google_email = (user_info.get("email") or "").lower().strip()
        google_name = (user_info.get("name") or "").strip()

        if not google_id or not google_email:
            raise AuthError("Google profile is missing id or email")

        try:
            user, category = self._find_or_create_user(google_id, google_email, google_name)
            login_user(user)
            db.session.add(LogEntry(
                project="auth",
                category=category,
                actor_id=user.id,
                description=f"Successful Google login for {user.email}",
            ))
            db.session.commit()
        except SQLAlchemyError as e:
            db.session.rollback()
            raise AuthError(f"Could not record sign-in for {google_email}: {e}") from e

        return UserIdentity.from_user(user)

    def _find_or_create_user(self, google_id, google_email, google_name):
        user = User.query.filter_by(google_id=google_id).first()
        if user:
            return user, "Login - Google"

        # Same email, no Google id yet: link the accounts
        user = User.query.filter_by(email=google_email).first()
        if user:
            user.google_id = google_id
            user.google_email = google_email
            db.session.commit()
            return user, "Account Linked - Google"

        full_name = google_name or "placeholder"
        user = User(
            email=google_email,
            full_name=full_name,
            short_name=full_name.split()[0],
            google_id=google_id,
            google_email=google_email,
        )
        db.session.add(user)
        db.session.commit()
        logger.info(f"New user registered via Google: {user.email}")
        return user, "Register - Google"

    def sign_out(self):
        """
        Raises:
            AuthError: If the logout could not be recorded.
        """
        user = self.get_current_user()
        if user is not None:
            try:
                db.session.add(LogEntry(
                    project="auth",
                    category="Logout",
                    actor_id=user.id,
                    description=f"User {user.email} logged out",
                ))
                db.session.commit()
            except SQLAlchemyError as e:
                db.session.rollback()
                raise AuthError(f"Could not record logout for {user.email}: {e}") from e

        logout_user()
