from urllib.parse import urlparse

from flask import Blueprint, redirect, url_for, flash, request, session, current_app
from flask_login import current_user
from tictactoe.core.identity import AuthError
from tictactoe.game.session import GameSession
import logging

logger = logging.getLogger(__name__)

auth_bp = Blueprint("auth", __name__)


def _game_session():
    return GameSession(
        current_app.extensions["game_store"],
        current_app.extensions["identity_provider"],
    )


def _safe_next(target):
    """Return target if it is a path on this site, else None."""
    if not target or not target.startswith("/") or target.startswith("//") or "\\" in target:
        return None
    parts = urlparse(target)
    if parts.scheme or parts.netloc:
        return None
    return target


@auth_bp.route("/login/google")
def login_google():
    """Initiate Google OAuth login flow."""
    # Redirect if already logged in
    if current_user.is_authenticated:
        return redirect(url_for("tic_tac_toe.index"))

    identity = current_app.extensions["identity_provider"]
    if not identity.is_configured("google"):
        flash("Google login is not configured. Please contact support.")
        return redirect(url_for("tic_tac_toe.index"))

    next_page = _safe_next(request.args.get("next"))
    if next_page:
        session["next"] = next_page

    # Redirect to Google OAuth
    redirect_uri = url_for("auth.google_callback", _external=True)
    logger.info(f"Google OAuth redirect URI: {redirect_uri}")
    try:
        return identity.authorize_redirect(redirect_uri, provider="google")
    except AuthError as e:
        logger.error(f"Google OAuth redirect failed: {e}")
        flash("An error occurred during Google login. Please try again.")
        return redirect(url_for("tic_tac_toe.index"))


@auth_bp.route("/login/google/callback")
def google_callback():
    """Handle Google OAuth callback."""
    next_page = _safe_next(session.pop("next", None))

    # Redirect if already logged in
    if current_user.is_authenticated:
        return redirect(next_page or url_for("tic_tac_toe.index"))

    with _game_session() as game_session:
        user = game_session.sign_in("google")

    if user is None:
        flash("An error occurred during Google login. Please try again.")
    else:
        flash(f"Signed in as {user.email}.")
    return redirect(next_page or url_for("tic_tac_toe.index"))


@auth_bp.route("/logout")
def logout():
    with _game_session() as game_session:
        if game_session.current_user is not None and not game_session.sign_out():
            flash("An error occurred while logging out. Please try again.")
    return redirect(_safe_next(request.args.get("next")) or url_for("tic_tac_toe.index"))
