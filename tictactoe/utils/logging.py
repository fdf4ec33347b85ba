"""
Logging utilities for tracking player activity in the audit log.
"""

from flask_login import current_user
from tictactoe.models import LogEntry
from tictactoe import db


def log_game_event(category, description):
    """
    Record a game event in the LogEntry table.

    Args:
        category (str): Kind of event (e.g. 'Visit', 'New Game')
        description (str): What happened; prefixed with who did it
    """
    if current_user.is_authenticated:
        user_desc = f"User {current_user.email}"
        actor_id = current_user.id
    else:
        user_desc = "Anonymous user"
        actor_id = None

    log_entry = LogEntry(
        project='tic_tac_toe',
        category=category,
        actor_id=actor_id,
        description=f"{user_desc} {description}"
    )
    db.session.add(log_entry)
    db.session.commit()
