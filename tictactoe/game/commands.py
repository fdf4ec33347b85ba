"""Flask CLI commands for the Tic-Tac-Toe game"""

import click
import logging

from tictactoe.game.session import GameSession, WELL_KNOWN_GAME_ID
from tictactoe.game.store import StoreError

logger = logging.getLogger(__name__)


def init_app(app):
    """Register CLI commands with the Flask app"""

    @app.cli.command("reset-game")
    @click.option("--game-id", type=int, default=WELL_KNOWN_GAME_ID, show_default=True,
                  help="Id of the game to reset.")
    def reset_game(game_id):
        """
        Clear a game's board and give the first move back to X.
        Runs in its own process, so open pages show the reset on their next load or move.
        """
        store = app.extensions["game_store"]
        identity = app.extensions["identity_provider"]

        with app.app_context():
            try:
                exists = bool(store.select(game_id))
            except StoreError as e:
                logger.error(f"reset-game could not read game {game_id}: {e}")
                click.echo(f"Could not read game {game_id}: {e}", err=True)
                raise SystemExit(1)

            if not exists:
                click.echo(f"Game {game_id} does not exist.", err=True)
                raise SystemExit(1)

            with GameSession(store, identity) as game_session:
                game_session.initialize(game_id)
                game_session.reset_game()
                state = game_session.snapshot()

        click.echo(f"Game {game_id} reset (version {state['version']}).")
