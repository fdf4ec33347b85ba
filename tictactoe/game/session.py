"""
GameSession: one player's view of a shared game.

Moves are applied locally first and then written to the store. Change
notifications from the store overwrite the local state unconditionally, so
an echo of our own write is harmless and the last write always wins on
every page.

Store and sign-in failures are logged and never raised to the caller.
"""
import logging

from tictactoe.core.identity import AuthError
from tictactoe.game import board as rules
from tictactoe.game.store import StoreError, VersionConflict

logger = logging.getLogger(__name__)

# Id of the shared game used when no game id is given
WELL_KNOWN_GAME_ID = 1


def new_game_record(owner_id=None):
    record = {
        "board": rules.serialize_board(rules.empty_board()),
        "isxnext": True,
        "winner": None,
    }
    if owner_id is not None:
        record["player1"] = owner_id
    return record


class GameSession:
    def __init__(self, store, identity):
        self.store = store
        self.identity = identity

        self.board = rules.empty_board()
        self.next_player = rules.X
        self.winner = None
        self.version = None
        self.player1 = None
        self.active_game_id = None
        self.current_user = identity.get_current_user()

        self._subscription = None

    @property
    def is_draw(self):
        return rules.is_draw(self.board)

    def initialize(self, game_id=None):
        """
        Load game game_id (the shared game if None), creating it when absent,
        and subscribe to its changes.
        """
        if game_id is None:
            game_id = WELL_KNOWN_GAME_ID

        self._close_subscription()
        self.active_game_id = game_id
        self._subscription = self.store.subscribe(game_id)

        try:
            records = self.store.select(game_id)
            if records:
                self._load(records[0])
            else:
                record = new_game_record()
                record["id"] = game_id
                self._load(self.store.insert(record))
                logger.info(f"Initial data for game {game_id} inserted")
        except StoreError as e:
            logger.error(f"Error loading game {game_id}: {e}")
            return
        except (rules.BoardFormatError, KeyError) as e:
            logger.error(f"Game {game_id} has an unreadable record: {e}")
            return

        self._drop_stale_changes()

    def compute_winner(self, board):
        return rules.compute_winner(board)

    def apply_move(self, index):
        """
        Place the next player's mark at index and push the new state.

        Does nothing when there is no active game, the index is off the
        board, the cell is taken or the game is already won.
        """
        if self.active_game_id is None:
            return
        if isinstance(index, bool) or not isinstance(index, int):
            return
        if not 0 <= index < rules.BOARD_SIZE:
            return
        if self.board[index] or self.winner:
            return

        new_board = list(self.board)
        new_board[index] = self.next_player
        new_next = rules.next_mark(self.next_player)
        new_winner = self.compute_winner(new_board)

        self.board = new_board
        self.next_player = new_next
        self.winner = new_winner

        patch = {
            "board": rules.serialize_board(new_board),
            "isxnext": new_next == rules.X,
            "winner": new_winner,
        }
        try:
            self._load(self.store.update(self.active_game_id, patch, expected_version=self.version))
        except VersionConflict as e:
            logger.warning(f"Move on game {self.active_game_id} lost a race: {e}")
            self._reload()
        except StoreError as e:
            logger.error(f"Error updating game {self.active_game_id}: {e}")

    def reset_game(self):
        if self.active_game_id is None:
            return

        self.board = rules.empty_board()
        self.next_player = rules.X
        self.winner = None

        try:
            self._load(self.store.update(self.active_game_id, new_game_record()))
        except StoreError as e:
            logger.error(f"Error resetting game {self.active_game_id}: {e}")

    def start_new_game(self):
        """
        Create a game owned by the signed-in user and switch to it.

        Returns:
            int: Id of the new game, or None if not signed in or the insert failed.
        """
        if self.current_user is None:
            logger.error("Cannot start a new game: no user is signed in")
            return None

        try:
            record = self.store.insert(new_game_record(owner_id=self.current_user.id))
        except StoreError as e:
            logger.error(f"Error creating game for {self.current_user.email}: {e}")
            return None

        self.initialize(record["id"])
        return record["id"]

    def sign_in(self, provider="google"):
        try:
            self.current_user = self.identity.sign_in_with_oauth(provider)
        except AuthError as e:
            logger.error(f"Error signing in with {provider}: {e}")
        return self.current_user

    def sign_out(self):
        try:
            self.identity.sign_out()
        except AuthError as e:
            logger.error(f"Error signing out: {e}")
            return False
        self.current_user = None
        return True

    def handle_change(self, event):
        """Overwrite local state with a change notification for the active game."""
        new = event.new or {}
        if new.get("id") != self.active_game_id:
            return
        logger.debug(f"Realtime {event.event_type} received for game {self.active_game_id}")
        try:
            self._load(new)
        except (rules.BoardFormatError, KeyError) as e:
            logger.error(f"Ignoring unreadable change for game {self.active_game_id}: {e}")

    def sync(self):
        """Apply every notification received so far."""
        if self._subscription is None:
            return
        for event in self._subscription.pending():
            self.handle_change(event)

    def listen(self, heartbeat=None):
        """
        Block on the subscription, applying each change as it arrives.

        Yields a snapshot after every change, and None whenever heartbeat
        seconds pass without one. Ends when the session is closed.
        """
        if self._subscription is None:
            return
        for event in self._subscription.events(timeout=heartbeat):
            if event is None:
                yield None
                continue
            self.handle_change(event)
            yield self.snapshot()

    def snapshot(self):
        return {
            "id": self.active_game_id,
            "board": list(self.board),
            "isxnext": self.next_player == rules.X,
            "next_player": self.next_player,
            "winner": self.winner,
            "is_draw": self.is_draw,
            "version": self.version,
            "player1": self.player1,
        }

    def close(self):
        self._close_subscription()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()

    def _load(self, record):
        """
        Replace local state with a stored record.

        Raises:
            BoardFormatError: If the board or winner is not a valid mark.
            KeyError: If board or isxnext is missing.
        Nothing is changed when either is raised.
        """
        board = rules.deserialize_board(record["board"])
        isxnext = record["isxnext"]
        winner = record.get("winner")
        if winner is not None and winner not in rules.MARKS:
            raise rules.BoardFormatError(f"Unknown winner {winner!r}")

        self.board = board
        self.next_player = rules.X if isxnext else rules.O
        self.winner = winner
        self.version = record.get("version", self.version)
        self.player1 = record.get("player1", self.player1)

    def _drop_stale_changes(self):
        # Queued changes no newer than the loaded record, such as the echo of our own insert
        for event in self._subscription.pending():
            version = (event.new or {}).get("version")
            if version is None or self.version is None or version > self.version:
                self.handle_change(event)

    def _reload(self):
        try:
            records = self.store.select(self.active_game_id)
        except StoreError as e:
            logger.error(f"Error reloading game {self.active_game_id}: {e}")
            return
        if records:
            try:
                self._load(records[0])
            except (rules.BoardFormatError, KeyError) as e:
                logger.error(f"Game {self.active_game_id} has an unreadable record: {e}")

    def _close_subscription(self):
        if self._subscription is not None:
            self._subscription.close()
            self._subscription = None
