"""
Game store: reads and writes `game` records and fans out change events.

Records are plain dicts in the wire shape produced by Game.to_record().
Every committed insert or update is published to the subscriptions that
match it, so all open pages see the same board.
"""
import logging
import queue
import threading
from dataclasses import dataclass
from typing import Optional

from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from tictactoe.game.models import Game

logger = logging.getLogger(__name__)

INSERT = "INSERT"
UPDATE = "UPDATE"

ADVANCE_ID_SEQUENCE = text(
    "SELECT setval(pg_get_serial_sequence('game', 'id'), (SELECT MAX(id) FROM game))"
)

# Columns a caller may write; id and version are managed by the store
WRITABLE_FIELDS = ("board", "isxnext", "winner", "player1")

_CLOSED = object()


class StoreError(Exception):
    """Raised when the game table cannot be read or written."""


class GameNotFound(StoreError):
    pass


class VersionConflict(StoreError):
    """Raised when a conditional update finds a newer stored version."""


@dataclass(frozen=True)
class ChangeEvent:
    event_type: str
    old: Optional[dict]
    new: dict


class Subscription:
    """
    Stream of ChangeEvents for one game (or every game when game_id is None).

    Must be closed by its owner; use it as a context manager where possible.
    """

    def __init__(self, feed, game_id=None):
        self.game_id = game_id
        self._feed = feed
        self._queue = queue.Queue()
        self._closed = False

    @property
    def closed(self):
        return self._closed

    def matches(self, event):
        return self.game_id is None or event.new.get("id") == self.game_id

    def deliver(self, event):
        if not self._closed:
            self._queue.put(event)

    def pending(self):
        """Return every queued event without blocking."""
        events = []
        while True:
            try:
                item = self._queue.get_nowait()
            except queue.Empty:
                break
            if item is _CLOSED:
                break
            events.append(item)
        return events

    def events(self, timeout=None):
        """
        Yield events as they arrive until the subscription is closed.

        When timeout is set, None is yielded each time it expires with no
        event so that the caller gets a chance to send a heartbeat.
        """
        while not self._closed:
            try:
                item = self._queue.get(timeout=timeout)
            except queue.Empty:
                yield None
                continue
            if item is _CLOSED:
                return
            yield item

    def close(self):
        if self._closed:
            return
        self._closed = True
        self._feed.remove(self)
        # Wake up a reader blocked in events()
        self._queue.put(_CLOSED)

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()


class ChangeFeed:
    """Thread-safe set of subscriptions receiving published events."""

    def __init__(self):
        self._lock = threading.Lock()
        self._subscriptions = set()

    def add(self, subscription):
        with self._lock:
            self._subscriptions.add(subscription)

    def remove(self, subscription):
        with self._lock:
            self._subscriptions.discard(subscription)

    def publish(self, event):
        with self._lock:
            targets = [s for s in self._subscriptions if s.matches(event)]
        for subscription in targets:
            subscription.deliver(event)

    def __len__(self):
        with self._lock:
            return len(self._subscriptions)


class GameStore:
    """
    Access to the `game` table plus its change feed.

    Constructed once per process by create_app() and handed to each
    GameSession. Methods must run inside an application context.
    """

    def __init__(self, db):
        self.db = db
        self.feed = ChangeFeed()

    def _uses_id_sequence(self):
        return self.db.session.get_bind().dialect.name == "postgresql"

    def select(self, game_id):
        """Return the records matching game_id (an empty list or one record)."""
        try:
            games = Game.query.filter_by(id=game_id).all()
        except SQLAlchemyError as e:
            self.db.session.rollback()
            raise StoreError(f"Failed to read game {game_id}: {e}") from e
        return [game.to_record() for game in games]

    def insert(self, record):
        """
        Create a game and return the stored record.

        The id is assigned by the database unless the record carries one.
        An explicit id moves the PostgreSQL id sequence past it, so later
        database-assigned ids never collide with it.
        """
        game = Game(**{key: record[key] for key in WRITABLE_FIELDS if key in record})
        explicit_id = record.get("id") is not None
        if explicit_id:
            game.id = record["id"]

        try:
            self.db.session.add(game)
            if explicit_id and self._uses_id_sequence():
                self.db.session.flush()
                self.db.session.execute(ADVANCE_ID_SEQUENCE)
            self.db.session.commit()
            new = game.to_record()
        except SQLAlchemyError as e:
            self.db.session.rollback()
            raise StoreError(f"Failed to insert game: {e}") from e

        logger.info(f"Created game {new['id']}")
        self.feed.publish(ChangeEvent(INSERT, None, new))
        return new

    def update(self, game_id, patch, expected_version=None):
        """
        Write the fields in patch to game game_id and return the new record.

        Each update bumps the stored version. When expected_version is given
        the write only happens if the stored version still matches it.

        Raises:
            GameNotFound: If no game has this id.
            VersionConflict: If expected_version is stale.
            StoreError: If the database write fails.
        """
        unknown = set(patch) - set(WRITABLE_FIELDS)
        if unknown:
            raise StoreError(f"Cannot update fields: {', '.join(sorted(unknown))}")

        try:
            game = Game.query.filter_by(id=game_id).first()
            if game is None:
                raise GameNotFound(f"Game {game_id} not found")
            old = game.to_record()

            query = Game.query.filter_by(id=game_id)
            if expected_version is not None:
                query = query.filter_by(version=expected_version)
            values = dict(patch)
            values["version"] = Game.version + 1
            updated = query.update(values, synchronize_session=False)

            if not updated:
                self.db.session.rollback()
                raise VersionConflict(
                    f"Game {game_id} changed since version {expected_version}"
                )

            self.db.session.commit()
            # Commit expired the instance, so this reloads the stored row
            new = game.to_record()
        except SQLAlchemyError as e:
            self.db.session.rollback()
            raise StoreError(f"Failed to update game {game_id}: {e}") from e

        self.feed.publish(ChangeEvent(UPDATE, old, new))
        return new

    def subscribe(self, game_id=None):
        subscription = Subscription(self.feed, game_id)
        self.feed.add(subscription)
        return subscription
