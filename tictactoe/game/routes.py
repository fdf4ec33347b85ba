import json
import logging

from flask import render_template, request, jsonify, current_app, url_for, Response, stream_with_context
from tictactoe import db
from tictactoe.game import tic_tac_toe_bp
from tictactoe.game.session import GameSession, WELL_KNOWN_GAME_ID
from tictactoe.utils.logging import log_game_event

logger = logging.getLogger(__name__)


def _new_session():
    """Build a GameSession over the app's store and identity provider."""
    return GameSession(
        current_app.extensions['game_store'],
        current_app.extensions['identity_provider'],
    )


def _sse(payload):
    return f"data: {json.dumps(payload)}\n\n"


@tic_tac_toe_bp.route('/')
def index():
    """Display the shared game - self-contained HTML with inline CSS/JS"""
    log_game_event('Visit', 'visited Tic-Tac-Toe')
    return render_template('tic_tac_toe/index.html', game_id=WELL_KNOWN_GAME_ID)


@tic_tac_toe_bp.route('/game/<int:game_id>')
def game(game_id):
    """Display a game started by a signed-in player"""
    log_game_event('Visit', f'visited Tic-Tac-Toe game {game_id}')
    return render_template('tic_tac_toe/index.html', game_id=game_id)


@tic_tac_toe_bp.route('/api/games/<int:game_id>', methods=['GET'])
def get_game(game_id):
    """Load a game, creating it if it does not exist yet"""
    with _new_session() as game_session:
        game_session.initialize(game_id)
        return jsonify(game_session.snapshot())


@tic_tac_toe_bp.route('/api/games/<int:game_id>/move', methods=['POST'])
def move(game_id):
    """Play the next mark; illegal moves leave the game unchanged"""
    data = request.get_json(silent=True)
    if not data or 'index' not in data:
        return jsonify({'error': 'No cell index provided'}), 400

    index = data['index']
    if isinstance(index, bool) or not isinstance(index, int):
        return jsonify({'error': 'Cell index must be an integer'}), 400

    with _new_session() as game_session:
        game_session.initialize(game_id)
        game_session.apply_move(index)
        return jsonify(game_session.snapshot())


@tic_tac_toe_bp.route('/api/games/<int:game_id>/reset', methods=['POST'])
def reset(game_id):
    with _new_session() as game_session:
        game_session.initialize(game_id)
        game_session.reset_game()
        return jsonify(game_session.snapshot())


@tic_tac_toe_bp.route('/api/games', methods=['POST'])
def create_game():
    """Start a new game owned by the signed-in player"""
    with _new_session() as game_session:
        new_game_id = game_session.start_new_game()
        if new_game_id is None:
            if game_session.current_user is None:
                return jsonify({'error': 'Sign in to start a new game'}), 401
            return jsonify({'error': 'Could not create a new game'}), 500

        log_game_event('New Game', f'started game {new_game_id}')
        result = game_session.snapshot()
        result['url'] = url_for('tic_tac_toe.game', game_id=new_game_id)
        return jsonify(result), 201


@tic_tac_toe_bp.route('/api/games/<int:game_id>/events', methods=['GET'])
def game_events(game_id):
    """Stream the game state as Server-Sent Events, one frame per change"""
    heartbeat = current_app.config.get('GAME_EVENTS_HEARTBEAT_SECONDS', 15)

    game_session = _new_session()
    game_session.initialize(game_id)
    initial_state = game_session.snapshot()
    logger.info(f"Event stream opened for game {game_id}")

    # Changes arrive with their payload, so release the connection before blocking
    db.session.remove()

    def generate():
        try:
            yield _sse(initial_state)
            for state in game_session.listen(heartbeat=heartbeat):
                if state is None:
                    yield ": keep-alive\n\n"
                else:
                    yield _sse(state)
        finally:
            game_session.close()

    response = Response(stream_with_context(generate()), mimetype='text/event-stream')
    response.headers['Cache-Control'] = 'no-cache'
    response.headers['X-Accel-Buffering'] = 'no'
    # Also covers a client that disconnects before the first frame
    response.call_on_close(game_session.close)
    return response
