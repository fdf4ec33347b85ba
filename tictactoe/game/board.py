"""
Tic-Tac-Toe board rules and the board wire codec.

A board is a list of 9 strings: "" for an empty cell, "X" or "O".
"""
import json

X = "X"
O = "O"
EMPTY = ""

MARKS = (X, O)
BOARD_SIZE = 9

# Scan order matters: the first fully matched line decides the winner
LINES = (
    (0, 1, 2),
    (3, 4, 5),
    (6, 7, 8),
    (0, 3, 6),
    (1, 4, 7),
    (2, 5, 8),
    (0, 4, 8),
    (2, 4, 6),
)


class BoardFormatError(ValueError):
    """Raised when a stored board cannot be read back as 9 valid cells."""


def empty_board():
    return [EMPTY] * BOARD_SIZE


def next_mark(mark):
    return O if mark == X else X


def compute_winner(board):
    """
    Return the mark holding the first complete line, or None.

    A full board with no line also returns None, so callers that need to tell
    a draw from a game in progress should use is_draw().
    """
    for a, b, c in LINES:
        if board[a] and board[a] == board[b] and board[a] == board[c]:
            return board[a]
    return None


def is_draw(board):
    return all(board) and compute_winner(board) is None


def serialize_board(board):
    """Encode a board for the `game.board` text column."""
    if len(board) != BOARD_SIZE:
        raise BoardFormatError(f"Board must have {BOARD_SIZE} cells, got {len(board)}")
    return json.dumps([cell or EMPTY for cell in board], separators=(",", ":"))


def deserialize_board(text):
    """
    Decode a `game.board` value.

    Null cells (written by older resets) are read as empty cells.

    Raises:
        BoardFormatError: If the text is not a JSON array of 9 valid cells.
    """
    try:
        cells = json.loads(text)
    except (TypeError, ValueError) as e:
        raise BoardFormatError(f"Board is not valid JSON: {text!r}") from e

    if not isinstance(cells, list) or len(cells) != BOARD_SIZE:
        raise BoardFormatError(f"Board must be a list of {BOARD_SIZE} cells: {text!r}")

    board = []
    for cell in cells:
        if cell is None:
            cell = EMPTY
        if cell != EMPTY and cell not in MARKS:
            raise BoardFormatError(f"Unknown cell value {cell!r}")
        board.append(cell)
    return board
