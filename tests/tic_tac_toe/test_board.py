"""
Unit tests for the Tic-Tac-Toe board rules and board codec.

Run (with venv activated):
  python -m unittest tests.tic_tac_toe.test_board -v
  pytest tests/tic_tac_toe/ -v
"""
import itertools
import unittest

from tictactoe.game.board import (
    LINES,
    BoardFormatError,
    compute_winner,
    deserialize_board,
    empty_board,
    is_draw,
    next_mark,
    serialize_board,
)


def _board_with(line, mark):
    board = empty_board()
    for index in line:
        board[index] = mark
    return board


def _play(moves):
    """Apply (index, mark) moves in order to an empty board."""
    board = empty_board()
    for index, mark in moves:
        board[index] = mark
    return board


class TestComputeWinner(unittest.TestCase):

    def test_each_line_wins_for_x(self):
        for line in LINES:
            with self.subTest(line=line):
                self.assertEqual(compute_winner(_board_with(line, "X")), "X")

    def test_each_line_wins_for_o(self):
        for line in LINES:
            with self.subTest(line=line):
                self.assertEqual(compute_winner(_board_with(line, "O")), "O")

    def test_eight_lines_in_scan_order(self):
        self.assertEqual(len(LINES), 8)
        self.assertEqual(LINES[0], (0, 1, 2))
        self.assertEqual(LINES[-1], (2, 4, 6))

    def test_empty_board_has_no_winner(self):
        self.assertIsNone(compute_winner(empty_board()))

    def test_incomplete_lines_have_no_winner(self):
        board = ["X", "X", "", "O", "O", "", "", "", ""]
        self.assertIsNone(compute_winner(board))

    def test_mixed_line_is_not_a_win(self):
        board = ["X", "O", "X", "", "", "", "", "", ""]
        self.assertIsNone(compute_winner(board))

    def test_full_draw_board_has_no_winner(self):
        # Same answer as a game in progress; is_draw tells them apart
        board = ["X", "O", "X",
                 "X", "O", "O",
                 "O", "X", "X"]
        self.assertIsNone(compute_winner(board))
        self.assertTrue(is_draw(board))

    def test_first_matched_line_decides(self):
        # Both the top row (X) and the bottom row (O) are complete
        board = ["X", "X", "X",
                 "", "", "",
                 "O", "O", "O"]
        self.assertEqual(compute_winner(board), "X")

    def test_result_depends_only_on_final_board(self):
        x_moves = [(0, "X"), (1, "X"), (2, "X")]
        o_moves = [(3, "O"), (4, "O")]
        results = set()
        for ordering in itertools.permutations(x_moves + o_moves):
            board = _play(ordering)
            self.assertEqual(board, ["X", "X", "X", "O", "O", "", "", "", ""])
            results.add(compute_winner(board))
        self.assertEqual(results, {"X"})


class TestIsDraw(unittest.TestCase):

    def test_game_in_progress_is_not_a_draw(self):
        self.assertFalse(is_draw(["X", "O", "", "", "", "", "", "", ""]))

    def test_full_board_with_winner_is_not_a_draw(self):
        board = ["X", "X", "X",
                 "O", "O", "X",
                 "X", "O", "O"]
        self.assertFalse(is_draw(board))


class TestNextMark(unittest.TestCase):

    def test_alternates(self):
        self.assertEqual(next_mark("X"), "O")
        self.assertEqual(next_mark("O"), "X")


class TestBoardCodec(unittest.TestCase):

    def test_empty_cells_stay_empty_strings(self):
        text = serialize_board(empty_board())
        self.assertEqual(text, '["","","","","","","","",""]')
        self.assertEqual(deserialize_board(text), [""] * 9)

    def test_marks_round_trip(self):
        board = ["X", "O", "", "", "X", "", "", "", "O"]
        self.assertEqual(deserialize_board(serialize_board(board)), board)

    def test_reads_spaced_json(self):
        text = '["X", "", "", "", "", "", "", "", ""]'
        self.assertEqual(deserialize_board(text)[0], "X")

    def test_null_cells_read_as_empty(self):
        text = "[null,null,null,null,null,null,null,null,null]"
        self.assertEqual(deserialize_board(text), [""] * 9)

    def test_wrong_length_rejected(self):
        with self.assertRaises(BoardFormatError):
            deserialize_board('["X","O"]')
        with self.assertRaises(BoardFormatError):
            serialize_board(["X"] * 10)

    def test_unknown_mark_rejected(self):
        with self.assertRaises(BoardFormatError):
            deserialize_board('["Z","","","","","","","",""]')

    def test_invalid_json_rejected(self):
        with self.assertRaises(BoardFormatError):
            deserialize_board("not json")
        with self.assertRaises(BoardFormatError):
            deserialize_board(None)

    def test_board_format_error_is_a_value_error(self):
        self.assertTrue(issubclass(BoardFormatError, ValueError))
