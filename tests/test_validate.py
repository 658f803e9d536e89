"""Tests for move validation."""

import pytest

from conftest import plain_layout
from tilebattle.engine.board import Board, TileSource
from tilebattle.engine.validate import IllegalMove, ValidationResult, validate_move
from tilebattle.engine.words import Placement


def _board_with(confirmed=(), pending=()):
    board = Board.empty(plain_layout())
    for row, col, letter in confirmed:
        board.set_pending(row, col, letter)
        board.confirm(row, col, TileSource.NORMAL)
    placements = []
    for row, col, letter in pending:
        board.set_pending(row, col, letter)
        placements.append(Placement(row, col, letter))
    return board, placements


class TestValidateMove:
    def test_no_tiles(self, words):
        board, _ = _board_with()
        result = validate_move(board, [], words)
        assert not result.legal
        assert result.reason == "No tiles placed."

    def test_first_move_anywhere(self, words):
        board, placements = _board_with(pending=[(0, 0, "C"), (0, 1, "A"), (0, 2, "T")])
        result = validate_move(board, placements, words)
        assert result.legal
        assert result.words == ("CAT",)

    def test_not_in_one_line(self, words):
        board, placements = _board_with(pending=[(1, 1, "C"), (2, 2, "A")])
        result = validate_move(board, placements, words)
        assert not result.legal
        assert "single row or column" in result.reason

    def test_gap_rejected(self, words):
        board, placements = _board_with(pending=[(3, 1, "C"), (3, 3, "T")])
        result = validate_move(board, placements, words)
        assert not result.legal
        assert result.reason == "There is a gap between the placed tiles."

    def test_gap_filled_by_board_tile(self, words):
        board, placements = _board_with(
            confirmed=[(3, 2, "A")], pending=[(3, 1, "C"), (3, 3, "T")]
        )
        assert validate_move(board, placements, words).legal

    def test_must_touch_existing_tiles(self, words):
        board, placements = _board_with(
            confirmed=[(0, 0, "A"), (0, 1, "T")],
            pending=[(5, 2, "C"), (5, 3, "A"), (5, 4, "T")],
        )
        result = validate_move(board, placements, words)
        assert not result.legal
        assert "touch" in result.reason

    def test_lone_tile_on_empty_board(self, words):
        board, placements = _board_with(pending=[(3, 3, "A")])
        result = validate_move(board, placements, words)
        assert not result.legal
        assert result.reason == "No word was formed."

    def test_unknown_word_named(self, words):
        board, placements = _board_with(pending=[(3, 2, "C"), (3, 3, "A"), (3, 4, "X")])
        result = validate_move(board, placements, words)
        assert not result.legal
        assert result.reason.startswith("invalid_word")
        assert result.word == "CAX"

    def test_every_cross_word_checked(self, words):
        # CAT across is fine, but T sits under an O making "OT"
        board, placements = _board_with(
            confirmed=[(2, 4, "O")],
            pending=[(3, 2, "C"), (3, 3, "A"), (3, 4, "T")],
        )
        result = validate_move(board, placements, words)
        assert not result.legal
        assert result.word == "OT"

    def test_board_untouched(self, words):
        board, placements = _board_with(pending=[(3, 2, "C"), (3, 3, "A"), (3, 4, "T")])
        before = board.to_dict()
        validate_move(board, placements, words)
        assert board.to_dict() == before

    def test_plain_set_works_as_dictionary(self):
        board, placements = _board_with(pending=[(3, 2, "C"), (3, 3, "A"), (3, 4, "T")])
        assert validate_move(board, placements, {"CAT"}).legal


class TestValidationResult:
    def test_raise_if_illegal(self):
        with pytest.raises(IllegalMove) as exc:
            ValidationResult(legal=False, reason="nope", word="XYZ").raise_if_illegal()
        assert exc.value.reason == "nope"
        assert exc.value.word == "XYZ"

    def test_legal_does_not_raise(self):
        ValidationResult(legal=True).raise_if_illegal()
