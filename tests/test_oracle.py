"""Tests for the python-chess adapter: FEN parsing and immutable move application."""

from __future__ import annotations

import chess
import pytest

from puzzle_svc.oracle import IllegalMoveError, InvalidPositionError, Position

START = chess.STARTING_FEN


class TestParse:

    def test_standard_start(self):
        assert Position.parse(START).fen == START

    def test_surrounding_whitespace(self):
        assert Position.parse(f"  {START} ").fen == START

    @pytest.mark.parametrize("fen", ["", "   ", "not a fen", "8/8/8/8/8/8/8/8 w - - 0 1"])
    def test_rejects_bad_positions(self, fen):
        with pytest.raises(InvalidPositionError):
            Position.parse(fen)


class TestPlay:

    def test_san_move_returns_new_position(self):
        start = Position(START)
        played = start.play("e4")
        assert played.san == "e4"
        assert played.uci == "e2e4"
        board = chess.Board()
        board.push_san("e4")
        assert played.position.fen == board.fen()
        assert start.fen == START

    def test_uci_fallback(self):
        played = Position(START).play("g1f3")
        assert played.san == "Nf3"

    def test_annotation_glyphs_ignored(self):
        assert Position(START).play("Nf3!?").san == "Nf3"

    def test_check_suffix_in_canonical_san(self):
        board = chess.Board()
        for san in ["e4", "e5", "Bc4", "Nc6", "Qh5", "Nf6"]:
            board.push_san(san)
        played = Position(board.fen()).play("Qxf7")
        assert played.san == "Qxf7#"

    @pytest.mark.parametrize("move", ["", "Ke2", "e5", "hello", "--", "0000", "e2e5"])
    def test_illegal(self, move):
        with pytest.raises(IllegalMoveError):
            Position(START).play(move)

    def test_resolve_uci(self):
        pos = Position(START)
        assert pos.resolve_uci("Nf3") == "g1f3"
        assert pos.resolve_uci("Nf6") is None

    def test_turn(self):
        assert Position(START).turn == "w"
        assert Position(START).play("e4").position.turn == "b"
