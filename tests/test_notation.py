"""Tests for move-line normalization (admin input) and single-move trimming (player input)."""

from __future__ import annotations

import random

import pytest

from puzzle_svc.notation import join_line, normalize_line, normalize_move


class TestNormalizeLine:

    def test_strips_move_numbers_and_commas(self):
        assert normalize_line("1. e4 e5, 2. Nf3 Nc6") == ["e4", "e5", "Nf3", "Nc6"]

    def test_numbers_without_space_and_black_ellipsis(self):
        assert normalize_line("1.e4 e5 2.Nf3 2...Nc6 3… Bb5") == ["e4", "e5", "Nf3", "Nc6", "Bb5"]

    def test_irregular_whitespace(self):
        assert normalize_line("  Qxf7+\t\tKxf7\n Ng5+  ") == ["Qxf7+", "Kxf7", "Ng5+"]

    def test_squares_are_not_mistaken_for_move_numbers(self):
        assert normalize_line("Nf3. Rd1 e8=Q") == ["Nf3.", "Rd1", "e8=Q"]

    @pytest.mark.parametrize("raw", ["", "   ", "\n\t", None, "1. 2. ,,"])
    def test_empty_input_gives_empty_line(self, raw):
        assert normalize_line(raw) == []

    def test_accepts_token_list(self):
        assert normalize_line(["1.e4", " e5 ", "2. Nf3"]) == ["e4", "e5", "Nf3"]

    @pytest.mark.parametrize("raw", [
        "1. e4 e5, 2. Nf3 Nc6",
        "1.e4,e5,2.Nf3",
        "  12... Rxe1+   13. Kxe1 ",
        "O-O-O 1...Qd8",
        "",
        "1,.",
        "e4 5,. e5",
        "#5,.",
        "7 ... Nc6",
        "a1.2.3…;4",
    ])
    def test_idempotent(self, raw):
        once = normalize_line(raw)
        assert normalize_line(join_line(once)) == once

    def test_dots_apart_from_the_number_are_kept(self):
        assert normalize_line("1,.") == ["1", "."]
        assert normalize_line("e4 5,. e5") == ["e4", "5", ".", "e5"]

    def test_idempotent_on_generated_text(self):
        rng = random.Random(20240611)
        alphabet = "0123456789...,;\u2026 \texNaB#+=-O"
        for _ in range(2000):
            raw = "".join(rng.choice(alphabet) for _ in range(rng.randint(0, 16)))
            once = normalize_line(raw)
            assert normalize_line(join_line(once)) == once, raw


class TestNormalizeMove:

    def test_trims_only(self):
        assert normalize_move("  Nf3+ \n") == "Nf3+"

    def test_keeps_inner_text(self):
        assert normalize_move("1. e4") == "1. e4"

    def test_non_string(self):
        assert normalize_move(None) == ""
        assert normalize_move(42) == ""
