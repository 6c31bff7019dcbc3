import numpy as np
import pytest

from connectn.errors import ConfigError, OutOfBounds, InvalidPlayer, InvalidMove
from connectn.game.board import Board
from connectn.utils import Player


def test_new_board_is_empty():
    board = Board(6, 7, gravity=True)

    assert board.grid.shape == (6, 7)
    assert board.grid.dtype == np.int8
    assert board.stone_count() == 0
    assert board.empty_count() == 42
    assert not board.is_full()


@pytest.mark.parametrize("rows, cols", [(0, 7), (6, 0), (-1, 5)])
def test_non_positive_dimensions_are_rejected(rows, cols):
    with pytest.raises(ConfigError):
        Board(rows, cols)


def test_get_and_set_outside_the_board_raise():
    board = Board(15, 15)

    with pytest.raises(OutOfBounds):
        board.get(15, 0)
    with pytest.raises(OutOfBounds):
        board.set(0, -1, Player.ONE)


def test_set_rejects_unknown_values():
    board = Board(15, 15)

    with pytest.raises(InvalidPlayer):
        board.set(7, 7, 3)


def test_free_board_accepts_any_empty_cell():
    board = Board(15, 15)
    board.set(0, 14, Player.TWO)

    assert board.get(0, 14) == Player.TWO.value
    assert not board.is_playable(0, 14)
    assert board.is_playable(7, 7)


def test_gravity_rejects_floating_stones():
    board = Board(6, 7, gravity=True)

    with pytest.raises(InvalidMove):
        board.set(3, 2, Player.ONE)

    board.set(5, 2, Player.ONE)
    assert board.column_height(2) == 1
    assert board.drop_row(2) == 4


def test_gravity_only_removes_the_top_stone():
    board = Board(6, 7, gravity=True)
    board.set(5, 0, Player.ONE)
    board.set(4, 0, Player.TWO)

    with pytest.raises(InvalidMove):
        board.set(5, 0, Player.EMPTY)

    board.set(4, 0, Player.EMPTY)
    assert board.column_height(0) == 1


def test_full_column():
    board = Board(6, 7, gravity=True)
    for row in range(5, -1, -1):
        board.set(row, 4, Player.ONE if row % 2 else Player.TWO)

    assert board.is_column_full(4)
    assert board.drop_row(4) is None
    assert all(col != 4 for _, col in board.legal_cells())


def test_gravity_legal_cells_are_landing_cells_by_column():
    board = Board(6, 7, gravity=True)
    board.set(5, 3, Player.ONE)

    cells = board.legal_cells()

    assert len(cells) == 7
    assert cells[3] == (4, 3)
    assert [col for _, col in cells] == list(range(7))


def test_clone_is_independent():
    board = Board(6, 7, gravity=True)
    board.set(5, 3, Player.ONE)

    copy = board.clone()
    copy.set(4, 3, Player.TWO)

    assert board.get(4, 3) == 0
    assert board.column_height(3) == 1
    assert copy.column_height(3) == 2
    assert copy != board


def test_from_rows_computes_column_heights(make_grid):
    board = Board.from_rows(make_grid(["..O....", "XXO...."]), gravity=True)

    assert board.column_height(0) == 1
    assert board.column_height(2) == 2
    assert board.drop_row(2) == 3


def test_from_rows_rejects_floating_stones(make_grid):
    with pytest.raises(ConfigError):
        Board.from_rows(make_grid(["X......", "......."]), gravity=True)


def test_from_rows_rejects_bad_values():
    with pytest.raises(ConfigError):
        Board.from_rows([[0, 1], [4, 0]])


def test_flat_snapshot_round_trip():
    board = Board(3, 4)
    board.set(1, 2, Player.ONE)
    board.set(2, 0, Player.TWO)

    flat = board.to_flat()

    assert flat == [0, 0, 0, 0, 0, 0, 1, 0, 2, 0, 0, 0]
    assert Board.from_flat(flat, 3, 4) == board


def test_fingerprint_tracks_contents():
    board = Board(6, 7, gravity=True)
    before = board.fingerprint()

    board.set(5, 0, Player.ONE)
    assert board.fingerprint() != before

    board.set(5, 0, Player.EMPTY)
    assert board.fingerprint() == before


def test_render_shows_stones():
    board = Board(6, 7, gravity=True)
    board.set(5, 0, Player.ONE)
    board.set(5, 1, Player.TWO)

    text = board.render()

    assert "|X O . . . . .| 5" in text
