from connectn.ai.threats import (ThreatAnalyzer, ThreatKind, near_mask, LEVEL_WIN, LEVEL_BLOCK,
                                 LEVEL_FORK, LEVEL_OPEN_RUN, LEVEL_MINOR, LEVEL_NONE)
from connectn.game.board import Board
from connectn.utils import Player


def _gravity(make_grid, *lines):
    return Board.from_rows(make_grid(list(lines)), gravity=True)


def _gomoku(ones=(), twos=()):
    board = Board(15, 15)
    for row, col in ones:
        board.set(row, col, Player.ONE)
    for row, col in twos:
        board.set(row, col, Player.TWO)
    return board


def test_three_on_the_bottom_row_wins_in_column_three(make_grid):
    board = _gravity(make_grid, "XXX....")
    analyzer = ThreatAnalyzer(4)

    assert analyzer.winning_cells(board, Player.ONE) == [(5, 3)]
    assert analyzer.blocking_cells(board, Player.TWO) == [(5, 3)]
    assert analyzer.winning_cells(board, Player.TWO) == []


def test_broken_pattern_has_a_completion_cell(make_grid):
    board = _gravity(make_grid, "X.XX...")

    assert ThreatAnalyzer(4).winning_cells(board, Player.ONE) == [(5, 1)]


def test_unreachable_completion_cell_is_not_winning(make_grid):
    board = _gravity(make_grid, "XXX....", "OOX....")
    analyzer = ThreatAnalyzer(4)

    assert (4, 3) in analyzer.completion_cells(board, Player.ONE)
    assert (4, 3) not in analyzer.winning_cells(board, Player.ONE)


def test_open_three_in_connect_four_is_a_fork(make_grid):
    board = _gravity(make_grid, ".XXX...")
    analyzer = ThreatAnalyzer(4)

    assert analyzer.has_fork(board, Player.ONE)
    assert analyzer.fork_cells(board, Player.ONE) == [(5, 0), (5, 4)]
    assert not analyzer.has_fork(board, Player.TWO)

    kinds = [record.kind for record in analyzer.find_threats(board, Player.ONE)]
    assert kinds.count(ThreatKind.WINNING_MOVE) == 2
    assert ThreatKind.FORK in kinds


def test_find_runs_reports_open_runs():
    board = _gomoku(ones=[(7, 5), (7, 6), (7, 7)])

    runs = ThreatAnalyzer(5).find_runs(board, Player.ONE)

    assert len(runs) == 1
    assert runs[0].length == 3
    assert runs[0].is_open
    assert runs[0].flanks == ((7, 4), (7, 8))


def test_runs_without_room_are_ignored():
    # Boxed in by the edge and an opponent stone: can never reach five
    board = _gomoku(ones=[(0, 0), (0, 1)], twos=[(0, 3)])

    runs = ThreatAnalyzer(5).find_runs(board, Player.ONE)

    assert all(run.axis.name != "HORIZONTAL" for run in runs)


def test_open_three_record_in_gomoku():
    board = _gomoku(ones=[(7, 5), (7, 6), (7, 7)])

    records = ThreatAnalyzer(5).find_threats(board, Player.ONE)

    assert [r.kind for r in records] == [ThreatKind.OPEN_THREE]
    assert records[0].completions == ((7, 4), (7, 8))


def test_closed_four_record_in_gomoku():
    board = _gomoku(ones=[(7, 4), (7, 5), (7, 6), (7, 7)], twos=[(7, 3)])

    records = ThreatAnalyzer(5).find_threats(board, Player.ONE)
    kinds = {r.kind: r for r in records}

    assert kinds[ThreatKind.CLOSED_FOUR].position == (7, 8)
    assert kinds[ThreatKind.WINNING_MOVE].position == (7, 8)


def test_blocking_records_belong_to_the_defender(make_grid):
    board = _gravity(make_grid, "OOO....")

    records = ThreatAnalyzer(4).find_threats(board, Player.ONE)

    blocking = [r for r in records if r.kind == ThreatKind.BLOCKING_MOVE]
    assert len(blocking) == 1
    assert blocking[0].owner == Player.ONE
    assert blocking[0].position == (5, 3)


def test_threat_levels_win_and_block(make_grid):
    board = _gravity(make_grid, "XXX....")
    analyzer = ThreatAnalyzer(4)

    assert analyzer.threat_level(board, 5, 3, Player.ONE) == LEVEL_WIN
    assert analyzer.threat_level(board, 5, 3, Player.TWO) == LEVEL_BLOCK


def test_threat_level_fork(make_grid):
    board = _gravity(make_grid, "..XX...")

    assert ThreatAnalyzer(4).threat_level(board, 5, 4, Player.ONE) == LEVEL_FORK


def test_threat_level_open_run():
    board = _gomoku(ones=[(7, 6), (7, 7)])

    assert ThreatAnalyzer(5).threat_level(board, 7, 8, Player.ONE) == LEVEL_OPEN_RUN


def test_threat_level_adjacency_and_illegal_cells(make_grid):
    board = _gomoku(ones=[(7, 7)])
    analyzer = ThreatAnalyzer(5)

    assert analyzer.threat_level(board, 6, 6, Player.TWO) == LEVEL_MINOR
    assert analyzer.threat_level(board, 0, 0, Player.TWO) == LEVEL_NONE
    assert analyzer.threat_level(board, 7, 7, Player.TWO) == LEVEL_NONE

    gravity = _gravity(make_grid, "X......")
    # Not the landing cell of its column
    assert analyzer.threat_level(gravity, 0, 0, Player.ONE) == LEVEL_NONE


def test_single_stone_threat_levels_stay_low():
    board = _gomoku(ones=[(7, 7)])
    analyzer = ThreatAnalyzer(5)

    for row in range(15):
        for col in range(15):
            if (row, col) != (7, 7):
                assert analyzer.threat_level(board, row, col, Player.ONE) in (0, 1)


def test_forking_cells_agree_with_the_fork_threat_level(make_grid):
    board = _gravity(make_grid, "X.....X", "O.....O", "X.O.O.X")
    analyzer = ThreatAnalyzer(4)

    cells = analyzer.forking_cells(board, Player.TWO)

    assert cells == [(5, 3)]
    for row, col in board.legal_cells():
        is_fork = analyzer.threat_level(board, row, col, Player.TWO) == LEVEL_FORK
        assert ((row, col) in cells) == is_fork


def test_open_three_forks_at_both_ends_in_gomoku():
    board = _gomoku(ones=[(7, 5), (7, 6), (7, 7)])

    assert ThreatAnalyzer(5).forking_cells(board, Player.ONE) == [(7, 4), (7, 8)]


def test_rank_cells_puts_strong_cells_first():
    board = _gomoku(ones=[(7, 5), (7, 6), (7, 7)])

    ranked = ThreatAnalyzer(5).rank_cells(board, Player.ONE, [(0, 0), (7, 8), (7, 4)], limit=2)

    assert ranked == [(7, 4), (7, 8)]


def test_threatening_cells(make_grid):
    board = _gravity(make_grid, ".XX....")

    cells = ThreatAnalyzer(4).threatening_cells(board, Player.ONE)

    assert (5, 0) in cells
    assert (5, 3) in cells
    assert (5, 6) not in cells


def test_cell_potential_prefers_longer_lines():
    board = _gomoku(ones=[(7, 5), (7, 6), (7, 7)])
    analyzer = ThreatAnalyzer(5)

    assert analyzer.cell_potential(board, 7, 8, Player.ONE) > analyzer.cell_potential(board, 0, 14, Player.ONE)


def test_analysis_does_not_mutate(make_grid):
    board = _gravity(make_grid, ".XX....", "OXO....")
    before = board.fingerprint()
    analyzer = ThreatAnalyzer(4)

    analyzer.find_threats(board, Player.ONE)
    analyzer.threatening_cells(board, Player.TWO)
    analyzer.threat_level(board, 5, 3, Player.ONE)
    analyzer.forking_cells(board, Player.ONE)

    assert board.fingerprint() == before


def test_near_mask_radius():
    board = _gomoku(ones=[(7, 7)])

    mask = near_mask(board.grid, 2)

    assert mask[5, 5] and mask[9, 9] and mask[7, 7]
    assert not mask[4, 7]
    assert int(mask.sum()) == 25
