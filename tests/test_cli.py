import pytest

from connectn.ai.difficulty import DifficultyTier
from connectn.errors import ConfigError
from connectn.game.rules import new_variant_game
from connectn.interfaces.cli import main, parse_position, parse_tiers, run_matrix, format_matrix, SimpleCLI

# Player ONE has three in the bottom row; player TWO to move
THREE_IN_A_ROW = ",".join(["0"] * 28 + ["2", "2", "0", "0", "0", "0", "0"] + ["1", "1", "1", "0", "0", "0", "0"])


def test_parse_position():
    rows = parse_position("1,2,0, 0,0,0", 2, 3)

    assert rows == [[1, 2, 0], [0, 0, 0]]


@pytest.mark.parametrize("text", ["1,2,3", "1,x,0,0,0,0"])
def test_parse_position_rejects_bad_input(text):
    with pytest.raises(ConfigError):
        parse_position(text, 2, 3)


def test_parse_tiers():
    assert parse_tiers("beginner, HARD") == [DifficultyTier.BEGINNER, DifficultyTier.HARD]


def test_analyze_prints_the_forced_block(capsys):
    assert main(['analyze', '--position', THREE_IN_A_ROW, '--tier', 'beginner']) == 0

    out = capsys.readouterr().out
    assert "Blocking moves: ['(5, 3)']" in out
    assert "Suggested move (beginner): (5, 3) via block" in out


def test_analyze_reports_bad_positions(capsys):
    assert main(['analyze', '--position', '1,2,3']) == 1

    assert "Error:" in capsys.readouterr().out


def test_missing_command_fails(capsys):
    assert main([]) == 1

    assert "Please specify a command" in capsys.readouterr().out


def test_benchmark_runs(capsys):
    assert main(['benchmark', '--iterations', '20', '--tier', 'beginner', '--seed', '1']) == 0

    out = capsys.readouterr().out
    assert "win checks" in out
    assert "decisions" in out


def test_matrix_needs_two_tiers(capsys):
    assert main(['matrix', '--tiers', 'beginner', '--games', '1']) == 1


def test_run_matrix_counts_every_game():
    tiers = [DifficultyTier.BEGINNER, DifficultyTier.BALANCED]

    results = run_matrix("connect4", tiers, games=2, seed=5)

    assert set(results) == {(DifficultyTier.BEGINNER, DifficultyTier.BALANCED),
                            (DifficultyTier.BALANCED, DifficultyTier.BEGINNER)}
    assert all(sum(record) == 2 for record in results.values())
    assert "(wins/draws/losses of the row tier)" in format_matrix(tiers, results)


def test_parse_move_follows_the_variant():
    cli = SimpleCLI()
    cli.parse_args(['play', '--variant', 'gomoku'])
    cli.game = new_variant_game('gomoku')

    move = cli.parse_move("7 8")

    assert (move.row, move.col) == (7, 8)
    assert cli.parse_move("7") is None
