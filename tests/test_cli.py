from typer.testing import CliRunner

from mayssa_admin.cli import app

runner = CliRunner()


def test_stock_commands_round_trip() -> None:
    result = runner.invoke(app, ["stock-set", "trompe-loeil-citron", "4"])
    assert result.exit_code == 0, result.output
    assert "trompe-loeil-citron: 4 in stock" in result.output

    result = runner.invoke(app, ["stock-list"])
    assert "- trompe-loeil-citron: 4" in result.output

    result = runner.invoke(app, ["stock-untrack", "trompe-loeil-citron"])
    assert result.exit_code == 0, result.output
    result = runner.invoke(app, ["stock-list"])
    assert "trompe-loeil-citron" not in result.output


def test_reject_unknown_order_fails() -> None:
    result = runner.invoke(app, ["reject-order", "does-not-exist"])
    assert result.exit_code == 1
    assert "not found" in result.output


def test_show_paths() -> None:
    result = runner.invoke(app, ["show-paths"])
    assert result.exit_code == 0
    assert "database.sqlite3" in result.output


def test_stock_adjust_floors_and_requires_tracking() -> None:
    runner.invoke(app, ["stock-set", "trompe-loeil-mangue", "2"])
    result = runner.invoke(app, ["stock-adjust", "trompe-loeil-mangue", "--", "-5"])
    assert result.exit_code == 0, result.output
    assert "trompe-loeil-mangue: 0 in stock" in result.output

    result = runner.invoke(app, ["stock-adjust", "box-cookie-6", "3"])
    assert result.exit_code == 1
    assert "box-cookie-6 is not tracked" in result.output
