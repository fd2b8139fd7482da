"""Unit tests for the command line entry point."""

from predictduel.__main__ import build_parser, main


def test_init_writes_config_once(tmp_path):
    data_dir = tmp_path / "data"

    assert main(["init", "--data-dir", str(data_dir)]) == 0
    config = data_dir / "config.yaml"
    assert "enforce_tx_verification: false" in config.read_text()

    config.write_text("api:\n  port: 9000\n")
    assert main(["init", "--data-dir", str(data_dir)]) == 0
    assert config.read_text() == "api:\n  port: 9000\n"


def test_no_command_prints_help():
    assert main([]) == 1


def test_parser_commands():
    parser = build_parser()

    assert parser.parse_args(["reconcile", "user_1"]).user_id == "user_1"
    assert parser.parse_args(["retry-stats", "duel_1"]).duel_id == "duel_1"
    assert parser.parse_args(["serve", "--port", "9001"]).port == 9001
