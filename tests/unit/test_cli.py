from __future__ import annotations

import json

from paperrepo.presentation.cli.main import create_parser, run_cli


def test_parser_defaults():
    parsed = create_parser().parse_args(["create-user", "root@uni.edu"])
    assert parsed.role == "admin"
    assert parsed.password is None


def test_create_user_then_list_requests(db_url, capsys):
    code = run_cli(["--db-url", db_url, "create-user", "root@uni.edu", "--password", "secret1"])
    assert code == 0
    assert "created admin root@uni.edu" in capsys.readouterr().out

    code = run_cli(["--db-url", db_url, "list-requests", "--json"])
    assert code == 0
    assert json.loads(capsys.readouterr().out) == []


def test_create_user_reports_errors(db_url, capsys):
    run_cli(["--db-url", db_url, "create-user", "root@uni.edu", "--password", "secret1"])
    capsys.readouterr()

    code = run_cli(["--db-url", db_url, "create-user", "root@uni.edu", "--password", "secret1"])

    assert code == 1
    assert "Error: User already exists" in capsys.readouterr().err


def test_no_command_prints_help(capsys):
    assert run_cli([]) == 0
    assert "usage" in capsys.readouterr().out.lower()
