"""
Tests for the user management CLI

Each ``main`` call runs against its own in-memory database.
"""
from licensing.cli.manage_users import build_parser, main


def test_create_admin_user(capsys):
    code = main(["create", "--email", "Reviewer@Example.com", "--password", "long-enough-pw", "--admin"])

    out = capsys.readouterr().out
    assert code == 0
    assert "reviewer@example.com" in out
    assert "Roles:  admin, user" in out
    assert "long-enough-pw" not in out


def test_create_without_password_prints_generated_one(capsys):
    code = main(["create", "--email", "owner@example.com"])

    out = capsys.readouterr().out
    assert code == 0
    assert "Password:" in out
    assert "Roles:  user" in out


def test_short_password_is_reported(capsys):
    code = main(["create", "--email", "owner@example.com", "--password", "short"])

    assert code == 1
    assert "[ERROR]" in capsys.readouterr().out


def test_unknown_email(capsys):
    code = main(["grant-admin", "--email", "nobody@example.com"])

    assert code == 1
    assert "No user with email" in capsys.readouterr().out


def test_list_empty(capsys):
    assert main(["list"]) == 0
    assert "No users found." in capsys.readouterr().out


def test_no_command_prints_help(capsys):
    assert main([]) == 1
    assert "usage" in capsys.readouterr().out.lower()


def test_parser_requires_email_for_user_commands():
    parser = build_parser()

    args = parser.parse_args(["deactivate", "--email", "owner@example.com"])

    assert args.command == "deactivate"
    assert args.email == "owner@example.com"
