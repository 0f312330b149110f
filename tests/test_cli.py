import io

import pytest

from trainticket.cli import main, process_line
from trainticket.ticket_system import TicketSystem
from trainticket.users import UserSystem

ROOT = "[1] add_user -c root -u root -p password -n Root -m root@example.com -g 10"
LOGIN = "[2] login -u root -p password"
TRAIN = (
    "[3] add_train -i G1 -n 2 -m 100 -s Alpha|Beta -p 100 -x 08:00 "
    "-t 60 -o _ -d 06-01|06-30 -y G"
)


@pytest.fixture
def systems(tmp_path):
    return UserSystem(tmp_path), TicketSystem(tmp_path)


def run(systems, line):
    users, tickets = systems
    return process_line(line, users, tickets)


def test_first_user_is_added(systems):
    assert run(systems, ROOT) == "[1] 0\n"


def test_login_and_profile(systems):
    run(systems, ROOT)
    assert run(systems, LOGIN) == "[2] 0\n"
    assert run(systems, "[3] query_profile -c root -u root") == (
        "[3] root Root root@example.com 10\n"
    )


def test_login_twice_fails(systems):
    run(systems, ROOT)
    run(systems, LOGIN)
    assert run(systems, "[3] login -u root -p password") == "[3] -1\n"


def test_wrong_password_fails(systems):
    run(systems, ROOT)
    assert run(systems, "[2] login -u root -p secret") == "[2] -1\n"


def test_logout_without_login_fails(systems):
    run(systems, ROOT)
    assert run(systems, "[2] logout -u root") == "[2] -1\n"


def test_modify_profile_changes_name(systems):
    run(systems, ROOT)
    run(systems, LOGIN)
    out = run(systems, "[3] modify_profile -c root -u root -n Boss")
    assert out == "[3] root Boss root@example.com 10\n"


def test_add_train_twice_fails(systems):
    assert run(systems, TRAIN) == "[3] 0\n"
    assert run(systems, TRAIN.replace("[3]", "[4]")).endswith(" -1\n")


def test_query_train_lists_every_station(systems):
    run(systems, TRAIN)
    out = run(systems, "[4] query_train -i G1 -d 06-05")
    lines = out.rstrip("\n").split("\n")
    assert lines[0] == "[4] G1 G"
    assert len(lines) == 3
    assert lines[1].startswith("Alpha xx-xx xx:xx -> ")
    assert lines[2].startswith("Beta ")
    assert lines[2].endswith(" -> xx-xx xx:xx 100 100")


def test_query_unknown_train_fails(systems):
    assert run(systems, "[1] query_train -i G9 -d 06-05") == "[1] -1\n"


def test_released_train_cannot_be_deleted(systems):
    run(systems, TRAIN)
    assert run(systems, "[4] release_train -i G1") == "[4] 0\n"
    assert run(systems, "[5] delete_train -i G1") == "[5] -1\n"


def test_query_ticket_finds_released_train(systems):
    run(systems, TRAIN)
    run(systems, "[4] release_train -i G1")
    out = run(systems, "[5] query_ticket -s Alpha -t Beta -d 06-05")
    lines = out.rstrip("\n").split("\n")
    assert lines[0] == "[5] 1"
    assert lines[1].startswith("G1 Alpha 06-05 08:00 -> Beta")


def test_query_transfer_without_route(systems):
    assert run(systems, "[1] query_transfer -s Alpha -t Beta -d 06-05") == "[1] 0\n"


def test_buy_and_refund(systems):
    run(systems, ROOT)
    run(systems, LOGIN)
    run(systems, TRAIN)
    run(systems, "[4] release_train -i G1")
    out = run(systems, "[5] buy_ticket -u root -i G1 -d 06-05 -f Alpha -t Beta -n 2")
    assert out == "[5] 200\n"
    orders = run(systems, "[6] query_order -u root")
    assert orders.startswith("[6] 1\n[success] G1 Alpha 06-05 08:00 -> Beta")
    assert run(systems, "[7] refund_ticket -u root") == "[7] 0\n"
    assert "[refunded]" in run(systems, "[8] query_order -u root")


def test_buy_without_login_fails(systems):
    run(systems, ROOT)
    run(systems, TRAIN)
    run(systems, "[4] release_train -i G1")
    out = run(systems, "[5] buy_ticket -u root -i G1 -d 06-05 -f Alpha -t Beta -n 1")
    assert out == "[5] -1\n"


def test_clean_removes_users(systems):
    run(systems, ROOT)
    assert run(systems, "[2] clean") == "[2] 0\n"
    assert run(systems, "[3] login -u root -p password") == "[3] -1\n"


def test_exit_says_bye(systems):
    assert run(systems, "[9] exit") == "[9] bye\n"


def test_unknown_command_echoes_stamp(systems):
    assert run(systems, "[4] frobnicate -x 1") == "[4] "


def test_main_stops_at_exit(tmp_path, monkeypatch, capsys):
    script = "\n".join([ROOT, "", "[2] exit", "[3] clean"]) + "\n"
    monkeypatch.setattr("sys.stdin", io.StringIO(script))
    assert main(["--directory", str(tmp_path)]) == 0
    assert capsys.readouterr().out == "[1] 0\n[2] bye\n"
    assert (tmp_path / "user_river").exists()
    reopened = UserSystem(tmp_path)
    assert reopened.has_user("root")


def test_main_keeps_data_between_runs(tmp_path, monkeypatch, capsys):
    monkeypatch.setattr("sys.stdin", io.StringIO(ROOT + "\n"))
    main(["-d", str(tmp_path)])
    capsys.readouterr()
    monkeypatch.setattr("sys.stdin", io.StringIO(LOGIN + "\n"))
    main(["-d", str(tmp_path)])
    assert capsys.readouterr().out == "[2] 0\n"