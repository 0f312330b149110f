import pytest

from trainticket.models import OrderStatus
from trainticket.ticket_system import TicketSystem
from trainticket.timeutil import Date
from trainticket.users import UserSystem

PASSWORD = "password"


@pytest.fixture
def users(tmp_path):
    system = UserSystem(tmp_path)
    system.add_user("", "alice", PASSWORD, "Alice", "alice@example.com", 10)
    system.login("alice", PASSWORD)
    return system


@pytest.fixture
def tickets(tmp_path):
    return TicketSystem(tmp_path)


def add_happy(tickets):
    return tickets.add_train(
        "HAPPY", 3, 1000, "A|B|C", "100|200", "19:19", "600|500", "5",
        "06-01|08-17", "G",
    )


def add_cheap(tickets):
    return tickets.add_train(
        "CHEAP", 3, 50, "A|B|C", "10|20", "06:00", "900|900", "10",
        "06-01|08-17", "K",
    )


def test_add_duplicate_train_raises(tickets):
    add_happy(tickets)
    with pytest.raises(ValueError):
        add_happy(tickets)


def test_delete_unknown_train_raises(tickets):
    with pytest.raises(KeyError):
        tickets.delete_train("NOPE")


def test_delete_released_train_raises(tickets):
    add_happy(tickets)
    tickets.release_train("HAPPY")
    with pytest.raises(ValueError):
        tickets.delete_train("HAPPY")


def test_delete_then_add_again(tickets):
    add_happy(tickets)
    tickets.delete_train("HAPPY")
    with pytest.raises(KeyError):
        tickets.query_train("HAPPY", "06-01")
    train = add_happy(tickets)
    assert train.train_id == "HAPPY"


def test_release_twice_raises(tickets):
    add_happy(tickets)
    tickets.release_train("HAPPY")
    with pytest.raises(ValueError):
        tickets.release_train("HAPPY")


def test_query_train_format(tickets):
    add_happy(tickets)
    lines = tickets.query_train("HAPPY", "06-01").split("\n")
    assert lines[0] == "HAPPY G"
    assert len(lines) == 4
    assert lines[1] == "A xx-xx xx:xx -> 06-01 19:19 0 1000"
    assert lines[-1].endswith("-> xx-xx xx:xx 300 1000")


def test_query_train_outside_sale_raises(tickets):
    add_happy(tickets)
    with pytest.raises(ValueError):
        tickets.query_train("HAPPY", "09-01")


def test_query_ticket_needs_release(tickets):
    add_happy(tickets)
    assert tickets.query_ticket("A", "C", "06-05") == []
    tickets.release_train("HAPPY")
    found = tickets.query_ticket("A", "C", "06-05")
    assert [(t.train_id, t.from_station, t.to_station, t.num) for t in found] == [
        ("HAPPY", "A", "C", 1000)
    ]
    assert found[0].leaving_date == Date(6, 5)


def test_query_ticket_wrong_direction_is_empty(tickets):
    add_happy(tickets)
    tickets.release_train("HAPPY")
    assert tickets.query_ticket("C", "A", "06-05") == []


def test_query_ticket_orderings(tickets):
    add_happy(tickets)
    add_cheap(tickets)
    tickets.release_train("HAPPY")
    tickets.release_train("CHEAP")
    by_cost = tickets.query_ticket("A", "C", "06-10", "cost")
    by_time = tickets.query_ticket("A", "C", "06-10", "time")
    assert [t.train_id for t in by_cost] == ["CHEAP", "HAPPY"]
    assert [t.train_id for t in by_time] == ["HAPPY", "CHEAP"]
    assert by_cost[0].price <= by_cost[1].price
    assert by_time[0].time <= by_time[1].time


def test_invalid_priority_raises(tickets):
    with pytest.raises(ValueError):
        tickets.query_ticket("A", "C", "06-10", "fastest")


def test_buy_reduces_seats(tickets, users):
    add_happy(tickets)
    tickets.release_train("HAPPY")
    before = tickets.query_ticket("A", "C", "06-05")[0].num
    order = tickets.buy_ticket("alice", "HAPPY", "06-05", "A", "B", 2, False, users)
    assert order.status is OrderStatus.SUCCESS
    assert order.ticket.num == 2
    after = tickets.query_ticket("A", "C", "06-05")[0].num
    assert after == before - 2
    assert tickets.query_ticket("B", "C", "06-06")[0].num == before


def test_buy_requires_login(tickets, users):
    add_happy(tickets)
    tickets.release_train("HAPPY")
    with pytest.raises(PermissionError):
        tickets.buy_ticket("bob", "HAPPY", "06-05", "A", "C", 1, False, users)


def test_buy_unreleased_raises(tickets, users):
    add_happy(tickets)
    with pytest.raises(ValueError):
        tickets.buy_ticket("alice", "HAPPY", "06-05", "A", "C", 1, False, users)


def test_buy_too_many_and_queue(tickets, users):
    add_happy(tickets)
    tickets.release_train("HAPPY")
    with pytest.raises(ValueError):
        tickets.buy_ticket("alice", "HAPPY", "06-05", "A", "C", 1001, False, users)
    tickets.buy_ticket("alice", "HAPPY", "06-05", "A", "C", 1, False, users)
    pending = tickets.buy_ticket("alice", "HAPPY", "06-05", "A", "C", 1001, True, users)
    assert pending.status is OrderStatus.PENDING
    orders = tickets.query_order("alice", users)
    assert [o.status for o in orders] == [OrderStatus.PENDING, OrderStatus.SUCCESS]
    assert str(orders[1]).startswith("[success] HAPPY A 06-05 19:19 -> C")


def test_refund_serves_waiting_list(tickets, users):
    add_happy(tickets)
    tickets.release_train("HAPPY")
    tickets.buy_ticket("alice", "HAPPY", "06-05", "A", "C", 1000, False, users)
    tickets.buy_ticket("alice", "HAPPY", "06-05", "A", "B", 5, True, users)
    tickets.refund_ticket("alice", 2, users)
    orders = tickets.query_order("alice", users)
    assert [o.status for o in orders] == [OrderStatus.SUCCESS, OrderStatus.REFUNDED]
    assert tickets.query_ticket("A", "B", "06-05")[0].num == 1000 - 5


def test_refund_errors(tickets, users):
    add_happy(tickets)
    tickets.release_train("HAPPY")
    tickets.buy_ticket("alice", "HAPPY", "06-05", "A", "C", 1, False, users)
    with pytest.raises(IndexError):
        tickets.refund_ticket("alice", 2, users)
    tickets.refund_ticket("alice", 1, users)
    with pytest.raises(ValueError):
        tickets.refund_ticket("alice", 1, users)
    assert tickets.query_ticket("A", "C", "06-05")[0].num == 1000


def test_query_transfer_same_day(tickets):
    tickets.add_train("T1", 2, 100, "A|B", "50", "08:00", "60", "_", "06-01|06-30", "G")
    tickets.add_train("T2", 2, 100, "B|C", "70", "10:00", "60", "_", "06-01|06-30", "G")
    tickets.release_train("T1")
    tickets.release_train("T2")
    transfer = tickets.query_transfer("A", "C", "06-10")
    assert transfer.ticket1.train_id == "T1"
    assert transfer.ticket2.train_id == "T2"
    assert transfer.ticket2.leaving_date == Date(6, 10)
    assert transfer.time == 180
    assert str(transfer).count("\n") == 1


def test_query_transfer_next_day(tickets):
    tickets.add_train("T1", 2, 100, "A|B", "50", "08:00", "60", "_", "06-01|06-30", "G")
    tickets.add_train("T2", 2, 100, "B|C", "70", "08:30", "60", "_", "06-01|06-30", "G")
    tickets.release_train("T1")
    tickets.release_train("T2")
    transfer = tickets.query_transfer("A", "C", "06-10")
    assert transfer.ticket2.leaving_date == Date(6, 11)
    assert transfer.time > transfer.ticket1.time + transfer.ticket2.time


def test_query_transfer_none(tickets):
    add_happy(tickets)
    tickets.release_train("HAPPY")
    assert tickets.query_transfer("A", "C", "06-10") is None


def test_flush_and_reopen(tmp_path):
    first = TicketSystem(tmp_path)
    add_happy(first)
    first.release_train("HAPPY")
    first.flush()
    second = TicketSystem(tmp_path)
    found = second.query_ticket("A", "C", "06-05")
    assert [t.train_id for t in found] == ["HAPPY"]


def test_clean_removes_trains(tickets):
    add_happy(tickets)
    tickets.release_train("HAPPY")
    tickets.clean()
    assert tickets.query_ticket("A", "C", "06-05") == []
    with pytest.raises(KeyError):
        tickets.query_train("HAPPY", "06-05")