"""Trains, seats, ticket queries, purchases, refunds and the waiting list."""

from __future__ import annotations

import os
from pathlib import Path

from .bptree import BPlusTree, string_hash
from .models import (
    Order,
    OrderStatus,
    StationInfo,
    Ticket,
    Train,
    TransferTicket,
    WaitingInfo,
)
from .storage import RecordFile
from .timeutil import Date
from .users import UserSystem

_TREES = {
    "trains": ("train_bpt_index", "train_bpt_data"),
    "stations": ("station_bpt_index", "station_bpt_data"),
    "waiting": ("waiting_bpt_index", "waiting_bpt_data"),
    "orders": ("order_bpt_index", "order_bpt_data"),
}
_TRAIN_RECORDS = "train_river"
_SEAT_RECORDS = "seat_river"
_ORDER_RECORDS = "order_river"

_MINUTES_PER_DAY = 24 * 60
_PRIORITIES = ("time", "cost")


def _waiting_key(train_id: str, start_date: Date) -> WaitingInfo:
    return WaitingInfo(string_hash(train_id), start_date.month * 31 + start_date.day)


def _check_priority(priority: str) -> None:
    if priority not in _PRIORITIES:
        raise ValueError(f"unknown priority {priority!r}; use 'time' or 'cost'")


class TicketSystem:
    """Stores trains and orders on disk and answers ticket queries.

    Failed operations raise: ``KeyError`` for unknown trains, ``PermissionError``
    for users who are not logged in, ``ValueError`` for conflicts and dates out
    of range, ``IndexError`` for order numbers that do not exist.
    """

    def __init__(self, directory: str | os.PathLike[str] = ".") -> None:
        self._dir = Path(directory)
        self._open()

    def _open(self) -> None:
        d = self._dir
        self._train_tree = BPlusTree(d / _TREES["trains"][0], d / _TREES["trains"][1])
        self._station_tree = BPlusTree(d / _TREES["stations"][0], d / _TREES["stations"][1])
        self._waiting_tree = BPlusTree(d / _TREES["waiting"][0], d / _TREES["waiting"][1])
        self._order_tree = BPlusTree(d / _TREES["orders"][0], d / _TREES["orders"][1])
        self._trains = RecordFile(d / _TRAIN_RECORDS, 1)
        self._seats = RecordFile(d / _SEAT_RECORDS, 1)
        self._orders = RecordFile(d / _ORDER_RECORDS, 1)

    # -- helpers ----------------------------------------------------------

    def _locate(self, train_id: str) -> tuple[int, Train]:
        found = self._train_tree.find(string_hash(train_id))
        if not found:
            raise KeyError(f"no train {train_id!r}")
        return found[0], self._trains.read(found[0])

    @staticmethod
    def _on_sale(train: Train, start_date: Date) -> bool:
        return train.sale_start <= start_date <= train.sale_end

    def _seat_slot(self, train: Train, start_date: Date) -> int:
        if not self._on_sale(train, start_date):
            raise ValueError(f"train {train.train_id!r} does not run from {start_date}")
        return train.seat_no + (start_date - train.sale_start)

    def _make_ticket(
        self, train: Train, start_date: Date, f: int, t: int, num: int
    ) -> Ticket:
        origin, dest = train.stations[f], train.stations[t]
        return Ticket(
            train_id=train.train_id,
            from_station=origin.name,
            to_station=dest.name,
            leaving_date=start_date,
            leaving_time=origin.leaving,
            arriving_time=dest.arriving,
            price=dest.price - origin.price,
            num=num,
            from_index=f,
            to_index=t,
        )

    def _available_ticket(
        self, train: Train, start_date: Date, f: int, t: int
    ) -> Ticket:
        seats = self._seats.read(self._seat_slot(train, start_date))
        return self._make_ticket(train, start_date, f, t, min(seats[f:t]))

    def _store_order(self, username: str, order: Order) -> int:
        index = self._orders.get_info(1)
        self._orders.write(index, order)
        self._orders.set_info(1, index + 1)
        self._order_tree.insert(string_hash(username), index)
        return index

    @staticmethod
    def _require_user(username: str, users: UserSystem) -> None:
        if not users.is_logged_in(username):
            raise PermissionError(f"{username!r} is not logged in")
        if not users.has_user(username):
            raise KeyError(f"no user named {username!r}")

    # -- trains -----------------------------------------------------------

    def add_train(
        self,
        train_id: str,
        station_num: int,
        seat_num: int,
        stations: str,
        prices: str,
        start_time: str,
        travel_times: str,
        stopover_times: str,
        sale_date: str,
        train_type: str,
    ) -> Train:
        """Register a new, unreleased train."""
        if self._train_tree.find(string_hash(train_id)):
            raise ValueError(f"train {train_id!r} already exists")
        seat_no = self._seats.get_info(1)
        train = Train.from_fields(
            train_id, station_num, seat_num, stations, prices, start_time,
            travel_times, stopover_times, sale_date, train_type, seat_no,
        )
        days = train.sale_end - train.sale_start + 1
        if days <= 0:
            raise ValueError("the sale period ends before it starts")
        for offset in range(days):
            self._seats.write(seat_no + offset, [train.seat_num] * (train.station_num - 1))
        self._seats.set_info(1, seat_no + days)
        index = self._trains.get_info(1)
        self._trains.write(index, train)
        self._trains.set_info(1, index + 1)
        self._train_tree.insert(string_hash(train_id), index)
        return train

    def delete_train(self, train_id: str) -> None:
        """Remove a train that has not been released."""
        index, train = self._locate(train_id)
        if train.is_released:
            raise ValueError(f"train {train_id!r} is released")
        self._train_tree.delete(string_hash(train_id), index)

    def release_train(self, train_id: str) -> None:
        """Put a train on sale."""
        index, train = self._locate(train_id)
        if train.is_released:
            raise ValueError(f"train {train_id!r} is already released")
        train.is_released = True
        self._trains.write(index, train)
        for position, station in enumerate(train.stations):
            self._station_tree.insert(string_hash(station.name), StationInfo(index, position))

    def query_train(self, train_id: str, date: str) -> str:
        """Describe the run of a train starting on `date`."""
        _, train = self._locate(train_id)
        start_date = Date.parse(date)
        seats = self._seats.read(self._seat_slot(train, start_date))
        last = len(train.stations) - 1
        lines = [f"{train.train_id} {train.train_type}"]
        for i, station in enumerate(train.stations):
            arriving = (
                "xx-xx xx:xx" if i == 0
                else f"{start_date + station.arriving.day} {station.arriving}"
            )
            leaving = (
                "xx-xx xx:xx" if i == last
                else f"{start_date + station.leaving.day} {station.leaving}"
            )
            free = seats[i] if i < last else train.seat_num
            lines.append(f"{station.name} {arriving} -> {leaving} {station.price} {free}")
        return "\n".join(lines)

    # -- queries ----------------------------------------------------------

    def query_ticket(
        self, start: str, end: str, date: str, priority: str = "time"
    ) -> list[Ticket]:
        """Direct tickets leaving `start` on `date`, best first."""
        _check_priority(priority)
        day = Date.parse(date)
        to_index = {
            info.train_no: info.index
            for info in self._station_tree.find(string_hash(end))
        }
        tickets: list[Ticket] = []
        for info in self._station_tree.find(string_hash(start)):
            t = to_index.get(info.train_no)
            if t is None or t <= info.index:
                continue
            train: Train = self._trains.read(info.train_no)
            start_date = day - train.stations[info.index].leaving.day
            if not self._on_sale(train, start_date):
                continue
            tickets.append(self._available_ticket(train, start_date, info.index, t))
        if priority == "time":
            tickets.sort(key=lambda tk: (tk.time, tk.train_id))
        else:
            tickets.sort(key=lambda tk: (tk.price, tk.train_id))
        return tickets

    def query_transfer(
        self, start: str, end: str, date: str, priority: str = "time"
    ) -> TransferTicket | None:
        """The best journey with exactly one change of train, or None."""
        _check_priority(priority)
        day = Date.parse(date)
        to_infos = self._station_tree.find(string_hash(end))
        best: TransferTicket | None = None
        best_key = None
        for from_info in self._station_tree.find(string_hash(start)):
            train1: Train = self._trains.read(from_info.train_no)
            f = from_info.index
            start1 = day - train1.stations[f].leaving.day
            if not self._on_sale(train1, start1):
                continue
            for to_info in to_infos:
                if to_info.train_no == from_info.train_no:
                    continue
                train2: Train = self._trains.read(to_info.train_no)
                t = to_info.index
                boarding = {st.name: l for l, st in enumerate(train2.stations[:t])}
                for j in range(f + 1, len(train1.stations)):
                    l = boarding.get(train1.stations[j].name)
                    if l is None:
                        continue
                    arrive = train1.stations[j].arriving
                    leave = train2.stations[l].leaving
                    start2 = start1 + arrive.day - leave.day
                    if leave < arrive:
                        start2 = start2 + 1
                    if start2 < train2.sale_start:
                        start2 = train2.sale_start
                    if start2 > train2.sale_end:
                        continue
                    transfer = TransferTicket(
                        self._available_ticket(train1, start1, f, j),
                        self._available_ticket(train2, start2, l, t),
                    )
                    transfer.time += (start2 - start1) * _MINUTES_PER_DAY
                    key = transfer.time_key() if priority == "time" else transfer.cost_key()
                    if best_key is None or key < best_key:
                        best, best_key = transfer, key
        return best

    # -- orders -----------------------------------------------------------

    def buy_ticket(
        self,
        username: str,
        train_id: str,
        date: str,
        start: str,
        end: str,
        count: int,
        queue: bool = False,
        users: UserSystem | None = None,
    ) -> Order:
        """Buy `count` seats; with `queue`, wait for seats that are not free."""
        if users is None:
            raise PermissionError("no user system to check the login against")
        self._require_user(username, users)
        day = Date.parse(date)
        _, train = self._locate(train_id)
        if not train.is_released:
            raise ValueError(f"train {train_id!r} is not released")
        if count < 1:
            raise ValueError("the number of tickets must be positive")
        names = [station.name for station in train.stations]
        try:
            f = names.index(start)
            t = names.index(end, f + 1)
        except ValueError:
            raise ValueError(f"train {train_id!r} does not run from {start!r} to {end!r}") from None
        start_date = day - train.stations[f].leaving.day
        slot = self._seat_slot(train, start_date)
        seats: list[int] = self._seats.read(slot)
        ticket = self._make_ticket(train, start_date, f, t, count)
        if min(seats[f:t]) >= count:
            seats[f:t] = [free - count for free in seats[f:t]]
            self._seats.write(slot, seats)
            order = Order(ticket, OrderStatus.SUCCESS)
            self._store_order(username, order)
            return order
        if not queue:
            raise ValueError("not enough seats")
        order = Order(ticket, OrderStatus.PENDING)
        index = self._store_order(username, order)
        self._waiting_tree.insert(_waiting_key(train_id, start_date), index)
        return order

    def query_order(self, username: str, users: UserSystem) -> list[Order]:
        """The user's orders, most recent first."""
        self._require_user(username, users)
        indexes = self._order_tree.find(string_hash(username))
        return [self._orders.read(index) for index in reversed(indexes)]

    def refund_ticket(self, username: str, n: int = 1, users: UserSystem | None = None) -> Order:
        """Refund the user's n-th most recent order and serve the waiting list."""
        if users is None:
            raise PermissionError("no user system to check the login against")
        self._require_user(username, users)
        indexes = self._order_tree.find(string_hash(username))
        if not 1 <= n <= len(indexes):
            raise IndexError(f"{username!r} has no order number {n}")
        order_index = indexes[-n]
        order: Order = self._orders.read(order_index)
        if order.status is OrderStatus.REFUNDED:
            raise ValueError("the order is already refunded")
        ticket = order.ticket
        key = _waiting_key(ticket.train_id, ticket.leaving_date)
        previous = order.status
        order.status = OrderStatus.REFUNDED
        self._orders.write(order_index, order)
        if previous is OrderStatus.PENDING:
            self._waiting_tree.delete(key, order_index)
            return order
        _, train = self._locate(ticket.train_id)
        slot = self._seat_slot(train, ticket.leaving_date)
        seats: list[int] = self._seats.read(slot)
        f, t = ticket.from_index, ticket.to_index
        seats[f:t] = [free + ticket.num for free in seats[f:t]]
        for waiting_index in self._waiting_tree.find(key):
            waiting: Order = self._orders.read(waiting_index)
            wf, wt, num = waiting.ticket.from_index, waiting.ticket.to_index, waiting.ticket.num
            if min(seats[wf:wt]) < num:
                continue
            seats[wf:wt] = [free - num for free in seats[wf:wt]]
            waiting.status = OrderStatus.SUCCESS
            self._orders.write(waiting_index, waiting)
            self._waiting_tree.delete(key, waiting_index)
        self._seats.write(slot, seats)
        return order

    # -- maintenance ------------------------------------------------------

    def clean(self) -> None:
        """Delete every train and order."""
        names = [name for pair in _TREES.values() for name in pair]
        names += [_TRAIN_RECORDS, _SEAT_RECORDS, _ORDER_RECORDS]
        for name in names:
            (self._dir / name).unlink(missing_ok=True)
        self._open()

    def flush(self) -> None:
        """Write everything to disk."""
        for tree in (self._train_tree, self._station_tree, self._waiting_tree, self._order_tree):
            tree.flush()
        for records in (self._trains, self._seats, self._orders):
            records.close()