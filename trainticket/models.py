"""Trains, tickets, orders and the keys used to index them."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

from .timeutil import Date, Time
from .tokens import separate


@dataclass
class Station:
    """A stop; times count days from the train's start, price is cumulative."""

    name: str
    arriving: Time = Time()
    leaving: Time = Time()
    price: int = 0


@dataclass
class Train:
    train_id: str
    station_num: int
    seat_num: int
    stations: list[Station]
    sale_start: Date
    sale_end: Date
    train_type: str
    is_released: bool = False
    seat_no: int = 0

    @classmethod
    def from_fields(
        cls,
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
        seat_no: int,
    ) -> Train:
        """Build a train from the '|'-separated fields of a command."""
        count = int(station_num)
        if count < 2:
            raise ValueError("a train needs at least two stations")
        names = separate(stations, "|")
        fares = [int(p) for p in separate(prices, "|")[:count - 1]]
        travels = [int(t) for t in separate(travel_times, "|")[:count - 1]]
        stops: list[int | None] = [
            int(s) for s in separate(stopover_times, "|")[:count - 2]
        ]
        stops.append(None)
        hour, minute = separate(start_time, ":")[:2]
        built = [Station(names[0], leaving=Time(hour=int(hour), minute=int(minute)))]
        for name, travel, fare, stop in zip(
            names[1:count], travels, fares, stops, strict=True
        ):
            prev = built[-1]
            arriving = prev.leaving + travel
            leaving = arriving + stop if stop is not None else Time()
            built.append(Station(name, arriving, leaving, prev.price + fare))
        sale = separate(sale_date, "|")
        return cls(
            train_id=train_id,
            station_num=count,
            seat_num=int(seat_num),
            stations=built,
            sale_start=Date.parse(sale[0]),
            sale_end=Date.parse(sale[1]),
            train_type=train_type[:1],
            is_released=False,
            seat_no=seat_no,
        )


@dataclass
class Ticket:
    """A ride between two stations; `leaving_date` is the train's start date."""

    train_id: str
    from_station: str
    to_station: str
    leaving_date: Date
    leaving_time: Time
    arriving_time: Time
    price: int
    num: int
    from_index: int
    to_index: int
    time: int = field(init=False)

    def __post_init__(self) -> None:
        self.time = self.arriving_time - self.leaving_time

    def __str__(self) -> str:
        return (
            f"{self.train_id} {self.from_station} "
            f"{self.leaving_date + self.leaving_time.day} {self.leaving_time} -> "
            f"{self.to_station} {self.leaving_date + self.arriving_time.day} "
            f"{self.arriving_time} {self.price} {self.num}"
        )


@dataclass
class TransferTicket:
    ticket1: Ticket
    ticket2: Ticket
    time: int = field(init=False)

    def __post_init__(self) -> None:
        self.time = self.ticket2.arriving_time - self.ticket1.leaving_time

    def _price(self) -> int:
        return self.ticket1.price + self.ticket2.price

    def time_key(self) -> tuple[int, int, str, str]:
        """Sort key: time, then price, then train ids."""
        return (self.time, self._price(), self.ticket1.train_id, self.ticket2.train_id)

    def cost_key(self) -> tuple[int, int, str, str]:
        """Sort key: price, then time, then train ids."""
        return (self._price(), self.time, self.ticket1.train_id, self.ticket2.train_id)

    def __str__(self) -> str:
        return f"{self.ticket1}\n{self.ticket2}"


class OrderStatus(Enum):
    PENDING = 0
    SUCCESS = 1
    REFUNDED = -1


@dataclass
class Order:
    ticket: Ticket
    status: OrderStatus

    def __str__(self) -> str:
        return f"[{self.status.name.lower()}] {self.ticket}"


@dataclass(frozen=True, eq=False)
class StationInfo:
    """A train passing a station; compared by train only."""

    train_no: int
    index: int

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, StationInfo):
            return NotImplemented
        return self.train_no == other.train_no

    def __lt__(self, other: object) -> bool:
        if not isinstance(other, StationInfo):
            return NotImplemented
        return self.train_no < other.train_no

    def __hash__(self) -> int:
        return hash(self.train_no)


@dataclass(frozen=True, order=True)
class WaitingInfo:
    """Key of the waiting list: a train and one of its start dates."""

    train_hash: int
    date: int