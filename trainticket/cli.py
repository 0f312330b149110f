"""Command-line front end reading one command per line from standard input."""

from __future__ import annotations

import argparse
import sys
from collections.abc import Callable
from functools import wraps

from .ticket_system import TicketSystem
from .tokens import TokenScanner
from .users import UserSystem

_FAILURES = (KeyError, PermissionError, ValueError, IndexError)

_Flags = dict[str, str]
_Handler = Callable[[_Flags, UserSystem, TicketSystem], str]


def _read_flags(scanner: TokenScanner) -> _Flags:
    flags: _Flags = {}
    while scanner.has_more_tokens():
        token = scanner.next_token()
        if token.startswith("-"):
            flags[token] = scanner.next_token()
    return flags


def _on_failure(text: str) -> Callable[[_Handler], _Handler]:
    """Make a handler answer `text` when the operation it runs fails."""

    def decorate(handler: _Handler) -> _Handler:
        @wraps(handler)
        def run(flags: _Flags, users: UserSystem, tickets: TicketSystem) -> str:
            try:
                return handler(flags, users, tickets)
            except _FAILURES:
                return text

        return run

    return decorate


@_on_failure("-1\n")
def _add_user(flags: _Flags, users: UserSystem, tickets: TicketSystem) -> str:
    users.add_user(
        flags.get("-c", ""),
        flags.get("-u", ""),
        flags.get("-p", ""),
        flags.get("-n", ""),
        flags.get("-m", ""),
        int(flags.get("-g", "0")),
    )
    return "0\n"


@_on_failure("-1\n")
def _login(flags: _Flags, users: UserSystem, tickets: TicketSystem) -> str:
    users.login(flags.get("-u", ""), flags.get("-p", ""))
    return "0\n"


@_on_failure("-1\n")
def _logout(flags: _Flags, users: UserSystem, tickets: TicketSystem) -> str:
    users.logout(flags.get("-u", ""))
    return "0\n"


@_on_failure("-1\n")
def _query_profile(flags: _Flags, users: UserSystem, tickets: TicketSystem) -> str:
    return f"{users.query_profile(flags.get('-c', ''), flags.get('-u', ''))}\n"


@_on_failure("-1\n")
def _modify_profile(flags: _Flags, users: UserSystem, tickets: TicketSystem) -> str:
    privilege = int(flags["-g"]) if "-g" in flags else None
    user = users.modify_profile(
        flags.get("-c", ""),
        flags.get("-u", ""),
        flags.get("-p") or None,
        flags.get("-n") or None,
        flags.get("-m") or None,
        privilege,
    )
    return f"{user}\n"


@_on_failure("-1\n")
def _add_train(flags: _Flags, users: UserSystem, tickets: TicketSystem) -> str:
    tickets.add_train(
        flags.get("-i", ""),
        int(flags["-n"]),
        int(flags["-m"]),
        flags.get("-s", ""),
        flags.get("-p", ""),
        flags.get("-x", ""),
        flags.get("-t", ""),
        flags.get("-o", ""),
        flags.get("-d", ""),
        flags.get("-y", ""),
    )
    return "0\n"


@_on_failure("-1\n")
def _delete_train(flags: _Flags, users: UserSystem, tickets: TicketSystem) -> str:
    tickets.delete_train(flags.get("-i", ""))
    return "0\n"


@_on_failure("-1\n")
def _release_train(flags: _Flags, users: UserSystem, tickets: TicketSystem) -> str:
    tickets.release_train(flags.get("-i", ""))
    return "0\n"


@_on_failure("-1\n")
def _query_train(flags: _Flags, users: UserSystem, tickets: TicketSystem) -> str:
    return tickets.query_train(flags.get("-i", ""), flags.get("-d", "")) + "\n"


@_on_failure("0\n")
def _query_ticket(flags: _Flags, users: UserSystem, tickets: TicketSystem) -> str:
    found = tickets.query_ticket(
        flags.get("-s", ""), flags.get("-t", ""), flags.get("-d", ""), flags.get("-p", "time")
    )
    return "".join([f"{len(found)}\n", *(f"{ticket}\n" for ticket in found)])


@_on_failure("0\n")
def _query_transfer(flags: _Flags, users: UserSystem, tickets: TicketSystem) -> str:
    best = tickets.query_transfer(
        flags.get("-s", ""), flags.get("-t", ""), flags.get("-d", ""), flags.get("-p", "time")
    )
    return "0\n" if best is None else f"{best}\n"


@_on_failure("-1\n")
def _buy_ticket(flags: _Flags, users: UserSystem, tickets: TicketSystem) -> str:
    order = tickets.buy_ticket(
        flags.get("-u", ""),
        flags.get("-i", ""),
        flags.get("-d", ""),
        flags.get("-f", ""),
        flags.get("-t", ""),
        int(flags.get("-n", "")),
        flags.get("-q", "false") == "true",
        users,
    )
    if order.status.name == "PENDING":
        return "queue\n"
    return f"{order.ticket.price * order.ticket.num}\n"


@_on_failure("-1\n")
def _query_order(flags: _Flags, users: UserSystem, tickets: TicketSystem) -> str:
    orders = tickets.query_order(flags.get("-u", ""), users)
    return "".join([f"{len(orders)}\n", *(f"{order}\n" for order in orders)])


@_on_failure("-1\n")
def _refund_ticket(flags: _Flags, users: UserSystem, tickets: TicketSystem) -> str:
    tickets.refund_ticket(flags.get("-u", ""), int(flags.get("-n", "1")), users)
    return "0\n"


def _clean(flags: _Flags, users: UserSystem, tickets: TicketSystem) -> str:
    users.clean()
    tickets.clean()
    return "0\n"


def _exit(flags: _Flags, users: UserSystem, tickets: TicketSystem) -> str:
    """Save both systems to disk and say goodbye."""
    users.flush()
    tickets.flush()
    return "bye\n"


_HANDLERS: dict[str, _Handler] = {
    "add_user": _add_user,
    "login": _login,
    "logout": _logout,
    "query_profile": _query_profile,
    "modify_profile": _modify_profile,
    "add_train": _add_train,
    "delete_train": _delete_train,
    "release_train": _release_train,
    "query_train": _query_train,
    "query_ticket": _query_ticket,
    "query_transfer": _query_transfer,
    "buy_ticket": _buy_ticket,
    "query_order": _query_order,
    "refund_ticket": _refund_ticket,
    "clean": _clean,
    "exit": _exit,
}


def _command_of(line: str) -> str:
    scanner = TokenScanner(line)
    scanner.next_token()
    return scanner.next_token()


def process_line(line: str, users: UserSystem, tickets: TicketSystem) -> str:
    """Run one command line and return the text it answers, stamp first."""
    scanner = TokenScanner(line)
    prefix = f"{scanner.next_token()} "
    handler = _HANDLERS.get(scanner.next_token())
    if handler is None:
        return prefix
    return prefix + handler(_read_flags(scanner), users, tickets)


def main(argv: list[str] | None = None) -> int:
    """Read commands from standard input until it ends or `exit` is given."""
    parser = argparse.ArgumentParser(prog="trainticket")
    parser.add_argument(
        "-d", "--directory", default=".", help="where the data files are kept"
    )
    args = parser.parse_args(argv)
    users = UserSystem(args.directory)
    tickets = TicketSystem(args.directory)
    try:
        for raw in sys.stdin:
            line = raw.rstrip("\r\n")
            if not line:
                continue
            sys.stdout.write(process_line(line, users, tickets))
            if _command_of(line) == "exit":
                break
    finally:
        users.flush()
        tickets.flush()
        sys.stdout.flush()
    return 0