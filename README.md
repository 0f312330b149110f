# trainticket

A train ticket booking system driven by line-oriented commands. Users, trains,
seat counts and orders are kept in record files in a data directory, indexed
by file-backed B+ trees, so the state survives from one run to the next.

## Installation

```
pip install .
```

## Usage

Start the command interpreter and write commands to its standard input, one
per line:

```
trainticket
trainticket --directory data
```

`-d` / `--directory` names the directory that holds the data files. The
default is the current directory.

Every line starts with a stamp token, such as `[1]`. The interpreter echoes
the stamp, then a space, then the answer to the command. Blank lines are
skipped. A line whose command it does not know gets only the stamp back.

Example session:

```
[1] add_user -c cur -u admin -p password -n Admin -m admin@example.com -g 10
[2] login -u admin -p password
[3] add_train -i G1 -n 3 -m 100 -s A|B|C -p 10|20 -x 08:00 -t 60|90 -o 5 -d 06-01|08-17 -y G
[4] release_train -i G1
[5] query_ticket -s A -t C -d 06-02 -p time
[6] buy_ticket -u admin -i G1 -d 06-02 -f A -t C -n 2 -q false
[7] query_order -u admin
[8] exit
```

Commands and their flags:

| Command          | Flags                                                   |
|------------------|---------------------------------------------------------|
| `add_user`       | `-c` current user, `-u`, `-p`, `-n`, `-m`, `-g` privilege |
| `login`          | `-u`, `-p`                                              |
| `logout`         | `-u`                                                    |
| `query_profile`  | `-c`, `-u`                                              |
| `modify_profile` | `-c`, `-u`, and any of `-p`, `-n`, `-m`, `-g`           |
| `add_train`      | `-i`, `-n`, `-m`, `-s`, `-p`, `-x`, `-t`, `-o`, `-d`, `-y` |
| `delete_train`   | `-i`                                                    |
| `release_train`  | `-i`                                                    |
| `query_train`    | `-i`, `-d`                                              |
| `query_ticket`   | `-s`, `-t`, `-d`, `-p` `time` or `cost` (default `time`) |
| `query_transfer` | `-s`, `-t`, `-d`, `-p` `time` or `cost` (default `time`) |
| `buy_ticket`     | `-u`, `-i`, `-d`, `-f`, `-t`, `-n`, `-q` `true`/`false` |
| `query_order`    | `-u`                                                    |
| `refund_ticket`  | `-u`, `-n` (default `1`)                                |
| `clean`          | none                                                    |
| `exit`           | none                                                    |

A command that fails answers `-1`. The exceptions are `query_ticket` and
`query_transfer`, which answer `0`.

A successful `buy_ticket` answers the total price. If there are not enough
free seats and `-q true` was given, it answers `queue` and the order waits.
A refund hands freed seats to waiting orders that now fit.

The first account can be created without logging in, and it always gets
privilege 10. Dates are written `MM-DD` and times `HH:MM`.

`clean` deletes every data file and starts afresh. `exit` saves the state,
answers `bye` and stops. The state is also saved when the input ends.

## Library use

The same operations can be called from Python. On failure they raise:

- `KeyError` for an unknown user or train
- `PermissionError` for a missing login or too little privilege
- `ValueError` for a conflict or a date out of range
- `IndexError` for an order number that does not exist

```python
from trainticket.users import UserSystem
from trainticket.ticket_system import TicketSystem

users = UserSystem("data")
tickets = TicketSystem("data")

password = "password"
users.add_user("", "admin", password, "Admin", "admin@example.com", 10)
users.login("admin", password)

tickets.add_train("G1", 3, 100, "A|B|C", "10|20", "08:00", "60|90", "5",
                  "06-01|08-17", "G")
tickets.release_train("G1")

for ticket in tickets.query_ticket("A", "C", "06-02", "time"):
    print(ticket)

order = tickets.buy_ticket("admin", "G1", "06-02", "A", "C", 2, False, users)
print(order)

users.flush()
tickets.flush()
```

The modules:

- `trainticket.cli` has `process_line(line, users, tickets)`, which runs one
  command line and returns its answer, and `main`, the command interpreter.
- `trainticket.users` has `User` and `UserSystem`: accounts, sessions and
  privileges.
- `trainticket.ticket_system` has `TicketSystem`: trains, seats, queries,
  purchases, refunds and the waiting list.
- `trainticket.models` has the records the system keeps: `Station`, `Train`,
  `Ticket`, `TransferTicket`, `Order` with `OrderStatus`, `StationInfo` and
  `WaitingInfo`.
- `trainticket.bptree` has `BPlusTree` and `string_hash`. `BPlusTree` is an
  ordered multimap of comparable keys to values, with `insert`, `delete`,
  `find`, `flush` and `dump`. `string_hash` is a signed 64-bit polynomial hash.
- `trainticket.storage` has `RecordFile`, which stores records by index
  together with a small header of integers.
- `trainticket.timeutil` has `Date`, a month and day in one fixed non-leap
  year, and `Time`, a clock time plus a count of days.
- `trainticket.tokens` has `TokenScanner` and `separate`, which split command
  lines.

## Limitations

`RecordFile` keeps its contents in memory and writes them to disk only on
`close`, or on `flush` of the systems that use it. If the process stops before
`exit` or before the end of its input, the changes made in that run are lost.
There is no locking, so only one process at a time should use a data
directory. Sessions are not saved: every user is logged out when the program
starts.

## Running the tests

```
pip install .[test]
pytest
```