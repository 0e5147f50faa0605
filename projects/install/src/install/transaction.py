"""Transaction scopes that join a transaction already in progress."""

from collections.abc import Callable, Iterator
from contextlib import contextmanager
from logging import getLogger

from sqlalchemy import Connection

logger = getLogger(__name__)


@contextmanager
def atomic(connection: Connection) -> Iterator[bool]:
    """Run the enclosed block in one transaction.

    When the connection is already in a transaction the block simply joins it:
    nothing is committed or rolled back here and errors propagate to the owner.
    Otherwise a transaction is started and is committed when the block finishes,
    or rolled back when it raises.

    Yields:
        Whether this scope owns the transaction.

    """
    if connection.in_transaction():
        logger.debug("Joining the transaction already in progress.")
        yield False
        return

    with connection.begin():
        yield True


def run_atomic[T](connection: Connection, work: Callable[[Connection], T]) -> T:
    """Call ``work`` inside an atomic scope and return its result."""
    with atomic(connection):
        return work(connection)


@contextmanager
def savepoint(connection: Connection) -> Iterator[Connection]:
    """Scope a single write so that its failure only undoes itself.

    Uses a savepoint inside a transaction already in progress and a short
    transaction of its own otherwise.
    """
    if connection.in_transaction():
        with connection.begin_nested():
            yield connection
    else:
        with connection.begin():
            yield connection
