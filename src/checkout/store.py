"""Store access helpers shared by order placement and settlement.

``with_transaction`` is the single commit boundary: every multi-aggregate
write (orders, stock, coupon usage, cart) goes through it so that the same
all-or-nothing discipline holds whichever Protean provider backs the domain.
"""

from protean.core.unit_of_work import UnitOfWork
from protean.exceptions import ExpectedVersionError, ObjectNotFoundError, ValidationError
from protean.utils.globals import current_domain, current_uow

from checkout.errors import ConcurrentUpdate, RecordIntegrityError


def with_transaction(fn, *args, **kwargs):
    """Run ``fn`` inside a unit of work and return its result.

    Joins the active unit of work when there is one (command handlers already
    run inside one), so nested calls never commit half of a settlement.
    """
    if current_uow and current_uow.in_progress:
        return fn(*args, **kwargs)

    try:
        with UnitOfWork():
            return fn(*args, **kwargs)
    except ExpectedVersionError as exc:
        raise ConcurrentUpdate("A concurrent checkout changed the same records; retry the request") from exc


def fetch(aggregate_cls, identifier):
    """Load one aggregate, or None when it does not exist.

    Records that no longer satisfy the aggregate's schema are reported as
    integrity errors instead of being handed to business logic half-decoded.
    """
    repo = current_domain.repository_for(aggregate_cls)
    try:
        return repo.get(str(identifier))
    except ObjectNotFoundError:
        return None
    except ValidationError as exc:
        raise RecordIntegrityError(
            f"Stored {aggregate_cls.__name__} {identifier} failed validation",
            errors=exc.messages,
        ) from exc


def fetch_many(aggregate_cls, identifiers) -> dict:
    """Load several aggregates by id. Missing ids are absent from the result."""
    found = {}
    for identifier in dict.fromkeys(str(i) for i in identifiers):
        record = fetch(aggregate_cls, identifier)
        if record is not None:
            found[identifier] = record
    return found
