"""
Active term bookkeeping.

A school has at most one Active term. Activation is expressed as a pure
transition over the school's terms; ``Term.activate`` persists its result.
"""
from dataclasses import dataclass, replace

from results.exceptions import MissingDataError

ACTIVE = 'Active'
INACTIVE = 'Inactive'

STATUS_CHOICES = [
    (ACTIVE, 'Active'),
    (INACTIVE, 'Inactive'),
]


@dataclass(frozen=True)
class TermRecord:
    id: object
    term_name: str
    year: int
    status: str = INACTIVE
    next_term_starts: object = None
    next_term_ends: object = None

    @property
    def is_active(self):
        return self.status == ACTIVE

    @classmethod
    def from_model(cls, term):
        return cls(
            id=term.pk,
            term_name=term.term_name,
            year=term.year,
            status=term.status,
            next_term_starts=term.next_term_starts,
            next_term_ends=term.next_term_ends,
        )


def set_active_term(terms, target_id):
    """
    Return a new tuple of terms where only ``target_id`` is Active.

    Raises:
        MissingDataError: no term with ``target_id`` in ``terms``
    """
    terms = tuple(terms)
    if not any(term.id == target_id for term in terms):
        raise MissingDataError(f"Term {target_id} not found")

    return tuple(
        replace(term, status=ACTIVE if term.id == target_id else INACTIVE)
        for term in terms
    )


def active_term(terms):
    for term in terms:
        if term.is_active:
            return term
    return None


def changed_terms(before, after):
    """Terms whose status differs between two snapshots of the same collection."""
    previous = {term.id: term.status for term in before}
    return [term for term in after if previous.get(term.id) != term.status]
