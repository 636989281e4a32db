# Overview: SQLAlchemy-backed storage seam for the pricing calculator and the
# sequence allocator. Both take the repository as an explicit argument.

from __future__ import annotations

from sqlalchemy.exc import IntegrityError

from .extensions import db
from .models import (
    GlassRate,
    ProcessDefinition,
    NumberSequence,
    DOCUMENT_MODELS,
)
from .services.concurrency import begin_write_transaction, lock_for_update, run_with_retry


class SqlAlchemyRepository:
    """
    Unit of work over a SQLAlchemy session.

    with_transaction(fn) runs fn all-or-nothing: commit on success, rollback
    and re-raise on failure. Nested calls join the outer transaction so a
    document insert and its number allocation commit together.

    Instances hold per-call transaction state; create one per request/thread.
    """

    def __init__(self, session=None, *, attempts: int = 3):
        self._session = session
        self.attempts = attempts
        self._depth = 0

    @property
    def session(self):
        return self._session or db.session

    # -------------------------------------------------------------------------
    # Unit of work
    # -------------------------------------------------------------------------

    def with_transaction(self, fn):
        if self._depth:
            return fn()

        def _op():
            self._depth += 1
            try:
                begin_write_transaction(self.session)
                result = fn()
                self.session.commit()
                return result
            except Exception:
                self.session.rollback()
                raise
            finally:
                self._depth -= 1

        return run_with_retry(_op, attempts=self.attempts, session=self.session)

    @property
    def in_transaction(self) -> bool:
        return self._depth > 0

    def add(self, obj):
        self.session.add(obj)
        self.session.flush()
        return obj

    # -------------------------------------------------------------------------
    # Number sequences
    # -------------------------------------------------------------------------

    def find_number_sequence(self, org_id: int, document_type: str, *, for_update: bool = True):
        query = self.session.query(NumberSequence).filter_by(org_id=org_id, document_type=document_type)
        if for_update:
            query = lock_for_update(query)
        return query.first()

    def create_number_sequence(self, org_id: int, document_type: str, pattern: str) -> NumberSequence:
        """
        Insert a fresh sequence inside a savepoint. If a concurrent writer
        created it first, the unique constraint fires and the existing row
        is returned (locked) instead.
        """
        seq = NumberSequence(org_id=org_id, document_type=document_type, pattern=pattern, next_number=1)
        try:
            with self.session.begin_nested():
                self.session.add(seq)
        except IntegrityError:
            existing = self.find_number_sequence(org_id, document_type)
            if existing is None:
                raise
            return existing
        return seq

    def save_next_number(self, sequence: NumberSequence, next_number: int) -> None:
        sequence.next_number = next_number
        self.session.flush()

    def list_sequences(self, org_id: int) -> list[NumberSequence]:
        return (
            self.session.query(NumberSequence)
            .filter_by(org_id=org_id)
            .order_by(NumberSequence.document_type)
            .all()
        )

    # -------------------------------------------------------------------------
    # Documents
    # -------------------------------------------------------------------------

    def document_number_exists(self, org_id: int, document_type: str, number: str) -> bool:
        model = DOCUMENT_MODELS.get(document_type)
        if model is None:
            return False
        return (
            self.session.query(model.id)
            .filter_by(org_id=org_id, document_number=number)
            .first()
            is not None
        )

    def list_document_numbers(self, org_id: int, document_type: str) -> list[str]:
        model = DOCUMENT_MODELS.get(document_type)
        if model is None:
            return []
        rows = self.session.query(model.document_number).filter_by(org_id=org_id).all()
        return [row[0] for row in rows]

    # -------------------------------------------------------------------------
    # Pricing catalog
    # -------------------------------------------------------------------------

    def find_active_rates(self, org_id: int, glass_type: str):
        return (
            self.session.query(GlassRate)
            .filter_by(org_id=org_id, glass_type=glass_type, is_active=True)
            .first()
        )

    def find_process_definition(self, org_id: int, code: str):
        return (
            self.session.query(ProcessDefinition)
            .filter_by(org_id=org_id, code=code, is_active=True)
            .first()
        )


def get_repository() -> SqlAlchemyRepository:
    """Fresh repository bound to the current app context's session."""
    return SqlAlchemyRepository()
