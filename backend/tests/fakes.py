"""
In-memory stand-in for SqlAlchemyRepository.

Transactions are serialized by one lock (the same guarantee SQLite's
BEGIN IMMEDIATE gives) and roll back by restoring a snapshot taken at
transaction start.
"""

from __future__ import annotations

import copy
import threading
from decimal import Decimal
from types import SimpleNamespace

from glassworks.models.catalog import THICKNESS_COLUMNS


class InMemoryRepository:
    def __init__(self):
        self._lock = threading.RLock()
        self._local = threading.local()
        self.sequences: dict[tuple[int, str], SimpleNamespace] = {}
        self.documents: dict[tuple[int, str], set[str]] = {}
        self.glass_rates: dict[tuple[int, str], SimpleNamespace] = {}
        self.processes: dict[tuple[int, str], SimpleNamespace] = {}
        self.commits = 0
        self.rollbacks = 0

    # -------------------------------------------------------------------------
    # Unit of work
    # -------------------------------------------------------------------------

    @property
    def in_transaction(self) -> bool:
        return getattr(self._local, "depth", 0) > 0

    def with_transaction(self, fn):
        if self.in_transaction:
            return fn()

        with self._lock:
            snapshot = copy.deepcopy((self.sequences, self.documents))
            self._local.depth = 1
            try:
                result = fn()
            except Exception:
                self.sequences, self.documents = snapshot
                self.rollbacks += 1
                raise
            finally:
                self._local.depth = 0
            self.commits += 1
            return result

    def add(self, obj):
        number = getattr(obj, "document_number", None)
        document_type = getattr(obj, "document_type", None)
        if number and document_type:
            self.record_document(obj.org_id, document_type, number)
        return obj

    # -------------------------------------------------------------------------
    # Number sequences
    # -------------------------------------------------------------------------

    def find_number_sequence(self, org_id: int, document_type: str, *, for_update: bool = True):
        return self.sequences.get((org_id, document_type))

    def create_number_sequence(self, org_id: int, document_type: str, pattern: str):
        key = (org_id, document_type)
        if key not in self.sequences:
            self.sequences[key] = SimpleNamespace(
                org_id=org_id,
                document_type=document_type,
                pattern=pattern,
                next_number=1,
            )
        return self.sequences[key]

    def save_next_number(self, sequence, next_number: int) -> None:
        sequence.next_number = next_number

    def list_sequences(self, org_id: int):
        return [seq for (oid, _), seq in sorted(self.sequences.items()) if oid == org_id]

    # -------------------------------------------------------------------------
    # Documents
    # -------------------------------------------------------------------------

    def record_document(self, org_id: int, document_type: str, number: str) -> None:
        self.documents.setdefault((org_id, document_type), set()).add(number)

    def document_number_exists(self, org_id: int, document_type: str, number: str) -> bool:
        return number in self.documents.get((org_id, document_type), set())

    def list_document_numbers(self, org_id: int, document_type: str) -> list[str]:
        return sorted(self.documents.get((org_id, document_type), set()))

    # -------------------------------------------------------------------------
    # Pricing catalog
    # -------------------------------------------------------------------------

    def add_glass_rate(self, org_id: int, glass_type: str, *, custom_rates=None, is_active=True, **rates):
        row = SimpleNamespace(
            org_id=org_id,
            glass_type=glass_type,
            custom_rates=custom_rates or {},
            is_active=is_active,
        )
        for column in THICKNESS_COLUMNS.values():
            value = rates.get(column)
            setattr(row, column, None if value is None else Decimal(str(value)))
        self.glass_rates[(org_id, glass_type)] = row
        return row

    def add_process(self, org_id: int, code: str, name: str, pricing_type: str, rate, *, is_active=True):
        row = SimpleNamespace(
            org_id=org_id,
            code=code,
            name=name,
            pricing_type=pricing_type,
            rate=Decimal(str(rate)),
            is_active=is_active,
        )
        self.processes[(org_id, code)] = row
        return row

    def find_active_rates(self, org_id: int, glass_type: str):
        row = self.glass_rates.get((org_id, glass_type))
        return row if row is not None and row.is_active else None

    def find_process_definition(self, org_id: int, code: str):
        row = self.processes.get((org_id, code))
        return row if row is not None and row.is_active else None


ORG = 7


def scenario_a_item(**overrides) -> dict:
    """24in x 36in Clear Float 5mm, qty 2, back painted + toughened."""
    item = {
        "glass_type": "Clear Float",
        "thickness": 5,
        "width_in": 24,
        "height_in": 36,
        "quantity": 2,
        "processes": ["BP", "TMP"],
    }
    item.update(overrides)
    return item


def org_headers(org) -> dict:
    return {"X-Org-Id": str(org.id)}
