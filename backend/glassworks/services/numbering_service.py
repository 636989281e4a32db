"""
Sequence Allocator - human-readable document numbers

WHY: Quote/order/invoice numbers (e.g. "Q2025-0007") are printed on paper
and must never collide, even with many concurrent writers per organization.

DESIGN:
- One NumberSequence row per (org_id, document_type), created lazily with
  a built-in pattern the first time a number is requested
- allocate() runs INSIDE the caller's transaction: the sequence row is
  locked (FOR UPDATE / SQLite write lock), the candidate is checked against
  existing documents, and next_number advances in the same transaction as
  the document insert. If that transaction aborts, the advance rolls back.
- Collisions (counter desynchronized from data) are skipped forward up to
  a bounded number of attempts; exhaustion is a retryable failure.
- Nothing else writes next_number. repair_sequence() takes the same lock
  and only ever moves the counter forward.

PATTERN TOKENS:
- {YYYY}: current calendar year
- {####}: counter, zero-padded to the number of '#' (minimum 4)
"""

from __future__ import annotations

import logging
import re

from flask import current_app, has_app_context

from ..repository import get_repository
from ..time_utils import current_year
from ..validation import ValidationError, require_text


logger = logging.getLogger(__name__)

DEFAULT_PATTERNS = {
    "QUOTE": "Q{YYYY}-{####}",
    "ORDER": "O{YYYY}-{####}",
    "INVOICE": "INV{YYYY}-{####}",
}

DEFAULT_MAX_ATTEMPTS = 10
MIN_PAD = 4

_YEAR_TOKEN = "{YYYY}"
_COUNTER_TOKEN = re.compile(r"\{(#+)\}")


class SequenceAllocationError(Exception):
    """
    Raised when no free number was found within the retry budget.

    Retryable: the caller may re-run the whole operation from the top.
    """

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.details = details or {}


def normalize_document_type(document_type) -> str:
    value = str(document_type or "").strip().upper()
    if not value:
        raise ValidationError("document_type is required", field="document_type")
    return value


def default_pattern(document_type: str) -> str:
    return DEFAULT_PATTERNS.get(document_type, f"{document_type}{_YEAR_TOKEN}-{{####}}")


def validate_pattern(pattern) -> str:
    pattern = require_text(pattern, "pattern", max_length=64)
    if len(_COUNTER_TOKEN.findall(pattern)) != 1:
        raise ValidationError("pattern must contain exactly one {####} counter placeholder", field="pattern")
    return pattern


def format_document_number(pattern: str, number: int, year: int) -> str:
    """Q{YYYY}-{####} + 7 + 2025 -> Q2025-0007."""
    def _pad(match):
        width = max(MIN_PAD, len(match.group(1)))
        return f"{number:0{width}d}"

    formatted, count = _COUNTER_TOKEN.subn(_pad, pattern, count=1)
    if not count:
        raise ValidationError("pattern must contain a {####} counter placeholder", field="pattern")
    return formatted.replace(_YEAR_TOKEN, f"{year:04d}")


def _pattern_regex(pattern: str, year: int):
    """Regex that extracts the counter from numbers minted by `pattern` in `year`."""
    parts = []
    pos = 0
    for match in _COUNTER_TOKEN.finditer(pattern):
        parts.append(re.escape(pattern[pos:match.start()].replace(_YEAR_TOKEN, str(year))))
        parts.append(r"(\d+)")
        pos = match.end()
    parts.append(re.escape(pattern[pos:].replace(_YEAR_TOKEN, str(year))))
    return re.compile("^" + "".join(parts) + "$")


def _max_attempts(max_attempts: int | None) -> int:
    if max_attempts:
        return max_attempts
    if has_app_context():
        return int(current_app.config.get("SEQUENCE_MAX_ATTEMPTS", DEFAULT_MAX_ATTEMPTS))
    return DEFAULT_MAX_ATTEMPTS


def _get_or_create_sequence(repository, org_id: int, document_type: str):
    seq = repository.find_number_sequence(org_id, document_type, for_update=True)
    if seq is None:
        seq = repository.create_number_sequence(org_id, document_type, default_pattern(document_type))
        logger.info("Created %s number sequence for org_id=%s (pattern %s)", document_type, org_id, seq.pattern)
    return seq


def allocate(
    repository,
    org_id: int,
    document_type: str,
    *,
    year: int | None = None,
    max_attempts: int | None = None,
) -> str:
    """
    Claim the next free document number for (org_id, document_type).

    Must be called inside repository.with_transaction(); the counter advance
    becomes durable only when that transaction commits.
    """
    if not org_id:
        raise ValidationError("org_id is required", field="org_id")
    document_type = normalize_document_type(document_type)
    year = year or current_year()
    attempts = _max_attempts(max_attempts)

    seq = _get_or_create_sequence(repository, org_id, document_type)
    candidate = seq.next_number

    for _ in range(attempts):
        number = format_document_number(seq.pattern, candidate, year)
        if not repository.document_number_exists(org_id, document_type, number):
            repository.save_next_number(seq, candidate + 1)
            return number
        logger.info("Document number %s already used for org_id=%s, skipping forward", number, org_id)
        candidate += 1

    logger.error(
        "Could not allocate %s number for org_id=%s after %s attempts (from %s)",
        document_type, org_id, attempts, seq.next_number,
    )
    raise SequenceAllocationError(
        f"Unable to allocate a unique {document_type} number",
        details={"document_type": document_type, "attempts": attempts},
    )


def next_document_number(org_id: int, document_type: str, repository=None, **kwargs) -> str:
    """Allocate in a transaction of its own (standalone use, e.g. CLI)."""
    if repository is None:
        repository = get_repository()
    return repository.with_transaction(lambda: allocate(repository, org_id, document_type, **kwargs))


def repair_sequence(org_id: int, document_type: str, repository=None, *, year: int | None = None) -> int:
    """
    Move next_number past the highest number already used this year.

    Guarded the same way as allocation (row lock, one transaction) and never
    lowers the counter, so it cannot reintroduce collisions.
    """
    if repository is None:
        repository = get_repository()
    document_type = normalize_document_type(document_type)
    year = year or current_year()

    def _op() -> int:
        seq = _get_or_create_sequence(repository, org_id, document_type)
        matcher = _pattern_regex(seq.pattern, year)
        highest = 0
        for number in repository.list_document_numbers(org_id, document_type):
            match = matcher.match(number or "")
            if match:
                highest = max(highest, int(match.group(1)))
        next_number = max(seq.next_number, highest + 1)
        if next_number != seq.next_number:
            repository.save_next_number(seq, next_number)
        logger.info("Repaired %s sequence for org_id=%s: next number is %s", document_type, org_id, next_number)
        return next_number

    return repository.with_transaction(_op)


def repair_all_sequences(org_id: int, repository=None, *, year: int | None = None) -> list[dict]:
    results = []
    for document_type in DEFAULT_PATTERNS:
        next_number = repair_sequence(org_id, document_type, repository, year=year)
        results.append({"document_type": document_type, "next_number": next_number, "status": "repaired"})
    return results


def update_pattern(org_id: int, document_type: str, pattern, repository=None):
    """Change the display pattern. next_number is left untouched."""
    if repository is None:
        repository = get_repository()
    document_type = normalize_document_type(document_type)
    pattern = validate_pattern(pattern)

    def _op():
        seq = _get_or_create_sequence(repository, org_id, document_type)
        seq.pattern = pattern
        return seq

    return repository.with_transaction(_op)


def list_sequences(org_id: int, repository=None):
    if repository is None:
        repository = get_repository()
    return repository.list_sequences(org_id)
