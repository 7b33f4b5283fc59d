"""
Application batch strategy (``placement_kernel.domain.batch_strategy``).

Students apply in two waves: batch 1 holds up to two primary choices and
batch 2 up to three backups.  A university may appear at most once across
both batches for the same student.  This module is the pure rule; the
application service feeds it the student's existing applications.
"""

from __future__ import annotations

from typing import Iterable
from uuid import UUID

from placement_kernel.exceptions import (
    BatchLimitExceededError,
    DuplicateUniversityError,
    PreconditionError,
)

BATCH_LIMITS: dict[int, int] = {1: 2, 2: 3}


def check_batch_slot(
    student_id: UUID,
    university_id: UUID,
    batch: int,
    existing: Iterable[tuple[UUID, int]],
) -> None:
    """
    Validate that a new application fits the 2+3 strategy.

    Args:
        existing: ``(university_id, batch)`` for every application the
            student already has, in any status.

    Raises:
        PreconditionError: batch is not 1 or 2.
        DuplicateUniversityError: the university is already used.
        BatchLimitExceededError: the batch is full.
    """
    if batch not in BATCH_LIMITS:
        raise PreconditionError(f"Unknown application batch: {batch}")

    in_batch = 0
    for existing_university, existing_batch in existing:
        if existing_university == university_id:
            raise DuplicateUniversityError(str(student_id), str(university_id))
        if existing_batch == batch:
            in_batch += 1

    if in_batch >= BATCH_LIMITS[batch]:
        raise BatchLimitExceededError(str(student_id), batch, BATCH_LIMITS[batch])
