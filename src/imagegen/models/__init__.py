"""SQLModel database entities.

All models are imported here to ensure they're registered with SQLModel metadata
for Alembic autogenerate support.
"""

from imagegen.models.generation_record import (
    GenerationKind,
    GenerationRecord,
    GenerationStatus,
    InvalidStateTransition,
)

__all__ = [
    "GenerationRecord",
    "GenerationKind",
    "GenerationStatus",
    "InvalidStateTransition",
]
