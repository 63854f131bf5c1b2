"""Repository layer.

Provides data access abstractions for all domain entities.
No base classes - each repository is self-contained.
"""

from imagegen.repositories.generation_record import GenerationRecordRepository

__all__ = [
    "GenerationRecordRepository",
]
