"""Repository interface and the in-memory/JSON implementation."""

from stig_checklist.repository.base import Repository
from stig_checklist.repository.memory import MemoryRepository

__all__ = ["Repository", "MemoryRepository"]
