"""Runner module - run orchestration across test assemblies."""

from .coordinator import RunCoordinator

__all__ = [
    "RunCoordinator",
]
