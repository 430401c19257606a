"""Repository acquisition via git."""

from .clone import AcquisitionError, Checkout, GitCloner

__all__ = ["AcquisitionError", "Checkout", "GitCloner"]
