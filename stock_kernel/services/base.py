"""
BaseService -- abstract base for kernel services.

Services receive a SQLAlchemy ``Session`` from the caller and persist with
``session.flush()`` -- never ``session.commit()``.  The caller owns the
transaction boundary, so several appends can be committed atomically.
"""

from abc import ABC

from sqlalchemy.orm import Session


class BaseService(ABC):
    """Abstract base class for kernel services."""

    def __init__(self, session: Session):
        self.session = session
