"""
BaseService -- abstract base for all kernel services.

Responsibility:
    Provides the common constructor and session-handling contract for
    every service in the kernel layer.  Concrete services receive a
    SQLAlchemy ``Session`` and persist through ``session.flush()`` --
    never ``session.commit()``.

Architecture position:
    Kernel > Services.  Module services (``mfi_modules.*.service``) wrap
    one or more kernel services and own commit / rollback.

Failure modes:
    - A subclass that commits on its own breaks the atomicity of
      multi-step operations such as "record payment + post repayment
      entry + append transaction row".
"""

from abc import ABC

from sqlalchemy.orm import Session


class BaseService(ABC):
    """
    Abstract base class for all kernel services.

    Non-goals:
        - Does NOT manage transaction lifecycle (commit/rollback).
        - Does NOT provide read models -- those belong in
          ``mfi_kernel/selectors/``.
    """

    def __init__(self, session: Session):
        self.session = session
