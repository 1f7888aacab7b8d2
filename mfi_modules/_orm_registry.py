"""
Module ORM Registry (``mfi_modules._orm_registry``).

Responsibility
--------------
Ensure kernel and module SQLAlchemy models are imported so that
``Base.metadata`` contains every table before ``create_tables()`` or
``drop_tables()`` runs.

Architecture position
---------------------
**Modules layer** -- utility.  Called lazily from ``mfi_kernel.db.engine``;
scripts and ``tests/conftest.py`` reach it through ``create_tables()``.
"""


def import_all_orm_models() -> None:
    """Import kernel models and every ``mfi_modules.*.orm`` module.

    Kernel models first: loan tables reference ``chart_of_accounts`` and
    ``journal_entries``.  Idempotent.
    """
    import mfi_kernel.models  # noqa: F401
    import mfi_modules.loans.orm  # noqa: F401
