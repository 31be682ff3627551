"""Unidad de trabajo de un lote: una transacción, commit o rollback explícitos."""

from __future__ import annotations

import logging
from enum import Enum

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..errors import StorageError

logger = logging.getLogger(__name__)


class UnitOfWorkState(str, Enum):
    IDLE = "idle"
    ACTIVE = "active"
    COMMITTED = "committed"
    ROLLED_BACK = "rolled_back"


class BatchUnitOfWork:
    """Envuelve la sesión del lote.

    Uso:
        with BatchUnitOfWork(db) as uow:
            ...
            if all_ok:
                uow.commit()
            else:
                uow.rollback()

    Al salir del bloque sin commit se hace rollback.
    """

    def __init__(self, db: Session):
        self._db = db
        self._state = UnitOfWorkState.IDLE

    @property
    def session(self) -> Session:
        return self._db

    @property
    def state(self) -> UnitOfWorkState:
        return self._state

    def begin(self) -> None:
        if self._state == UnitOfWorkState.ACTIVE:
            return
        try:
            if not self._db.in_transaction():
                self._db.begin()
        except SQLAlchemyError as e:
            raise StorageError(f"Could not begin batch transaction: {type(e).__name__}") from e
        self._state = UnitOfWorkState.ACTIVE

    def commit(self) -> None:
        try:
            self._db.commit()
        except SQLAlchemyError as e:
            self.rollback()
            raise StorageError(f"Batch transaction commit failed: {type(e).__name__}") from e
        self._state = UnitOfWorkState.COMMITTED

    def rollback(self) -> None:
        try:
            self._db.rollback()
        except SQLAlchemyError:
            logger.exception("Batch transaction rollback failed")
        self._state = UnitOfWorkState.ROLLED_BACK

    def __enter__(self) -> "BatchUnitOfWork":
        self.begin()
        return self

    def __exit__(self, exc_type, exc, tb) -> bool:
        if self._state == UnitOfWorkState.ACTIVE:
            self.rollback()
        return False
