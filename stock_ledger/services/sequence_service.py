"""
SequenceService -- monotonic sequence allocation.

Responsibility:
    Provides strictly increasing sequence numbers for stock movements.
    Movement references are built from these numbers, so two movements
    recorded at the same instant never share a reference.

    Two backends, chosen per sequence name and dialect:

    - Native database sequence (PostgreSQL).  ``nextval`` takes no row
      lock and is not rolled back, so movements on different products
      never wait on each other for a number.  Numbers consumed by a
      rolled-back or retried transaction leave gaps.
    - Counter row (SQLite, and names without a native sequence).  A
      dedicated table row is locked with ``SELECT ... FOR UPDATE`` and
      incremented in the caller's transaction, so a rollback returns the
      value.  SQLite already admits a single writer at a time, so the row
      adds no contention there.

Architecture position:
    Ledger > Services -- imperative shell infrastructure.
    Called by MovementService after the stock UPDATE has succeeded, so a
    counter row is locked only for the short tail of the transaction.

Invariants enforced:
    - Uniqueness and monotonicity: values come from the database sequence
      or the locked counter row.  MAX(sequence_number)+1 is never used.

Failure modes:
    - IntegrityError: concurrent counter creation race (handled via
      savepoint rollback and re-read).
"""

from sqlalchemy import BigInteger, Sequence, String, select, text
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Mapped, Session, mapped_column

from stock_ledger.db.base import Base
from stock_ledger.logging_config import get_logger

logger = get_logger("services.sequence")

# Created by Base.metadata.create_all() on dialects with sequences only.
stock_movement_seq = Sequence("stock_movement_seq", metadata=Base.metadata)


class SequenceCounter(Base):
    """
    Sequence counter table.

    Each row represents a named sequence with its current value.
    Row-level locking ensures monotonicity under concurrency.
    """

    __tablename__ = "sequence_counters"

    name: Mapped[str] = mapped_column(
        String(50),
        nullable=False,
        unique=True,
    )

    current_value: Mapped[int] = mapped_column(
        BigInteger,
        nullable=False,
        default=0,
    )


class SequenceService:
    """
    Service for generating sequence numbers.

    Contract:
        Accepts a sequence name and returns the next strictly-monotonic
        integer value.  Counter-row increments are committed with the
        caller's transaction.

    Non-goals:
        - Does NOT call ``session.commit()`` -- caller controls boundaries.
    """

    # Well-known sequence names
    STOCK_MOVEMENT = "stock_movement"

    _NATIVE_SEQUENCES = {STOCK_MOVEMENT: stock_movement_seq}

    def __init__(self, session: Session):
        self._session = session

    def _native_sequence(self, sequence_name: str) -> Sequence | None:
        native = self._NATIVE_SEQUENCES.get(sequence_name)
        if native is not None and self._session.get_bind().dialect.supports_sequences:
            return native
        return None

    def _locked_counter(self, sequence_name: str) -> SequenceCounter | None:
        return self._session.execute(
            select(SequenceCounter)
            .where(SequenceCounter.name == sequence_name)
            .with_for_update()
            .execution_options(populate_existing=True)
        ).scalar_one_or_none()

    def next_value(self, sequence_name: str) -> int:
        """
        Get the next value for a named sequence.

        With a native sequence this is ``nextval``.  Otherwise the counter
        row is locked (created on first use), incremented and returned; if
        the transaction rolls back, that value is not consumed.

        Returns:
            The next sequence value (always > 0).
        """
        native = self._native_sequence(sequence_name)
        if native is not None:
            value = self._session.scalar(select(native.next_value()))
            logger.debug(
                "sequence_allocated",
                extra={"sequence_name": sequence_name, "value": value},
            )
            return value

        counter = self._locked_counter(sequence_name)

        if counter is None:
            # First use: another transaction may create the row at the same
            # time, so insert inside a savepoint and fall back to re-reading.
            savepoint = self._session.begin_nested()
            try:
                self._session.add(SequenceCounter(name=sequence_name, current_value=1))
                self._session.flush()
                savepoint.commit()
                logger.debug(
                    "sequence_allocated",
                    extra={"sequence_name": sequence_name, "value": 1},
                )
                return 1
            except IntegrityError:
                logger.debug(
                    "sequence_counter_race_retry",
                    extra={"sequence_name": sequence_name},
                )
                savepoint.rollback()
                counter = self._locked_counter(sequence_name)
                if counter is None:
                    raise

        counter.current_value += 1
        self._session.flush()
        logger.debug(
            "sequence_allocated",
            extra={"sequence_name": sequence_name, "value": counter.current_value},
        )
        return counter.current_value

    def current_value(self, sequence_name: str) -> int | None:
        """
        Get the last allocated value without incrementing.

        Returns:
            Current value (0 before the first allocation), or None if the
            sequence doesn't exist.
        """
        native = self._native_sequence(sequence_name)
        if native is not None:
            last_value, is_called = self._session.execute(
                text(f"SELECT last_value, is_called FROM {native.name}")
            ).one()
            return last_value if is_called else 0

        counter = self._session.execute(
            select(SequenceCounter)
            .where(SequenceCounter.name == sequence_name)
        ).scalar_one_or_none()

        return counter.current_value if counter else None

    def initialize_sequences(self) -> None:
        """
        Seed the counter rows of the well-known sequences.

        Called during database setup so the first movement never has to
        race on counter creation.  Native sequences are created with the
        tables and need no row.
        """
        for name in [self.STOCK_MOVEMENT]:
            if self._native_sequence(name) is not None:
                continue
            existing = self._session.execute(
                select(SequenceCounter)
                .where(SequenceCounter.name == name)
            ).scalar_one_or_none()

            if existing is None:
                self._session.add(SequenceCounter(name=name, current_value=0))

        self._session.flush()
