"""
Store adapter: CRUD and query operations over products, sessions and check-ins.

A :class:`Repository` is built around one SQLAlchemy engine and handed to the
analytics and API layers explicitly; nothing here keeps module-level state.
Every SQLAlchemy failure surfaces as :class:`StorageFailureError`.
"""
import logging
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Dict, Iterable, Iterator, List, Optional, Tuple

from sqlalchemy import func, select
from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session as DBSession
from sqlalchemy.orm import sessionmaker

from db.engine import get_engine, init_db
from db.models import CheckInORM, ProductORM, SessionORM
from journal.errors import ConstraintViolationError, NotFoundError, StorageFailureError
from journal.schema import CheckIn, Product, Session

logger = logging.getLogger(__name__)


def _as_utc(dt: datetime) -> datetime:
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


class Repository:
    """Thin CRUD wrapper around SQLAlchemy sessions bound to a single engine."""

    def __init__(self, engine: Engine) -> None:
        self.engine = engine
        self._SessionLocal = sessionmaker(bind=engine, expire_on_commit=False)

    @contextmanager
    def session_scope(self) -> Iterator[DBSession]:
        """
        Provide a transactional database session.

        Commits on successful exit and rolls back on any exception. Integrity
        errors are re-raised as :class:`ConstraintViolationError`, any other
        SQLAlchemy error as :class:`StorageFailureError`; domain errors raised
        inside the block propagate unchanged.
        """
        db = self._SessionLocal()
        try:
            yield db
            db.commit()
        except IntegrityError as exc:
            db.rollback()
            logger.error("Integrity error in store: %s", exc)
            raise ConstraintViolationError(str(exc.orig)) from exc
        except SQLAlchemyError as exc:
            db.rollback()
            logger.error("Storage operation failed: %s", exc)
            raise StorageFailureError(str(exc)) from exc
        except Exception:
            db.rollback()
            raise
        finally:
            db.close()

    # ---------- products ---------------------------------------------------

    def add_product(self, product: Product) -> Product:
        """Persist ``product`` and return it with its assigned id."""
        with self.session_scope() as db:
            row = ProductORM(**product.model_dump(exclude={"id"}))
            db.add(row)
            db.flush()
            return Product.model_validate(row, from_attributes=True)

    def get_product(self, product_id: int) -> Product:
        with self.session_scope() as db:
            row = db.get(ProductORM, product_id)
            if row is None:
                raise NotFoundError("Product", product_id)
            return Product.model_validate(row, from_attributes=True)

    def list_products(self) -> List[Product]:
        """All products, newest first."""
        with self.session_scope() as db:
            rows = db.scalars(
                select(ProductORM).order_by(ProductORM.created_at.desc(), ProductORM.id.desc())
            ).all()
            return [Product.model_validate(r, from_attributes=True) for r in rows]

    def update_product(self, product: Product) -> Product:
        """Overwrite the stored product with ``product`` and bump ``updated_at``."""
        if product.id is None:
            raise NotFoundError("Product", None)
        with self.session_scope() as db:
            row = db.get(ProductORM, product.id)
            if row is None:
                raise NotFoundError("Product", product.id)
            for key, value in product.model_dump(exclude={"id", "created_at"}).items():
                setattr(row, key, value)
            row.updated_at = datetime.now(timezone.utc)
            db.flush()
            return Product.model_validate(row, from_attributes=True)

    def delete_product(self, product_id: int) -> None:
        """Delete a product together with its sessions and their check-ins."""
        with self.session_scope() as db:
            row = db.get(ProductORM, product_id)
            if row is None:
                raise NotFoundError("Product", product_id)
            db.delete(row)
        logger.debug("Deleted product %s and its sessions", product_id)

    # ---------- sessions ---------------------------------------------------

    def add_session(self, session: Session) -> Session:
        with self.session_scope() as db:
            if db.get(ProductORM, session.product_id) is None:
                raise ConstraintViolationError(
                    f"Session references unknown product {session.product_id}"
                )
            row = SessionORM(**session.model_dump(exclude={"id"}))
            db.add(row)
            db.flush()
            return Session.model_validate(row, from_attributes=True)

    def get_session(self, session_id: int) -> Session:
        with self.session_scope() as db:
            row = db.get(SessionORM, session_id)
            if row is None:
                raise NotFoundError("Session", session_id)
            return Session.model_validate(row, from_attributes=True)

    def list_sessions(
        self,
        product_id: Optional[int] = None,
        since: Optional[datetime] = None,
    ) -> List[Session]:
        """
        List sessions, most recent ``date_time`` first.

        Args:
            product_id: If provided, only sessions of that product.
            since:      If provided, only sessions with date_time >= since.
        """
        with self.session_scope() as db:
            q = select(SessionORM)
            if product_id is not None:
                q = q.where(SessionORM.product_id == product_id)
            if since is not None:
                q = q.where(SessionORM.date_time >= _as_utc(since))
            q = q.order_by(SessionORM.date_time.desc(), SessionORM.id.desc())
            return [Session.model_validate(r, from_attributes=True) for r in db.scalars(q).all()]

    def list_sessions_with_products(self) -> List[Tuple[Session, Product]]:
        """Every session paired with its product, most recent first."""
        with self.session_scope() as db:
            q = (
                select(SessionORM, ProductORM)
                .join(ProductORM, SessionORM.product_id == ProductORM.id)
                .order_by(SessionORM.date_time.desc(), SessionORM.id.desc())
            )
            return [
                (
                    Session.model_validate(s, from_attributes=True),
                    Product.model_validate(p, from_attributes=True),
                )
                for s, p in db.execute(q).all()
            ]

    def count_sessions(self, product_id: Optional[int] = None) -> int:
        with self.session_scope() as db:
            q = select(func.count()).select_from(SessionORM)
            if product_id is not None:
                q = q.where(SessionORM.product_id == product_id)
            return int(db.scalar(q) or 0)

    def update_session(self, session: Session) -> Session:
        if session.id is None:
            raise NotFoundError("Session", None)
        with self.session_scope() as db:
            row = db.get(SessionORM, session.id)
            if row is None:
                raise NotFoundError("Session", session.id)
            if session.product_id != row.product_id and db.get(ProductORM, session.product_id) is None:
                raise ConstraintViolationError(
                    f"Session references unknown product {session.product_id}"
                )
            for key, value in session.model_dump(exclude={"id", "created_at"}).items():
                setattr(row, key, value)
            row.updated_at = datetime.now(timezone.utc)
            db.flush()
            return Session.model_validate(row, from_attributes=True)

    def delete_session(self, session_id: int) -> None:
        """Delete a session together with its check-ins."""
        with self.session_scope() as db:
            row = db.get(SessionORM, session_id)
            if row is None:
                raise NotFoundError("Session", session_id)
            db.delete(row)

    # ---------- check-ins --------------------------------------------------

    def add_check_in(self, check_in: CheckIn) -> CheckIn:
        with self.session_scope() as db:
            if db.get(SessionORM, check_in.session_id) is None:
                raise ConstraintViolationError(
                    f"Check-in references unknown session {check_in.session_id}"
                )
            row = CheckInORM(**check_in.model_dump(exclude={"id"}))
            db.add(row)
            db.flush()
            return CheckIn.model_validate(row, from_attributes=True)

    def get_check_in(self, check_in_id: int) -> CheckIn:
        with self.session_scope() as db:
            row = db.get(CheckInORM, check_in_id)
            if row is None:
                raise NotFoundError("CheckIn", check_in_id)
            return CheckIn.model_validate(row, from_attributes=True)

    def list_check_ins(self, session_id: Optional[int] = None) -> List[CheckIn]:
        """Check-ins ordered by ``minutes_after`` ascending."""
        with self.session_scope() as db:
            q = select(CheckInORM)
            if session_id is not None:
                q = q.where(CheckInORM.session_id == session_id)
            q = q.order_by(CheckInORM.minutes_after.asc(), CheckInORM.id.asc())
            return [CheckIn.model_validate(r, from_attributes=True) for r in db.scalars(q).all()]

    def update_check_in(self, check_in: CheckIn) -> CheckIn:
        if check_in.id is None:
            raise NotFoundError("CheckIn", None)
        with self.session_scope() as db:
            row = db.get(CheckInORM, check_in.id)
            if row is None:
                raise NotFoundError("CheckIn", check_in.id)
            if check_in.session_id != row.session_id and db.get(SessionORM, check_in.session_id) is None:
                raise ConstraintViolationError(
                    f"Check-in references unknown session {check_in.session_id}"
                )
            for key, value in check_in.model_dump(exclude={"id", "created_at"}).items():
                setattr(row, key, value)
            db.flush()
            return CheckIn.model_validate(row, from_attributes=True)

    def delete_check_in(self, check_in_id: int) -> None:
        with self.session_scope() as db:
            row = db.get(CheckInORM, check_in_id)
            if row is None:
                raise NotFoundError("CheckIn", check_in_id)
            db.delete(row)

    # ---------- analytics queries -----------------------------------------

    def check_ins_for_product(self, product_id: int) -> Optional[List[CheckIn]]:
        """
        Every check-in recorded against any session of ``product_id``.

        Read in a single transaction so one aggregation sees a consistent
        snapshot. Returns ``None`` when the product has no sessions at all.
        """
        with self.session_scope() as db:
            session_count = db.scalar(
                select(func.count()).select_from(SessionORM).where(SessionORM.product_id == product_id)
            )
            if not session_count:
                return None
            q = (
                select(CheckInORM)
                .join(SessionORM, CheckInORM.session_id == SessionORM.id)
                .where(SessionORM.product_id == product_id)
                .order_by(SessionORM.date_time.desc(), CheckInORM.minutes_after.asc())
            )
            return [CheckIn.model_validate(r, from_attributes=True) for r in db.scalars(q).all()]

    # ---------- bulk import -----------------------------------------------

    def import_snapshot(
        self,
        products: Iterable[Product],
        sessions: Iterable[Session],
        check_ins: Iterable[CheckIn],
    ) -> Dict[str, int]:
        """
        Insert a complete snapshot in one transaction.

        Ids are reassigned by the store; ``product_id``/``session_id``
        references are rewritten through the old -> new id maps. A dangling
        reference aborts the whole import.
        """
        product_ids: Dict[int, int] = {}
        session_ids: Dict[int, int] = {}
        counts = {"products": 0, "sessions": 0, "checkIns": 0}

        with self.session_scope() as db:
            for product in products:
                row = ProductORM(**product.model_dump(exclude={"id"}))
                db.add(row)
                db.flush()
                if product.id is not None:
                    product_ids[product.id] = row.id
                counts["products"] += 1

            for session in sessions:
                if session.product_id not in product_ids:
                    raise ConstraintViolationError(
                        f"Imported session {session.id} references unknown product {session.product_id}"
                    )
                data = session.model_dump(exclude={"id"})
                data["product_id"] = product_ids[session.product_id]
                row = SessionORM(**data)
                db.add(row)
                db.flush()
                if session.id is not None:
                    session_ids[session.id] = row.id
                counts["sessions"] += 1

            for check_in in check_ins:
                if check_in.session_id not in session_ids:
                    raise ConstraintViolationError(
                        f"Imported check-in {check_in.id} references unknown session {check_in.session_id}"
                    )
                data = check_in.model_dump(exclude={"id"})
                data["session_id"] = session_ids[check_in.session_id]
                db.add(CheckInORM(**data))
                counts["checkIns"] += 1

        logger.info(
            "Imported %d products, %d sessions, %d check-ins",
            counts["products"],
            counts["sessions"],
            counts["checkIns"],
        )
        return counts


def create_repository(url: str | None = None) -> Repository:
    """Build a :class:`Repository` on a fresh engine with tables created."""

    return Repository(init_db(get_engine(url)))
