"""
SQLAlchemy ↔️ Pydantic mapping for products, sessions and check-ins.

Column names keep the camelCase used by the export format; the Python
attributes are snake_case so ``Model(**schema.model_dump())`` works.
"""
from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    Enum,
    Float,
    ForeignKey,
    Integer,
    String,
    Text,
)
from sqlalchemy.orm import relationship

from db.engine import Base
from journal.schema import ConsumptionRoute, ProductType


class ProductORM(Base):
    __tablename__ = "products"
    __table_args__ = {"sqlite_autoincrement": True}

    id = Column(Integer, primary_key=True)
    name = Column(String, nullable=False)
    brand = Column(String)
    type = Column(Enum(ProductType), nullable=False)
    route = Column(Enum(ConsumptionRoute), nullable=False)

    thc_percent = Column("thcPercent", Float)
    cbd_percent = Column("cbdPercent", Float)
    cbg_percent = Column("cbgPercent", Float)
    thcv_percent = Column("thcvPercent", Float)

    myrcene = Column(Float)
    limonene = Column(Float)
    pinene = Column(Float)
    caryophyllene = Column(Float)
    humulene = Column(Float)
    linalool = Column(Float)
    terpinolene = Column(Float)
    ocimene = Column(Float)
    other_terpenes = Column("otherTerpenes", Text)

    notes = Column(Text)
    created_at = Column("createdAt", DateTime(timezone=True), nullable=False, index=True)
    updated_at = Column("updatedAt", DateTime(timezone=True), nullable=False)

    sessions = relationship(
        "SessionORM",
        back_populates="product",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )


class SessionORM(Base):
    __tablename__ = "sessions"
    __table_args__ = {"sqlite_autoincrement": True}

    id = Column(Integer, primary_key=True)
    product_id = Column(
        "productId",
        Integer,
        ForeignKey("products.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    date_time = Column("dateTime", DateTime(timezone=True), nullable=False, index=True)
    dose_mg = Column("doseMg", Float)
    dose_units = Column("doseUnits", String)

    location = Column(String)
    with_company = Column("withCompany", Boolean, nullable=False, default=False)
    had_caffeine = Column("hadCaffeine", Boolean, nullable=False, default=False)
    had_alcohol = Column("hadAlcohol", Boolean, nullable=False, default=False)
    had_food = Column("hadFood", Boolean, nullable=False, default=False)
    sleep_quality = Column("sleepQuality", Integer)

    pre_mood = Column("preMood", Integer)
    pre_stress = Column("preStress", Integer)

    notes = Column(Text)
    created_at = Column("createdAt", DateTime(timezone=True), nullable=False)
    updated_at = Column("updatedAt", DateTime(timezone=True), nullable=False)

    product = relationship("ProductORM", back_populates="sessions")
    check_ins = relationship(
        "CheckInORM",
        back_populates="session",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )


class CheckInORM(Base):
    __tablename__ = "check_ins"
    __table_args__ = {"sqlite_autoincrement": True}

    id = Column(Integer, primary_key=True)
    session_id = Column(
        "sessionId",
        Integer,
        ForeignKey("sessions.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    minutes_after = Column("minutesAfter", Integer, nullable=False)
    timestamp = Column(DateTime(timezone=True), nullable=False)

    awake = Column(Integer)
    active = Column(Integer)
    cerebral = Column(Integer)
    social = Column(Integer)
    euphoric = Column(Integer)
    creative = Column(Integer)
    focused = Column(Integer)

    tired = Column(Integer)
    groggy = Column(Integer)
    anxious = Column(Integer)
    antisocial = Column(Integer)
    paranoia = Column(Integer)
    dry_mouth = Column("dryMouth", Integer)
    dry_eyes = Column("dryEyes", Integer)
    racing_heart = Column("racingHeart", Integer)

    notes = Column(Text)
    created_at = Column("createdAt", DateTime(timezone=True), nullable=False)

    session = relationship("SessionORM", back_populates="check_ins")
