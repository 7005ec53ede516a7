"""Mapped classes used by the test-suite."""
from __future__ import annotations

from typing import Optional

from sqlalchemy import BigInteger, ForeignKey, SmallInteger, String
from sqlalchemy.orm import Mapped, mapped_column

from globe_data.db.base import Base, IntPkMixin, SmallIntPkMixin


class Continent(SmallIntPkMixin, Base):
    """Small-integer keyed entity."""
    __tablename__ = "continents"

    name: Mapped[str] = mapped_column(String(64), nullable=False, unique=True)


class Country(IntPkMixin, Base):
    """Integer keyed entity scoped to a continent."""
    __tablename__ = "countries"

    name: Mapped[str] = mapped_column(String(128), nullable=False, unique=True)
    code: Mapped[str] = mapped_column(String(3), nullable=False)
    population: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)
    capital: Mapped[Optional[str]] = mapped_column(String(128), nullable=True)
    continent_id: Mapped[int] = mapped_column(
        SmallInteger, ForeignKey("continents.id"), nullable=False, index=True
    )
