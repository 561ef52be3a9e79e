"""
Base model class for all SQLAlchemy models.

WHY: Centralizing the declarative base and the shared column types ensures
every monetary column has the same precision and every percentage column the
same range.
"""

from decimal import Decimal
from sqlalchemy import Numeric
from sqlalchemy.orm import DeclarativeBase


# Monetary amounts: 15 digits, 2 fractional (cents)
Money = Numeric(15, 2)

# Percentages such as VAT and discount rates (0.00 - 100.00)
Percentage = Numeric(5, 2)

ZERO = Decimal("0.00")


class Base(DeclarativeBase):
    """
    Base class for all SQLAlchemy models.

    WHY: DeclarativeBase provides the foundation for SQLAlchemy 2.0 models
    with improved type hints and async support.
    """

    pass
