"""
SQLAlchemy ORM models package.

All models are imported here so that:
  1. Base.metadata knows every table before create_all() runs
  2. The record store can address each table by name
"""

from trackhub.models.wallet import Wallet  # noqa: F401
from trackhub.models.category import Category  # noqa: F401
from trackhub.models.transaction import Transaction  # noqa: F401
from trackhub.models.transfer import Transfer  # noqa: F401
