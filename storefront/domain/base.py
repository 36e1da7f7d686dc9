"""Shared base for domain entities"""

import uuid
from sqlalchemy import BigInteger, Column, Integer
from sqlmodel import SQLModel


class BaseModel(SQLModel):
    pass


def generate_uuid() -> str:
    return str(uuid.uuid4())


def generate_reference(prefix: str, length: int = 12) -> str:
    """Human-facing unique reference such as ORD-3F9A1C0B7D2E"""
    return f"{prefix}-{uuid.uuid4().hex[:length].upper()}"


def id_column() -> Column:
    # SQLite only autoincrements INTEGER PRIMARY KEY
    return Column(
        BigInteger().with_variant(Integer, "sqlite"),
        primary_key=True,
        autoincrement=True,
    )
