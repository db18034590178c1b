from sqlalchemy import BigInteger, Integer
from sqlalchemy.orm import DeclarativeBase


# SQLite only autoincrements INTEGER PRIMARY KEY
BigIntPK = BigInteger().with_variant(Integer, "sqlite")


class Base(DeclarativeBase):
    pass
