"""
Closed auction data model

Notes
-----
Data model class names are prefixed with a 'T', which identifies them as classes that map to database tables.
This naming convention also avoids name collision with similarly named domain model classes, e.g.,

`TAuction` is a data model class vs `AuctionRecord` is a domain model class

"""

from sqlalchemy import Integer, String, TypeDecorator, event, Engine
from sqlalchemy.orm import DeclarativeBase, MappedAsDataclass

from digichars.ledger.model import Address, AuctionId, Wei


class WeiType(TypeDecorator):
    """
    uint256 values overflow 64-bit database integers, thus they are stored as decimal strings.
    """

    # pylint: disable=too-many-ancestors

    impl = String(78)
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is None:
            return None
        return str(int(value))

    def process_result_value(self, value, dialect):
        if value is None:
            return None
        return Wei(int(value))


class Base(MappedAsDataclass, DeclarativeBase):
    """
    Data model base class.

    All data model classes should extend Base.
    """

    # pylint: disable=too-few-public-methods

    type_annotation_map = {
        AuctionId: Integer,
        Address: String(42),
        Wei: WeiType,
    }


@event.listens_for(Engine, "connect")
def enable_sqlite_foreign_keys(dbapi_connection, _connection_record):
    """
    Enables foreign keys in sqlite
    """
    if dbapi_connection.__class__.__module__.startswith("sqlite3"):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()
