from pathlib import Path
from typing import Optional

from sqlalchemy import (
    BigInteger,
    Column,
    Integer,
    String,
    create_engine,
    inspect,
)
from sqlalchemy.engine import Dialect
from sqlalchemy.exc import (
    OperationalError,
)
from sqlalchemy.orm import (
    Session as BaseSession,
    declarative_base,
    sessionmaker,
)
from sqlalchemy.orm.exc import (
    MultipleResultsFound,
    NoResultFound,
)
from sqlalchemy.types import TypeDecorator

from beaconsync._utils.logging import get_logger
from beaconsync.exceptions import (
    BadDatabaseError,
)


Base = declarative_base()


SCHEMA_VERSION = '1'

UINT64_MODULUS = 2 ** 64
INT64_MAX = 2 ** 63 - 1

MEMORY_PATH_NAME = ":memory:"

logger = get_logger('beaconsync.chaindb.orm')


class Uint64(TypeDecorator):
    """
    An unsigned 64 bit integer stored in a signed 64 bit column.

    Values above ``INT64_MAX`` (e.g. the far future epoch) are stored in two's complement,
    so range queries are only meaningful below ``INT64_MAX``.
    """
    impl = BigInteger
    cache_ok = True

    def process_bind_param(self, value: Optional[int], dialect: Dialect) -> Optional[int]:
        if value is None:
            return None
        if value < 0 or value >= UINT64_MODULUS:
            raise ValueError(f"Value out of uint64 range: {value}")
        if value > INT64_MAX:
            return value - UINT64_MODULUS
        return value

    def process_result_value(self, value: Optional[int], dialect: Dialect) -> Optional[int]:
        if value is None:
            return None
        if value < 0:
            return value + UINT64_MODULUS
        return value


class SchemaVersion(Base):
    __tablename__ = 'schema_version'

    id = Column(Integer, primary_key=True)
    version = Column(String, unique=True, nullable=False, index=True)


def database_uri_for_path(path: Path) -> str:
    if path.name == MEMORY_PATH_NAME:
        return 'sqlite:///:memory:'
    else:
        return f'sqlite:///{path.resolve()}'


def create_session(database_uri: str) -> BaseSession:
    engine = create_engine(database_uri)
    Session = sessionmaker(bind=engine)
    session = Session()
    return session


def get_session(path: Path) -> BaseSession:
    return create_session(database_uri_for_path(path))


def setup_schema(session: BaseSession) -> None:
    Base.metadata.create_all(session.get_bind())
    session.add(SchemaVersion(version=SCHEMA_VERSION))
    session.commit()


def get_schema_version(session: BaseSession) -> str:
    schema_version = session.query(SchemaVersion).one()
    return schema_version.version


def check_empty(session: BaseSession) -> bool:
    inspector = inspect(session.get_bind())
    for table_name in Base.metadata.tables.keys():
        if inspector.has_table(table_name):
            return False
    return True


def check_schema_version(session: BaseSession) -> bool:
    if not inspect(session.get_bind()).has_table(SchemaVersion.__tablename__):
        return False

    try:
        schema_version = get_schema_version(session)
    except NoResultFound:
        return False
    except MultipleResultsFound:
        return False
    except OperationalError:
        # table is present but schema doesn't match query
        session.rollback()
        return False
    else:
        return schema_version == SCHEMA_VERSION


def open_chain_database(session: BaseSession, description: str) -> BaseSession:
    if check_schema_version(session):
        return session
    elif not check_empty(session):
        raise BadDatabaseError(
            "Invalid chain database",
            operation="open_chain_database",
            database=description,
        )

    logger.info("Initializing chain database schema v%s at %s", SCHEMA_VERSION, description)
    setup_schema(session)
    return session


def get_chain_database(db_path: Path) -> BaseSession:
    # importing the models registers their tables on `Base.metadata`
    from beaconsync.chaindb import models  # noqa: F401

    session = get_session(db_path)
    description = db_path.name if db_path.name == MEMORY_PATH_NAME else str(db_path.resolve())
    return open_chain_database(session, description)
