from sqlalchemy import create_engine
from sqlalchemy.orm import declarative_base, sessionmaker
from sqlalchemy.pool import StaticPool

Base = declarative_base()


def make_engine(database_url: str):
    # sqlite connections are shared with the FastAPI threadpool
    connect_args = {"check_same_thread": False} if database_url.startswith('sqlite') else {}
    kwargs = {}
    if database_url in ('sqlite://', 'sqlite:///:memory:'):
        # one connection, otherwise every session sees its own empty database
        kwargs['poolclass'] = StaticPool
    # pool_pre_ping for reliability with some DB providers
    return create_engine(database_url, connect_args=connect_args, pool_pre_ping=True, **kwargs)


def make_session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, expire_on_commit=False, bind=engine)


def create_tables(engine):
    # register the models on Base.metadata before creating
    from . import models, donation_models  # noqa: F401
    Base.metadata.create_all(bind=engine)
