import os
from pathlib import Path

from dotenv import load_dotenv
from sqlalchemy import create_engine
from sqlalchemy.orm import declarative_base, sessionmaker
from sqlalchemy.pool import StaticPool

ROOT_DIR = Path(__file__).parent
load_dotenv(ROOT_DIR / '.env')

DATABASE_URL = os.environ.get('DATABASE_URL', 'sqlite:///./workshop_console.db')


def _engine_kwargs(url: str) -> dict:
    if not url.startswith('sqlite'):
        return {'pool_pre_ping': True}
    kwargs = {'connect_args': {'check_same_thread': False}}
    # In-memory databases only live as long as their single connection.
    if url in ('sqlite://', 'sqlite:///:memory:'):
        kwargs['poolclass'] = StaticPool
    return kwargs


engine = create_engine(DATABASE_URL, **_engine_kwargs(DATABASE_URL))
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
Base = declarative_base()


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
