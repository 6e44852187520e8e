from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from ledger.core.config import SQLALCHEMY_DATABASE_URI

# Determine if we are using SQLite
is_sqlite = SQLALCHEMY_DATABASE_URI.startswith("sqlite")

connect_args = {}
if is_sqlite:
    # Request handlers run in FastAPI's threadpool; the ledger serializes writers itself.
    connect_args = {"check_same_thread": False, "timeout": 30}

engine = create_engine(SQLALCHEMY_DATABASE_URI, pool_pre_ping=True, connect_args=connect_args)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
