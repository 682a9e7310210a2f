from sqlalchemy import create_engine, event, text
from sqlalchemy.orm import declarative_base, sessionmaker
from app.core.config import settings

def _connect_args(url: str) -> dict:
    # Bound every statement at the store boundary (PostgreSQL only)
    if url.startswith("postgresql"):
        return {"options": f"-c statement_timeout={settings.DB_STATEMENT_TIMEOUT_MS}"}
    if url.startswith("sqlite"):
        return {"check_same_thread": False}
    return {}

engine = create_engine(
    settings.SQLALCHEMY_DATABASE_URL,
    connect_args=_connect_args(settings.SQLALCHEMY_DATABASE_URL),
    pool_pre_ping=True,
)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

Base = declarative_base()

# Enable Vector extension before the tables are created
@event.listens_for(Base.metadata, "before_create")
def create_vector_extension(target, connection, **kw):
    if connection.dialect.name == "postgresql":
        connection.execute(text("CREATE EXTENSION IF NOT EXISTS vector"))

def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
