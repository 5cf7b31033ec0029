"""Database base configuration"""
from sqlalchemy import create_engine
from sqlalchemy.orm import declarative_base, sessionmaker

from syncbridge.config import settings

engine = create_engine(
    settings.database_url,
    connect_args={"check_same_thread": False} if "sqlite" in settings.database_url else {},
)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

Base = declarative_base()


def get_db():
    """Get database session"""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def _ensure_link_unique_indexes(bind):
    """
    Best-effort schema hardening for databases created before the unique
    constraints existed on the link tables.

    The Issue Link uniqueness is what makes a retried "make public" webhook
    fail its insert instead of persisting a second link.
    """
    stmts = [
        "CREATE UNIQUE INDEX IF NOT EXISTS uq_synced_issues_issue_team "
        "ON synced_issues(linear_issue_id, linear_team_id)",
        "CREATE UNIQUE INDEX IF NOT EXISTS uq_milestones_cycle_repo_team "
        "ON milestones(cycle_id, github_repo_id, linear_team_id)",
    ]
    with bind.begin() as conn:
        for sql in stmts:
            try:
                conn.exec_driver_sql(sql)
            except Exception:
                # Some dialects may not support IF NOT EXISTS; try without it.
                try:
                    conn.exec_driver_sql(sql.replace(" IF NOT EXISTS", ""))
                except Exception:
                    # Best-effort only; the ORM constraints cover new databases.
                    pass


def init_db(bind=None):
    """Initialize database"""
    # Ensure all models are imported so SQLAlchemy metadata is populated.
    import syncbridge.models  # noqa: F401  (import for side-effects)

    bind = bind or engine
    Base.metadata.create_all(bind=bind)
    _ensure_link_unique_indexes(bind)
