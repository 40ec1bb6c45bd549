"""Persistence for per-article read and saved flags, keyed by link."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Iterable, Optional, Set

from sqlalchemy import Boolean, Column, DateTime, String, create_engine, select
from sqlalchemy.engine import Engine
from sqlalchemy.orm import DeclarativeBase, Session, sessionmaker

logger = logging.getLogger(__name__)


class Base(DeclarativeBase):
    pass


class ArticleStateModel(Base):
    """Read/saved state for one article link."""

    __tablename__ = "article_state"

    link = Column(String, primary_key=True)
    read = Column(Boolean, nullable=False, default=False)
    saved = Column(Boolean, nullable=False, default=False)
    updated_at = Column(DateTime, default=lambda: datetime.now(timezone.utc))


def init_engine(connection_string: Optional[str]) -> Optional[Engine]:
    """Initialize the database engine."""
    if not connection_string:
        return None

    logger.info("Initializing database connection: %s", connection_string)
    engine = create_engine(connection_string)
    Base.metadata.create_all(engine)
    return engine


def get_session_factory(engine: Engine) -> sessionmaker[Session]:
    """Return a session factory for the given engine."""
    return sessionmaker(bind=engine)


def _get(session: Session, link: str) -> Optional[ArticleStateModel]:
    stmt = select(ArticleStateModel).where(ArticleStateModel.link == link)
    return session.execute(stmt).scalar_one_or_none()


def _commit(session: Session) -> None:
    try:
        session.commit()
    except Exception:
        session.rollback()
        raise


def _set_flags(
    session: Session,
    link: str,
    read: Optional[bool] = None,
    saved: Optional[bool] = None,
) -> None:
    if not link:
        return
    state = _get(session, link)
    if state is None:
        state = ArticleStateModel(link=link, read=False, saved=False)
        session.add(state)
    if read is not None:
        state.read = read
    if saved is not None:
        state.saved = saved
    state.updated_at = datetime.now(timezone.utc)
    _commit(session)


def mark_read(session: Session, link: str) -> None:
    _set_flags(session, link, read=True)


def mark_unread(session: Session, link: str) -> None:
    _set_flags(session, link, read=False)


def mark_all_read(session: Session, links: Iterable[str]) -> int:
    """Mark every link read in one transaction; returns how many changed."""
    links = [link for link in dict.fromkeys(links) if link]
    if not links:
        return 0

    stmt = select(ArticleStateModel).where(ArticleStateModel.link.in_(links))
    existing = {state.link: state for state in session.execute(stmt).scalars().all()}
    now = datetime.now(timezone.utc)
    changed = 0
    for link in links:
        state = existing.get(link)
        if state is None:
            session.add(ArticleStateModel(link=link, read=True, saved=False, updated_at=now))
            changed += 1
        elif not state.read:
            state.read = True
            state.updated_at = now
            changed += 1

    _commit(session)
    logger.debug("Marked %d articles read", changed)
    return changed


def is_read(session: Session, link: str) -> bool:
    state = _get(session, link)
    return bool(state and state.read)


def save_article(session: Session, link: str) -> None:
    _set_flags(session, link, saved=True)


def unsave_article(session: Session, link: str) -> None:
    _set_flags(session, link, saved=False)


def toggle_saved(session: Session, link: str) -> bool:
    """Flip the saved flag and return the new value."""
    saved = not is_saved(session, link)
    _set_flags(session, link, saved=saved)
    return saved


def is_saved(session: Session, link: str) -> bool:
    state = _get(session, link)
    return bool(state and state.saved)


def read_links(session: Session) -> Set[str]:
    stmt = select(ArticleStateModel.link).where(ArticleStateModel.read.is_(True))
    return set(session.execute(stmt).scalars().all())


def saved_links(session: Session) -> Set[str]:
    stmt = select(ArticleStateModel.link).where(ArticleStateModel.saved.is_(True))
    return set(session.execute(stmt).scalars().all())
