import logging
from contextlib import contextmanager

from flask import Flask
from flask_migrate import Migrate
from flask_sqlalchemy import SQLAlchemy
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm.exc import StaleDataError

from .errors import ConflictError

logger = logging.getLogger(__name__)

db = SQLAlchemy()
migrate = Migrate()


def init_extensions(app: Flask):
    db.init_app(app)
    migrate.init_app(app, db)


@contextmanager
def atomic():
    """Run the enclosed block as one unit of work.

    Commits when the block finishes, rolls back on any exception. A lost
    optimistic lock or a violated unique constraint is reported as
    :class:`ConflictError`.
    """
    try:
        yield db.session
        db.session.commit()
    except StaleDataError as exc:
        db.session.rollback()
        logger.warning("Concurrent update detected: %s", exc)
        raise ConflictError("record was modified by another request, reload and retry") from exc
    except IntegrityError as exc:
        db.session.rollback()
        logger.warning("Integrity violation: %s", exc.orig)
        raise ConflictError("record already exists") from exc
    except Exception:
        db.session.rollback()
        raise
