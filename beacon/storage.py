from pathlib import Path

from sqlalchemy import desc, text
from sqlalchemy.exc import SQLAlchemyError

from beacon.models import db, PageView


class StorageError(Exception):
    pass


class PageViewStore:
    """Owns the page-view table for one Flask app.

    Handlers get the store handed to them by the app factory rather than
    reaching for a module-level connection.
    """

    def __init__(self, app=None):
        self.app = app
        if app is not None:
            self.init_app(app)

    def init_app(self, app):
        self.app = app
        app.extensions['pageview_store'] = self

        db_path = app.config.get('DATABASE_PATH')
        if db_path:
            try:
                Path(db_path).parent.mkdir(parents=True, exist_ok=True)
            except OSError as e:
                raise StorageError(f"Could not create database directory: {e}") from e

        db.init_app(app)

        with app.app_context():
            try:
                db.session.execute(text('SELECT 1'))
                db.create_all()
                db.session.commit()
            except SQLAlchemyError as e:
                db.session.rollback()
                raise StorageError(f"Could not initialise storage: {e}") from e

        app.logger.info(f"Storage ready at {app.config['SQLALCHEMY_DATABASE_URI']}")

    def record(self, page_view):
        """Insert a single page view and commit it"""
        try:
            db.session.add(page_view)
            db.session.commit()
        except SQLAlchemyError as e:
            db.session.rollback()
            raise StorageError(f"Could not save page view: {e}") from e
        return page_view

    def count(self):
        return db.session.query(PageView).count()

    def recent(self, limit=50):
        return PageView.query.order_by(desc(PageView.id)).limit(limit).all()
