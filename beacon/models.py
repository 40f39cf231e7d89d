from flask_sqlalchemy import SQLAlchemy
from sqlalchemy import func

db = SQLAlchemy()


class PageView(db.Model):
    __tablename__ = 'pageview'

    id = db.Column(db.Integer, primary_key=True)
    timestamp = db.Column(db.DateTime, server_default=func.current_timestamp(), nullable=False)
    url = db.Column(db.Text, nullable=False)
    referrer = db.Column(db.Text)
    ip = db.Column(db.String(255), nullable=False)
    domain = db.Column(db.String(255), nullable=False)
    title = db.Column(db.Text)
    headers = db.Column(db.Text)
    ua = db.Column(db.Text)
    locale = db.Column(db.Text)

    def __repr__(self):
        return f'<PageView {self.id} {self.domain}>'
