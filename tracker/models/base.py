from uuid import uuid4
from ..extensions import db


def new_id():
    return uuid4().hex


class TimestampMixin:
    created_at = db.Column(db.DateTime, server_default=db.func.now())
    updated_at = db.Column(db.DateTime, server_default=db.func.now(), onupdate=db.func.now())
