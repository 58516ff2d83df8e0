"""
Family model.
A Family is the household: every budget record belongs to exactly one, and
all users of the household share its data pool.
"""
from datetime import datetime, timezone
from extensions import db


class Family(db.Model):
    """Represents a household sharing a single data pool."""
    __tablename__ = 'families'

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(100), nullable=False, default='My Family')
    # Bumped on every write to the expense ledger or the payment ledger so
    # that clients can poll for changes made by other sessions.
    ledger_version = db.Column(db.Integer, nullable=False, default=0)
    created_at = db.Column(db.DateTime, default=lambda: datetime.now(timezone.utc).replace(tzinfo=None), nullable=False)

    # Relationships
    members = db.relationship('User', back_populates='family', lazy='dynamic')

    def __repr__(self):
        return f'<Family {self.name}>'
