from extensions import db
from datetime import datetime, timezone


ACTIONS = ('create', 'update', 'delete')
ENTITY_TYPES = ('Expense', 'Category', 'Person', 'PlannedExpense', 'Payment')


class Activity(db.Model):
    """Append-only audit entry shown in the household activity feed."""
    __tablename__ = 'activities'

    id = db.Column(db.Integer, primary_key=True)
    family_id = db.Column(db.Integer, db.ForeignKey('families.id'), nullable=True, index=True)
    action = db.Column(db.String(20), nullable=False)
    entity_type = db.Column(db.String(30), nullable=False)
    entity_name = db.Column(db.String(255), nullable=False)
    details = db.Column(db.String(500))
    person_id = db.Column(db.Integer, db.ForeignKey('people.id', ondelete='SET NULL'), nullable=True)
    created_at = db.Column(db.DateTime, default=lambda: datetime.now(timezone.utc).replace(tzinfo=None), index=True)

    person = db.relationship('Person')

    def to_dict(self):
        return {
            'id': self.id,
            'action': self.action,
            'entity_type': self.entity_type,
            'entity_name': self.entity_name,
            'details': self.details,
            'person': self.person.to_dict() if self.person else None,
            'created_at': self.created_at.isoformat() if self.created_at else None,
        }

    def __repr__(self):
        return f'<Activity {self.action} {self.entity_type}: {self.entity_name}>'
