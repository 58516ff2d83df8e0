from extensions import db
from datetime import datetime, timezone


class Person(db.Model):
    """A household member that expenses and payments are attributed to.

    People are not login accounts: a family of four can have two users and
    four people.
    """
    __tablename__ = 'people'

    id = db.Column(db.Integer, primary_key=True)
    family_id = db.Column(db.Integer, db.ForeignKey('families.id'), nullable=True, index=True)
    name = db.Column(db.String(100), nullable=False)
    color = db.Column(db.String(20), nullable=False, default='#8B5CF6')
    avatar_url = db.Column(db.String(500))
    created_at = db.Column(db.DateTime, default=lambda: datetime.now(timezone.utc).replace(tzinfo=None))

    expenses = db.relationship('Expense', back_populates='person', lazy='dynamic')

    def to_dict(self):
        return {
            'id': self.id,
            'name': self.name,
            'color': self.color,
            'avatar_url': self.avatar_url,
        }

    def __repr__(self):
        return f'<Person {self.name}>'
