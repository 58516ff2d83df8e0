from extensions import db
from datetime import datetime


class Expense(db.Model):
    """A row of the general expense ledger."""
    __tablename__ = 'expenses'

    id = db.Column(db.Integer, primary_key=True)
    family_id = db.Column(db.Integer, db.ForeignKey('families.id'), nullable=True, index=True)
    date = db.Column(db.Date, nullable=False, index=True)
    description = db.Column(db.String(255), nullable=False)
    amount = db.Column(db.Numeric(10, 2), nullable=False)

    category_id = db.Column(db.Integer, db.ForeignKey('categories.id', ondelete='SET NULL'), nullable=True)
    subcategory_id = db.Column(db.Integer, db.ForeignKey('subcategories.id', ondelete='SET NULL'), nullable=True)
    person_id = db.Column(db.Integer, db.ForeignKey('people.id', ondelete='SET NULL'), nullable=True)

    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    category = db.relationship('Category')
    subcategory = db.relationship('Subcategory')
    person = db.relationship('Person', back_populates='expenses')

    def to_dict(self):
        return {
            'id': self.id,
            'date': self.date.isoformat(),
            'description': self.description,
            'amount': float(self.amount),
            'category_id': self.category_id,
            'category': self.category.name if self.category else None,
            'category_type': self.category.category_type if self.category else None,
            'subcategory_id': self.subcategory_id,
            'subcategory': self.subcategory.name if self.subcategory else None,
            'person_id': self.person_id,
            'person': self.person.name if self.person else None,
        }

    def __repr__(self):
        return f'<Expense {self.date}: {self.description} - {self.amount}>'
