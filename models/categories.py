from extensions import db
from datetime import datetime


CATEGORY_TYPES = ('fixed', 'variable')


class Category(db.Model):
    __tablename__ = 'categories'

    id = db.Column(db.Integer, primary_key=True)
    family_id = db.Column(db.Integer, db.ForeignKey('families.id'), nullable=True, index=True)
    name = db.Column(db.String(100), nullable=False)
    color = db.Column(db.String(20), nullable=False, default='#3B82F6')
    icon = db.Column(db.String(50), nullable=False, default='Tag')
    category_type = db.Column(db.String(20), nullable=False, default='variable')  # fixed, variable
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Relationships
    subcategories = db.relationship('Subcategory', back_populates='category',
                                    cascade='all, delete-orphan', order_by='Subcategory.name')
    budgets = db.relationship('CategoryBudget', back_populates='category',
                              cascade='all, delete-orphan')

    def to_dict(self, include_subcategories=False):
        data = {
            'id': self.id,
            'name': self.name,
            'color': self.color,
            'icon': self.icon,
            'category_type': self.category_type,
        }
        if include_subcategories:
            data['subcategories'] = [s.to_dict() for s in self.subcategories]
        return data

    def __repr__(self):
        return f'<Category {self.name} ({self.category_type})>'


class Subcategory(db.Model):
    __tablename__ = 'subcategories'

    id = db.Column(db.Integer, primary_key=True)
    family_id = db.Column(db.Integer, db.ForeignKey('families.id'), nullable=True, index=True)
    category_id = db.Column(db.Integer, db.ForeignKey('categories.id'), nullable=False, index=True)
    name = db.Column(db.String(100), nullable=False)
    color = db.Column(db.String(20))
    icon = db.Column(db.String(50))
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    category = db.relationship('Category', back_populates='subcategories')

    def to_dict(self):
        return {
            'id': self.id,
            'category_id': self.category_id,
            'name': self.name,
            'color': self.color,
            'icon': self.icon,
        }

    def __repr__(self):
        return f'<Subcategory {self.name}>'


class CategoryBudget(db.Model):
    """Monthly spending limit for one category."""
    __tablename__ = 'category_budgets'
    __table_args__ = (
        db.UniqueConstraint('category_id', 'month', 'year', name='uq_category_budget_period'),
    )

    id = db.Column(db.Integer, primary_key=True)
    family_id = db.Column(db.Integer, db.ForeignKey('families.id'), nullable=True, index=True)
    category_id = db.Column(db.Integer, db.ForeignKey('categories.id'), nullable=False)
    month = db.Column(db.Integer, nullable=False)  # 1-12
    year = db.Column(db.Integer, nullable=False)
    amount = db.Column(db.Numeric(10, 2), nullable=False)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    category = db.relationship('Category', back_populates='budgets')

    def to_dict(self):
        return {
            'id': self.id,
            'category_id': self.category_id,
            'month': self.month,
            'year': self.year,
            'amount': float(self.amount),
        }

    def __repr__(self):
        return f'<CategoryBudget {self.category_id} {self.year}-{self.month:02d}: {self.amount}>'
