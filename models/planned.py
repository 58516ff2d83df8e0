from extensions import db
from datetime import datetime, timezone


def _utcnow():
    return datetime.now(timezone.utc).replace(tzinfo=None)


class PlannedExpense(db.Model):
    """A recurring monthly obligation (rent, school, streaming...)."""
    __tablename__ = 'planned_expenses'

    id = db.Column(db.Integer, primary_key=True)
    family_id = db.Column(db.Integer, db.ForeignKey('families.id'), nullable=True, index=True)
    name = db.Column(db.String(255), nullable=False)
    amount = db.Column(db.Numeric(10, 2), nullable=False)
    category_id = db.Column(db.Integer, db.ForeignKey('categories.id', ondelete='SET NULL'), nullable=True)
    description = db.Column(db.String(255))
    due_day = db.Column(db.Integer, nullable=False, default=1)  # 1-31, clamped per month
    active = db.Column(db.Boolean, nullable=False, default=True)
    # Visibility ends with the month containing deactivated_at
    deactivated_at = db.Column(db.DateTime, nullable=True)
    created_at = db.Column(db.DateTime, default=_utcnow, nullable=False)
    updated_at = db.Column(db.DateTime, default=_utcnow, onupdate=_utcnow)

    category = db.relationship('Category')
    payments = db.relationship('PlannedExpensePayment', back_populates='planned_expense',
                               lazy='dynamic')

    @property
    def expense_description(self):
        """Description used for the ledger row created when a month is paid."""
        if self.description:
            return f'{self.name} - {self.description}'
        return self.name

    def to_dict(self):
        return {
            'id': self.id,
            'name': self.name,
            'amount': float(self.amount),
            'category_id': self.category_id,
            'category': self.category.name if self.category else None,
            'description': self.description,
            'due_day': self.due_day,
            'active': self.active,
            'created_at': self.created_at.isoformat() if self.created_at else None,
            'deactivated_at': self.deactivated_at.isoformat() if self.deactivated_at else None,
        }

    def __repr__(self):
        return f'<PlannedExpense {self.id}: {self.name} {self.amount} due {self.due_day}>'


class PlannedExpensePayment(db.Model):
    """Payment state of one planned expense for one calendar month.

    Rows are created the first time a month is paid and are updated in place
    afterwards; reversing a payment clears the fields but keeps the row.
    """
    __tablename__ = 'planned_expense_payments'
    __table_args__ = (
        db.UniqueConstraint('planned_expense_id', 'month', 'year', name='uq_planned_payment_period'),
    )

    id = db.Column(db.Integer, primary_key=True)
    family_id = db.Column(db.Integer, db.ForeignKey('families.id'), nullable=True, index=True)
    planned_expense_id = db.Column(db.Integer, db.ForeignKey('planned_expenses.id'), nullable=False, index=True)
    month = db.Column(db.Integer, nullable=False)  # 1-12
    year = db.Column(db.Integer, nullable=False)
    paid = db.Column(db.Boolean, nullable=False, default=False)
    paid_at = db.Column(db.DateTime)
    paid_amount = db.Column(db.Numeric(10, 2))
    person_id = db.Column(db.Integer, db.ForeignKey('people.id', ondelete='SET NULL'), nullable=True)
    # Ledger row materialized by the confirmation; reversal deletes it by id
    expense_id = db.Column(db.Integer, db.ForeignKey('expenses.id', ondelete='SET NULL'), nullable=True)

    planned_expense = db.relationship('PlannedExpense', back_populates='payments')
    person = db.relationship('Person')
    expense = db.relationship('Expense')

    def to_dict(self):
        return {
            'id': self.id,
            'planned_expense_id': self.planned_expense_id,
            'month': self.month,
            'year': self.year,
            'paid': self.paid,
            'paid_at': self.paid_at.isoformat() if self.paid_at else None,
            'paid_amount': float(self.paid_amount) if self.paid_amount is not None else None,
            'person_id': self.person_id,
            'expense_id': self.expense_id,
        }

    def __repr__(self):
        return f'<PlannedExpensePayment {self.planned_expense_id} {self.year}-{self.month:02d} paid={self.paid}>'
