"""
General expense ledger: CRUD, filtering and the groupings used by the
dashboard and charts.
"""
from collections import OrderedDict
from datetime import date
from decimal import Decimal

from flask import current_app
from sqlalchemy import extract, func

from extensions import db
from models.categories import Category, Subcategory
from models.expenses import Expense
from models.people import Person
from models.planned import PlannedExpensePayment
from services.activity_service import ActivityService
from services.errors import NotFoundError, PaymentStateError, ValidationError
from utils.db_helpers import family_get, family_query, set_family_id
from utils.money import to_decimal
from utils.periods import MONTH_NAMES, period_bounds


UNCATEGORIZED = 'Uncategorized'
UNASSIGNED = 'Unassigned'
# Fields mirrored on the planned-expense payment that created the row
PAYMENT_LOCKED_FIELDS = ('amount', 'date', 'person_id')


class ExpenseService:

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    @staticmethod
    def create_expense(description, amount, expense_date=None, category_id=None,
                       subcategory_id=None, person_id=None, log=True):
        fields = ExpenseService._validate_fields(
            description, amount, expense_date, category_id, subcategory_id, person_id
        )
        expense = set_family_id(Expense(**fields))
        db.session.add(expense)
        db.session.commit()

        if log:
            ExpenseService._log('create', expense)
        return expense

    @staticmethod
    def update_expense(expense_id, description, amount, expense_date=None, category_id=None,
                       subcategory_id=None, person_id=None):
        """Edit a ledger row.

        Rows created by a planned-expense payment keep the amount, date and
        payer recorded on the payment; only the labels can change.
        """
        expense = ExpenseService._get_expense(expense_id)
        fields = ExpenseService._validate_fields(
            description, amount, expense_date or expense.date, category_id, subcategory_id, person_id
        )
        if ExpenseService._linked_payment(expense) is not None:
            locked = [key for key in PAYMENT_LOCKED_FIELDS if fields[key] != getattr(expense, key)]
            if locked:
                raise PaymentStateError(
                    f'{", ".join(locked)} of this expense come from a planned expense payment; '
                    'reverse and confirm the payment again instead'
                )
        for key, value in fields.items():
            setattr(expense, key, value)
        db.session.commit()

        ExpenseService._log('update', expense)
        return expense

    @staticmethod
    def delete_expense(expense_id):
        """Delete a ledger row.

        Rows created by a planned-expense payment can only go away by
        reversing that payment, otherwise the payment would stay "paid" with
        nothing behind it.
        """
        expense = ExpenseService._get_expense(expense_id)
        if ExpenseService._linked_payment(expense) is not None:
            raise PaymentStateError(
                'This expense was recorded by a planned expense payment; reverse the payment instead'
            )

        snapshot = (expense.description, expense.amount, expense.person_id,
                    expense.category.name if expense.category else UNCATEGORIZED)
        db.session.delete(expense)
        db.session.commit()

        description, amount, person_id, category_name = snapshot
        ActivityService.log_activity('delete', 'Expense', category_name,
                                     details=f'{amount:.2f} - {description}', person_id=person_id)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    @staticmethod
    def list_expenses(year=None, month=None, category_id=None, person_id=None,
                      category_type=None, search=None):
        """Ledger rows matching the filters, newest first."""
        query = family_query(Expense).options(
            db.joinedload(Expense.category),
            db.joinedload(Expense.subcategory),
            db.joinedload(Expense.person),
        )
        if year and month:
            start, end = period_bounds(year, month)
            query = query.filter(Expense.date >= start, Expense.date <= end)
        elif year:
            query = query.filter(Expense.date >= date(year, 1, 1), Expense.date <= date(year, 12, 31))
        if category_id:
            query = query.filter(Expense.category_id == category_id)
        if person_id:
            query = query.filter(Expense.person_id == person_id)
        if category_type:
            query = query.join(Category, Expense.category_id == Category.id).filter(
                Category.category_type == category_type
            )

        expenses = query.order_by(Expense.date.desc(), Expense.id.desc()).all()
        if search:
            expenses = [e for e in expenses if ExpenseService.matches_search(e, search)]
        return expenses

    @staticmethod
    def matches_search(expense, search):
        """Case-insensitive match on category, description, person or amount."""
        needle = search.strip().lower()
        if not needle:
            return True
        haystack = [
            expense.description or '',
            expense.category.name if expense.category else '',
            expense.subcategory.name if expense.subcategory else '',
            expense.person.name if expense.person else '',
            f'{expense.amount:.2f}',
            f'{expense.amount:.2f}'.replace('.', ','),
        ]
        return any(needle in value.lower() for value in haystack)

    @staticmethod
    def month_total(year, month):
        start, end = period_bounds(year, month)
        total = family_query(Expense).with_entities(func.sum(Expense.amount)).filter(
            Expense.date >= start, Expense.date <= end
        ).scalar()
        return Decimal(total or 0).quantize(Decimal('0.01'))

    @staticmethod
    def totals_by_month(year):
        """Twelve month buckets for *year*, in calendar order, zero-filled."""
        month_col = extract('month', Expense.date)
        rows = (
            family_query(Expense)
            .with_entities(month_col, func.sum(Expense.amount))
            .filter(Expense.date >= date(year, 1, 1), Expense.date <= date(year, 12, 31))
            .group_by(month_col)
            .all()
        )
        found = {int(m): Decimal(total or 0) for m, total in rows}
        return [
            {'month': m, 'label': MONTH_NAMES[m - 1], 'total': found.get(m, Decimal('0')).quantize(Decimal('0.01'))}
            for m in range(1, 13)
        ]

    @staticmethod
    def totals_by_category(year, month):
        """Spending per category for the month, biggest first."""
        groups = OrderedDict()
        for expense in ExpenseService.list_expenses(year=year, month=month):
            cat = expense.category
            key = cat.id if cat else None
            if key not in groups:
                groups[key] = {
                    'category_id': key,
                    'name': cat.name if cat else UNCATEGORIZED,
                    'color': cat.color if cat else None,
                    'category_type': cat.category_type if cat else None,
                    'total': Decimal('0'),
                    'count': 0,
                }
            groups[key]['total'] += expense.amount
            groups[key]['count'] += 1
        return sorted(groups.values(), key=lambda g: g['total'], reverse=True)

    @staticmethod
    def totals_by_person(year, month):
        """Spending per household member for the month, biggest first."""
        groups = OrderedDict()
        for expense in ExpenseService.list_expenses(year=year, month=month):
            person = expense.person
            key = person.id if person else None
            if key not in groups:
                groups[key] = {
                    'person_id': key,
                    'name': person.name if person else UNASSIGNED,
                    'color': person.color if person else None,
                    'total': Decimal('0'),
                    'count': 0,
                }
            groups[key]['total'] += expense.amount
            groups[key]['count'] += 1
        return sorted(groups.values(), key=lambda g: g['total'], reverse=True)

    @staticmethod
    def totals_by_type(year, month):
        """Fixed vs variable spending (uncategorized rows are counted apart)."""
        totals = {'fixed': Decimal('0'), 'variable': Decimal('0'), 'uncategorized': Decimal('0')}
        for group in ExpenseService.totals_by_category(year, month):
            totals[group['category_type'] or 'uncategorized'] += group['total']
        return totals

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _get_expense(expense_id):
        expense = family_get(Expense, expense_id)
        if expense is None:
            raise NotFoundError('Expense not found')
        return expense

    @staticmethod
    def _linked_payment(expense):
        """The paid planned-expense payment that materialized *expense*, if any."""
        return family_query(PlannedExpensePayment).filter_by(expense_id=expense.id, paid=True).first()

    @staticmethod
    def _validate_fields(description, amount, expense_date, category_id, subcategory_id, person_id):
        errors = {}
        description = (description or '').strip()
        if not description:
            errors['description'] = ['Description is required']

        try:
            amount = to_decimal(amount)
        except ValueError:
            amount = None
        if amount is None or amount <= 0:
            errors['amount'] = ['Amount must be greater than zero']

        if category_id and family_get(Category, category_id) is None:
            errors['category_id'] = ['Unknown category']
        if subcategory_id:
            sub = family_get(Subcategory, subcategory_id)
            if sub is None or (category_id and sub.category_id != int(category_id)):
                errors['subcategory_id'] = ['Subcategory does not belong to the category']
        if person_id and family_get(Person, person_id) is None:
            errors['person_id'] = ['Unknown person']

        if errors:
            raise ValidationError('Validation failed', fields=errors)
        return {
            'description': description,
            'amount': amount,
            'date': expense_date or date.today(),
            'category_id': category_id or None,
            'subcategory_id': subcategory_id or None,
            'person_id': person_id or None,
        }

    @staticmethod
    def _log(action, expense):
        category_name = expense.category.name if expense.category else UNCATEGORIZED
        ActivityService.log_activity(
            action, 'Expense', category_name,
            details=f'{current_app.config.get("CURRENCY_SYMBOL", "")} {expense.amount:.2f} - {expense.description}'.strip(),
            person_id=expense.person_id,
        )
