"""
Planned (recurring) expenses and their month-by-month payment tracking.

A planned expense is a bill that recurs every month on ``due_day``.  Its
payment state is kept per calendar month in ``PlannedExpensePayment``.
Confirming a month materializes a row in the general expense ledger and the
payment keeps that row's id, so reversing the payment removes exactly the
row it created.

The classification helpers (visibility, overdue, ordering, summary) are pure
functions of already-fetched rows so they can be unit tested without a
database.
"""
from datetime import date, datetime, timezone
from decimal import Decimal

from flask import current_app
from sqlalchemy.exc import SQLAlchemyError

from extensions import db
from models.categories import Category
from models.expenses import Expense
from models.people import Person
from models.planned import PlannedExpense, PlannedExpensePayment
from services.activity_service import ActivityService
from services.errors import NotFoundError, PaymentStateError, ValidationError
from utils.db_helpers import family_get, family_query, set_family_id
from utils.money import to_decimal
from utils.periods import check_period, clamp_day, compare_periods, month_label, period_end


# Row buckets, in display order
OVERDUE, PENDING, PAID = 0, 1, 2


def _utcnow():
    return datetime.now(timezone.utc).replace(tzinfo=None)


class PlannedExpenseService:

    # ------------------------------------------------------------------
    # Pure classification
    # ------------------------------------------------------------------

    @staticmethod
    def is_visible(planned, year, month):
        """True if *planned* belongs on the list for the given month.

        A planned expense shows up from the month it was created in until the
        month before it was deactivated.  It never appears retroactively.
        """
        end = period_end(year, month)
        if planned.created_at and planned.created_at.date() > end:
            return False
        if planned.deactivated_at is not None:
            return planned.deactivated_at.date() > end
        return bool(planned.active)

    @staticmethod
    def is_overdue(due_day, paid, year, month, today):
        """Overdue = unpaid and either the month is over or its due day has passed.

        Months after the current one are never overdue.
        """
        if paid:
            return False
        order = compare_periods((year, month), (today.year, today.month))
        if order < 0:
            return True
        if order == 0:
            return today.day > due_day
        return False

    @staticmethod
    def due_date(planned, year, month):
        """Calendar date the bill falls on, with due_day clamped to the month."""
        return clamp_day(year, month, planned.due_day)

    @staticmethod
    def build_rows(planned_expenses, payments, year, month, today):
        """Filter, classify and order planned expenses for one month.

        *payments* is any iterable of ``PlannedExpensePayment`` for that month.
        Returns a list of row dicts ordered overdue first, then pending, then
        paid; each bucket by due day.
        """
        by_planned = {p.planned_expense_id: p for p in payments}
        rows = []
        for planned in planned_expenses:
            payment = by_planned.get(planned.id)
            paid = bool(payment and payment.paid)
            # A paid month stays listed even after the item is deactivated
            if not paid and not PlannedExpenseService.is_visible(planned, year, month):
                continue
            overdue = PlannedExpenseService.is_overdue(planned.due_day, paid, year, month, today)
            if paid:
                bucket = PAID
            elif overdue:
                bucket = OVERDUE
            else:
                bucket = PENDING
            rows.append({
                'planned_expense': planned,
                'payment': payment,
                'paid': paid,
                'overdue': overdue,
                'bucket': bucket,
                'due_date': PlannedExpenseService.due_date(planned, year, month),
                'amount': Decimal(planned.amount),
                'paid_amount': Decimal(payment.paid_amount) if paid and payment.paid_amount is not None else None,
            })
        rows.sort(key=lambda r: (r['bucket'], r['planned_expense'].due_day, r['planned_expense'].name.lower()))
        return rows

    @staticmethod
    def summarize(rows):
        """Aggregate totals for a list produced by ``build_rows``.

        ``total_paid`` uses the amount actually paid; ``total_paid_planned``
        the planned amount of the same rows, so that
        ``total_expected == total_paid_planned + total_pending`` always holds.
        """
        summary = {
            'total_expected': Decimal('0.00'),
            'total_paid': Decimal('0.00'),
            'total_paid_planned': Decimal('0.00'),
            'total_pending': Decimal('0.00'),
            'total_overdue': Decimal('0.00'),
            'paid_count': 0,
            'overdue_count': 0,
            'total_count': 0,
        }
        for row in rows:
            amount = row['amount']
            summary['total_expected'] += amount
            summary['total_count'] += 1
            if row['paid']:
                summary['paid_count'] += 1
                summary['total_paid_planned'] += amount
                summary['total_paid'] += row['paid_amount'] if row['paid_amount'] is not None else amount
            else:
                summary['total_pending'] += amount
                if row['overdue']:
                    summary['overdue_count'] += 1
                    summary['total_overdue'] += amount

        total = summary['total_count']
        summary['progress'] = round(summary['paid_count'] * 100 / total, 1) if total else 0.0
        return summary

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    @staticmethod
    def get_month_view(year, month, today=None):
        """Rows and summary for the planned-expense screen of one month."""
        check_period(year, month)
        today = today or date.today()

        planned_expenses = (
            family_query(PlannedExpense)
            .options(db.joinedload(PlannedExpense.category))
            .order_by(PlannedExpense.name)
            .all()
        )
        payments = family_query(PlannedExpensePayment).filter_by(year=year, month=month).all()

        rows = PlannedExpenseService.build_rows(planned_expenses, payments, year, month, today)
        return {
            'year': year,
            'month': month,
            'label': month_label(year, month),
            'rows': rows,
            'summary': PlannedExpenseService.summarize(rows),
        }

    @staticmethod
    def get_payment(planned_id, year, month):
        return family_query(PlannedExpensePayment).filter_by(
            planned_expense_id=planned_id, year=year, month=month
        ).first()

    # ------------------------------------------------------------------
    # Registry
    # ------------------------------------------------------------------

    @staticmethod
    def create_planned_expense(name, amount, due_day, category_id=None, description=None, now=None):
        fields = PlannedExpenseService._validate_fields(name, amount, due_day, category_id)
        planned = set_family_id(PlannedExpense(
            name=fields['name'],
            amount=fields['amount'],
            due_day=fields['due_day'],
            category_id=fields['category_id'],
            description=(description or '').strip() or None,
            active=True,
            created_at=now or _utcnow(),
        ))
        db.session.add(planned)
        db.session.commit()

        current_app.logger.info(f'Planned expense {planned.id} "{planned.name}" created')
        ActivityService.log_activity('create', 'PlannedExpense', planned.name,
                                     details=f'{planned.amount:.2f} due day {planned.due_day}')
        return planned

    @staticmethod
    def update_planned_expense(planned_id, name, amount, due_day, category_id=None, description=None):
        """Edit a planned expense.

        Payments already confirmed keep the ledger row they created; only
        future confirmations use the new values.
        """
        planned = PlannedExpenseService._get_planned(planned_id)
        fields = PlannedExpenseService._validate_fields(name, amount, due_day, category_id)
        planned.name = fields['name']
        planned.amount = fields['amount']
        planned.due_day = fields['due_day']
        planned.category_id = fields['category_id']
        planned.description = (description or '').strip() or None
        db.session.commit()

        ActivityService.log_activity('update', 'PlannedExpense', planned.name,
                                     details=f'{planned.amount:.2f} due day {planned.due_day}')
        return planned

    @staticmethod
    def deactivate_planned_expense(planned_id, now=None):
        """Soft delete: hidden from the deactivation month onwards, kept in the past."""
        planned = PlannedExpenseService._get_planned(planned_id)
        if planned.deactivated_at is None:
            planned.active = False
            planned.deactivated_at = now or _utcnow()
            db.session.commit()
            ActivityService.log_activity('delete', 'PlannedExpense', planned.name)
        return planned

    # ------------------------------------------------------------------
    # Payment ledger
    # ------------------------------------------------------------------

    @staticmethod
    def confirm_payment(planned_id, year, month, paid_amount, person_id, now=None):
        """Mark a month as paid and materialize the matching ledger expense.

        The payment upsert and the expense insert are committed together.
        Returns the ``PlannedExpensePayment``.
        """
        planned = PlannedExpenseService._get_planned(planned_id)
        check_period(year, month)

        try:
            amount = to_decimal(paid_amount)
        except ValueError:
            amount = None
        if amount is None or amount <= 0:
            raise ValidationError('Paid amount must be greater than zero',
                                  fields={'paid_amount': ['Must be greater than zero']})
        if not person_id:
            raise ValidationError('Payer is required', fields={'person_id': ['Payer is required']})
        person = family_get(Person, person_id)
        if person is None:
            raise ValidationError('Unknown payer', fields={'person_id': ['Unknown payer']})

        if not PlannedExpenseService.is_visible(planned, year, month):
            raise ValidationError(f'"{planned.name}" is not scheduled for {month_label(year, month)}')

        payment = PlannedExpenseService.get_payment(planned.id, year, month)
        if payment is not None and payment.paid:
            raise PaymentStateError(f'"{planned.name}" is already paid for {month_label(year, month)}')

        try:
            if payment is None:
                payment = set_family_id(PlannedExpensePayment(
                    planned_expense_id=planned.id, year=year, month=month, paid=False,
                ))
                db.session.add(payment)

            expense = set_family_id(Expense(
                date=PlannedExpenseService.due_date(planned, year, month),
                description=planned.expense_description,
                amount=amount,
                category_id=planned.category_id,
                person_id=person.id,
            ))
            db.session.add(expense)
            db.session.flush()

            payment.paid = True
            payment.paid_at = now or _utcnow()
            payment.paid_amount = amount
            payment.person_id = person.id
            payment.expense_id = expense.id
            db.session.commit()
        except SQLAlchemyError:
            db.session.rollback()
            current_app.logger.exception(
                f'Confirming payment of planned expense {planned.id} for {year}-{month:02d} failed'
            )
            raise

        current_app.logger.info(
            f'Planned expense {planned.id} paid for {year}-{month:02d}: {amount} by person {person.id} '
            f'(expense {payment.expense_id})'
        )
        ActivityService.log_activity(
            'create', 'Payment', planned.name,
            details=f'{amount:.2f} - {month_label(year, month)}',
            person_id=person.id,
        )
        return payment

    @staticmethod
    def reverse_payment(planned_id, year, month):
        """Undo a confirmed payment and delete the ledger expense it created.

        The payment row is kept with its fields cleared.
        """
        planned = PlannedExpenseService._get_planned(planned_id)
        check_period(year, month)

        payment = PlannedExpenseService.get_payment(planned.id, year, month)
        if payment is None or not payment.paid:
            raise PaymentStateError(f'"{planned.name}" is not paid for {month_label(year, month)}')

        person_id = payment.person_id
        try:
            expense = family_get(Expense, payment.expense_id)
            if expense is not None:
                db.session.delete(expense)
            else:
                current_app.logger.warning(
                    f'Payment {payment.id} had no ledger expense to remove (expense_id={payment.expense_id})'
                )

            payment.paid = False
            payment.paid_at = None
            payment.paid_amount = None
            payment.person_id = None
            payment.expense_id = None
            db.session.commit()
        except SQLAlchemyError:
            db.session.rollback()
            current_app.logger.exception(
                f'Reversing payment of planned expense {planned.id} for {year}-{month:02d} failed'
            )
            raise

        current_app.logger.info(f'Planned expense {planned.id} payment for {year}-{month:02d} reversed')
        ActivityService.log_activity('delete', 'Payment', planned.name,
                                     details=month_label(year, month), person_id=person_id)
        return payment

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _get_planned(planned_id):
        planned = family_get(PlannedExpense, planned_id)
        if planned is None:
            raise NotFoundError('Planned expense not found')
        return planned

    @staticmethod
    def _validate_fields(name, amount, due_day, category_id):
        errors = {}
        name = (name or '').strip()
        if not name:
            errors['name'] = ['Name is required']

        try:
            amount = to_decimal(amount)
        except ValueError:
            amount = None
        if amount is None or amount <= 0:
            errors['amount'] = ['Amount must be greater than zero']

        try:
            due_day = int(due_day)
        except (TypeError, ValueError):
            due_day = None
        if due_day is None or not 1 <= due_day <= 31:
            errors['due_day'] = ['Due day must be between 1 and 31']

        if category_id and family_get(Category, category_id) is None:
            errors['category_id'] = ['Unknown category']

        if errors:
            raise ValidationError('Validation failed', fields=errors)
        return {
            'name': name,
            'amount': amount,
            'due_day': due_day,
            'category_id': category_id or None,
        }
