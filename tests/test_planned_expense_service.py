"""
Tests for PlannedExpenseService: visibility, overdue classification,
ordering, aggregates and the confirm/reverse payment workflow.
"""
from datetime import date, datetime
from decimal import Decimal
from types import SimpleNamespace

import pytest
from sqlalchemy.exc import SQLAlchemyError

from extensions import db
from models.activities import Activity
from models.expenses import Expense
from models.planned import PlannedExpensePayment
from services.errors import NotFoundError, PaymentStateError, ValidationError
from services.planned_expense_service import PlannedExpenseService as svc


def _planned(id=1, name='Netflix', amount='39.90', due_day=10, created_at=datetime(2026, 1, 1),
             deactivated_at=None, active=True):
    return SimpleNamespace(id=id, name=name, amount=Decimal(amount), due_day=due_day,
                           created_at=created_at, deactivated_at=deactivated_at, active=active)


def _payment(planned_id, paid=True, paid_amount=None):
    return SimpleNamespace(planned_expense_id=planned_id, paid=paid,
                           paid_amount=Decimal(paid_amount) if paid_amount else None)


# ---------------------------------------------------------------------------
# Visibility
# ---------------------------------------------------------------------------

class TestVisibility:
    def test_netflix_created_in_march_is_hidden_before(self):
        netflix = _planned(created_at=datetime(2026, 3, 12))
        assert svc.is_visible(netflix, 2026, 1) is False
        assert svc.is_visible(netflix, 2026, 2) is False
        assert svc.is_visible(netflix, 2025, 12) is False

    def test_netflix_created_in_march_is_shown_from_march(self):
        netflix = _planned(created_at=datetime(2026, 3, 12))
        assert svc.is_visible(netflix, 2026, 3) is True
        assert svc.is_visible(netflix, 2026, 4) is True
        assert svc.is_visible(netflix, 2027, 1) is True

    def test_deactivated_hidden_from_deactivation_month(self):
        planned = _planned(deactivated_at=datetime(2026, 5, 15), active=False)
        assert svc.is_visible(planned, 2026, 4) is True
        assert svc.is_visible(planned, 2026, 5) is False
        assert svc.is_visible(planned, 2026, 6) is False

    def test_inactive_without_deactivation_date_is_hidden(self):
        planned = _planned(active=False)
        assert svc.is_visible(planned, 2026, 3) is False


# ---------------------------------------------------------------------------
# Overdue classification
# ---------------------------------------------------------------------------

class TestOverdue:
    today = date(2026, 6, 10)

    def test_past_month_unpaid_is_always_overdue(self):
        assert svc.is_overdue(28, False, 2026, 5, self.today) is True
        assert svc.is_overdue(1, False, 2025, 12, self.today) is True

    def test_current_month_overdue_only_after_due_day(self):
        assert svc.is_overdue(5, False, 2026, 6, self.today) is True
        assert svc.is_overdue(10, False, 2026, 6, self.today) is False
        assert svc.is_overdue(25, False, 2026, 6, self.today) is False

    def test_future_month_never_overdue(self):
        assert svc.is_overdue(1, False, 2026, 7, self.today) is False
        assert svc.is_overdue(1, False, 2027, 1, self.today) is False

    def test_paid_never_overdue(self):
        assert svc.is_overdue(1, True, 2026, 5, self.today) is False

    def test_due_day_5_and_25_viewed_on_the_10th(self):
        rows = svc.build_rows(
            [_planned(id=1, name='Escola', due_day=25), _planned(id=2, name='Internet', due_day=5)],
            [], 2026, 6, self.today,
        )
        overdue = {r['planned_expense'].name: r['overdue'] for r in rows}
        assert overdue == {'Internet': True, 'Escola': False}


# ---------------------------------------------------------------------------
# Ordering and aggregates
# ---------------------------------------------------------------------------

class TestRowsAndSummary:
    today = date(2026, 6, 10)

    def _rows(self):
        planned = [
            _planned(id=1, name='Clube', amount='100.00', due_day=20),
            _planned(id=2, name='Luz', amount='150.00', due_day=8),
            _planned(id=3, name='Escola', amount='900.00', due_day=2),
            _planned(id=4, name='Agua', amount='80.00', due_day=5),
            _planned(id=5, name='Netflix', amount='39.90', due_day=15),
        ]
        payments = [_payment(3, paid_amount='900.00'), _payment(5, paid_amount='35.00'),
                    _payment(1, paid=False)]
        return svc.build_rows(planned, payments, 2026, 6, self.today)

    def test_order_overdue_then_pending_then_paid_by_due_day(self):
        names = [r['planned_expense'].name for r in self._rows()]
        assert names == ['Agua', 'Luz', 'Clube', 'Escola', 'Netflix']

    def test_due_date_is_clamped(self):
        rows = svc.build_rows([_planned(due_day=31)], [], 2026, 2, self.today)
        assert rows[0]['due_date'] == date(2026, 2, 28)

    def test_summary_uses_actual_paid_amount(self):
        summary = svc.summarize(self._rows())
        assert summary['total_expected'] == Decimal('1269.90')
        assert summary['total_paid'] == Decimal('935.00')
        assert summary['total_paid_planned'] == Decimal('939.90')
        assert summary['total_pending'] == Decimal('330.00')
        assert summary['total_overdue'] == Decimal('230.00')
        assert summary['paid_count'] == 2
        assert summary['overdue_count'] == 2
        assert summary['total_count'] == 5
        assert summary['progress'] == 40.0

    def test_expected_equals_paid_planned_plus_pending(self):
        summary = svc.summarize(self._rows())
        assert summary['total_expected'] == summary['total_paid_planned'] + summary['total_pending']

    def test_empty_summary(self):
        summary = svc.summarize([])
        assert summary['total_expected'] == Decimal('0')
        assert summary['progress'] == 0.0


# ---------------------------------------------------------------------------
# Registry (database)
# ---------------------------------------------------------------------------

class TestPlannedRegistry:
    def test_create_validates_fields(self, app, patch_family):
        with pytest.raises(ValidationError) as exc:
            svc.create_planned_expense('  ', '0', 40)
        assert set(exc.value.fields) == {'name', 'amount', 'due_day'}

    def test_create_and_log(self, app, patch_family):
        planned = svc.create_planned_expense('Netflix', '39,90', 10, now=datetime(2026, 3, 1))
        assert planned.amount == Decimal('39.90')
        assert planned.family_id == patch_family.id
        assert Activity.query.filter_by(entity_type='PlannedExpense', action='create').count() == 1

    def test_deactivate_keeps_past_months(self, app, patch_family, make_planned):
        planned = make_planned(created_at=datetime(2026, 1, 5))
        svc.deactivate_planned_expense(planned.id, now=datetime(2026, 5, 15))

        april = svc.get_month_view(2026, 4, today=date(2026, 5, 20))
        may = svc.get_month_view(2026, 5, today=date(2026, 5, 20))
        assert [r['planned_expense'].id for r in april['rows']] == [planned.id]
        assert may['rows'] == []

    def test_paid_month_stays_listed_after_deactivation(self, app, patch_family, make_planned, person):
        planned = make_planned(created_at=datetime(2026, 1, 5))
        svc.confirm_payment(planned.id, 2026, 5, '39.90', person.id, now=datetime(2026, 5, 10))
        svc.deactivate_planned_expense(planned.id, now=datetime(2026, 5, 15))

        may = svc.get_month_view(2026, 5, today=date(2026, 5, 20))
        june = svc.get_month_view(2026, 6, today=date(2026, 5, 20))
        assert [r['planned_expense'].id for r in may['rows']] == [planned.id]
        assert may['rows'][0]['paid'] is True
        assert may['summary']['total_paid'] == Decimal('39.90')
        assert june['rows'] == []

    def test_other_family_not_found(self, app, patch_family):
        with pytest.raises(NotFoundError):
            svc.update_planned_expense(9999, 'X', '1', 1)


# ---------------------------------------------------------------------------
# Payment workflow (database)
# ---------------------------------------------------------------------------

class TestPaymentWorkflow:
    def test_confirm_materializes_expense(self, app, patch_family, make_planned, person, category):
        planned = make_planned(due_day=31, category_id=category.id, description='Premium')
        payment = svc.confirm_payment(planned.id, 2026, 2, '39.90', person.id,
                                      now=datetime(2026, 2, 3, 9, 0))

        expense = db.session.get(Expense, payment.expense_id)
        assert payment.paid is True
        assert payment.paid_amount == Decimal('39.90')
        assert payment.person_id == person.id
        assert expense.date == date(2026, 2, 28)
        assert expense.description == 'Netflix - Premium'
        assert expense.amount == Decimal('39.90')
        assert expense.category_id == category.id
        assert expense.person_id == person.id

    def test_partial_payment_reflected_in_totals(self, app, patch_family, make_planned, person):
        planned = make_planned()
        svc.confirm_payment(planned.id, 2026, 3, '35.00', person.id)

        view = svc.get_month_view(2026, 3, today=date(2026, 3, 20))
        row = view['rows'][0]
        assert row['amount'] == Decimal('39.90')
        assert row['paid_amount'] == Decimal('35.00')
        assert view['summary']['total_paid'] == Decimal('35.00')
        assert view['summary']['total_pending'] == Decimal('0.00')

    def test_confirm_then_reverse_restores_totals(self, app, patch_family, make_planned, person):
        make_planned(name='Escola', amount='900.00', due_day=5)
        planned = make_planned(name='Netflix', amount='39.90', due_day=10)
        today = date(2026, 3, 20)
        before = svc.get_month_view(2026, 3, today=today)['summary']

        svc.confirm_payment(planned.id, 2026, 3, '39.90', person.id)
        svc.reverse_payment(planned.id, 2026, 3)

        after = svc.get_month_view(2026, 3, today=today)['summary']
        assert after == before
        assert Expense.query.count() == 0
        payment = svc.get_payment(planned.id, 2026, 3)
        assert payment.paid is False
        assert payment.paid_amount is None and payment.expense_id is None

    def test_reverse_after_due_day_edit_removes_original_expense(
        self, app, patch_family, make_planned, person
    ):
        planned = make_planned(due_day=10)
        svc.confirm_payment(planned.id, 2026, 3, '39.90', person.id)
        svc.update_planned_expense(planned.id, 'Netflix 4K', '55.90', 20)

        svc.reverse_payment(planned.id, 2026, 3)
        assert Expense.query.count() == 0

    def test_reconfirm_after_reverse_reuses_payment_row(self, app, patch_family, make_planned, person):
        planned = make_planned()
        svc.confirm_payment(planned.id, 2026, 3, '39.90', person.id)
        svc.reverse_payment(planned.id, 2026, 3)
        svc.confirm_payment(planned.id, 2026, 3, '30.00', person.id)

        assert PlannedExpensePayment.query.count() == 1
        assert Expense.query.one().amount == Decimal('30.00')

    def test_double_confirm_rejected(self, app, patch_family, make_planned, person):
        planned = make_planned()
        svc.confirm_payment(planned.id, 2026, 3, '39.90', person.id)
        with pytest.raises(PaymentStateError):
            svc.confirm_payment(planned.id, 2026, 3, '39.90', person.id)
        assert Expense.query.count() == 1

    def test_reverse_unpaid_rejected(self, app, patch_family, make_planned):
        planned = make_planned()
        with pytest.raises(PaymentStateError):
            svc.reverse_payment(planned.id, 2026, 3)

    @pytest.mark.parametrize('amount', ['0', '-5', 'abc', None])
    def test_invalid_amount_rejected_before_write(self, app, patch_family, make_planned, person, amount):
        planned = make_planned()
        with pytest.raises(ValidationError):
            svc.confirm_payment(planned.id, 2026, 3, amount, person.id)
        assert PlannedExpensePayment.query.count() == 0
        assert Expense.query.count() == 0

    def test_payer_required(self, app, patch_family, make_planned):
        planned = make_planned()
        with pytest.raises(ValidationError) as exc:
            svc.confirm_payment(planned.id, 2026, 3, '39.90', None)
        assert 'person_id' in exc.value.fields

    def test_month_before_creation_rejected(self, app, patch_family, make_planned, person):
        planned = make_planned(created_at=datetime(2026, 3, 12))
        with pytest.raises(ValidationError):
            svc.confirm_payment(planned.id, 2026, 1, '39.90', person.id)

    def test_failed_commit_leaves_no_partial_state(
        self, app, patch_family, make_planned, person, monkeypatch
    ):
        planned = make_planned()

        def failing_commit(session):
            raise SQLAlchemyError('database is locked')

        monkeypatch.setattr(type(db.session()), 'commit', failing_commit)
        with pytest.raises(SQLAlchemyError):
            svc.confirm_payment(planned.id, 2026, 3, '39.90', person.id)
        monkeypatch.undo()

        assert Expense.query.count() == 0
        assert PlannedExpensePayment.query.filter_by(paid=True).count() == 0

    def test_payment_activity_logged(self, app, patch_family, make_planned, person):
        planned = make_planned()
        svc.confirm_payment(planned.id, 2026, 3, '39.90', person.id)
        svc.reverse_payment(planned.id, 2026, 3)

        actions = [(a.action, a.entity_type) for a in Activity.query.order_by(Activity.id).all()]
        assert actions == [('create', 'Payment'), ('delete', 'Payment')]
