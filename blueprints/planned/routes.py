from flask import jsonify
from . import planned_bp
from services.planned_expense_service import PlannedExpenseService
from utils.forms import validated_form, period_from_args
from utils.money import as_float, jsonable
from utils.periods import shift_month, year_choices
from .forms import PlannedExpenseForm, PeriodForm, ConfirmPaymentForm


def _serialize_row(row):
    planned = row['planned_expense']
    payment = row['payment']
    paid_amount = row['paid_amount']
    return {
        'planned_expense': planned.to_dict(),
        'paid': row['paid'],
        'overdue': row['overdue'],
        'due_date': row['due_date'].isoformat(),
        'amount': as_float(row['amount']),
        'paid_amount': as_float(paid_amount),
        'amount_differs': paid_amount is not None and paid_amount != row['amount'],
        'paid_at': payment.paid_at.isoformat() if row['paid'] and payment.paid_at else None,
        'paid_by': payment.person.to_dict() if row['paid'] and payment.person else None,
        'expense_id': payment.expense_id if row['paid'] else None,
    }


@planned_bp.route('/')
def index():
    """Planned expenses for ?year=&month=: overdue first, then pending, then paid"""
    year, month = period_from_args()
    view = PlannedExpenseService.get_month_view(year, month)
    prev_year, prev_month = shift_month(year, month, -1)
    next_year, next_month = shift_month(year, month, 1)
    return jsonify({
        'year': view['year'],
        'month': view['month'],
        'label': view['label'],
        'previous': {'year': prev_year, 'month': prev_month},
        'next': {'year': next_year, 'month': next_month},
        'years': year_choices(),
        'rows': [_serialize_row(r) for r in view['rows']],
        'summary': jsonable(view['summary']),
    })


@planned_bp.route('/', methods=['POST'])
def add():
    form = validated_form(PlannedExpenseForm)
    planned = PlannedExpenseService.create_planned_expense(
        name=form.name.data,
        amount=form.amount.data,
        due_day=form.due_day.data,
        category_id=form.category_id.data,
        description=form.description.data,
    )
    return jsonify(planned.to_dict()), 201


@planned_bp.route('/<int:id>', methods=['PUT'])
def edit(id):
    form = validated_form(PlannedExpenseForm)
    planned = PlannedExpenseService.update_planned_expense(
        id,
        name=form.name.data,
        amount=form.amount.data,
        due_day=form.due_day.data,
        category_id=form.category_id.data,
        description=form.description.data,
    )
    return jsonify(planned.to_dict())


@planned_bp.route('/<int:id>', methods=['DELETE'])
def delete(id):
    """Deactivate: the bill disappears from this month on, past months keep it"""
    planned = PlannedExpenseService.deactivate_planned_expense(id)
    return jsonify(planned.to_dict())


@planned_bp.route('/<int:id>/pay', methods=['POST'])
def pay(id):
    form = validated_form(ConfirmPaymentForm)
    payment = PlannedExpenseService.confirm_payment(
        id, form.year.data, form.month.data, form.paid_amount.data, form.person_id.data
    )
    return jsonify(payment.to_dict())


@planned_bp.route('/<int:id>/unpay', methods=['POST'])
def unpay(id):
    form = validated_form(PeriodForm)
    payment = PlannedExpenseService.reverse_payment(id, form.year.data, form.month.data)
    return jsonify(payment.to_dict())
