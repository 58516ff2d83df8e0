from flask import request, jsonify
from . import expenses_bp
from models.categories import CATEGORY_TYPES
from services.errors import ValidationError
from services.expense_service import ExpenseService
from services.import_service import ExpenseImportService
from utils.forms import validated_form, period_from_args
from utils.money import jsonable
from utils.periods import check_period
from .forms import ExpenseForm


@expenses_bp.route('/expenses')
def index():
    """List expenses with month, category, person, type and text filters"""
    year = request.args.get('year', type=int)
    month = request.args.get('month', type=int)
    if month and not year:
        raise ValidationError('year is required when filtering by month')
    if year:
        check_period(year, month or 1)

    category_type = request.args.get('type') or None
    if category_type and category_type not in CATEGORY_TYPES:
        raise ValidationError(f'type must be one of: {", ".join(CATEGORY_TYPES)}')

    expenses = ExpenseService.list_expenses(
        year=year,
        month=month,
        category_id=request.args.get('category_id', type=int),
        person_id=request.args.get('person_id', type=int),
        category_type=category_type,
        search=request.args.get('q'),
    )
    return jsonify({
        'expenses': [e.to_dict() for e in expenses],
        'total': sum(float(e.amount) for e in expenses),
    })


@expenses_bp.route('/expenses', methods=['POST'])
def create():
    form = validated_form(ExpenseForm)
    expense = ExpenseService.create_expense(
        description=form.description.data,
        amount=form.amount.data,
        expense_date=form.date.data,
        category_id=form.category_id.data,
        subcategory_id=form.subcategory_id.data,
        person_id=form.person_id.data,
    )
    return jsonify(expense.to_dict()), 201


@expenses_bp.route('/expenses/<int:expense_id>', methods=['PUT'])
def update(expense_id):
    form = validated_form(ExpenseForm)
    expense = ExpenseService.update_expense(
        expense_id,
        description=form.description.data,
        amount=form.amount.data,
        expense_date=form.date.data,
        category_id=form.category_id.data,
        subcategory_id=form.subcategory_id.data,
        person_id=form.person_id.data,
    )
    return jsonify(expense.to_dict())


@expenses_bp.route('/expenses/<int:expense_id>', methods=['DELETE'])
def delete(expense_id):
    ExpenseService.delete_expense(expense_id)
    return jsonify({'success': True})


@expenses_bp.route('/expenses/import', methods=['POST'])
def import_expenses():
    """Bulk import from an uploaded .csv/.xlsx/.xls file (field name ``file``)"""
    upload = request.files.get('file')
    if upload is None or not upload.filename:
        raise ValidationError('Validation failed', fields={'file': ['Choose a spreadsheet to import']})
    result = ExpenseImportService.import_file(upload.stream, upload.filename)
    return jsonify(result)


@expenses_bp.route('/expenses/summary')
def summary():
    """Month total plus the category, person and type breakdowns and the year chart"""
    year, month = period_from_args()
    return jsonify(jsonable({
        'year': year,
        'month': month,
        'total': ExpenseService.month_total(year, month),
        'by_category': ExpenseService.totals_by_category(year, month),
        'by_person': ExpenseService.totals_by_person(year, month),
        'by_type': ExpenseService.totals_by_type(year, month),
        'by_month': ExpenseService.totals_by_month(year),
    }))
