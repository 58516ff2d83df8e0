from flask import request, jsonify
from . import dashboard_bp
from services.budget_service import BudgetService
from services.change_feed import changes_since, current_version
from services.expense_service import ExpenseService
from services.planned_expense_service import PlannedExpenseService
from utils.forms import period_from_args
from utils.money import jsonable
from utils.periods import month_label


@dashboard_bp.route('/')
@dashboard_bp.route('/dashboard')
def index():
    """Everything the overview screen shows for ?year=&month="""
    year, month = period_from_args()
    planned = PlannedExpenseService.get_month_view(year, month)
    return jsonify(jsonable({
        'year': year,
        'month': month,
        'label': month_label(year, month),
        'total': ExpenseService.month_total(year, month),
        'by_category': ExpenseService.totals_by_category(year, month),
        'by_person': ExpenseService.totals_by_person(year, month),
        'by_type': ExpenseService.totals_by_type(year, month),
        'planned': planned['summary'],
        'budgets': BudgetService.budget_progress(year, month),
        'version': current_version(),
    }))


@dashboard_bp.route('/dashboard/changes')
def changes():
    """Cheap poll: has anything in the ledgers changed since ?since=<version>?"""
    since = request.args.get('since', type=int)
    return jsonify(changes_since(since))
