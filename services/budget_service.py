from decimal import Decimal

from extensions import db
from models.categories import Category, CategoryBudget
from services.errors import NotFoundError, ValidationError
from services.expense_service import ExpenseService
from utils.db_helpers import family_get, family_query, set_family_id
from utils.money import to_decimal
from utils.periods import check_period


WARNING_THRESHOLD = Decimal('80')
OVER_THRESHOLD = Decimal('100')


class BudgetService:
    @staticmethod
    def budget_status(percentage):
        """'ok' below 80% of the limit, 'warning' from 80%, 'over' from 100%."""
        if percentage >= OVER_THRESHOLD:
            return 'over'
        if percentage >= WARNING_THRESHOLD:
            return 'warning'
        return 'ok'

    @staticmethod
    def set_budget(category_id, year, month, amount):
        """Create or replace the monthly limit of a category"""
        check_period(year, month)
        category = family_get(Category, category_id)
        if category is None:
            raise NotFoundError('Category not found')
        try:
            amount = to_decimal(amount)
        except ValueError:
            amount = None
        if amount is None or amount < 0:
            raise ValidationError('Validation failed', fields={'amount': ['Budget must be zero or more']})

        budget = family_query(CategoryBudget).filter_by(
            category_id=category.id, year=year, month=month
        ).first()
        if budget is None:
            budget = set_family_id(CategoryBudget(category_id=category.id, year=year, month=month, amount=amount))
            db.session.add(budget)
        else:
            budget.amount = amount
        db.session.commit()
        return budget

    @staticmethod
    def get_budgets(year, month):
        return family_query(CategoryBudget).filter_by(year=year, month=month).all()

    @staticmethod
    def budget_progress(year, month):
        """Spent vs limit for every category with a budget this month.

        Returns ``{'fixed': [...], 'variable': [...]}``.
        """
        spent_by_category = {
            group['category_id']: group['total']
            for group in ExpenseService.totals_by_category(year, month)
        }
        progress = {'fixed': [], 'variable': []}
        budgets = (
            family_query(CategoryBudget)
            .options(db.joinedload(CategoryBudget.category))
            .filter_by(year=year, month=month)
            .all()
        )
        for budget in sorted(budgets, key=lambda b: b.category.name.lower()):
            limit = Decimal(budget.amount)
            spent = spent_by_category.get(budget.category_id, Decimal('0'))
            percentage = (spent * 100 / limit).quantize(Decimal('0.1')) if limit > 0 else Decimal('0')
            progress.setdefault(budget.category.category_type, []).append({
                'category_id': budget.category_id,
                'name': budget.category.name,
                'color': budget.category.color,
                'spent': spent,
                'limit': limit,
                'remaining': limit - spent,
                'percentage': percentage,
                'status': BudgetService.budget_status(percentage),
            })
        return progress
