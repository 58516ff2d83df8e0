# Models package - Import all models for Flask-SQLAlchemy

from models.activities import Activity
from models.categories import Category, CategoryBudget, Subcategory
from models.expenses import Expense
from models.family import Family
from models.people import Person
from models.planned import PlannedExpense, PlannedExpensePayment
from models.users import User

__all__ = [
    'Activity',
    'Category',
    'CategoryBudget',
    'Expense',
    'Family',
    'Person',
    'PlannedExpense',
    'PlannedExpensePayment',
    'Subcategory',
    'User',
]
