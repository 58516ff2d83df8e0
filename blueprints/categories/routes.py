"""
Routes for category management
"""
from flask import current_app, jsonify
from blueprints.categories import bp
from extensions import db
from models.categories import Category, Subcategory
from models.expenses import Expense
from models.planned import PlannedExpense
from services.activity_service import ActivityService
from services.budget_service import BudgetService
from utils.db_helpers import family_query, family_get_or_404, set_family_id
from utils.forms import validated_form, period_from_args
from utils.money import jsonable
from .forms import CategoryForm, SubcategoryForm, BudgetForm


@bp.route('/')
def index():
    """All categories with their subcategories, fixed first"""
    categories = family_query(Category).order_by(Category.category_type, Category.name).all()
    return jsonify([c.to_dict(include_subcategories=True) for c in categories])


@bp.route('/', methods=['POST'])
def add():
    form = validated_form(CategoryForm)
    category = set_family_id(Category(
        name=form.name.data.strip(),
        color=form.color.data or '#3B82F6',
        icon=form.icon.data or 'Tag',
        category_type=form.category_type.data,
    ))
    db.session.add(category)
    db.session.commit()

    ActivityService.log_activity('create', 'Category', category.name, details=category.category_type)
    return jsonify(category.to_dict(include_subcategories=True)), 201


@bp.route('/<int:id>', methods=['PUT'])
def edit(id):
    category = family_get_or_404(Category, id)
    form = validated_form(CategoryForm)
    category.name = form.name.data.strip()
    category.color = form.color.data or category.color
    category.icon = form.icon.data or category.icon
    category.category_type = form.category_type.data
    db.session.commit()

    ActivityService.log_activity('update', 'Category', category.name, details=category.category_type)
    return jsonify(category.to_dict(include_subcategories=True))


@bp.route('/<int:id>', methods=['DELETE'])
def delete(id):
    """Delete a category with its subcategories and budgets; expenses keep their rows uncategorized"""
    category = family_get_or_404(Category, id)
    subcategory_ids = [s.id for s in category.subcategories]

    for expense in family_query(Expense).filter(Expense.category_id == category.id).all():
        expense.category_id = None
        expense.subcategory_id = None
    if subcategory_ids:
        for expense in family_query(Expense).filter(Expense.subcategory_id.in_(subcategory_ids)).all():
            expense.subcategory_id = None
    for planned in family_query(PlannedExpense).filter_by(category_id=category.id).all():
        planned.category_id = None

    name = category.name
    db.session.delete(category)
    db.session.commit()

    current_app.logger.info(f'Category {id} "{name}" deleted')
    ActivityService.log_activity('delete', 'Category', name)
    return jsonify({'success': True})


@bp.route('/<int:id>/subcategories')
def subcategories(id):
    category = family_get_or_404(Category, id)
    return jsonify([s.to_dict() for s in category.subcategories])


@bp.route('/<int:id>/subcategories', methods=['POST'])
def add_subcategory(id):
    category = family_get_or_404(Category, id)
    form = validated_form(SubcategoryForm)
    subcategory = set_family_id(Subcategory(
        category_id=category.id,
        name=form.name.data.strip(),
        color=form.color.data or None,
        icon=form.icon.data or None,
    ))
    db.session.add(subcategory)
    db.session.commit()
    return jsonify(subcategory.to_dict()), 201


@bp.route('/subcategories/<int:id>', methods=['PUT'])
def edit_subcategory(id):
    subcategory = family_get_or_404(Subcategory, id)
    form = validated_form(SubcategoryForm)
    subcategory.name = form.name.data.strip()
    subcategory.color = form.color.data or subcategory.color
    subcategory.icon = form.icon.data or subcategory.icon
    db.session.commit()
    return jsonify(subcategory.to_dict())


@bp.route('/subcategories/<int:id>', methods=['DELETE'])
def delete_subcategory(id):
    subcategory = family_get_or_404(Subcategory, id)
    for expense in family_query(Expense).filter_by(subcategory_id=subcategory.id).all():
        expense.subcategory_id = None
    db.session.delete(subcategory)
    db.session.commit()
    return jsonify({'success': True})


@bp.route('/budgets')
def budgets():
    year, month = period_from_args()
    return jsonify([b.to_dict() for b in BudgetService.get_budgets(year, month)])


@bp.route('/budgets', methods=['PUT'])
def set_budget():
    form = validated_form(BudgetForm)
    budget = BudgetService.set_budget(
        form.category_id.data, form.year.data, form.month.data, form.amount.data
    )
    return jsonify(budget.to_dict())


@bp.route('/budgets/progress')
def budget_progress():
    """Spent vs limit per budgeted category, grouped fixed/variable"""
    year, month = period_from_args()
    return jsonify(jsonable(BudgetService.budget_progress(year, month)))
