"""
Flask-Admin panel for Household Budget
Accessible at /admin - restricted to users with is_site_admin
"""
from flask import abort
from flask_admin import Admin, AdminIndexView, expose
from flask_admin.contrib.sqla import ModelView
from flask_admin.theme import Bootstrap4Theme
from flask_login import current_user


def _is_site_admin():
    return current_user.is_authenticated and current_user.is_site_admin


# ---------------------------------------------------------------------------
# Base secure views
# ---------------------------------------------------------------------------

class SecureAdminIndexView(AdminIndexView):
    """Admin home page - checks for site admin before rendering."""

    @expose('/')
    def index(self):
        if not _is_site_admin():
            abort(403)
        return super().index()

    def is_accessible(self):
        return _is_site_admin()

    def inaccessible_callback(self, name, **kwargs):
        abort(403)


class SecureModelView(ModelView):
    """Full CRUD model view - site admin only."""

    can_export = True
    page_size = 50
    column_display_pk = True

    def __init__(self, model, session, **kwargs):
        # Prefix endpoints with 'admin_' so they never clash with app blueprints
        if 'endpoint' not in kwargs:
            kwargs['endpoint'] = f'admin_{model.__name__.lower()}'

        # Every household-owned table can be filtered by family
        if hasattr(model, 'family_id'):
            existing = list(getattr(self.__class__, 'column_filters', None) or [])
            if 'family_id' not in existing:
                existing.insert(0, 'family_id')
            self.column_filters = existing

        super().__init__(model, session, **kwargs)

    def scaffold_list_columns(self):
        """Ensure family_id always appears in the column list for models that have it."""
        columns = super().scaffold_list_columns()
        if hasattr(self.model, 'family_id') and 'family_id' not in columns:
            columns.insert(1, 'family_id')  # after id
        return columns

    def is_accessible(self):
        return _is_site_admin()

    def inaccessible_callback(self, name, **kwargs):
        abort(403)


class ReadOnlyModelView(SecureModelView):
    """Read-only model view for audit and derived tables."""

    can_create = False
    can_edit = False
    can_delete = False


# ---------------------------------------------------------------------------
# Customised model views
# ---------------------------------------------------------------------------

class UserAdminView(SecureModelView):
    """Users - hide password hash, show useful columns."""
    column_exclude_list = ['password_hash']
    form_excluded_columns = ['password_hash']
    column_searchable_list = ['email', 'name']
    column_filters = ['is_active', 'is_site_admin', 'family_id']
    column_list = [
        'id', 'name', 'email', 'is_active', 'is_site_admin',
        'family_id', 'last_login', 'created_at',
        'failed_login_attempts', 'locked_until',
    ]


class FamilyAdminView(SecureModelView):
    column_searchable_list = ['name']
    column_list = ['id', 'name', 'ledger_version', 'created_at']


class CategoryAdminView(SecureModelView):
    column_searchable_list = ['name']
    column_filters = ['category_type', 'family_id']


class ExpenseAdminView(SecureModelView):
    column_searchable_list = ['description']
    column_filters = ['date', 'category_id', 'person_id', 'family_id']
    column_default_sort = ('date', True)


class PlannedExpenseAdminView(SecureModelView):
    column_searchable_list = ['name']
    column_filters = ['active', 'due_day', 'family_id']


class PaymentAdminView(SecureModelView):
    column_filters = ['year', 'month', 'paid', 'family_id']
    column_default_sort = [('year', True), ('month', True)]


class ActivityAdminView(ReadOnlyModelView):
    column_searchable_list = ['entity_name']
    column_filters = ['action', 'entity_type', 'family_id']
    column_default_sort = ('created_at', True)


# ---------------------------------------------------------------------------
# Admin factory
# ---------------------------------------------------------------------------

def init_admin(app, db):
    """Create the Flask-Admin instance and register all model views."""

    admin = Admin(
        app,
        name='Household Budget Admin',
        theme=Bootstrap4Theme(),
        index_view=SecureAdminIndexView(),
        url='/admin',
    )

    from models.users import User
    from models.family import Family
    from models.people import Person
    from models.categories import Category, Subcategory, CategoryBudget
    from models.expenses import Expense
    from models.planned import PlannedExpense, PlannedExpensePayment
    from models.activities import Activity

    # Core / Auth
    admin.add_view(UserAdminView(User, db.session, name='Users', category='Core'))
    admin.add_view(FamilyAdminView(Family, db.session, name='Families', category='Core'))
    admin.add_view(SecureModelView(Person, db.session, name='People', category='Core'))

    # Ledger
    admin.add_view(ExpenseAdminView(Expense, db.session, name='Expenses', category='Ledger'))
    admin.add_view(PlannedExpenseAdminView(PlannedExpense, db.session, name='Planned Expenses', category='Ledger'))
    admin.add_view(PaymentAdminView(PlannedExpensePayment, db.session, name='Payments', category='Ledger'))
    admin.add_view(ActivityAdminView(Activity, db.session, name='Activity', category='Ledger'))

    # Reference Data
    admin.add_view(CategoryAdminView(Category, db.session, name='Categories', category='Reference'))
    admin.add_view(SecureModelView(Subcategory, db.session, name='Subcategories', category='Reference'))
    admin.add_view(SecureModelView(CategoryBudget, db.session, name='Budgets', category='Reference'))

    return admin
