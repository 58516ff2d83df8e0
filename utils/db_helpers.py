"""
Database query helpers for family-scoped multi-tenancy.

All data in this application is scoped to a Family (the household).  Every
query against a data model should go through these helpers so that one
household can never see another household's records.

Usage
-----
In any blueprint route or service function::

    from utils.db_helpers import family_query, family_get_or_404, set_family_id

    # List all people belonging to the current household
    people = family_query(Person).order_by(Person.name).all()

    # Fetch a single record safely (raises 404 if not found *or* wrong family)
    expense = family_get_or_404(Expense, expense_id)

    # Stamp family_id on a new record
    db.session.add(set_family_id(Category(name='School')))
"""

from flask import has_request_context
from flask_login import current_user


# ---------------------------------------------------------------------------
# Core helpers
# ---------------------------------------------------------------------------

def get_family_id():
    """Return ``current_user.family_id``, or ``None`` if not authenticated."""
    if has_request_context() and current_user.is_authenticated:
        return current_user.family_id
    return None


def family_query(model):
    """Return a SQLAlchemy query pre-filtered to the current family.

    Examples::

        family_query(Expense).all()
        family_query(PlannedExpense).filter_by(active=True).order_by(...).all()
        family_query(Category).count()
    """
    if not hasattr(model, 'family_id'):
        raise AttributeError(
            f"family_query() called on {model.__name__} but it has no family_id column."
        )
    fid = get_family_id()
    if fid is None:
        # Return a query that always yields zero rows rather than leaking data
        return model.query.filter(model.id == -1)
    return model.query.filter_by(family_id=fid)


def family_get(model, record_id):
    """Fetch a single record by *record_id*, scoped to the current family.

    Returns ``None`` if the record does not exist or belongs to another family.
    """
    fid = get_family_id()
    if fid is None or record_id is None:
        return None
    return model.query.filter_by(id=record_id, family_id=fid).first()


def family_get_or_404(model, record_id):
    """Like ``family_get`` but aborts with 404 if nothing is found."""
    fid = get_family_id()
    if fid is None:
        from flask import abort
        abort(404)
    return model.query.filter_by(id=record_id, family_id=fid).first_or_404()


def set_family_id(obj):
    """Set ``obj.family_id = get_family_id()`` in-place and return *obj*.

    Convenience shorthand when constructing new model instances::

        expense = Expense(amount=100, ...)
        db.session.add(set_family_id(expense))
    """
    obj.family_id = get_family_id()
    return obj
