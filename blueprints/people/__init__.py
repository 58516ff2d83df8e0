"""
Household members that expenses and payments are attributed to
"""
from flask import Blueprint
from flask_login import login_required

people_bp = Blueprint('people', __name__, url_prefix='/people')

# Require authentication for all routes in this blueprint
@people_bp.before_request
@login_required
def require_login():
    pass

from . import routes
