"""
Planned (recurring) expenses: the month view and the pay/unpay workflow
"""
from flask import Blueprint
from flask_login import login_required

planned_bp = Blueprint('planned', __name__, url_prefix='/planned')

# Require authentication for all routes in this blueprint
@planned_bp.before_request
@login_required
def require_login():
    pass

from . import routes
