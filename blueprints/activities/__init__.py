from flask import Blueprint
from flask_login import login_required

activities_bp = Blueprint('activities', __name__)

# Require authentication for all routes in this blueprint
@activities_bp.before_request
@login_required
def require_login():
    pass

from . import routes
