from flask import request, jsonify
from . import activities_bp
from services.activity_service import ActivityService


@activities_bp.route('/activities')
def index():
    """Household activity feed, newest first (?limit= caps the page, max 200)"""
    limit = request.args.get('limit', type=int)
    if limit is not None:
        limit = max(1, min(limit, 200))
    activities = ActivityService.recent_activities(limit)
    return jsonify([a.to_dict() for a in activities])
