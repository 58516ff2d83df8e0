"""
Household activity feed.

Entries are written after the operation they describe has been committed,
in their own transaction, so a failing audit write never undoes user data.
"""
from flask import current_app
from sqlalchemy.exc import SQLAlchemyError

from extensions import db
from models.activities import Activity, ACTIONS, ENTITY_TYPES
from utils.db_helpers import family_query, set_family_id


class ActivityService:

    @staticmethod
    def build_activity(action, entity_type, entity_name, details=None, person_id=None):
        """Return an unsaved entry for callers that commit it with their own rows."""
        if action not in ACTIONS:
            raise ValueError(f'Unknown activity action: {action!r}')
        if entity_type not in ENTITY_TYPES:
            raise ValueError(f'Unknown activity entity type: {entity_type!r}')

        return set_family_id(Activity(
            action=action,
            entity_type=entity_type,
            entity_name=(entity_name or '')[:255],
            details=details[:500] if details else None,
            person_id=person_id or None,
        ))

    @staticmethod
    def log_activity(action, entity_type, entity_name, details=None, person_id=None):
        """Record an activity entry. Returns the entry, or ``None`` on failure."""
        activity = ActivityService.build_activity(action, entity_type, entity_name, details, person_id)
        try:
            db.session.add(activity)
            db.session.commit()
        except SQLAlchemyError:
            db.session.rollback()
            current_app.logger.warning(
                f'Failed to record activity {action} {entity_type} "{entity_name}"', exc_info=True
            )
            return None
        return activity

    @staticmethod
    def recent_activities(limit=None):
        """Newest activity entries first, with the related person eager-loaded."""
        if limit is None:
            limit = current_app.config.get('RECENT_ACTIVITY_LIMIT', 50)
        return (
            family_query(Activity)
            .options(db.joinedload(Activity.person))
            .order_by(Activity.created_at.desc(), Activity.id.desc())
            .limit(limit)
            .all()
        )
