"""
Ledger change notifications.

Every household carries a ``ledger_version`` counter that is bumped in the
same transaction as any write to the expense ledger or the payment ledger.
Clients poll ``/dashboard/changes?since=<version>`` and refetch when the
version moved, so a payment confirmed in one session shows up in the
others.  In-process subscribers can listen to the ``ledger_changed``
blinker signal, which fires once per committed transaction and family.
"""
from blinker import Namespace
from flask import current_app, has_app_context
from sqlalchemy import event

from extensions import db
from models.family import Family
from utils import db_helpers


WATCHED_TABLES = frozenset({'expenses', 'planned_expense_payments'})

_signals = Namespace()
ledger_changed = _signals.signal('ledger-changed')

_PENDING_KEY = 'ledger_changes'


def _watched_families(session):
    """Yield ``(family_id, table)`` for every watched row touched by the flush."""
    touched = list(session.new) + list(session.deleted)
    touched += [obj for obj in session.dirty if session.is_modified(obj)]
    for obj in touched:
        table = getattr(obj, '__tablename__', None)
        if table in WATCHED_TABLES and getattr(obj, 'family_id', None) is not None:
            yield obj.family_id, table


def _bump_versions(session, flush_context, instances):
    pending = session.info.setdefault(_PENDING_KEY, {})
    for family_id, table in list(_watched_families(session)):
        if family_id not in pending:
            # One bump per transaction and family
            with session.no_autoflush:
                family = session.get(Family, family_id)
            if family is not None:
                if family in session.new:
                    family.ledger_version = (family.ledger_version or 0) + 1
                else:
                    family.ledger_version = Family.ledger_version + 1
        pending.setdefault(family_id, set()).add(table)


def _publish(session):
    pending = session.info.pop(_PENDING_KEY, None)
    if not pending or not has_app_context():
        return
    app = current_app._get_current_object()
    for family_id, tables in pending.items():
        ledger_changed.send(app, family_id=family_id, tables=sorted(tables))


def _discard(session):
    session.info.pop(_PENDING_KEY, None)


def _log_change(sender, family_id, tables):
    sender.logger.debug(f'Ledger changed for family {family_id}: {", ".join(tables)}')


def init_change_feed(app):
    """Attach the version-bump listeners to the Flask-SQLAlchemy session."""
    for name, listener in (('before_flush', _bump_versions),
                           ('after_commit', _publish),
                           ('after_rollback', _discard)):
        if not event.contains(db.session, name, listener):
            event.listen(db.session, name, listener)
    ledger_changed.connect(_log_change)
    app.logger.debug("Ledger change feed enabled")


def current_version():
    """Ledger version of the signed-in household (0 when unknown)."""
    family_id = db_helpers.get_family_id()
    if family_id is None:
        return 0
    family = db.session.get(Family, family_id)
    if family is None:
        return 0
    db.session.refresh(family, ['ledger_version'])
    return family.ledger_version or 0


def changes_since(since):
    """``{'version': n, 'changed': bool}`` relative to a client-held version."""
    version = current_version()
    return {'version': version, 'changed': since is None or version != since}
