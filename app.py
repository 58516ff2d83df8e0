import os
import logging
import click
from logging.handlers import RotatingFileHandler
from flask import Flask, jsonify
from flask_wtf.csrf import CSRFError
from sqlalchemy.exc import SQLAlchemyError
from werkzeug.exceptions import HTTPException
from config import config
from extensions import db, migrate, login_manager, csrf, limiter


DEFAULT_CATEGORIES = [
    # (name, category_type, color)
    ('Escola', 'fixed', '#3B82F6'),
    ('Diarista', 'fixed', '#8B5CF6'),
    ('Internet', 'fixed', '#06B6D4'),
    ('Água', 'fixed', '#0EA5E9'),
    ('Luz', 'fixed', '#F59E0B'),
    ('Clube', 'fixed', '#10B981'),
    ('Supermercado', 'variable', '#EF4444'),
    ('Farmácia', 'variable', '#EC4899'),
    ('Lazer', 'variable', '#F97316'),
]


def configure_logging(app):
    """Configure application logging"""
    if not app.debug and not app.testing:
        # Create logs directory if it doesn't exist
        if not os.path.exists('logs'):
            os.mkdir('logs')

        # File handler for errors
        file_handler = RotatingFileHandler(
            'logs/household_budget.log',
            maxBytes=10240000,  # 10MB
            backupCount=10
        )
        file_handler.setFormatter(logging.Formatter(
            '%(asctime)s %(levelname)s: %(message)s '
            '[in %(pathname)s:%(lineno)d]'
        ))
        file_handler.setLevel(logging.INFO)
        app.logger.addHandler(file_handler)

        app.logger.setLevel(logging.INFO)
        app.logger.info('Household Budget startup')
    else:
        # Development logging to console
        app.logger.setLevel(logging.DEBUG)
        app.logger.info('Household Budget startup (DEBUG mode)')


def create_app(config_name=None):
    """Application factory pattern"""

    if config_name is None:
        config_name = os.environ.get('FLASK_ENV', 'development')

    app = Flask(__name__)
    app.config.from_object(config[config_name])
    config[config_name].init_app(app)

    # Configure logging
    configure_logging(app)

    # Initialize extensions
    db.init_app(app)
    migrate.init_app(app, db)
    login_manager.init_app(app)
    csrf.init_app(app)
    limiter.init_app(app)

    # Add security headers
    @app.after_request
    def add_security_headers(response):
        """Add security headers to all responses"""
        headers = app.config.get('SECURITY_HEADERS', {})
        for header, value in headers.items():
            response.headers[header] = value
        return response

    # User loader callback for Flask-Login
    @login_manager.user_loader
    def load_user(user_id):
        from models.users import User
        return db.session.get(User, int(user_id))

    @login_manager.unauthorized_handler
    def unauthorized():
        return jsonify({'error': 'Authentication required'}), 401

    # Import models to ensure they're registered with SQLAlchemy
    with app.app_context():
        import models

    # Register blueprints
    from blueprints.auth import auth_bp
    from blueprints.dashboard import dashboard_bp
    from blueprints.expenses import expenses_bp
    from blueprints.categories import bp as categories_bp
    from blueprints.people import people_bp
    from blueprints.planned import planned_bp
    from blueprints.activities import activities_bp

    app.register_blueprint(auth_bp)
    app.register_blueprint(dashboard_bp)
    app.register_blueprint(expenses_bp)
    app.register_blueprint(categories_bp)
    app.register_blueprint(people_bp)
    app.register_blueprint(planned_bp)
    app.register_blueprint(activities_bp)

    # ── Auto-set family_id on every new record ─────────────────────────────
    from sqlalchemy import event as _sa_event
    from utils import db_helpers

    @_sa_event.listens_for(db.session, 'before_flush')
    def _auto_family_id(session, flush_context, instances):
        """Automatically stamp family_id on any new record that has the column
        but no value, using the currently logged-in user's family."""
        fid = db_helpers.get_family_id()
        if fid is None:
            return  # outside a request (CLI, startup) or anonymous
        for obj in session.new:
            if hasattr(obj, 'family_id') and obj.family_id is None:
                obj.family_id = fid

    # ── Ledger version bump + ledger_changed signal ────────────────────────
    from services.change_feed import init_change_feed
    init_change_feed(app)

    # Create database tables
    with app.app_context():
        db.create_all()

    # Register Flask-Admin (must come after db.init_app and all models are loaded)
    from admin_panel import init_admin
    init_admin(app, db)
    # Flask-Admin generates its own form tokens; exempt its blueprint from
    # Flask-WTF's global CSRF so the two don't conflict.
    csrf.exempt(app.blueprints['admin'])

    # Register error handlers
    register_error_handlers(app)

    # Register CLI commands
    register_commands(app)

    return app


def register_error_handlers(app):
    """Register global error handlers; every error leaves as JSON"""
    from services.errors import BudgetError

    @app.errorhandler(BudgetError)
    def budget_error(error):
        if error.status_code >= 500:
            app.logger.error(f'{type(error).__name__}: {error.message}')
        return jsonify(error.to_dict()), error.status_code

    @app.errorhandler(SQLAlchemyError)
    def database_error(error):
        db.session.rollback()
        app.logger.exception(f'Database error: {error}')
        return jsonify({'error': 'The change could not be saved. Please try again.'}), 500

    @app.errorhandler(CSRFError)
    def handle_csrf_error(error):
        return jsonify({'error': f'CSRF token validation failed: {error.description}'}), 400

    @app.errorhandler(HTTPException)
    def http_error(error):
        return jsonify({'error': error.description}), error.code

    @app.errorhandler(500)
    def internal_error(error):
        db.session.rollback()
        app.logger.error(f'Internal Server Error: {error}')
        return jsonify({'error': 'Internal server error'}), 500


def register_commands(app):
    """Register Flask CLI commands."""

    @app.cli.group()
    def site_admin():
        """Manage site-level admin access to /admin panel."""
        pass

    @site_admin.command('grant')
    @click.argument('email')
    def grant_site_admin(email):
        """Grant /admin panel access to a user by EMAIL."""
        from models.users import User
        user = User.query.filter_by(email=email).first()
        if not user:
            click.echo(f'ERROR: No user found with email "{email}"', err=True)
            return
        if user.is_site_admin:
            click.echo(f'"{user.name}" ({email}) already has site admin access.')
            return
        user.is_site_admin = True
        db.session.commit()
        click.echo(f'SUCCESS: "{user.name}" ({email}) granted site admin access.')

    @site_admin.command('revoke')
    @click.argument('email')
    def revoke_site_admin(email):
        """Revoke /admin panel access from a user by EMAIL."""
        from models.users import User
        user = User.query.filter_by(email=email).first()
        if not user:
            click.echo(f'ERROR: No user found with email "{email}"', err=True)
            return
        if not user.is_site_admin:
            click.echo(f'"{user.name}" ({email}) does not have site admin access.')
            return
        user.is_site_admin = False
        db.session.commit()
        click.echo(f'SUCCESS: Site admin access revoked from "{user.name}" ({email}).')

    @site_admin.command('list')
    def list_site_admins():
        """List all users with site admin access."""
        from models.users import User
        admins = User.query.filter_by(is_site_admin=True).all()
        if not admins:
            click.echo('No site admins found.')
            return
        click.echo(f'{"ID":<5} {"Name":<25} {"Email":<40} {"Active":<8}')
        click.echo('-' * 80)
        for u in admins:
            click.echo(f'{u.id:<5} {u.name:<25} {u.email:<40} {str(u.is_active):<8}')

    @app.cli.command('seed-categories')
    @click.argument('email')
    def seed_categories(email):
        """Create the default fixed/variable categories for the household of EMAIL."""
        from models.users import User
        from models.categories import Category
        user = User.query.filter_by(email=email).first()
        if not user or not user.family_id:
            click.echo(f'ERROR: No household found for "{email}"', err=True)
            return
        existing = {
            c.name.lower() for c in Category.query.filter_by(family_id=user.family_id).all()
        }
        created = 0
        for name, category_type, color in DEFAULT_CATEGORIES:
            if name.lower() in existing:
                continue
            db.session.add(Category(
                family_id=user.family_id, name=name, category_type=category_type, color=color
            ))
            created += 1
        db.session.commit()
        click.echo(f'SUCCESS: {created} categories created for household {user.family_id}.')


if __name__ == '__main__':
    app = create_app()
    # SECURITY: Only bind to localhost in development
    # Never use 0.0.0.0 with debug mode - it exposes the debugger to the network
    app.run(host='127.0.0.1', port=5000, debug=True)
