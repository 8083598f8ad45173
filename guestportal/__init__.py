import logging

from flask import Flask, redirect, url_for
from flask_login import current_user

from .extensions import db, login_manager, migrate, rq


def create_app(config_object='config.Config'):
    """App factory. Tests pass ``config.TestConfig``."""
    app = Flask(__name__)
    app.config.from_object(config_object)
    if not app.debug and not app.testing:
        app.logger.setLevel(logging.INFO)

    db.init_app(app)
    migrate.init_app(app, db)
    login_manager.init_app(app)
    login_manager.login_view = 'auth.login'
    rq.init_app(app)

    @login_manager.user_loader
    def load_user(user_id):
        from .models.user import User
        return db.session.get(User, int(user_id))

    from .blueprints.auth import bp as auth_bp
    from .blueprints.guest import bp as guest_bp
    from .blueprints.bookings import bp as bookings_bp
    from .blueprints.admin import bp as admin_bp
    from .blueprints.jobs import bp as jobs_bp
    app.register_blueprint(auth_bp, url_prefix="/auth")
    app.register_blueprint(guest_bp)
    app.register_blueprint(bookings_bp, url_prefix="/bookings")
    app.register_blueprint(admin_bp, url_prefix="/admin")
    app.register_blueprint(jobs_bp, url_prefix="/jobs")

    @app.get('/')
    def index():
        if not current_user.is_authenticated:
            return redirect(url_for('auth.login'))
        if current_user.is_admin:
            return redirect(url_for('admin.index'))
        if not current_user.onboarding_completed:
            return redirect(url_for('guest.onboarding'))
        return redirect(url_for('guest.dashboard'))

    return app
