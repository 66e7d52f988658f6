"""
FanHub Application Package

FLOW OVERVIEW
- create_app(test_config=None)
  • Build Flask app, apply config (test or env-based), init extensions (DB, Mail).
  • Register blueprints: auth (/auth), main (/health, /metrics), domain APIs (/api).
  • Register global error handlers and per-request metrics.
  • Create tables and seed the default community categories.
"""

import logging
import time

from flask import Flask, g, request
from flask_mail import Mail

from .config import Config
from .models import db, Category
from .routes import API_BLUEPRINTS, auth_bp, main_bp
from .utils.prom_metrics import observe_request

DEFAULT_CATEGORIES = [
    ('General', 'general'),
    ('Music', 'music'),
    ('Events', 'events'),
    ('Bars', 'bars'),
]


def seed_categories():
    for name, slug in DEFAULT_CATEGORIES:
        if Category.query.filter_by(slug=slug).first() is None:
            db.session.add(Category(name=name, slug=slug))
    db.session.commit()


def register_request_metrics(app):
    @app.before_request
    def start_timer():
        g.request_started = time.perf_counter()

    @app.after_request
    def record_request(response):
        started = g.get('request_started')
        if started is not None and request.endpoint != 'main.metrics':
            observe_request(request.url_rule.rule if request.url_rule else 'unmatched',
                            response.status_code, time.perf_counter() - started)
        return response


def create_app(test_config=None):
    """Application factory pattern for production deployment"""
    app = Flask(__name__)

    if test_config:
        app.config.update(test_config)
    else:
        app.config.from_object(Config())

    if not app.config.get('TESTING'):
        logging.basicConfig(
            level=app.config.get('LOG_LEVEL', 'INFO'),
            format='%(asctime)s %(levelname)s %(name)s: %(message)s',
        )

    db.init_app(app)
    Mail(app)

    app.register_blueprint(auth_bp, url_prefix='/auth')
    app.register_blueprint(main_bp)
    for blueprint in API_BLUEPRINTS:
        app.register_blueprint(blueprint, url_prefix='/api')

    from .utils.error_handlers import register_error_handlers
    register_error_handlers(app)
    register_request_metrics(app)

    with app.app_context():
        db.create_all()
        seed_categories()

    return app
