from flask import Flask
from werkzeug.exceptions import HTTPException
from flask_jwt_extended import JWTManager
from sqlalchemy import create_engine
from sqlalchemy.pool import StaticPool
from sqlalchemy.orm import sessionmaker, scoped_session
from dotenv import load_dotenv
from typing import Optional, Dict, Any
import logging

from .config.settings import load_settings

load_dotenv()

db_engine = None
SessionLocal = None
jwt = JWTManager()


def create_app(config: Optional[Dict[str, Any]] = None):
    global db_engine, SessionLocal
    app = Flask(__name__)

    app.config.update(load_settings())

    if config:
        # allow tests or callers to override default config values
        app.config.update(config)

    logging.basicConfig(level=app.config['LOG_LEVEL'])
    app.logger.setLevel(app.config['LOG_LEVEL'])

    # Database
    db_url = app.config['DATABASE_URL']
    if db_url.endswith(':memory:'):
        # Ensure a single shared in-memory SQLite database across all sessions
        db_engine = create_engine(
            db_url,
            echo=False,
            future=True,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )
    else:
        db_engine = create_engine(db_url, echo=False, future=True)
    SessionLocal = scoped_session(sessionmaker(bind=db_engine, expire_on_commit=False, autoflush=False))

    jwt.init_app(app)
    _register_jwt_callbacks()

    from .routes.auth import auth_bp
    from .routes.users import users_bp
    from .routes.hunters import hunters_bp
    from .routes.guardians import guardians_bp
    from .routes.permits import permits_bp
    from .routes.taxes import taxes_bp
    from .routes.permit_requests import requests_bp
    from .routes.guides import guides_bp
    from .routes.stats import stats_bp
    app.register_blueprint(auth_bp, url_prefix='/api/auth')
    app.register_blueprint(users_bp, url_prefix='/api/users')
    app.register_blueprint(hunters_bp, url_prefix='/api/hunters')
    app.register_blueprint(guardians_bp, url_prefix='/api/guardians')
    app.register_blueprint(permits_bp, url_prefix='/api/permits')
    app.register_blueprint(taxes_bp, url_prefix='/api/taxes')
    app.register_blueprint(requests_bp, url_prefix='/api/permit-requests')
    app.register_blueprint(guides_bp, url_prefix='/api/guides')
    app.register_blueprint(stats_bp, url_prefix='/api')

    @app.route('/healthz')
    def health():
        return {'status': 'ok'}

    @app.teardown_appcontext
    def remove_session(exc):  # type: ignore
        SessionLocal.remove()

    # Unified error handler producing standardized JSON shape
    @app.errorhandler(Exception)
    def handle_errors(e):  # type: ignore
        if isinstance(e, HTTPException):
            return error_payload(e.code, e.name, e.description, getattr(e, 'fields', None)), e.code
        # Unhandled exception
        app.logger.exception('Unhandled exception')
        try:
            SessionLocal().rollback()
        except Exception:
            app.logger.warning('Session rollback failed after unhandled exception')
        return error_payload(500, 'Internal Server Error', 'Unexpected error'), 500

    from .openapi import build_openapi_spec

    @app.route('/openapi.json')
    def openapi_spec():
        return build_openapi_spec()

    @app.route('/docs')
    def docs_index():
        # Lightweight HTML referencing Redoc CDN (no local install) for quick browsing
        return (
            "<!DOCTYPE html><html><head><title>SIGPE API</title>"
            "<link rel=\"stylesheet\" href=\"https://cdn.jsdelivr.net/npm/redoc@next/bundles/redoc.standalone.css\" />"
            "</head><body><redoc spec-url='/openapi.json'></redoc>"
            "<script src='https://cdn.jsdelivr.net/npm/redoc@next/bundles/redoc.standalone.js'></script>"
            "</body></html>"
        )

    return app


def error_payload(status: int, title: str, detail: str, fields: Optional[Dict[str, str]] = None):
    payload: Dict[str, Any] = {
        'error': {
            'status': status,
            'title': title,
            'detail': detail,
        },
        'message': detail,
    }
    if fields:
        payload['fields'] = fields
    return payload


def _register_jwt_callbacks():
    """Map flask-jwt-extended failures onto the standard error shape and wire token revocation."""

    @jwt.unauthorized_loader
    def _missing_token(reason):
        return error_payload(401, 'Unauthorized', reason), 401

    @jwt.invalid_token_loader
    def _invalid_token(reason):
        return error_payload(401, 'Unauthorized', reason), 401

    @jwt.expired_token_loader
    def _expired_token(header, payload):
        return error_payload(401, 'Unauthorized', 'Token has expired'), 401

    @jwt.revoked_token_loader
    def _revoked_token(header, payload):
        return error_payload(401, 'Unauthorized', 'Token has been revoked'), 401

    @jwt.token_in_blocklist_loader
    def _is_revoked(header, payload):
        from sqlalchemy import select
        from .models.authz import RevokedToken
        jti = payload.get('jti')
        return get_db().execute(select(RevokedToken.id).where(RevokedToken.jti == jti)).first() is not None


def get_db():
    return SessionLocal()
