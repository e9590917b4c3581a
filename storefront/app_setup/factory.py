"""
Factory d'application pour les entrypoints (storefront.asgi, tests).
Ordonne les étapes d'initialisation de manière lisible et testable.
"""
from fastapi import FastAPI
from .lifespan import lifespan
from .middlewares import (
    register_basic_middlewares,
    register_force_https_middleware,
    register_no_cache_middleware,
    register_security_middleware,
)
from .exceptions import register_exception_handlers
from .routers import register_routers
from storefront.config import COOKIE_SECURE
from storefront.utils.csrf import register_csrf_middleware

def create_app() -> FastAPI:
    """
    Construit l'app FastAPI avec le lifespan et enregistre:
      - middlewares de base, CSRF, sécurité, no-cache (+ HTTPS forcé si COOKIE_SECURE)
      - gestionnaires d'exceptions
      - tous les routers (API v1, health)
    """
    app = FastAPI(title="Storefront Checkout API", lifespan=lifespan)
    register_basic_middlewares(app)
    register_csrf_middleware(app)
    register_security_middleware(app)
    register_no_cache_middleware(app)
    if COOKIE_SECURE:
        register_force_https_middleware(app)
    register_exception_handlers(app)
    register_routers(app)
    return app
