# module storefront.utils.csrf
"""
Protection CSRF double-submit (cookie csrf_token + en-tête X-CSRF-Token).
- Ne s'applique qu'aux requêtes mutatives portant le cookie de session (navigateur).
- Les appels Bearer (SPA/API) et les callbacks prestataires ne sont pas concernés:
  JazzCash poste /jazz/return et /jazz/ipn depuis son domaine, Stripe appelle /webhook.
"""
from fastapi import FastAPI, Request
from fastapi.responses import Response, JSONResponse
import secrets
from storefront.config import COOKIE_SECURE
from storefront.utils.security import COOKIE_NAME

CSRF_COOKIE_NAME = "csrf_token"
CSRF_HEADER_NAME = "X-CSRF-Token"
CSRF_EXEMPT_PATHS = {
    "/api/v1/checkout/webhook",
    "/api/v1/checkout/jazz/return",
    "/api/v1/checkout/jazz/ipn",
}

def is_csrf_exempt(path: str) -> bool:
    normalized = path.rstrip("/") or "/"
    return normalized in {p.rstrip("/") for p in CSRF_EXEMPT_PATHS}

def attach_csrf_cookie_if_missing(response: Response, request: Request) -> None:
    """
    Pose le cookie CSRF si absent; httponly=False pour que le front puisse le renvoyer en en-tête.
    """
    if not request.cookies.get(CSRF_COOKIE_NAME):
        response.set_cookie(
            key=CSRF_COOKIE_NAME,
            value=secrets.token_urlsafe(32),
            httponly=False,
            secure=COOKIE_SECURE,
            samesite="Lax",
            max_age=60 * 60,
            path="/",
        )

def register_csrf_middleware(app: FastAPI) -> None:
    @app.middleware("http")
    async def csrf_protection(request: Request, call_next):
        method = request.method.upper()
        has_session = bool(request.cookies.get(COOKIE_NAME))
        is_state_changing = method in ("POST", "PUT", "PATCH", "DELETE")

        if is_state_changing and has_session and not is_csrf_exempt(request.url.path):
            header_token = request.headers.get(CSRF_HEADER_NAME, "")
            cookie_token = request.cookies.get(CSRF_COOKIE_NAME, "")
            if not cookie_token or not header_token or not secrets.compare_digest(header_token, cookie_token):
                return JSONResponse(status_code=403, content={"detail": "CSRF verification failed"})

        response = await call_next(request)
        attach_csrf_cookie_if_missing(response, request)
        return response
