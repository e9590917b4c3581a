"""
Rate limiting optionnel des endpoints sensibles (création de sessions de paiement, panier).
- Redis via fastapi-limiter quand le lifespan l'a initialisé.
- Fallback mémoire par process si LOCAL_RATE_LIMIT_FALLBACK=1 (dev/tests).
- Désactivé proprement si le limiter n'a pas pu démarrer (pas de 429 en prod).
"""
from typing import Any, Dict
from urllib.parse import urlparse
import hashlib
import logging
import os
import time

from fastapi import Request, Response, HTTPException
from fastapi_limiter import FastAPILimiter
from fastapi_limiter.depends import RateLimiter

from storefront.utils.security import COOKIE_NAME

logger = logging.getLogger(__name__)

def rate_limit_key(request: Request) -> str:
    """Clé = utilisateur (hash du token ou du Bearer) sinon IP, suffixée par le chemin."""
    token = request.cookies.get(COOKIE_NAME)
    if not token:
        auth_header = request.headers.get("Authorization", "")
        if auth_header.startswith("Bearer "):
            token = auth_header[7:].strip()
    path = request.url.path
    if token:
        digest = hashlib.sha256(token.encode("utf-8")).hexdigest()[:16]
        return f"user:{digest}:{path}"
    ip = request.client.host if request.client else "local"
    return f"ip:{ip}:{path}"

def _local_hit(request: Request, times: int, seconds: int) -> None:
    now = time.time()
    key = rate_limit_key(request)
    store = getattr(request.app.state, "_rl_store", {})
    hits = [t for t in store.get(key, []) if now - t < seconds]
    if len(hits) >= times:
        raise HTTPException(status_code=429, detail="Too Many Requests")
    hits.append(now)
    store[key] = hits
    request.app.state._rl_store = store

def optional_rate_limit(times: int, seconds: int):
    async def _identifier(req: Request) -> str:
        return rate_limit_key(req)

    async def _dep(request: Request, response: Response):
        if os.getenv("LOCAL_RATE_LIMIT_FALLBACK") == "1":
            _local_hit(request, times, seconds)
            return

        if getattr(request.app.state, "rate_limit_enabled", None) is not True:
            return

        try:
            limiter = RateLimiter(times=times, seconds=seconds, identifier=_identifier)
            await limiter(request, response)
        except HTTPException:
            raise
        except Exception:
            # Redis injoignable en cours de route: on laisse passer plutôt que bloquer le checkout
            logger.warning("rate_limit.optional_rate_limit limiter unavailable path=%s", request.url.path)
    return _dep

def rate_limit_health_info(request: Request) -> Dict[str, Any]:
    enabled = getattr(request.app.state, "rate_limit_enabled", None)
    limiter_ready = getattr(FastAPILimiter, "redis", None) is not None

    info: Dict[str, Any] = {
        "enabled": (bool(enabled) if enabled is not None else None),
        "ready": limiter_ready,
        "backend": "redis" if limiter_ready else None,
        "local_fallback": os.getenv("LOCAL_RATE_LIMIT_FALLBACK") == "1",
    }

    redis_url = os.getenv("RATE_LIMIT_REDIS_URL")
    if limiter_ready and redis_url:
        p = urlparse(redis_url)
        info["redis"] = {"scheme": p.scheme, "host": p.hostname, "port": p.port}
    return info
