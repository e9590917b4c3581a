from fastapi import Request, HTTPException, Depends
from storefront.auth.models import AuthenticatedUser
from storefront.auth import service as auth_service

COOKIE_NAME = "sb_access"

def get_current_user(request: Request) -> AuthenticatedUser:
    # Hybride: priorité au Bearer, fallback cookie
    token = None
    auth_header = request.headers.get("Authorization", "")
    if auth_header.startswith("Bearer "):
        token = auth_header[7:].strip()
    if not token:
        token = request.cookies.get(COOKIE_NAME)

    if not token:
        raise HTTPException(status_code=401, detail="Non authentifié")

    user = auth_service.get_user_from_token(token)
    if user is None:
        raise HTTPException(status_code=401, detail="Session expirée, veuillez vous connecter")
    return user

def require_user(user: AuthenticatedUser = Depends(get_current_user)) -> AuthenticatedUser:
    return user

def require_admin(user: AuthenticatedUser = Depends(get_current_user)) -> AuthenticatedUser:
    if not user.is_admin:
        raise HTTPException(status_code=403, detail="Accès interdit")
    return user
