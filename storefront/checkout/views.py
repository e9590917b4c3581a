# module storefront.checkout.views
"""Endpoints checkout (/api/v1/checkout).

Carte (Stripe):
  POST /create-checkout-session -> {id, url}
  POST /webhook                 -> finalisation sur session payée (signature Stripe)
  GET  /confirm?session_id=     -> alternative sans webhook (utilisateur connecté)
Wallet (JazzCash):
  POST /create-jazzcash-checkout -> {action, formData, orderId} (commande créée)
  GET|POST /jazz/return          -> 303 vers le front (succès/échec)
  GET|POST /jazz/ipn             -> "OK" (acquittement)
"""
from typing import Any, Dict
import logging

import stripe
from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.responses import PlainTextResponse, RedirectResponse
from starlette.concurrency import run_in_threadpool
from starlette.status import HTTP_303_SEE_OTHER

from storefront import config
from storefront.auth.models import AuthenticatedUser
from storefront.checkout import jazzcash, reconciler, stripe_client
from storefront.checkout import session as checkout_session
from storefront.checkout.reconciler import ReconcileOutcome
from storefront.checkout.schemas import CheckoutRequest, WalletCallback
from storefront.utils.rate_limit import optional_rate_limit
from storefront.utils.security import require_user

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1/checkout", tags=["Checkout API"])

@router.post("/create-checkout-session", dependencies=[Depends(optional_rate_limit(times=10, seconds=60))])
def create_checkout_session(body: CheckoutRequest, user: AuthenticatedUser = Depends(require_user)):
    """
    Session Stripe Checkout pour le panier de l'utilisateur.
    - success_url: page succès du front avec ?session_id={CHECKOUT_SESSION_ID} (pour /confirm)
    - cancel_url: page checkout du front
    """
    success_url = f"{config.CLIENT_URL}{config.CHECKOUT_SUCCESS_PATH}?session_id={{CHECKOUT_SESSION_ID}}"
    cancel_url = f"{config.CLIENT_URL}{config.CHECKOUT_CANCEL_PATH}"
    return checkout_session.initiate_card_session(user.id, body.shipping, success_url, cancel_url)

@router.post("/create-jazzcash-checkout", dependencies=[Depends(optional_rate_limit(times=10, seconds=60))])
def create_jazzcash_checkout(body: CheckoutRequest, user: AuthenticatedUser = Depends(require_user)):
    """
    Finalise la commande (statut processing) puis renvoie le formulaire JazzCash signé
    que le front poste sur `action`.
    """
    return checkout_session.initiate_wallet_session(user.id, body.shipping)

async def _read_callback(request: Request) -> WalletCallback:
    """Champs pp_* reçus en formulaire, JSON ou query string (selon la configuration marchand)."""
    fields: Dict[str, Any] = dict(request.query_params)
    ctype = (request.headers.get("content-type") or "").lower()
    if request.method == "POST":
        if ctype.startswith("application/json"):
            try:
                fields.update(await request.json() or {})
            except ValueError:
                logger.warning("checkout.jazz callback invalid json path=%s", request.url.path)
        else:
            form = await request.form()
            fields.update({k: v for k, v in form.items() if isinstance(v, str)})
    return WalletCallback.model_validate({k: v for k, v in fields.items() if k.startswith("pp")})

def _callback_hash_ok(callback: WalletCallback, source: str) -> bool:
    if not config.JAZZ_VERIFY_CALLBACK_HASH:
        return True
    fields = callback.model_dump()
    if config.JAZZ_INTEGRITY_SALT and jazzcash.verify_secure_hash(fields, config.JAZZ_INTEGRITY_SALT):
        return True
    logger.warning(
        "reconciler.wallet source=%s ref=%s code=%s outcome=%s",
        source, callback.pp_TxnRefNo, callback.pp_ResponseCode, ReconcileOutcome.REJECTED_HASH.value,
    )
    return False

@router.api_route("/jazz/return", methods=["GET", "POST"], include_in_schema=False)
async def jazz_return(request: Request):
    callback = await _read_callback(request)
    if not _callback_hash_ok(callback, "return"):
        return RedirectResponse(url=reconciler.failure_redirect_url(), status_code=HTTP_303_SEE_OTHER)
    url = await run_in_threadpool(reconciler.handle_return, callback.pp_TxnRefNo, callback.pp_ResponseCode)
    return RedirectResponse(url=url, status_code=HTTP_303_SEE_OTHER)

@router.api_route("/jazz/ipn", methods=["GET", "POST"], include_in_schema=False)
async def jazz_ipn(request: Request):
    callback = await _read_callback(request)
    if not _callback_hash_ok(callback, "ipn"):
        return PlainTextResponse("OK")
    ack = await run_in_threadpool(reconciler.handle_notification, callback.pp_TxnRefNo, callback.pp_ResponseCode)
    return PlainTextResponse(ack)

@router.post("/webhook", include_in_schema=False)
async def stripe_webhook(request: Request):
    """
    Webhook Stripe: signature vérifiée, puis finalisation de la session payée.
    - Signature/payload invalide: 400 (Stripe rejouera)
    - Réponses: {"status": "completed"|"already_completed"|"ignored"|"rejected"|...}
    """
    try:
        event = await stripe_client.parse_event(request)
    except (ValueError, stripe.SignatureVerificationError):
        logger.warning("checkout.webhook invalid signature or payload")
        raise HTTPException(status_code=400, detail="Invalid Stripe webhook payload")
    return await run_in_threadpool(reconciler.handle_card_event, event)

@router.get("/confirm")
def confirm_checkout(session_id: str, user: AuthenticatedUser = Depends(require_user)):
    return reconciler.confirm_card_session(session_id, user)
