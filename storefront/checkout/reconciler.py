"""Rapprochement des retours prestataires avec les commandes.

Wallet (JazzCash): /jazz/return (redirection navigateur) et /jazz/ipn (serveur à
serveur) peuvent arriver dans n'importe quel ordre, en double, ou une seule fois.
Ils ne créent jamais de commande: ils basculent 'processing' -> 'completed'.

Carte (Stripe): une session payée finalise la commande (référence = id de session)
si le total du panier courant égale amount_total de la session,
puis la marque 'completed'. Une commande existante pour cette référence court-circuite
la finalisation; si webhook et /confirm se croisent, le perdant relit la commande
du gagnant au lieu d'échouer.
"""
from enum import Enum
from typing import Any, Dict, Optional, Tuple
from urllib.parse import urlencode
import logging

from storefront import config
from storefront.auth.models import AuthenticatedUser
from storefront.checkout import finalizer, stripe_client
from storefront.checkout import metadata as meta
from storefront.checkout.jazzcash import SUCCESS_RESPONSE_CODE
from storefront.errors import (
    EmptyCartError,
    InsufficientStockError,
    NotFoundError,
    StorageError,
    StorefrontError,
    ValidationError,
)
from storefront.orders import repository as orders_repository
from storefront.orders import service as orders_service
from storefront.orders.models import OrderStatus, PaymentMethod

logger = logging.getLogger(__name__)

PAID_SESSION_EVENTS = {"checkout.session.completed", "checkout.session.async_payment_succeeded"}


class ReconcileOutcome(str, Enum):
    COMPLETED = "completed"
    ALREADY_COMPLETED = "already_completed"
    NOT_FOUND = "not_found"
    DECLINED = "declined"
    CONFLICT = "conflict"
    REJECTED_HASH = "rejected_hash"


SUCCESSFUL_OUTCOMES = {ReconcileOutcome.COMPLETED, ReconcileOutcome.ALREADY_COMPLETED}

def success_redirect_url(transaction_ref: str) -> str:
    return f"{config.CLIENT_URL}{config.CHECKOUT_SUCCESS_PATH}?{urlencode({'txnRef': transaction_ref})}"

def failure_redirect_url(reason: str = "Payment failed") -> str:
    return f"{config.CLIENT_URL}{config.CHECKOUT_CANCEL_PATH}?{urlencode({'error': reason})}"

def _find_order(transaction_ref: str) -> Dict[str, Any]:
    order = orders_repository.find_order_by_reference(transaction_ref)
    if not order:
        raise NotFoundError(f"Aucune commande pour la référence {transaction_ref}")
    return order

def _mark_completed(order: Dict[str, Any]) -> Tuple[ReconcileOutcome, Dict[str, Any]]:
    """Transition processing -> completed; completed reste completed, cancelled n'est pas ressuscitée."""
    status = order.get("status")
    if status == OrderStatus.COMPLETED.value:
        return ReconcileOutcome.ALREADY_COMPLETED, order
    if status == OrderStatus.CANCELLED.value:
        return ReconcileOutcome.CONFLICT, order
    updated = orders_repository.update_order_status(order["id"], OrderStatus.COMPLETED.value)
    return ReconcileOutcome.COMPLETED, updated or dict(order, status=OrderStatus.COMPLETED.value)

def reconcile_wallet_payment(transaction_ref: str, response_code: str, source: str = "return") -> ReconcileOutcome:
    """
    Logique commune return/ipn, idempotente.
    - Code != "000": commande laissée telle quelle (declined).
    - Référence inconnue: NotFoundError loggée, jamais exposée (not_found).
    """
    if str(response_code or "") != SUCCESS_RESPONSE_CODE:
        outcome = ReconcileOutcome.DECLINED
    else:
        try:
            outcome, _ = _mark_completed(_find_order(transaction_ref))
        except NotFoundError as e:
            logger.warning("reconciler.wallet source=%s %s", source, e.detail)
            outcome = ReconcileOutcome.NOT_FOUND
    log = logger.warning if outcome == ReconcileOutcome.CONFLICT else logger.info
    log("reconciler.wallet source=%s ref=%s code=%s outcome=%s", source, transaction_ref, response_code, outcome.value)
    return outcome

def handle_return(transaction_ref: str, response_code: str) -> str:
    """Retour navigateur: URL de redirection (succès avec txnRef, sinon échec). Ne lève jamais."""
    try:
        outcome = reconcile_wallet_payment(transaction_ref, response_code, source="return")
    except StorefrontError:
        logger.exception("reconciler.handle_return failed ref=%s", transaction_ref)
        return failure_redirect_url("Payment processing error")
    if outcome in SUCCESSFUL_OUTCOMES:
        return success_redirect_url(transaction_ref)
    return failure_redirect_url()

def handle_notification(transaction_ref: str, response_code: str) -> str:
    """
    IPN serveur à serveur: acquitte quel que soit le résultat du rapprochement,
    pour que JazzCash ne relance pas indéfiniment. Une StorageError remonte (500)
    afin que la notification soit rejouée.
    """
    reconcile_wallet_payment(transaction_ref, response_code, source="ipn")
    return "OK"

def reconcile_card_session(
    session: Dict[str, Any],
    expected_user_id: Optional[str] = None,
) -> Tuple[ReconcileOutcome, Optional[Dict[str, Any]]]:
    session_id = str(session.get("id") or "")
    if session.get("payment_status") != "paid":
        logger.info("reconciler.card session_id=%s payment_status=%s outcome=declined", session_id, session.get("payment_status"))
        return ReconcileOutcome.DECLINED, None

    user_id, shipping = meta.extract_metadata_from_session(session)
    if not user_id:
        raise ValidationError("Session Stripe sans user_id")
    if expected_user_id and user_id != expected_user_id:
        # Session d'un autre utilisateur: même réponse qu'une session inconnue
        raise NotFoundError("Session introuvable")

    existing = orders_repository.find_order_by_reference(session_id)
    if not existing:
        amount_total = session.get("amount_total")
        if amount_total is None:
            raise ValidationError("Session Stripe sans amount_total")
        try:
            order = finalizer.finalize(
                user_id, shipping, PaymentMethod.CARD,
                transaction_reference=session_id, expected_amount=int(amount_total),
            )
        except (EmptyCartError, InsufficientStockError, StorageError):
            # webhook et /confirm concurrents: le perdant trouve le panier vidé
            # ou bute sur l'unicité de transaction_ref
            existing = orders_repository.find_order_by_reference(session_id)
            if not existing:
                raise
            logger.info("reconciler.card session_id=%s finalized concurrently", session_id)
        else:
            outcome, _ = _mark_completed(order)
            logger.info("reconciler.card session_id=%s user_id=%s outcome=%s", session_id, user_id, outcome.value)
            return outcome, dict(order, status=OrderStatus.COMPLETED.value)

    outcome, order = _mark_completed(existing)
    logger.info("reconciler.card session_id=%s user_id=%s outcome=%s", session_id, user_id, outcome.value)
    return outcome, orders_service.populate_order(order)

def handle_card_event(event: Dict[str, Any]) -> Dict[str, Any]:
    """
    Webhook Stripe: finalise sur session payée.
    - Autres types d'événements: {"status": "ignored"}.
    - Panier vide, stock épuisé, livraison invalide ou montant différent du panier
      après paiement: une relance Stripe n'y changerait rien, on répond 'rejected'
      et on logge pour remboursement manuel.
    - StorageError: remonte (500) pour que Stripe rejoue l'événement.
    """
    event_type = (event or {}).get("type")
    if event_type not in PAID_SESSION_EVENTS:
        return {"status": "ignored"}
    session = dict(((event or {}).get("data") or {}).get("object") or {})
    try:
        outcome, order = reconcile_card_session(session)
    except (EmptyCartError, InsufficientStockError, ValidationError) as e:
        logger.error(
            "reconciler.card paid session not finalized session_id=%s reason=%s (remboursement manuel)",
            session.get("id"), e.detail,
        )
        return {"status": "rejected", "reason": e.detail}
    return {"status": outcome.value, "orderId": (order or {}).get("id")}

def confirm_card_session(session_id: str, user: AuthenticatedUser) -> Dict[str, Any]:
    """
    Alternative sans webhook: relit la session Stripe, exige payment_status='paid'
    et la propriété, puis finalise (idempotent avec le webhook).
    """
    session = stripe_client.get_session(session_id)
    if session.get("payment_status") != "paid":
        raise ValidationError(f"Paiement non confirmé (payment_status={session.get('payment_status')})")
    outcome, order = reconcile_card_session(session, expected_user_id=user.id)
    return {"status": outcome.value, "order": order}
