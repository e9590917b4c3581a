"""
Adaptateur Stripe: centralise les appels et la configuration Stripe.
Les erreurs SDK/réseau sont loggées puis remontées en ProviderError (message générique).
"""
from typing import Any, Dict, List
import logging

import stripe
from fastapi import Request

from storefront import config
from storefront.errors import ProviderConfigurationError, ProviderError

logger = logging.getLogger(__name__)

# module storefront.checkout.stripe_client
def require_stripe():
    """
    Prépare et retourne le module stripe prêt à l'emploi.
    - Configure stripe.api_key via STRIPE_SECRET_KEY.
    - Sans clé: ProviderConfigurationError (les endpoints carte répondent 500).
    """
    if not config.STRIPE_SECRET_KEY:
        raise ProviderConfigurationError("stripe", ["STRIPE_SECRET_KEY"])
    stripe.api_key = config.STRIPE_SECRET_KEY
    return stripe

def create_session(
    *,
    line_items: List[Dict[str, Any]],
    success_url: str,
    cancel_url: str,
    metadata: Dict[str, str],
) -> Dict[str, Any]:
    """
    Crée une session Stripe Checkout (mode payment, carte).
    Retour: dict session (ex: {"id": "cs_test_...", "url": "https://..."})
    """
    require_stripe()
    try:
        session = stripe.checkout.Session.create(
            line_items=line_items,
            mode="payment",
            success_url=success_url,
            cancel_url=cancel_url,
            metadata=metadata,
            payment_method_types=["card"],
        )
    except stripe.StripeError as e:
        logger.exception("stripe_client.create_session failed user_id=%s", metadata.get("user_id"))
        raise ProviderError() from e
    return dict(session)

def get_session(session_id: str) -> Dict[str, Any]:
    """
    Récupère une session Stripe Checkout par son identifiant.
    Retour: dict session incluant "id", "payment_status", "metadata", etc.
    """
    require_stripe()
    try:
        session = stripe.checkout.Session.retrieve(session_id)
    except stripe.StripeError as e:
        logger.exception("stripe_client.get_session failed session_id=%s", session_id)
        raise ProviderError() from e
    return dict(session)

async def parse_event(request: Request):
    """
    Parse et valide un événement Stripe signé (webhook).
    - Lit le body brut + en-tête Stripe-Signature
    - Valide la signature via Webhook.construct_event (STRIPE_WEBHOOK_SECRET)
    Lève ValueError / stripe.SignatureVerificationError si payload ou signature invalide.
    """
    if not config.STRIPE_WEBHOOK_SECRET:
        raise ProviderConfigurationError("stripe", ["STRIPE_WEBHOOK_SECRET"])
    require_stripe()
    payload = await request.body()
    sig_header = request.headers.get("stripe-signature") or ""
    return stripe.Webhook.construct_event(payload, sig_header, config.STRIPE_WEBHOOK_SECRET)
