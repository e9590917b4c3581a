"""
Module 'checkout' (feature-first): point d'entrée public.
Réunit tarification, protocole JazzCash, client Stripe, finalisation et rapprochement.
"""

from .pricing import check_stock, snapshot_line_items, compute_total, to_minor_units, format_money
from .metadata import make_metadata, extract_metadata_from_session
from .stripe_client import require_stripe, create_session, get_session, parse_event
from .jazzcash import require_jazzcash, compute_secure_hash, verify_secure_hash, generate_txn_ref, build_form_fields
from .finalizer import finalize
from .session import initiate_card_session, initiate_wallet_session
from .reconciler import (
    ReconcileOutcome,
    reconcile_wallet_payment,
    handle_return,
    handle_notification,
    handle_card_event,
    confirm_card_session,
)

__all__ = [
    # pricing
    "check_stock",
    "snapshot_line_items",
    "compute_total",
    "to_minor_units",
    "format_money",
    # metadata
    "make_metadata",
    "extract_metadata_from_session",
    # stripe
    "require_stripe",
    "create_session",
    "get_session",
    "parse_event",
    # jazzcash
    "require_jazzcash",
    "compute_secure_hash",
    "verify_secure_hash",
    "generate_txn_ref",
    "build_form_fields",
    # services
    "finalize",
    "initiate_card_session",
    "initiate_wallet_session",
    "ReconcileOutcome",
    "reconcile_wallet_payment",
    "handle_return",
    "handle_notification",
    "handle_card_event",
    "confirm_card_session",
]
