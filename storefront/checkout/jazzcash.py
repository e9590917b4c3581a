"""
Protocole JazzCash (MWALLET, formulaire de redirection signé).

Hash sécurisé (pp_SecureHash):
  sel d'intégrité + "&" + valeur, pour chaque champ non vide sauf pp_SecureHash,
  clés triées par ordre croissant, puis HMAC-SHA256 (clé = sel), hex minuscule.
Le même calcul permet de vérifier les champs renvoyés sur /jazz/return et /jazz/ipn.
"""
from datetime import datetime, timezone
from typing import Dict, Mapping, Optional
import hashlib
import hmac
import secrets

from storefront import config
from storefront.errors import ProviderConfigurationError

SECURE_HASH_FIELD = "pp_SecureHash"
SUCCESS_RESPONSE_CODE = "000"
REQUIRED_SETTINGS = (
    "JAZZ_MERCHANT_ID",
    "JAZZ_PASSWORD",
    "JAZZ_INTEGRITY_SALT",
    "JAZZ_SANDBOX_URL",
    "JAZZ_RETURN_URL",
)

# module storefront.checkout.jazzcash
def require_jazzcash() -> None:
    missing = [name for name in REQUIRED_SETTINGS if not getattr(config, name, "")]
    if missing:
        raise ProviderConfigurationError("jazzcash", missing)

def compute_secure_hash(fields: Mapping[str, object], integrity_salt: str) -> str:
    hash_string = integrity_salt
    for key in sorted(fields):
        value = fields[key]
        if key == SECURE_HASH_FIELD or value is None or str(value) == "":
            continue
        hash_string += f"&{value}"
    return hmac.new(
        integrity_salt.encode("utf-8"),
        hash_string.encode("utf-8"),
        hashlib.sha256,
    ).hexdigest()

def verify_secure_hash(fields: Mapping[str, object], integrity_salt: str) -> bool:
    received = str(fields.get(SECURE_HASH_FIELD) or "").lower()
    if not received:
        return False
    expected = compute_secure_hash(fields, integrity_salt)
    return hmac.compare_digest(received, expected)

def format_txn_datetime(now: datetime) -> str:
    return now.strftime("%Y%m%d%H%M%S")

def generate_txn_ref(now: Optional[datetime] = None) -> str:
    """
    Référence unique par initiation: T + horodatage UTC à la seconde + 5 hex aléatoires
    (20 caractères, longueur max de pp_TxnRefNo). Deux initiations dans la même seconde
    ne collisionnent pas.
    """
    now = now or datetime.now(timezone.utc)
    return f"T{format_txn_datetime(now)}{secrets.token_hex(3)[:5].upper()}"

def build_form_fields(*, txn_ref: str, amount: int, now: Optional[datetime] = None,
                      description: str = "Order payment") -> Dict[str, str]:
    """
    Champs du formulaire à poster sur JAZZ_SANDBOX_URL, signés.
    - amount: montant en paisa (entier), sérialisé en chaîne.
    """
    now = now or datetime.now(timezone.utc)
    form_data = {
        "pp_Version": "1.1",
        "pp_TxnType": "MWALLET",
        "pp_Language": "EN",
        "pp_MerchantID": config.JAZZ_MERCHANT_ID,
        "pp_Password": config.JAZZ_PASSWORD,
        "pp_TxnRefNo": txn_ref,
        "pp_Amount": str(int(amount)),
        "pp_TxnCurrency": config.JAZZ_CURRENCY,
        "pp_TxnDateTime": format_txn_datetime(now),
        "pp_BillReference": f"billRef{int(now.timestamp() * 1000)}",
        "pp_Description": description,
        "pp_ReturnURL": config.JAZZ_RETURN_URL,
        SECURE_HASH_FIELD: "",
    }
    form_data[SECURE_HASH_FIELD] = compute_secure_hash(form_data, config.JAZZ_INTEGRITY_SALT)
    return form_data
