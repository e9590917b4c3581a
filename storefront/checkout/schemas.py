"""
Schémas des requêtes checkout, validés à la frontière HTTP avant le finaliseur.
"""
from typing import Any, Dict, List, Optional, Union
from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator
from pydantic import ValidationError as PydanticValidationError

from storefront.errors import ValidationError

SHIPPING_FIELDS = ("name", "email", "address", "city", "state", "zip")

class ShippingInfo(BaseModel):
    """Formulaire de livraison tel que reçu (champs vides tolérés ici, contrôlés par validate_shipping)."""
    name: str = ""
    email: str = ""
    address: str = ""
    city: str = ""
    state: str = ""
    zip: str = ""

    @field_validator("*", mode="before")
    @classmethod
    def _as_stripped_str(cls, v: Any) -> str:
        return "" if v is None else str(v).strip()

    def missing_fields(self) -> List[str]:
        return [f for f in SHIPPING_FIELDS if not getattr(self, f)]

class ShippingSnapshot(BaseModel):
    """Instantané de livraison figé dans la commande."""
    name: str
    email: EmailStr
    address: str
    city: str
    state: str
    zip: str

class CheckoutRequest(BaseModel):
    shipping: ShippingInfo = Field(default_factory=ShippingInfo)

class WalletCallback(BaseModel):
    """Champs JazzCash utiles au rapprochement; les autres pp_* sont conservés pour le hash."""
    model_config = ConfigDict(extra="allow")

    pp_TxnRefNo: str = ""
    pp_ResponseCode: str = ""
    pp_ResponseMessage: str = ""
    pp_SecureHash: str = ""

    @field_validator("pp_TxnRefNo", "pp_ResponseCode", "pp_ResponseMessage", "pp_SecureHash", mode="before")
    @classmethod
    def _as_str(cls, v: Any) -> str:
        return "" if v is None else str(v)

def validate_shipping(shipping: Optional[Union[ShippingInfo, Dict[str, Any]]]) -> Dict[str, str]:
    """
    Valide l'adresse de livraison et retourne l'instantané à persister.
    - Tous les champs name, email, address, city, state, zip sont requis (non vides).
    - L'email doit être syntaxiquement valide.
    Lève ValidationError avec la liste des champs manquants.
    """
    if isinstance(shipping, ShippingInfo):
        info = shipping
    else:
        info = ShippingInfo.model_validate(shipping or {})
    missing = info.missing_fields()
    if missing:
        raise ValidationError(f"Champs de livraison manquants: {', '.join(missing)}")
    try:
        snapshot = ShippingSnapshot(**info.model_dump())
    except PydanticValidationError:
        raise ValidationError("Email de livraison invalide")
    return snapshot.model_dump(mode="json")
