"""
Taxonomie des erreurs métier de la boutique.

Chaque erreur porte un status_code HTTP et un `detail` public; le handler
enregistré par app_setup.exceptions les traduit en réponse JSON.
- Les erreurs utilisateur (validation, panier vide, stock) sont renvoyées telles quelles.
- Les erreurs fournisseur / stockage restent génériques côté client; le détail est loggé.
"""
from typing import Any, Dict, Iterable, Optional


class StorefrontError(Exception):
    status_code = 500
    public_detail = "Erreur interne"

    def __init__(self, detail: Optional[str] = None):
        self.detail = detail or self.public_detail
        super().__init__(self.detail)

    def to_payload(self) -> Dict[str, Any]:
        return {"detail": self.detail}


class ValidationError(StorefrontError):
    status_code = 400
    public_detail = "Données invalides"


class EmptyCartError(StorefrontError):
    status_code = 400
    public_detail = "Le panier est vide"


class InsufficientStockError(StorefrontError):
    """Stock insuffisant pour un produit; nom et quantité disponible exposés à l'appelant."""
    status_code = 400

    def __init__(self, product_name: str, available: int):
        self.product_name = product_name
        self.available = max(int(available or 0), 0)
        super().__init__(f"Seulement {self.available} {product_name} en stock")

    def to_payload(self) -> Dict[str, Any]:
        return {"detail": self.detail, "product": self.product_name, "available": self.available}


class ProviderConfigurationError(StorefrontError):
    status_code = 500
    public_detail = "Configuration serveur incomplète pour ce moyen de paiement"

    def __init__(self, provider: str, missing: Iterable[str]):
        self.provider = provider
        self.missing = list(missing)
        super().__init__()

    def __str__(self) -> str:
        return f"{self.provider}: variables manquantes {', '.join(self.missing)}"


class ProviderError(StorefrontError):
    status_code = 502
    public_detail = "Le prestataire de paiement est indisponible"


class NotFoundError(StorefrontError):
    status_code = 404
    public_detail = "Ressource introuvable"


class StorageError(StorefrontError):
    status_code = 500
    public_detail = "Erreur de stockage"
