# storefront.config
from pathlib import Path
import os
from dotenv import load_dotenv

# Calculer le chemin du projet puis charger .env de manière explicite
BASE_DIR = Path(__file__).resolve().parent.parent
ENV_PATH = BASE_DIR / ".env"
load_dotenv(dotenv_path=ENV_PATH, override=True)

"""
Configuration centrale du backend boutique.

- Charge le fichier .env à la racine du projet (BASE_DIR/.env)
- Normalise et expose les secrets/URLs (Supabase, Stripe, JazzCash), sécurité cookies, CORS/hosts
- Fournit les URLs de redirection du front pour les flux de checkout
- Les services paiement lisent ces valeurs via `config.X` au moment de l'appel:
  une clé manquante est détectée par requête (ProviderConfigurationError), pas seulement à l'import.
"""

def _clean_env(v: str) -> str:
    """
    Nettoie une valeur d'environnement:
    - supprime les espaces et guillemets (simples, doubles) et backticks
    - retourne toujours une chaîne (jamais None)
    """
    return (v or "").strip().strip("'").strip('"').strip("`")

def _flag(name: str, default: str = "false") -> bool:
    return _clean_env(os.getenv(name, default)).lower() in ("1", "true", "yes")

# Supabase: URLs et clés (anon/service/jwt)
# - SUPABASE_URL peut parfois être sans schéma: on préfixe en https:// si nécessaire
SUPABASE_URL = _clean_env(os.getenv("SUPABASE_URL") or "")
SUPABASE_ANON = _clean_env(os.getenv("SUPABASE_ANON_KEY") or os.getenv("SUPABASE_KEY") or "")
SUPABASE_SERVICE_KEY = _clean_env(os.getenv("SUPABASE_SERVICE_KEY") or "")
# Facultatif: validation locale des JWT (sinon appel à Supabase Auth)
SUPABASE_JWT_SECRET = _clean_env(os.getenv("SUPABASE_JWT_SECRET") or "")

if SUPABASE_URL and not SUPABASE_URL.startswith("http"):
    SUPABASE_URL = "https://" + SUPABASE_URL
if SUPABASE_URL.endswith("/"):
    SUPABASE_URL = SUPABASE_URL.rstrip("/")

# Cookies / sécurité
COOKIE_SECURE = _flag("COOKIE_SECURE")
SESSION_SECRET_KEY = os.getenv("SESSION_SECRET_KEY", "replace_me_with_a_long_random_secret")

# CORS / hosts
CORS_ORIGINS = [o.strip() for o in os.getenv("CORS_ORIGINS", "*").split(",") if o.strip()]
ALLOWED_HOSTS = [h.strip() for h in os.getenv("ALLOWED_HOSTS", "localhost,127.0.0.1").split(",") if h.strip()]

# Front-end: base des redirections après paiement
CLIENT_URL = _clean_env(os.getenv("CLIENT_URL") or "http://localhost:3000").rstrip("/")
CHECKOUT_SUCCESS_PATH = os.getenv("CHECKOUT_SUCCESS_PATH", "/checkout/success")
CHECKOUT_CANCEL_PATH = os.getenv("CHECKOUT_CANCEL_PATH", "/checkout")

# Stripe (paiement carte): clés publiques/privées et secret webhook
STRIPE_PUBLIC_KEY = _clean_env(os.getenv("STRIPE_PUBLIC_KEY") or "")
STRIPE_SECRET_KEY = _clean_env(os.getenv("STRIPE_SECRET_KEY") or "")
STRIPE_WEBHOOK_SECRET = _clean_env(os.getenv("STRIPE_WEBHOOK_SECRET") or "")
STRIPE_CURRENCY = _clean_env(os.getenv("STRIPE_CURRENCY") or "usd").lower()

# JazzCash (paiement wallet): identifiants marchand + sel d'intégrité (clé HMAC)
JAZZ_MERCHANT_ID = _clean_env(os.getenv("JAZZ_MERCHANT_ID") or "")
JAZZ_PASSWORD = _clean_env(os.getenv("JAZZ_PASSWORD") or "")
JAZZ_INTEGRITY_SALT = _clean_env(os.getenv("JAZZ_INTEGRITY_SALT") or "")
JAZZ_SANDBOX_URL = _clean_env(os.getenv("JAZZ_SANDBOX_URL") or "")
JAZZ_RETURN_URL = _clean_env(os.getenv("JAZZ_RETURN_URL") or "")
JAZZ_CURRENCY = _clean_env(os.getenv("JAZZ_CURRENCY") or "PKR")
# Vérifie pp_SecureHash sur /jazz/return et /jazz/ipn (false = comportement historique non vérifié)
JAZZ_VERIFY_CALLBACK_HASH = _flag("JAZZ_VERIFY_CALLBACK_HASH", "true")

BASE_URL = _clean_env(os.getenv("BASE_URL") or "http://localhost:8000")
