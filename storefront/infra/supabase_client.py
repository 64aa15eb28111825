from typing import Optional
from supabase import create_client, Client
from storefront import config

_supabase: Optional[Client] = None
_service_supabase: Optional[Client] = None

def get_supabase() -> Client:
    """Client 'anon' partagé (lectures publiques: catalogue, avis approuvés)."""
    global _supabase
    if _supabase is None:
        key = config.SUPABASE_ANON or config.SUPABASE_SERVICE_KEY
        if not config.SUPABASE_URL or not key:
            raise RuntimeError("SUPABASE_URL/SUPABASE_ANON_KEY manquants")
        _supabase = create_client(config.SUPABASE_URL, key)
    return _supabase

def get_service_supabase() -> Client:
    """
    Client service-role (écritures: commandes, synchro produits, modération).
    Retombe sur le client anon si aucune clé service n'est fournie (dev local).
    """
    global _service_supabase
    if not config.SUPABASE_SERVICE_KEY:
        return get_supabase()
    if _service_supabase is None:
        if not config.SUPABASE_URL:
            raise RuntimeError("SUPABASE_URL manquant pour get_service_supabase()")
        _service_supabase = create_client(config.SUPABASE_URL, config.SUPABASE_SERVICE_KEY)
    return _service_supabase

def reset_clients() -> None:
    """Oublie les clients mémorisés (changement de configuration, tests)."""
    global _supabase, _service_supabase
    _supabase = None
    _service_supabase = None
