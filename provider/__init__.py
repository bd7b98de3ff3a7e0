"""provider/ -- The external identity and row-store capability.

Identity storage, password verification, recovery links and persistence all
live in the hosted provider. This package defines the capability interface
(base.py), the hosted adapter (supabase.py) and a self-contained local adapter
for development and tests (local.py).

Layer rule: provider/ imports only stdlib, third-party libraries and core/.
"""

from provider.base import IdentityProvider, ProviderError, ProviderIdentity, ProviderUnavailable


def build_provider(settings) -> IdentityProvider:
    """Return the adapter selected by Settings.provider_backend."""
    if settings.provider_backend == "local":
        from provider.local import LocalProvider

        return LocalProvider(db_url=settings.local_db_url)
    from provider.supabase import SupabaseProvider

    return SupabaseProvider(
        url=settings.supabase_url,
        anon_key=settings.supabase_anon_key,
        service_role_key=settings.supabase_service_role_key or None,
        timeout=settings.provider_timeout_seconds,
    )


__all__ = ["IdentityProvider", "ProviderError", "ProviderIdentity", "ProviderUnavailable", "build_provider"]
