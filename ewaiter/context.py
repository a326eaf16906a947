from dataclasses import dataclass, field

from ewaiter.config import Settings
from ewaiter.services.authorization import (
    AuthorizationEngine,
    RegistryAuthorizationEngine,
    SessionAuthorizationEngine,
)
from ewaiter.services.device_identity import DeviceIdentity
from ewaiter.services.device_registry import CrossTenantScanner, DeviceRegistry
from ewaiter.services.document_store import DocumentStore, SqlDocumentStore
from ewaiter.services.identity import HttpIdentityProvider, IdentityProvider, LocalIdentityProvider
from ewaiter.services.rate_limit import RateLimiter
from ewaiter.services.session_ledger import SessionLedger, TenantLocks
from ewaiter.services.tenant_directory import TenantDirectory


@dataclass
class AppContext:
    """Everything an authorization attempt needs, built once at startup."""

    settings: Settings
    store: DocumentStore
    directory: TenantDirectory
    registry: DeviceRegistry
    scanner: CrossTenantScanner
    ledger: SessionLedger
    login_limiter: RateLimiter
    locks: TenantLocks = field(default_factory=TenantLocks)

    @classmethod
    def build(cls, settings: Settings, store: DocumentStore | None = None) -> "AppContext":
        store = store or SqlDocumentStore.from_url(settings.database_url)
        directory = TenantDirectory(store, settings.tenant_collection, settings.legacy_owner_field_list)
        registry = DeviceRegistry(store, settings.tenant_collection)
        locks = TenantLocks()
        return cls(
            settings=settings,
            store=store,
            directory=directory,
            registry=registry,
            scanner=CrossTenantScanner(directory, registry, settings.device_scan_timeout_seconds),
            ledger=SessionLedger(store, settings.tenant_collection, locks),
            login_limiter=RateLimiter(settings.rate_limit_login_per_minute, 60),
            locks=locks,
        )

    def identity_provider(self) -> IdentityProvider:
        if self.settings.identity_provider == "http":
            if not self.settings.identity_provider_url:
                raise RuntimeError("IDENTITY_PROVIDER_URL is required for the http identity provider")
            return HttpIdentityProvider(self.settings.identity_provider_url, self.settings.identity_timeout_seconds)
        return LocalIdentityProvider(self.store)

    def engine(self, device_identity: DeviceIdentity, provider: IdentityProvider | None = None) -> AuthorizationEngine:
        provider = provider or self.identity_provider()
        if self.settings.auth_flow == "registry":
            return RegistryAuthorizationEngine(provider, device_identity, self.directory, self.registry, self.scanner)
        return SessionAuthorizationEngine(provider, device_identity, self.directory, self.ledger)
