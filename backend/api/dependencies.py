"""
Dependency injection setup for FastAPI.

This module provides the "container" that wires together all module
implementations. Each module exposes its service through an interface,
and this file creates the concrete implementations.

``storage_backend`` picks Supabase or in-process tables; Redis, when
configured, backs the shared rate-limit windows and (optionally) jobs.
"""

from typing import TYPE_CHECKING, Optional

from shared.config import Settings, get_settings

# Type checking imports for interfaces (avoids circular imports)
if TYPE_CHECKING:
    from modules.assistant.conversations import ConversationService
    from modules.assistant.interfaces import IAssistantService
    from modules.auth.interfaces import IAuthService
    from modules.billing.interfaces import IBillingService
    from modules.contacts.interfaces import IContactService
    from modules.imports.service import ImportService
    from modules.interactions.service import InteractionService
    from modules.jobs.service import JobSweeper, JobTracker
    from modules.notifications.service import INotificationService
    from modules.opportunities.service import OpportunityService
    from modules.quota.interfaces import IQuotaTracker
    from modules.ratelimit.service import IRateLimiter
    from modules.reminders.service import ReminderService
    from shared.repository import ITableRepository
    from shared.storage import IObjectStorage


class Tables:
    PROFILES = "profiles"
    CONTACTS = "contacts"
    INTERACTIONS = "interactions"
    OPPORTUNITIES = "opportunities"
    REMINDERS = "reminders"
    CONVERSATIONS = "chat_conversations"
    MESSAGES = "chat_messages"


class ServiceContainer:
    """
    Container for all service instances.

    This class manages the lifecycle of service instances and their
    dependencies. Services are created lazily on first access.

    All services are cached as singletons within the container.
    Use reset() to clear all cached services for testing.
    """

    def __init__(self, settings: Optional[Settings] = None) -> None:
        self._settings = settings
        self._instances: dict[str, object] = {}
        self._tables: dict[str, "ITableRepository"] = {}

    @property
    def settings(self) -> Settings:
        if self._settings is None:
            self._settings = get_settings()
        return self._settings

    @property
    def uses_memory(self) -> bool:
        return self.settings.storage_backend == "memory"

    def _cached(self, name: str, factory):
        if name not in self._instances:
            self._instances[name] = factory()
        return self._instances[name]

    # -------------------------------------------------------------------------
    # Storage
    # -------------------------------------------------------------------------

    def repository(self, table: str) -> "ITableRepository":
        """Get the repository for a table."""
        if table not in self._tables:
            if self.uses_memory:
                from shared.repository import InMemoryTableRepository
                self._tables[table] = InMemoryTableRepository(table)
            else:
                from shared.database import get_supabase_client
                from shared.repository import SupabaseTableRepository
                self._tables[table] = SupabaseTableRepository(get_supabase_client(), table)
        return self._tables[table]

    @property
    def object_storage(self) -> "IObjectStorage":
        def build():
            if self.uses_memory:
                from shared.storage import InMemoryObjectStorage
                return InMemoryObjectStorage()
            from shared.database import get_supabase_client
            from shared.storage import SupabaseObjectStorage
            return SupabaseObjectStorage(get_supabase_client())
        return self._cached("object_storage", build)

    # -------------------------------------------------------------------------
    # Governance
    # -------------------------------------------------------------------------

    @property
    def quota(self) -> "IQuotaTracker":
        """Get the quota tracker instance."""
        def build():
            from modules.quota.service import QuotaTracker
            if self.uses_memory:
                from modules.quota.store import InMemoryQuotaStore
                store = InMemoryQuotaStore(self.repository(Tables.PROFILES))
            else:
                from modules.quota.store import SupabaseQuotaStore
                from shared.database import get_supabase_client
                store = SupabaseQuotaStore(get_supabase_client())
            return QuotaTracker(store, timeout_seconds=self.settings.quota_store_timeout_seconds)
        return self._cached("quota", build)

    @property
    def rate_limiter(self) -> "IRateLimiter":
        """Get the rate limiter instance."""
        def build():
            from modules.ratelimit.service import RateLimiter
            from modules.ratelimit.store import InMemoryWindowStore, RedisWindowStore
            from shared.cache import get_redis_client
            redis = get_redis_client()
            store = RedisWindowStore(redis) if redis is not None else InMemoryWindowStore()
            return RateLimiter(
                store,
                timeout_seconds=self.settings.rate_limit_store_timeout_seconds,
                enabled=self.settings.rate_limit_enabled,
            )
        return self._cached("rate_limiter", build)

    @property
    def jobs(self) -> "JobTracker":
        """Get the background job tracker instance."""
        def build():
            from modules.jobs.service import JobTracker
            from modules.jobs.store import InMemoryJobStore, RedisJobStore
            from shared.cache import get_redis_client
            retention = self.settings.job_retention_seconds
            redis = get_redis_client() if self.settings.job_store_backend == "redis" else None
            store = RedisJobStore(redis, retention) if redis is not None else InMemoryJobStore()
            return JobTracker(store, retention_seconds=retention)
        return self._cached("jobs", build)

    @property
    def job_sweeper(self) -> "JobSweeper":
        def build():
            from modules.jobs.service import JobSweeper
            return JobSweeper(self.jobs, interval_seconds=self.settings.job_sweep_interval_seconds)
        return self._cached("job_sweeper", build)

    # -------------------------------------------------------------------------
    # External services
    # -------------------------------------------------------------------------

    @property
    def assistant(self) -> "IAssistantService":
        """Get the LLM assistant, wired with every configured provider."""
        def build():
            from modules.assistant.service import AssistantService
            from providers import build_chain, configured_models
            return AssistantService(
                build_chain(configured_models(self.settings)),
                build_chain(configured_models(self.settings, vision=True)),
            )
        return self._cached("assistant", build)

    @property
    def notifications(self) -> "INotificationService":
        def build():
            from modules.notifications.service import OneSignalNotificationService
            return OneSignalNotificationService(
                self.settings.onesignal_app_id, self.settings.onesignal_api_key
            )
        return self._cached("notifications", build)

    # -------------------------------------------------------------------------
    # Domain services
    # -------------------------------------------------------------------------

    @property
    def auth(self) -> "IAuthService":
        """Get the auth service instance."""
        def build():
            from modules.auth.identity import SupabaseIdentityProvider
            from modules.auth.service import AuthService
            return AuthService(
                jwt_secret=self.settings.supabase_jwt_secret,
                profiles=self.repository(Tables.PROFILES),
                identity=SupabaseIdentityProvider(),
            )
        return self._cached("auth", build)

    @property
    def contacts(self) -> "IContactService":
        """Get the contact service instance."""
        def build():
            from modules.contacts.service import ContactService
            return ContactService(
                self.repository(Tables.CONTACTS),
                self.repository(Tables.INTERACTIONS),
                self.repository(Tables.REMINDERS),
                self.quota,
            )
        return self._cached("contacts", build)

    @property
    def interactions(self) -> "InteractionService":
        def build():
            from modules.interactions.service import InteractionService
            return InteractionService(
                self.repository(Tables.INTERACTIONS),
                self.repository(Tables.CONTACTS),
                self.repository(Tables.REMINDERS),
            )
        return self._cached("interactions", build)

    @property
    def opportunities(self) -> "OpportunityService":
        def build():
            from modules.opportunities.service import OpportunityService
            return OpportunityService(
                self.repository(Tables.OPPORTUNITIES), self.repository(Tables.CONTACTS)
            )
        return self._cached("opportunities", build)

    @property
    def reminders(self) -> "ReminderService":
        def build():
            from modules.reminders.service import ReminderService
            return ReminderService(self.repository(Tables.REMINDERS), self.repository(Tables.CONTACTS))
        return self._cached("reminders", build)

    @property
    def conversations(self) -> "ConversationService":
        def build():
            from modules.assistant.conversations import ConversationService
            return ConversationService(
                self.assistant,
                self.repository(Tables.CONVERSATIONS),
                self.repository(Tables.MESSAGES),
                self.repository(Tables.CONTACTS),
                self.repository(Tables.INTERACTIONS),
                self.repository(Tables.REMINDERS),
                self.repository(Tables.OPPORTUNITIES),
            )
        return self._cached("conversations", build)

    @property
    def imports(self) -> "ImportService":
        def build():
            from modules.imports.pipeline import ImportPipeline
            from modules.imports.service import ImportService
            return ImportService(
                pipeline=ImportPipeline(self.repository(Tables.CONTACTS), self.quota),
                jobs=self.jobs,
                contacts=self.contacts,
                storage=self.object_storage,
                bucket=self.settings.supabase_storage_bucket,
                assistant=self.assistant,
                notifications=self.notifications,
                max_spreadsheet_bytes=self.settings.max_spreadsheet_bytes,
                max_image_bytes=self.settings.max_image_bytes,
            )
        return self._cached("imports", build)

    @property
    def billing(self) -> "IBillingService":
        """Get the billing service instance."""
        def build():
            from modules.billing.service import BillingService
            return BillingService(
                secret_key=self.settings.stripe_secret_key,
                webhook_secret=self.settings.stripe_webhook_secret,
                profiles=self.repository(Tables.PROFILES),
                price_ids={
                    "base": self.settings.stripe_price_base,
                    "enterprise": self.settings.stripe_price_enterprise,
                },
                currency=self.settings.stripe_currency,
                frontend_url=self.settings.frontend_url,
                notifications=self.notifications,
            )
        return self._cached("billing", build)

    def reset(self) -> None:
        """
        Reset all cached services.

        This is primarily for testing - allows tests to get fresh
        service instances with different mock dependencies.
        """
        self._instances.clear()
        self._tables.clear()


# Module-level container singleton
_container: ServiceContainer | None = None


def get_container() -> ServiceContainer:
    """Get the singleton service container."""
    global _container
    if _container is None:
        _container = ServiceContainer()
    return _container


def reset_container() -> None:
    """
    Reset the service container.

    This clears the cached container, so the next call to get_container()
    will create a fresh container with new service instances.

    Primarily used for testing.
    """
    global _container
    _container = None


# FastAPI dependency functions
# These are the functions that should be used in route Depends() calls


def get_auth_service() -> "IAuthService":
    """FastAPI dependency for auth service."""
    return get_container().auth


def get_quota_tracker() -> "IQuotaTracker":
    return get_container().quota


def get_rate_limiter() -> "IRateLimiter":
    return get_container().rate_limiter


def get_job_tracker() -> "JobTracker":
    return get_container().jobs


def get_contact_service() -> "IContactService":
    """FastAPI dependency for contact service."""
    return get_container().contacts


def get_interaction_service() -> "InteractionService":
    return get_container().interactions


def get_opportunity_service() -> "OpportunityService":
    return get_container().opportunities


def get_reminder_service() -> "ReminderService":
    return get_container().reminders


def get_conversation_service() -> "ConversationService":
    return get_container().conversations


def get_import_service() -> "ImportService":
    return get_container().imports


def get_billing_service() -> "IBillingService":
    """FastAPI dependency for billing service."""
    return get_container().billing
