"""Explicitly constructed application context (clients and services)."""

from dataclasses import dataclass

from ..config import Config, ConfigModel
from ..db import ClusterRegistry, Database, MembershipStore, ProfileStore
from ..logging_config import get_logger
from ..storage import AuthProvider, ObjectStore, create_supabase_client
from .accounts import AccountService
from .cohorts import CohortService

logger = get_logger(__name__)


@dataclass
class AppContext:
    """Everything a request handler needs; built once per process."""

    config: ConfigModel
    db: Database
    cohorts: CohortService
    accounts: AccountService

    def open(self) -> None:
        self.db.open()

    def close(self) -> None:
        self.db.close()


def build_context(config: Config) -> AppContext:
    """
    Wire the database pool, Supabase adapters and services from configuration.

    Args:
        config: Loaded configuration manager

    Returns:
        An AppContext whose pool is not yet opened
    """
    settings = config.config
    sb_config = config.get_supabase_config()

    db = Database(config.get_db_config())
    client = create_supabase_client(sb_config)
    objects = ObjectStore(
        client,
        bucket=settings.supabase.vcf_bucket,
        signed_url_ttl=settings.supabase.signed_url_ttl,
        http_timeout=settings.supabase.http_timeout,
    )
    profiles = ProfileStore()

    cohorts = CohortService(
        db,
        ClusterRegistry(),
        MembershipStore(),
        profiles,
        objects,
        settings=settings.cohorts,
    )
    accounts = AccountService(
        db,
        profiles,
        AuthProvider(client),
        server=settings.server,
        leaderboard_limit=settings.cohorts.leaderboard_limit,
    )
    logger.debug(f"Context built for database {settings.postgres.host}:{settings.postgres.port}")
    return AppContext(config=settings, db=db, cohorts=cohorts, accounts=accounts)
