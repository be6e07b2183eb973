"""Wiring of settings, stores and catalog into a policy engine."""

from typing import Optional

from sqlalchemy.orm import sessionmaker

from groupacl.common.config import AclConfig, CacheConfig, CatalogConfig, LoggingConfig
from groupacl.common.config import SuperuserConfig, load_typed_config
from groupacl.common.logger import configure_logging, get_logger
from groupacl.core.config import Settings, get_settings
from groupacl.core.rbac.catalog import catalog_source_for_path
from groupacl.core.rbac.engine import PolicyEngine, configure_engine
from groupacl.core.rbac.membership import CachedMembershipResolver
from groupacl.db.session import make_engine, make_session_factory
from groupacl.db.stores import SqlGroupStore, SqlRuleStore

logger = get_logger("bootstrap")


def resolve_config(settings: Settings) -> AclConfig:
    """Build the effective configuration.

    Environment settings provide the base values; keys set in the YAML file
    named by ``settings.config_path`` override them.
    """
    config = AclConfig(
        catalog=CatalogConfig(path=settings.catalog_path),
        guest_group_id=settings.guest_group_id,
        superuser=SuperuserConfig(
            resource=settings.superuser_resource,
            action=settings.superuser_action,
        ),
        membership_cache=CacheConfig(
            enabled=settings.membership_cache_enabled,
            ttl=settings.membership_cache_ttl,
            maxsize=settings.membership_cache_maxsize,
        ),
        logging=LoggingConfig(
            level=settings.log_level,
            dir=settings.log_dir,
            file_logging=settings.log_to_file,
        ),
        database_url=settings.database_url,
    )

    if settings.config_path:
        config = load_typed_config(settings.config_path, base=config)
        logger.debug(f"Loaded configuration from {settings.config_path}")
    return config


def create_policy_engine(
    settings: Optional[Settings] = None,
    session_factory: Optional[sessionmaker] = None,
) -> PolicyEngine:
    """
    Create a policy engine backed by the configured database and catalog.

    Tables are not read until the first decision (or an explicit
    ``engine.build()``).

    Args:
        settings: Settings; defaults to ``get_settings()``
        session_factory: Session factory; defaults to one built from settings

    Returns:
        PolicyEngine instance
    """
    settings = settings or get_settings()
    config = resolve_config(settings)

    configure_logging(config.logging)

    if session_factory is None:
        session_factory = make_session_factory(
            make_engine(config.database_url, echo=settings.database_echo)
        )

    group_store = SqlGroupStore(session_factory)
    resolver = group_store
    if config.membership_cache.enabled:
        resolver = CachedMembershipResolver(
            group_store,
            ttl=config.membership_cache.ttl,
            maxsize=config.membership_cache.maxsize,
        )

    return PolicyEngine(
        group_store,
        SqlRuleStore(session_factory),
        catalog_source_for_path(config.catalog.path),
        resolver,
        guest_role_id=config.guest_group_id,
        superuser_resource=config.superuser.resource,
        superuser_action=config.superuser.action,
    )


def configure_default_engine(
    settings: Optional[Settings] = None,
    session_factory: Optional[sessionmaker] = None,
    eager: bool = True,
) -> PolicyEngine:
    """Create the engine, optionally build it now, and install it process-wide."""
    engine = create_policy_engine(settings, session_factory)
    if eager:
        engine.build()
    return configure_engine(engine)
