"""Relational schema management for the settlement domain.

Only providers backed by SQLAlchemy (sqlite, postgresql) own a schema; the
memory provider used in development and tests is skipped.
"""

from protean.domain import Domain
from sqlalchemy import create_engine

RELATIONAL_PROVIDERS = ("sqlite", "postgresql")


def _relational_providers(domain: Domain):
    return [
        provider for _, provider in domain.providers.items() if provider.conn_info["provider"] in RELATIONAL_PROVIDERS
    ]


def _register_models(domain: Domain, provider) -> list[str]:
    """Touch each repository's DAO so its model lands in the provider metadata."""
    registered = []
    records = list(domain.registry.aggregates.values()) + list(domain.registry.entities.values())
    for record in records:
        if record.cls.meta_.provider == provider.name:
            domain.repository_for(record.cls)._dao  # noqa: B018
            registered.append(record.cls.__name__)
    return registered


def setup_db(domain: Domain) -> list[str]:
    """Create tables for every aggregate and entity; returns the class names covered."""
    created = []
    with domain.domain_context():
        for provider in _relational_providers(domain):
            created.extend(_register_models(domain, provider))
            provider._metadata.create_all(create_engine(provider.conn_info["database_uri"]))
    return created


def drop_db(domain: Domain) -> None:
    with domain.domain_context():
        for provider in _relational_providers(domain):
            _register_models(domain, provider)
            provider._metadata.drop_all(create_engine(provider.conn_info["database_uri"]))


def reset_db(domain: Domain) -> list[str]:
    """Drop and recreate the schema. Destroys all settlement data."""
    drop_db(domain)
    return setup_db(domain)
