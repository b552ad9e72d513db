"""Test factories for ExplorNatura API models."""

from .base import AsyncSQLAlchemyModelFactory
from .accounts import AccountFactory
from .domains import DomainFactory, ExtraDomainFactory
from .api_keys import ApiKeyFactory
from .domain_purchases import DomainPurchaseFactory

__all__ = [
    "AsyncSQLAlchemyModelFactory",
    "AccountFactory",
    "DomainFactory",
    "ExtraDomainFactory",
    "ApiKeyFactory",
    "DomainPurchaseFactory",
]
