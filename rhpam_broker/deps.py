from __future__ import annotations

from functools import lru_cache

from rhpam_broker.config import BrokerConfig
from rhpam_broker.services.broker import RhpamBroker, build_broker


@lru_cache(maxsize=1)
def get_config() -> BrokerConfig:
    return BrokerConfig.from_env()


@lru_cache(maxsize=1)
def get_broker() -> RhpamBroker:
    """Build the broker once per process from the environment-derived config."""
    return build_broker(get_config())
