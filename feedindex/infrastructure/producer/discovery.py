"""Record producer discovery via entry points."""

from __future__ import annotations

import logging
from collections.abc import Callable
from importlib.metadata import entry_points
from typing import TYPE_CHECKING, Any

from feedindex.domain.feed.port.producer import RecordProducer
from feedindex.domain.shared.error import ConfigurationError

if TYPE_CHECKING:
    from feedindex.config import FeedConfig

logger = logging.getLogger(__name__)

ENTRY_POINT_GROUP = "feedindex.producers"

ProducerFactory = Callable[..., RecordProducer]


def discover_producers() -> dict[str, ProducerFactory]:
    """Discover available record producers via entry points.

    Each entry point names a factory (usually a class) that accepts the
    feed's ``producer_config`` as keyword arguments.

    Example pyproject.toml entry:
        [project.entry-points."feedindex.producers"]
        products = "catalog.export:ProductFeedProducer"
    """
    producers: dict[str, ProducerFactory] = {}

    for ep in entry_points(group=ENTRY_POINT_GROUP):
        try:
            factory = ep.load()
            _validate_factory(factory, ep.name)
            producers[ep.name] = factory
            logger.debug("Discovered producer: %s -> %s", ep.name, getattr(factory, "__name__", factory))
        except Exception as e:
            logger.warning("Failed to load producer '%s': %s", ep.name, e)

    return producers


def _validate_factory(factory: Any, name: str) -> None:
    if not callable(factory):
        raise TypeError(f"Producer {name} must be callable, got {type(factory).__name__}")
    if isinstance(factory, type) and not callable(getattr(factory, "produce", None)):
        raise TypeError(f"Producer {name} has no 'produce' method")


def build_producer(
    feed: FeedConfig,
    available: dict[str, ProducerFactory],
) -> RecordProducer:
    """Instantiate the producer configured for a feed.

    Raises:
        ConfigurationError: If the producer is unknown or its config is rejected.
    """
    factory = available.get(feed.producer)
    if factory is None:
        known = ", ".join(sorted(available)) or "(none)"
        raise ConfigurationError(
            f"Unknown producer '{feed.producer}' for feed '{feed.name}'. Available: {known}"
        )
    try:
        return factory(**feed.producer_config)
    except TypeError as e:
        raise ConfigurationError(f"Invalid config for producer '{feed.producer}': {e}") from e
