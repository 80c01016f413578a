"""Registry connectors for trademark searches.

Every connector exposes the same ``search(query, classes, limit)`` capability
and reports failures as values (``ConnectorResult.failure``), never as
exceptions.

Usage:
    from clearmark.connectors import build_connectors, sources_for_territory

    connectors = build_connectors(settings)
    for source in sources_for_territory(Territory.ALL):
        result = connectors[source].search("MYNAME", [9, 35], limit=50)
"""

from clearmark.config.settings import Settings
from clearmark.connectors.base import BaseConnector, parse_nice_classes
from clearmark.connectors.euipo import EuipoConnector
from clearmark.connectors.fixtures import FixtureConnector
from clearmark.connectors.inpi import InpiConnector
from clearmark.connectors.status import normalize_status
from clearmark.trademark.models import Source, Territory

TERRITORY_SOURCES: dict[Territory, tuple[Source, ...]] = {
    Territory.FR: (Source.INPI,),
    Territory.EU: (Source.EUIPO,),
    Territory.ALL: (Source.INPI, Source.EUIPO),
}


def sources_for_territory(territory: Territory) -> tuple[Source, ...]:
    """Registries queried for a territory, in a fixed order."""
    return TERRITORY_SOURCES[territory]


def build_connectors(settings: Settings) -> dict[Source, BaseConnector]:
    """Create one connector per registry from configuration.

    Enabled registries in mock mode get an offline FixtureConnector. A
    disabled registry keeps its real connector, which reports DISABLED.

    Args:
        settings: Application settings

    Returns:
        Mapping of source to connector
    """
    connectors: dict[Source, BaseConnector] = {}

    if settings.inpi.enabled and settings.inpi.mock:
        connectors[Source.INPI] = FixtureConnector(Source.INPI)
    else:
        connectors[Source.INPI] = InpiConnector(settings.inpi)

    if settings.euipo.enabled and settings.euipo.mock:
        connectors[Source.EUIPO] = FixtureConnector(Source.EUIPO)
    else:
        connectors[Source.EUIPO] = EuipoConnector(settings.euipo)

    return connectors


__all__ = [
    "BaseConnector",
    "EuipoConnector",
    "FixtureConnector",
    "InpiConnector",
    "TERRITORY_SOURCES",
    "build_connectors",
    "normalize_status",
    "parse_nice_classes",
    "sources_for_territory",
]
