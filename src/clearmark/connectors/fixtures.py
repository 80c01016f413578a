"""Offline fixture connector for testing and demo purposes.

Returns simulated registry results without making any network call. Useful
for development and when registry credentials are not available.
"""

from typing import Any

from clearmark.connectors.base import BaseConnector, parse_nice_classes
from clearmark.connectors.status import normalize_status
from clearmark.trademark.models import RawHit, Source
from clearmark.trademark.similarity import levenshtein_similarity

# Simulated trademark database
DEFAULT_RECORDS: list[dict[str, Any]] = [
    {
        "name": "NEXUS",
        "applicationNumber": "018000001",
        "status": "Registered",
        "niceClasses": [9, 35, 42],
        "owner": "Example Corp",
    },
    {
        "name": "NEXTRA",
        "applicationNumber": "018000002",
        "status": "Registered",
        "niceClasses": [9, 38, 42],
        "owner": "Tech Holdings Ltd",
    },
    {
        "name": "ZONIFY",
        "applicationNumber": "018000003",
        "status": "Application published",
        "niceClasses": [9, 35],
        "owner": "Digital Solutions Inc",
    },
    {
        "name": "VALUJO",
        "applicationNumber": "018000004",
        "status": "Registered",
        "niceClasses": [35, 36, 42],
        "owner": "Finance Global SA",
    },
    {
        "name": "RIVENO",
        "applicationNumber": "018000005",
        "status": "Opposition pending",
        "niceClasses": [9, 16, 42],
        "owner": "Creative Labs",
    },
]

# Records derived from the query itself, so offline runs always produce hits
ECHO_TEMPLATES: dict[Source, list[dict[str, Any]]] = {
    Source.EUIPO: [
        {"name": "{term}", "applicationNumber": "EUTM-0001", "status": "Application under examination",
         "filingDate": "2024-05-15", "owner": "ACME SARL"},
        {"name": "{term}-X", "applicationNumber": "EUTM-0002", "status": "Registered",
         "filingDate": "2023-12-02", "owner": "Globex BV"},
    ],
    Source.INPI: [
        {"name": "{term}A", "applicationNumber": "FR-2024-000001", "status": "Marque enregistrée",
         "owner": "Société Demo"},
    ],
}


class FixtureConnector(BaseConnector):
    """Connector backed by an in-memory list of records.

    Matches records by name similarity (or substring) and class overlap, the
    way a registry full-text search would.
    """

    def __init__(
        self,
        source: Source = Source.FIXTURE,
        records: list[dict[str, Any]] | None = None,
        echo_query: bool = True,
        min_similarity: float = 0.3,
    ):
        """Initialize fixture connector.

        Args:
            source: Source tag reported on hits
            records: Simulated registry records (defaults to DEFAULT_RECORDS)
            echo_query: Also return records derived from the query text
            min_similarity: Minimum Levenshtein similarity for a name match
        """
        super().__init__(timeout=0)
        self.source = source
        self._records = list(DEFAULT_RECORDS if records is None else records)
        self._echo_query = echo_query
        self._min_similarity = min_similarity

    @property
    def is_configured(self) -> bool:
        """Fixture connector is always configured."""
        return True

    def _echo_records(self, query: str, classes: list[int]) -> list[dict[str, Any]]:
        records = []
        for template in ECHO_TEMPLATES.get(self.source, []):
            record = dict(template)
            record["name"] = template["name"].format(term=query)
            record["niceClasses"] = list(classes) or [35]
            records.append(record)
        return records

    def _matches(self, query: str, record: dict[str, Any], classes: list[int]) -> bool:
        name = str(record.get("name", ""))
        query_lower, name_lower = query.lower(), name.lower()

        similar = levenshtein_similarity(query, name) >= self._min_similarity
        if not similar and query_lower not in name_lower and name_lower not in query_lower:
            return False

        if classes:
            overlap = set(parse_nice_classes(record.get("niceClasses"))) & set(classes)
            if not overlap:
                return False
        return True

    def _search(self, query: str, classes: list[int], size: int) -> list[RawHit]:
        records = self._echo_records(query, classes) if self._echo_query else []
        records += [r for r in self._records if self._matches(query, r, classes)]

        return [self.parse_record(r) for r in records[:size]]

    def parse_record(self, record: dict[str, Any]) -> RawHit:
        """Parse a fixture record into a RawHit."""
        status_label = record.get("status")
        return RawHit(
            text=str(record.get("name", "")),
            nice_classes=parse_nice_classes(record.get("niceClasses")),
            source=self.source,
            application_number=record.get("applicationNumber"),
            status=normalize_status(status_label),
            status_label=status_label,
            owner=record.get("owner"),
            filing_date=record.get("filingDate"),
        )
