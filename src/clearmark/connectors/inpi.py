"""INPI connector for French trademark searches.

Queries the INPI "marques" search API, which takes a Solr-like query string
such as ``[Mark=JOUVE] AND ([CLASSIFICATION=9] OR [CLASSIFICATION=35])`` and
returns results either as flat records or as ``fields.Field[]`` name/value
lists depending on the collection.
"""

import json
import logging
import re
from typing import Any

import requests

from clearmark.config.settings import InpiConfig
from clearmark.connectors.base import USER_AGENT, BaseConnector, parse_nice_classes
from clearmark.connectors.status import normalize_status
from clearmark.errors import ConnectorError
from clearmark.trademark.models import FailureKind, RawHit, Source

logger = logging.getLogger(__name__)

SEARCH_PATH = "/api/marques/search"

REQUESTED_FIELDS = [
    "ApplicationNumber",
    "Mark",
    "MarkCurrentStatusCode",
    "DEPOSANT",
    "CLASSIFICATION",
]

_QUERY_UNSAFE = re.compile(r'[\[\]="]')
_CLASS_SEPARATORS = re.compile(r"[,;\s]+")


def build_query(mark: str, classes: list[int]) -> str:
    """Build the Solr-like INPI query for a mark restricted to Nice classes.

    Args:
        mark: Mark text (query syntax characters are blanked out)
        classes: Nice classes, OR-ed together

    Returns:
        INPI query string
    """
    safe = _QUERY_UNSAFE.sub(" ", mark).strip()
    query = f"[Mark={safe}]"
    if classes:
        query += " AND (" + " OR ".join(f"[CLASSIFICATION={c}]" for c in classes) + ")"
    return query


def _as_list(value: Any) -> list[Any]:
    if isinstance(value, list):
        return value
    return [value] if value else []


class InpiConnector(BaseConnector):
    """Connector for the INPI trademark search API.

    Usage:
        connector = InpiConnector(InpiConfig(base_url="https://api-gateway.inpi.fr", api_key="..."))
        result = connector.search("MYNAME", [9, 35], limit=50)
    """

    source = Source.INPI
    max_size = 100

    def __init__(self, config: InpiConfig, session: requests.Session | None = None):
        """Initialize INPI connector.

        Args:
            config: INPI configuration
            session: Optional requests session (for connection reuse or tests)
        """
        super().__init__(timeout=config.timeout_seconds)
        self._config = config
        self._base_url = (config.base_url or "").rstrip("/")
        self._session = session or requests.Session()

    @property
    def is_configured(self) -> bool:
        """Check if connector knows where the API lives."""
        return bool(self._base_url)

    def _headers(self) -> dict[str, str]:
        headers = {
            "Content-Type": "application/json",
            "Accept": "application/json",
            "User-Agent": USER_AGENT,
        }
        if self._config.bearer_token:
            headers["Authorization"] = f"Bearer {self._config.bearer_token}"
        elif self._config.api_key:
            headers["X-API-KEY"] = self._config.api_key
            headers["apikey"] = self._config.api_key
        return headers

    def build_request_body(self, query: str, classes: list[int], size: int) -> dict[str, Any]:
        return {
            "collections": list(self._config.collections),
            "fields": REQUESTED_FIELDS,
            "position": 0,
            "size": size,
            "query": build_query(query, classes),
            "sortList": ["APPLICATION_DATE DESC", "MARK ASC"],
        }

    def _search(self, query: str, classes: list[int], size: int) -> list[RawHit]:
        if not self._config.enabled:
            raise ConnectorError(FailureKind.DISABLED, "INPI connector disabled by configuration")
        if not self.is_configured:
            raise ConnectorError(FailureKind.DISABLED, "INPI base URL not configured")

        url = f"{self._base_url}{SEARCH_PATH}"
        body = self.build_request_body(query, classes, size)
        logger.debug("[INPI] POST %s query=%s", url, body["query"])

        response = self._session.post(
            url,
            headers=self._headers(),
            json=body,
            timeout=self._timeout,
        )
        logger.debug("[INPI] HTTP %s (%s)", response.status_code, response.headers.get("content-type"))

        self._raise_for_status(response, "INPI search")

        raw = (response.text or "").strip()
        if not raw.startswith(("{", "[")):
            raise ConnectorError(
                FailureKind.MALFORMED_RESPONSE,
                f"Non-JSON payload received (content-type: {response.headers.get('content-type')})",
            )
        try:
            payload = json.loads(raw)
        except json.JSONDecodeError as e:
            raise ConnectorError(FailureKind.MALFORMED_RESPONSE, f"Invalid JSON payload: {e}") from e

        hits = [self.parse_record(r) for r in self._extract_records(payload)]
        return [h for h in hits if h.text.strip()]

    @staticmethod
    def _extract_records(payload: Any) -> list[Any]:
        if isinstance(payload, list):
            return payload
        if not isinstance(payload, dict):
            return []

        search = payload.get("trademarkSearch") or {}
        candidates = [
            (search.get("Results") or {}).get("resultTrademark"),
            (search.get("results") or {}).get("resultTrademark"),
        ]
        results = payload.get("results")
        if isinstance(results, dict):
            candidates.append(results.get("resultTrademark"))
        else:
            candidates.append(results)

        for value in candidates:
            if value:
                return _as_list(value)
        return []

    @staticmethod
    def _read_field(record: dict[str, Any], name: str) -> str | None:
        """Read a field from either a ``fields`` mapping or a name/value list."""
        fields = record.get("Fields") or record.get("fields")
        if not isinstance(fields, dict):
            return None
        if isinstance(fields.get(name), str):
            return fields[name]

        for entry in _as_list(fields.get("Field")):
            if not isinstance(entry, dict):
                continue
            entry_name = entry.get("name") or entry.get("Name") or entry.get("fieldName") or ""
            if entry_name.upper() != name.upper():
                continue
            value = entry.get("value")
            if isinstance(value, list):
                return str(value[0]) if value else None
            if value:
                return str(value)
            if isinstance(entry.get(name), str):
                return entry[name]
        return None

    def _first(self, record: dict[str, Any], *names: str) -> str | None:
        for name in names:
            value = record.get(name)
            if value and isinstance(value, (str, int)):
                return str(value)
        for name in names:
            value = self._read_field(record, name)
            if value:
                return value
        return None

    def parse_record(self, record: Any) -> RawHit:
        """Parse one INPI result into a RawHit."""
        if not isinstance(record, dict):
            record = {}

        mark = self._first(record, "Mark", "mark", "MARK") or ""
        application_number = self._first(record, "ApplicationNumber", "applicationNumber", "APPLICATIONNUMBER")
        status_label = self._first(record, "MarkCurrentStatusCode", "markCurrentStatusCode", "MARKCURRENTSTATUSCODE")
        owner = self._first(record, "DEPOSANT", "deposant", "APPLICANT")

        class_str = self._first(record, "CLASSIFICATION", "Class")
        if class_str:
            nice_classes = parse_nice_classes(_CLASS_SEPARATORS.split(class_str))
        else:
            nice_classes = parse_nice_classes(_as_list(record.get("Class") or record.get("class")))

        return RawHit(
            text=mark,
            nice_classes=nice_classes,
            source=self.source,
            application_number=application_number,
            status=normalize_status(status_label),
            status_label=status_label,
            owner=owner,
        )
