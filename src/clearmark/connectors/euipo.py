"""EUIPO connector for EU trademark searches.

This module queries the EUIPO (European Union Intellectual Property Office)
Trademark Search API through the IBM API gateway of the EUIPO API Portal.

API Documentation: https://dev.euipo.europa.eu/product/trademark-search_100

Note: Subscription plans expose slightly different search paths and payload
shapes, so the connector tries the known variants in order and reads the
first response that carries a recognizable list of trademarks.
"""

import logging
import re
from typing import Any
from urllib.parse import quote

import requests

from clearmark.config.settings import EuipoConfig
from clearmark.connectors.base import USER_AGENT, BaseConnector, parse_nice_classes
from clearmark.connectors.status import normalize_status
from clearmark.errors import ConnectorError
from clearmark.trademark.models import FailureKind, RawHit, Source

logger = logging.getLogger(__name__)

# Version segment such as /1, /1.0 or /1.0.0 at the end of a base URL
_VERSION_SUFFIX = re.compile(r"/\d+(?:\.\d+){0,2}$")


def normalize_base_url(raw: str) -> str:
    """Strip trailing slashes and a trailing API version segment."""
    base = raw.rstrip("/")
    stripped = _VERSION_SUFFIX.sub("", base)
    if stripped != base:
        logger.warning(
            "EUIPO base URL contained a version segment and was normalized: %r -> %r",
            base,
            stripped,
        )
    return stripped


class EuipoConnector(BaseConnector):
    """Connector for the EUIPO Trademark Search API.

    Authenticates with the product key/secret of an API Portal subscription
    (``X-IBM-Client-Id`` / ``X-IBM-Client-Secret`` headers, no OAuth).

    Usage:
        connector = EuipoConnector(EuipoConfig(product_key="...", product_secret="..."))
        result = connector.search("MYNAME", [9, 42], limit=25)
    """

    source = Source.EUIPO
    max_size = 100

    SEARCH_VARIANTS: tuple[tuple[str, str], ...] = (
        ("/trademarks", "q"),
        ("/trademarks", "name"),
        ("/trademarks/search", "q"),
    )

    def __init__(self, config: EuipoConfig, session: requests.Session | None = None):
        """Initialize EUIPO connector.

        Args:
            config: EUIPO configuration
            session: Optional requests session (for connection reuse or tests)
        """
        super().__init__(timeout=config.timeout_seconds)
        self._config = config
        self._base_url = normalize_base_url(config.api_base)
        self._session = session or requests.Session()

    @property
    def base_url(self) -> str:
        return self._base_url

    @property
    def is_configured(self) -> bool:
        """Check if connector has credentials configured."""
        return bool(self._config.product_key and self._config.product_secret)

    def _headers(self) -> dict[str, str]:
        return {
            "Accept": "application/json",
            "X-IBM-Client-Id": self._config.product_key or "",
            "X-IBM-Client-Secret": self._config.product_secret or "",
            "User-Agent": USER_AGENT,
        }

    def _search(self, query: str, classes: list[int], size: int) -> list[RawHit]:
        if not self._config.enabled:
            raise ConnectorError(FailureKind.DISABLED, "EUIPO connector disabled by configuration")
        if not self.is_configured:
            raise ConnectorError(FailureKind.AUTH_FAILURE, "Missing EUIPO product key/secret")

        classes_param = ",".join(str(c) for c in classes)
        last_error: ConnectorError | None = None
        recognized_payload = False

        for path, term_param in self.SEARCH_VARIANTS:
            params: dict[str, Any] = {term_param: query, "size": size, "offset": 0}
            if classes_param:
                params["niceClasses"] = classes_param

            url = f"{self._base_url}{path}"
            try:
                response = self._session.get(
                    url,
                    headers=self._headers(),
                    params=params,
                    timeout=self._timeout,
                    allow_redirects=False,
                )
            except requests.Timeout:
                raise
            except requests.RequestException as e:
                last_error = ConnectorError(FailureKind.TRANSPORT, f"{path}: {e}")
                continue

            content_type = response.headers.get("content-type", "")
            if response.is_redirect or 300 <= response.status_code < 400 or "text/html" in content_type:
                # Portal pages instead of the API: the base URL is probably wrong
                logger.warning(
                    "EUIPO returned a redirect/HTML page (%s, %s); check euipo.api_base",
                    response.status_code,
                    content_type,
                )
                last_error = ConnectorError(
                    FailureKind.MALFORMED_RESPONSE,
                    f"{path}: redirect or HTML page received (HTTP {response.status_code})",
                )
                continue

            try:
                self._raise_for_status(response, f"EUIPO {path}")
            except ConnectorError as e:
                if e.kind is FailureKind.AUTH_FAILURE:
                    raise
                last_error = e
                continue

            try:
                payload = response.json()
            except ValueError:
                last_error = ConnectorError(FailureKind.MALFORMED_RESPONSE, f"{path}: body is not JSON")
                continue

            records = self._extract_records(payload)
            if records is None:
                last_error = ConnectorError(
                    FailureKind.MALFORMED_RESPONSE,
                    f"{path}: no items/trademarks/results list in response",
                )
                continue

            recognized_payload = True
            hits = [hit for hit in (self.parse_record(r) for r in records) if hit]
            if hits:
                return hits

        if recognized_payload:
            return []
        if last_error:
            raise last_error
        return []

    @staticmethod
    def _extract_records(payload: Any) -> list[dict[str, Any]] | None:
        """Find the list of trademark records in a search response."""
        if isinstance(payload, list):
            return payload
        if not isinstance(payload, dict):
            return None
        for key in ("items", "trademarks", "results"):
            value = payload.get(key)
            if isinstance(value, list):
                return value
        return None

    def parse_record(self, record: Any) -> RawHit | None:
        """Parse one API record into a RawHit.

        Field names vary slightly between API versions; records without an
        application number or a verbal element are skipped.

        Args:
            record: Raw API record

        Returns:
            RawHit, or None if the record is unusable
        """
        if not isinstance(record, dict):
            return None

        application = record.get("application")
        application_number = (
            record.get("applicationNumber")
            or record.get("appNumber")
            or (application.get("number") if isinstance(application, dict) else None)
        )

        word_spec = record.get("wordMarkSpecification")
        sign = (
            record.get("name")
            or record.get("markName")
            or record.get("trademarkName")
            or record.get("word")
            or (word_spec.get("verbalElement") if isinstance(word_spec, dict) else None)
        )

        if not application_number or not sign:
            return None

        status_label = (
            record.get("status")
            or record.get("currentStatus")
            or record.get("applicationStatus")
            or record.get("registrationStatus")
        )

        raw_classes = record.get("niceClasses") or record.get("classes") or record.get("classifications")

        dates = record.get("dates")
        filing_date = (
            record.get("applicationDate")
            or record.get("filingDate")
            or (dates.get("filing") if isinstance(dates, dict) else None)
        )

        application_number = str(application_number)
        return RawHit(
            text=str(sign),
            nice_classes=parse_nice_classes(raw_classes),
            source=self.source,
            application_number=application_number,
            status=normalize_status(status_label),
            status_label=str(status_label) if status_label else None,
            owner=self._parse_owner(record),
            filing_date=str(filing_date) if filing_date else None,
            image_url=f"{self._base_url}/trademarks/{quote(application_number, safe='')}/image",
        )

    @staticmethod
    def _parse_owner(record: dict[str, Any]) -> str | None:
        if record.get("ownerName"):
            return str(record["ownerName"])

        holder = record.get("holder")
        if isinstance(holder, dict) and holder.get("name"):
            return str(holder["name"])

        for key in ("owners", "applicants"):
            people = record.get(key)
            if isinstance(people, list) and people and isinstance(people[0], dict):
                first = people[0]
                name = first.get("name") or first.get("identifier")
                if name:
                    return str(name)
        return None
