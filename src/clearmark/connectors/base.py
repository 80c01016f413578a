"""Abstract base class for trademark registry connectors."""

import logging
import re
from abc import ABC, abstractmethod
from collections.abc import Iterable
from typing import Any

import requests

from clearmark.errors import ConnectorError
from clearmark.trademark.models import (
    ConnectorFailure,
    ConnectorResult,
    FailureKind,
    RawHit,
    Source,
)

logger = logging.getLogger(__name__)

USER_AGENT = "clearmark/0.1 (+https://github.com/clearmark/clearmark)"

_NON_DIGITS = re.compile(r"\D+")


def parse_nice_classes(values: Any) -> tuple[int, ...]:
    """Parse heterogeneous class values ("09", 35, "Class 42") into ints.

    Keeps only classes within 1..45, de-duplicated, in first-seen order.
    """
    if values is None:
        return ()
    if isinstance(values, (str, int)):
        values = [values]

    classes: list[int] = []
    for value in values:
        digits = _NON_DIGITS.sub("", str(value))
        if not digits:
            continue
        number = int(digits)
        if 1 <= number <= 45 and number not in classes:
            classes.append(number)
    return tuple(classes)


class BaseConnector(ABC):
    """Abstract base class for registry connectors.

    All connectors expose the same ``search`` capability. Subclasses implement
    ``_search`` and may raise freely; ``search`` turns every failure into an
    empty hit list plus a recorded ``ConnectorFailure`` and never raises.
    """

    source: Source
    min_size: int = 1
    max_size: int = 100

    def __init__(self, timeout: float = 15.0):
        """Initialize connector.

        Args:
            timeout: Per-request timeout in seconds
        """
        self._timeout = timeout

    @property
    def name(self) -> str:
        """Return the source identifier."""
        return self.source.value

    @property
    @abstractmethod
    def is_configured(self) -> bool:
        """Check if the connector has what it needs to reach its registry."""

    def clamp_limit(self, limit: int) -> int:
        """Clamp a requested result count into the provider-safe range."""
        return max(self.min_size, min(int(limit), self.max_size))

    @abstractmethod
    def _search(self, query: str, classes: list[int], size: int) -> list[RawHit]:
        """Query the registry.

        Args:
            query: Mark text to search for
            classes: Nice classes to restrict the search to
            size: Clamped maximum number of results

        Returns:
            Raw hits in registry order
        """

    def search(self, query: str, classes: Iterable[int], limit: int) -> ConnectorResult:
        """Search the registry, recording failures instead of raising.

        Args:
            query: Mark text to search for
            classes: Nice classes to restrict the search to
            limit: Requested maximum number of results

        Returns:
            ConnectorResult with hits, or an empty list and a failure
        """
        size = self.clamp_limit(limit)
        try:
            hits = self._search(query, list(classes), size)
            return ConnectorResult(source=self.source, hits=hits[:size])
        except ConnectorError as e:
            return self._failed(e.kind, e.message)
        except requests.Timeout as e:
            return self._failed(FailureKind.TIMEOUT, f"Request timed out after {self._timeout}s: {e}")
        except requests.exceptions.InvalidJSONError as e:
            return self._failed(FailureKind.MALFORMED_RESPONSE, f"Unparseable response: {e}")
        except requests.RequestException as e:
            return self._failed(FailureKind.TRANSPORT, f"Request failed: {e}")
        except (ValueError, KeyError, TypeError, AttributeError) as e:
            return self._failed(FailureKind.MALFORMED_RESPONSE, f"Unexpected response shape: {e!r}")
        except Exception as e:
            logger.exception("[%s] unexpected connector fault", self.name)
            return self._failed(FailureKind.TRANSPORT, f"Unexpected error: {e!r}")

    def _failed(self, kind: FailureKind, message: str) -> ConnectorResult:
        if kind is FailureKind.DISABLED:
            logger.info("[%s] %s", self.name, message)
        else:
            logger.warning("[%s] connector failed (%s): %s", self.name, kind.value, message)
        failure = ConnectorFailure(source=self.name, kind=kind, message=message)
        return ConnectorResult(source=self.source, hits=[], failure=failure)

    @staticmethod
    def _raise_for_status(response: requests.Response, what: str) -> None:
        """Map a non-success HTTP status to a ConnectorError."""
        if response.ok:
            return
        preview = (response.text or "")[:500]
        kind = (
            FailureKind.AUTH_FAILURE
            if response.status_code in (401, 403)
            else FailureKind.UPSTREAM_STATUS
        )
        raise ConnectorError(
            kind,
            f"{what} returned HTTP {response.status_code}" + (f": {preview}" if preview else ""),
            status_code=response.status_code,
        )
