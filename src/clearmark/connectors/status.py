"""Normalization of registry status wording.

Registries describe the same lifecycle in their own words and languages
("Registered", "Enregistrée", "Application published", "Marque retirée", ...).
Classification is a case- and accent-insensitive substring match; the first
matching rule wins, so more specific outcomes (opposed, withdrawn, cancelled)
are checked before the generic registered/pending stems they often contain.
"""

from clearmark.trademark.models import MarkStatus
from clearmark.trademark.normalize import strip_accents

STATUS_RULES: tuple[tuple[MarkStatus, tuple[str, ...]], ...] = (
    (MarkStatus.OPPOSED, ("oppos",)),
    (MarkStatus.WITHDRAWN, ("withdraw", "retrait", "retire")),
    (MarkStatus.REJECTED, ("reject", "rejet", "refus")),
    (MarkStatus.EXPIRED, ("expir", "lapse")),
    (MarkStatus.CANCELLED, ("cancel", "annul", "invalidat", "radiat", "surrender", "dead")),
    (MarkStatus.PENDING, ("attente", "instance")),
    (MarkStatus.REGISTERED, ("regist", "enregistr", "granted", "renew", "renouvel")),
    (MarkStatus.PENDING, ("pending", "application", "exam", "publi", "filed", "receiv", "depos")),
)


def normalize_status(raw: str | None) -> MarkStatus:
    """Classify an upstream status label.

    Args:
        raw: Status text as reported by the registry

    Returns:
        Normalized status, UNKNOWN if nothing matches
    """
    label = strip_accents(raw or "").lower().strip()
    if not label:
        return MarkStatus.UNKNOWN

    for status, stems in STATUS_RULES:
        if any(stem in label for stem in stems):
            return status

    return MarkStatus.UNKNOWN
