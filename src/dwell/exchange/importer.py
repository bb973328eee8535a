"""Import of exported payloads into the live store.

The payload is validated against a JSON Schema before anything is merged.
A rejected payload leaves the live store untouched; an accepted one is
merged with the merge engine and written back in one step.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from ..core.events import STORE_IMPORTED
from ..observability import get_logger, timing_context
from ..rollups.merge import merge_stores
from ..storage.records import STORE_SCHEMA, StoreValidator, schema_errors

if TYPE_CHECKING:
    from ..storage.store import AggregateStore

__all__ = [
    "IMPORT_SCHEMA",
    "ImportResult",
    "import_json",
    "import_payload",
    "validate_payload",
]

logger = get_logger("exchange")

IMPORT_SCHEMA: dict[str, Any] = {
    "type": "object",
    "required": ["data"],
    "properties": {
        "version": {"type": "string"},
        "exportDate": {"type": "string"},
        "data": STORE_SCHEMA,
    },
}

_validator = StoreValidator(IMPORT_SCHEMA)


@dataclass
class ImportResult:
    """Outcome of an import.

    Attributes
    ----------
    success : bool
        Whether the payload was merged
    message : str
        Human-readable summary
    sites_imported : int
        Number of domains in the imported payload
    errors : list[str]
        Validation errors when rejected
    """

    success: bool
    message: str
    sites_imported: int = 0
    errors: list[str] = field(default_factory=list)

    def __bool__(self) -> bool:
        return self.success

    def to_dict(self) -> dict[str, Any]:
        return {
            "success": self.success,
            "message": self.message,
            "sitesImported": self.sites_imported,
            "errors": list(self.errors),
        }


def validate_payload(payload: Any) -> list[str]:
    """Schema errors for an import payload (empty when valid)."""
    return schema_errors(_validator, payload)


def import_payload(store: AggregateStore, payload: Any) -> ImportResult:
    """Validate ``payload`` and merge its ``data`` into ``store``.

    Parameters
    ----------
    store
        Live store
    payload
        Decoded export payload (``{"data": {...}, ...}``)

    Returns
    -------
    ImportResult
        Success with the number of sites imported, or failure with errors

    Raises
    ------
    PersistenceError
        If the merged store cannot be written; the persisted store is unchanged
    """
    errors = validate_payload(payload)
    if errors:
        logger.warning("Import rejected", errors=errors)
        return ImportResult(
            success=False,
            message=f"Import failed: Invalid data format ({errors[0]})",
            errors=errors,
        )

    incoming = payload["data"]

    with timing_context("store.import", component="exchange", domains=len(incoming)):
        merged = merge_stores(store.load(), incoming)
        store.save(merged)

    sites = len(incoming)
    logger.info("Import merged", sites_imported=sites, total_domains=len(merged))
    if store.event_bus is not None:
        store.event_bus.publish(STORE_IMPORTED, {"sites_imported": sites})

    return ImportResult(
        success=True,
        message=f"Successfully imported data for {sites} websites",
        sites_imported=sites,
    )


def import_json(store: AggregateStore, text: str | bytes) -> ImportResult:
    """Decode JSON text and import it; undecodable input is a failed import."""
    try:
        payload = json.loads(text)
    except (json.JSONDecodeError, UnicodeDecodeError) as exc:
        logger.warning("Import rejected: not JSON", error=str(exc))
        return ImportResult(success=False, message=f"Import failed: {exc}", errors=[str(exc)])

    return import_payload(store, payload)
