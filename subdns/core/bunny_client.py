"""Bunny DNS API client — zone lookup and record create/delete operations."""

import logging
import re
import time
from typing import Any

import requests

from subdns.config import (
    BACKOFF_BASE_SECONDS,
    BUNNY_API_BASE,
    DEFAULT_PRIORITY,
    DEFAULT_TTL,
    DEFAULT_WEIGHT,
    MAX_RETRIES,
    REQUEST_TIMEOUT_SECONDS,
    ZONES_PER_PAGE,
)
from subdns.core.security import get_api_key

logger = logging.getLogger(__name__)

# Bunny access keys are UUID-like strings (hex groups joined by hyphens)
_API_KEY_PATTERN = re.compile(r"^[A-Za-z0-9\-]{20,}$")


class BunnyAPIError(Exception):
    """Raised when a Bunny DNS API call fails."""

    def __init__(self, status_code: int, errors: list[dict]):
        self.status_code = status_code
        self.errors = errors
        messages = "; ".join(e.get("message", str(e)) for e in errors)
        super().__init__(f"Bunny DNS API error ({status_code}): {messages}")


def sanitize_api_key(raw: str) -> str:
    """Extract a clean access key from user input.

    Users sometimes paste the full ``AccessKey: <key>`` header line.  This
    helper strips common prefixes/wrapping and validates the result.

    Raises ``ValueError`` if the cleaned value doesn't look like an access key.
    """
    cleaned = raw.strip()

    if (cleaned.startswith('"') and cleaned.endswith('"')) or \
       (cleaned.startswith("'") and cleaned.endswith("'")):
        cleaned = cleaned[1:-1].strip()

    if cleaned.lower().startswith("accesskey:"):
        cleaned = cleaned[len("accesskey:"):].strip()
    elif cleaned.lower().startswith("curl "):
        raise ValueError(
            "It looks like you pasted a curl command.\n"
            "Please paste only the access key value."
        )

    cleaned = cleaned.strip().strip('"').strip("'").strip()

    if not cleaned:
        raise ValueError("Access key is empty.")
    if not _API_KEY_PATTERN.match(cleaned):
        raise ValueError(
            "Invalid access key format.\n"
            "A Bunny access key is a string of letters, digits and hyphens."
        )
    return cleaned


class BunnyClient:
    """Thin wrapper around the Bunny DNS REST API.

    A client built without an access key is *unavailable*: every call
    raises ``BunnyAPIError`` instead of reaching the network, and callers are
    expected to check ``is_available`` first.
    """

    def __init__(self, api_key: str | None, session: requests.Session | None = None) -> None:
        key = (api_key or "").strip()
        self._api_key = key or None
        self._session = session or requests.Session()

    @classmethod
    def from_config(cls) -> "BunnyClient":
        """Build a client from the stored access key (env var or keyring)."""
        return cls(get_api_key())

    @property
    def is_available(self) -> bool:
        return self._api_key is not None

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _headers(self) -> dict[str, str]:
        return {
            "AccessKey": self._api_key or "",
            "Content-Type": "application/json",
            "Accept": "application/json",
        }

    def _request(
        self,
        method: str,
        path: str,
        *,
        params: dict | None = None,
        json_body: dict | None = None,
    ) -> Any:
        """Execute an API call with retry + exponential backoff on 429.

        Timeouts and connection errors are not retried: the caller cannot
        tell whether the provider applied a write.
        """
        if not self.is_available:
            raise BunnyAPIError(0, [{"message": "Bunny DNS access key is not configured"}])

        url = f"{BUNNY_API_BASE}/{path.lstrip('/')}"
        headers = self._headers()

        for attempt in range(MAX_RETRIES):
            try:
                resp = self._session.request(
                    method, url, headers=headers, params=params, json=json_body,
                    timeout=REQUEST_TIMEOUT_SECONDS,
                )
            except requests.Timeout as exc:
                raise BunnyAPIError(0, [{"message": f"Request timed out: {exc}"}]) from exc
            except requests.ConnectionError as exc:
                raise BunnyAPIError(0, [{"message": f"Connection failed: {exc}"}]) from exc
            except requests.RequestException as exc:
                raise BunnyAPIError(0, [{"message": f"Request failed: {exc}"}]) from exc

            if resp.status_code == 429:
                wait = BACKOFF_BASE_SECONDS * (2 ** attempt)
                retry_after = resp.headers.get("Retry-After")
                if retry_after:
                    try:
                        wait = max(wait, float(retry_after))
                    except ValueError:
                        pass
                logger.warning("Rate-limited by Bunny DNS, retrying in %.1fs", wait)
                time.sleep(wait)
                continue

            if resp.status_code >= 400:
                raise BunnyAPIError(resp.status_code, _error_list(resp))

            if resp.status_code == 204 or not resp.content:
                return None
            try:
                return resp.json()
            except ValueError as exc:
                raise BunnyAPIError(resp.status_code, [{"message": f"Invalid JSON response: {exc}"}]) from exc

        raise BunnyAPIError(429, [{"message": "Rate-limit retries exhausted"}])

    # ------------------------------------------------------------------
    # Zones
    # ------------------------------------------------------------------

    def list_zones(self) -> list[dict]:
        """Return all zones visible to the access key as ``{id, name}`` dicts."""
        zones: list[dict] = []
        page = 1
        while True:
            data = self._request(
                "GET", "/dnszone", params={"page": page, "perPage": ZONES_PER_PAGE}
            ) or {}
            for z in data.get("Items", []):
                zones.append({"id": str(z["Id"]), "name": z["Domain"]})
            if not data.get("HasMoreItems"):
                break
            page += 1
        return zones

    def resolve_zone(self, hostname: str) -> str | None:
        """Return the zone id whose domain equals *hostname* exactly, or ``None``."""
        for zone in self.list_zones():
            if zone["name"] == hostname:
                return zone["id"]
        return None

    # ------------------------------------------------------------------
    # DNS Records
    # ------------------------------------------------------------------

    def find_records(self, zone_id: str, record_type: str, name: str) -> list[dict]:
        """Return records in *zone_id* matching *record_type* and *name*."""
        data = self._request(
            "GET",
            f"/dnszone/{zone_id}/records",
            params={"type": record_type, "name": name},
        )
        return [_normalize_record(r) for r in _extract_items(data)]

    def record_absent(self, zone_id: str, record_type: str, name: str) -> bool:
        """``True`` only when no record of *record_type* exists at *name*."""
        return len(self.find_records(zone_id, record_type, name)) == 0

    def create_record(self, zone_id: str, record_type: str, attributes: dict) -> str:
        """Create a record and return its provider id."""
        body = _to_api_payload(record_type, attributes)
        data = self._request("POST", f"/dnszone/{zone_id}/records", json_body=body)
        record_id = _record_id(data) if isinstance(data, dict) else None
        if not record_id:
            raise BunnyAPIError(0, [{"message": f"No record id returned for {record_type} {attributes.get('name')}"}])
        return record_id

    def create_cname_record(self, zone_id: str, fqdn: str, target: str, ttl: int = DEFAULT_TTL) -> str:
        return self.create_record(zone_id, "CNAME", {"name": fqdn, "content": target, "ttl": ttl})

    def create_address_record(
        self, zone_id: str, fqdn: str, ip: str, record_type: str = "A", ttl: int = DEFAULT_TTL,
    ) -> str:
        return self.create_record(zone_id, record_type, {"name": fqdn, "content": ip, "ttl": ttl})

    def create_srv_record(
        self,
        zone_id: str,
        service: str,
        transport: str,
        label: str,
        domain: str,
        target: str,
        port: int,
        priority: int = DEFAULT_PRIORITY,
        weight: int = DEFAULT_WEIGHT,
        ttl: int = DEFAULT_TTL,
    ) -> str:
        return self.create_record(zone_id, "SRV", {
            "name": f"{service}._{transport}.{label}.{domain}",
            "ttl": ttl,
            "service": service,
            "transport": transport,
            "host": f"{label}.{domain}",
            "priority": priority,
            "weight": weight,
            "port": port,
            "target": target,
        })

    def delete_record(self, zone_id: str, record_id: str) -> bool:
        """Delete a record by id.  Failures are logged, not raised."""
        try:
            self._request("DELETE", f"/dnszone/{zone_id}/records/{record_id}")
        except BunnyAPIError as exc:
            logger.error("Bunny DNS record deletion failed (%s): %s", record_id, exc)
            return False
        return True

    def delete_record_by_name(self, zone_id: str, record_type: str, name: str) -> bool:
        """Delete the first record of *record_type* at *name*.

        Returns ``False`` when nothing matched or the call failed.
        """
        try:
            matches = self.find_records(zone_id, record_type, name)
        except BunnyAPIError as exc:
            logger.error("Bunny DNS delete by name failed (%s %s): %s", record_type, name, exc)
            return False
        if not matches or not matches[0].get("id"):
            logger.debug("No %s record at %s to delete", record_type, name)
            return False
        return self.delete_record(zone_id, matches[0]["id"])


# ------------------------------------------------------------------
# Payload helpers
# ------------------------------------------------------------------

def _error_list(resp: requests.Response) -> list[dict]:
    try:
        body = resp.json()
    except ValueError:
        return [{"message": resp.text or resp.reason or "unknown error"}]
    if isinstance(body, dict):
        message = body.get("Message") or body.get("message") or body.get("ErrorKey")
        if message:
            return [{"message": message}]
    return [{"message": str(body)}]


def _extract_items(data: Any) -> list[dict]:
    if isinstance(data, list):
        return data
    if isinstance(data, dict):
        return data.get("Items") or data.get("Records") or []
    return []


def _record_id(raw: dict) -> str | None:
    rid = raw.get("id", raw.get("Id"))
    return str(rid) if rid not in (None, "") else None


def _normalize_record(raw: dict) -> dict:
    """Transform a Bunny API record into a consistent internal format."""
    rec: dict[str, Any] = {
        "id": _record_id(raw),
        "type": raw.get("type", raw.get("Type")),
        "name": raw.get("name", raw.get("Name", "")),
        "content": raw.get("content", raw.get("Value", "")),
        "ttl": raw.get("ttl", raw.get("Ttl", DEFAULT_TTL)),
    }
    if "data" in raw:
        rec["data"] = dict(raw["data"])
    return rec


def _to_api_payload(record_type: str, attributes: dict) -> dict:
    """Convert record attributes to a Bunny API write payload."""
    payload: dict[str, Any] = {
        "type": record_type,
        "name": attributes["name"],
        "ttl": attributes.get("ttl", DEFAULT_TTL),
    }
    if record_type == "SRV":
        payload["data"] = {
            "service": attributes["service"],
            "proto": f"_{attributes['transport']}",
            "name": attributes["host"],
            "priority": attributes.get("priority", DEFAULT_PRIORITY),
            "weight": attributes.get("weight", DEFAULT_WEIGHT),
            "port": attributes["port"],
            "target": attributes["target"],
        }
    else:
        payload["content"] = attributes["content"]
    return payload
