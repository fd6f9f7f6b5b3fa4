from __future__ import annotations

from typing import Any, Optional

import requests

from ..models.record import Record

"""HTTP record source.

Two payload shapes are accepted (``source.format``):

- ``records``: a JSON list already in the record shape
  (id, name, email, phone, fields[{name, values[{text|value|flag}]}])
- ``users``: the placeholder users API shape, mapped to records with the
  "Position Applied For", "Company" and "City" fields
"""


class RecordSourceError(RuntimeError):
    """Record source could not be fetched or parsed."""


def user_to_record(user: dict[str, Any]) -> Record:
    """Map one placeholder user object to a Record."""
    user_id = user["id"]
    position = "Web Developer" if isinstance(user_id, int) and user_id % 2 == 0 else "System Analyst"
    company = (user.get("company") or {}).get("name")
    city = (user.get("address") or {}).get("city")
    return Record.from_dict(
        {
            "id": user_id,
            "name": user.get("name"),
            "email": user.get("email"),
            "phone": user.get("phone"),
            "fields": [
                {"name": "Position Applied For", "values": [{"text": position}]},
                {"name": "Company", "values": [{"text": company}]},
                {"name": "City", "values": [{"text": city}]},
            ],
        }
    )


class HttpRecordSource:
    """Fetch the batch of records to sync with one GET request."""

    def __init__(
        self,
        url: str,
        *,
        payload_format: str = "users",
        session: Optional[requests.Session] = None,
        timeout_s: float = 30,
    ) -> None:
        if payload_format not in ("users", "records"):
            raise ValueError(f"unknown record payload format: {payload_format}")
        self._url = url
        self._format = payload_format
        self._session = session or requests.Session()
        self._timeout_s = timeout_s

    def fetch(self) -> list[Record]:
        """Return the records in source order.

        Raises:
            RecordSourceError: request failed, payload is not a JSON list or
                an item cannot be mapped
        """
        try:
            resp = self._session.get(self._url, timeout=self._timeout_s)
            resp.raise_for_status()
            payload = resp.json()
        except requests.RequestException as e:
            raise RecordSourceError(f"error fetching records from {self._url}: {e}") from e
        except ValueError as e:
            raise RecordSourceError(f"record source returned invalid JSON: {e}") from e

        if not isinstance(payload, list):
            raise RecordSourceError(f"record source must return a JSON list, got {type(payload).__name__}")

        convert = user_to_record if self._format == "users" else Record.from_dict
        try:
            return [convert(item) for item in payload]
        except (KeyError, TypeError, AttributeError) as e:
            raise RecordSourceError(f"malformed record in source payload: {e!r}") from e
