"""
Client (patient) service.
"""

import copy
import re
from datetime import date, datetime
from typing import Any, Dict, List, Optional

from ..core.models import Client, Page
from ..data.cancellation import CancelToken
from ..data.query import with_query
from .base import SEARCH, BaseApiService, ServiceConfig, segment, service_method, to_payload

CLIENT_SERVICE = ServiceConfig(
    name="ClientService",
    endpoint="/clients",
    collection="clients",
    item="client",
    list_key="clients",
    policies={"search_clients": SEARCH},
)


def normalize_postal_code(value: str) -> str:
    """Format a six character Canadian postal code as ``A1A 1A1``."""
    compact = re.sub(r"\s+", "", value).upper()
    if len(compact) == 6:
        return f"{compact[:3]} {compact[3:]}"
    return value


def parse_phone(value: Any) -> Any:
    """Turn a free-form phone string into the structured phone object."""
    if not isinstance(value, str):
        return value

    digits = re.sub(r"\D", "", value)
    if len(digits) == 11 and digits.startswith("1"):
        digits = digits[1:]
    if len(digits) == 10:
        area, prefix, line = digits[:3], digits[3:6], digits[6:]
        return {
            "countryCode": "1",
            "areaCode": area,
            "number": f"{prefix}-{line}",
            "full": f"({area}) {prefix}-{line}",
        }
    return {"countryCode": "1", "areaCode": "", "number": value, "full": value}


def split_birthday(value: Any) -> Optional[Dict[str, str]]:
    """Split a date of birth into the backend's ``{day, month, year}`` strings."""
    if isinstance(value, str):
        try:
            value = datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError:
            return None
    if not isinstance(value, date):
        return None
    return {
        "day": f"{value.day:02d}",
        "month": f"{value.month:02d}",
        "year": str(value.year),
    }


def normalize_client_payload(payload: Any) -> Dict[str, Any]:
    """
    Prepare a create/update body the way the backend expects it.

    - ``personalInfo.dateOfBirth`` is split into ``birthday`` unless one is given
    - string postal codes are normalized to ``A1A 1A1``
    - string phone numbers become structured phone objects
    """
    data = copy.deepcopy(to_payload(payload))

    personal = data.get("personalInfo")
    if isinstance(personal, dict) and personal.get("dateOfBirth") and not personal.get("birthday"):
        birthday = split_birthday(personal["dateOfBirth"])
        if birthday:
            personal["birthday"] = birthday

    contact = data.get("contact")
    if isinstance(contact, dict):
        address = contact.get("address")
        if isinstance(address, dict) and isinstance(address.get("postalCode"), str):
            address["postalCode"] = normalize_postal_code(address["postalCode"])

        phones = contact.get("phones")
        if isinstance(phones, dict):
            for kind in ("home", "cell", "work"):
                if phones.get(kind):
                    phones[kind] = parse_phone(phones[kind])

    return data


class ClientService(BaseApiService[Client]):
    """Clients of a clinic, with insurance and statistics lookups."""

    config = CLIENT_SERVICE
    model = Client

    @service_method
    async def get_clients_by_clinic(
        self,
        clinic_name: str,
        page: int = 1,
        limit: int = 20,
        search: Optional[str] = None,
        status: Optional[str] = None,
        cancel_token: Optional[CancelToken] = None,
    ) -> Page[Client]:
        params = {"page": page, "limit": limit, "search": search, "status": status}
        endpoint = with_query(
            f"/clients/clinic/{segment(clinic_name)}/frontend-compatible", params
        )
        response = await self._read(
            endpoint,
            "get_clients_by_clinic",
            self.key(f"clients_{clinic_name}", params),
            cancel_token,
        )
        return self._page(response, page, limit)

    @service_method
    async def get_client_by_id(
        self, client_id: str, cancel_token: Optional[CancelToken] = None
    ) -> Client:
        response = await self._read(
            f"/clients/{segment(client_id)}/frontend-compatible",
            "get_client_by_id",
            self.key("client", client_id),
            cancel_token,
        )
        return self._record(response.data)

    @service_method
    async def create_client(self, payload: Any) -> Client:
        response = await self._write("POST", "/clients", normalize_client_payload(payload))
        return self._record(response.data)

    @service_method
    async def update_client(self, client_id: str, payload: Any) -> Client:
        response = await self._write(
            "PUT",
            f"/clients/{segment(client_id)}",
            normalize_client_payload(payload),
            item_id=client_id,
        )
        return self._record(response.data)

    @service_method
    async def delete_client(self, client_id: str) -> None:
        await self._write("DELETE", f"/clients/{segment(client_id)}", item_id=client_id)

    @service_method
    async def search_clients(
        self,
        term: str,
        clinic_name: Optional[str] = None,
        limit: int = 20,
        cancel_token: Optional[CancelToken] = None,
    ) -> List[Client]:
        if not term or not term.strip():
            return []
        params = {"q": term.strip(), "clinic": clinic_name, "limit": limit}
        response = await self._read(
            with_query("/clients/search", params),
            "search_clients",
            self.key("clients_search", params),
            cancel_token,
        )
        return self._records(response.data)

    @service_method
    async def get_clients_with_insurance(
        self, clinic_name: str, cancel_token: Optional[CancelToken] = None
    ) -> List[Client]:
        response = await self._read(
            f"/clients/clinic/{segment(clinic_name)}/insurance",
            "get_clients_with_insurance",
            self.key("clients_insurance", clinic_name),
            cancel_token,
        )
        return self._records(response.data)

    @service_method
    async def get_client_stats(
        self, clinic_name: str, cancel_token: Optional[CancelToken] = None
    ) -> Dict[str, Any]:
        response = await self._read(
            f"/clients/clinic/{segment(clinic_name)}/stats",
            "get_client_stats",
            self.key("clients_stats", clinic_name),
            cancel_token,
        )
        return response.data

    def clear_client_cache(self) -> None:
        self.clear_cache()
