"""
Clinic directory service: available clinics and slug resolution.
"""

from typing import Any, Dict, List, Optional

from ..core.exceptions import ServiceError
from ..core.models import Clinic
from ..data.cancellation import CancelToken
from .base import BaseApiService, ServiceConfig, segment, service_method

CLINIC_SERVICE = ServiceConfig(
    name="ClinicService",
    endpoint="/clinics",
    collection="clinics",
    item="clinic",
    list_key="clinics",
)


class ClinicService(BaseApiService[Clinic]):
    config = CLINIC_SERVICE
    model = Clinic

    @service_method
    async def get_full_clinics(self, cancel_token: Optional[CancelToken] = None) -> List[Clinic]:
        """Complete clinic records, including historical ones."""
        response = await self._read(
            "/clinics/frontend-compatible",
            "get_full_clinics",
            self.key("clinics_full"),
            cancel_token,
        )
        return self._records(response.data)

    @service_method
    async def get_available_clinics(
        self, cancel_token: Optional[CancelToken] = None
    ) -> Dict[str, Any]:
        """Retained clinics with the slug to backend-name mapping."""
        response = await self._read(
            "/clinics/available",
            "get_available_clinics",
            self.key("clinics_available"),
            cancel_token,
        )
        data = dict(response.data)
        data["clinics"] = self._records(data.get("clinics", []))
        return data

    @service_method
    async def get_clinic_mapping(
        self, cancel_token: Optional[CancelToken] = None
    ) -> Dict[str, str]:
        response = await self._read(
            "/clinics/mapping", "get_clinic_mapping", self.key("clinics_mapping"), cancel_token
        )
        return dict(response.data.get("mapping", {}))

    @service_method
    async def validate_clinic_slug(
        self, slug: str, cancel_token: Optional[CancelToken] = None
    ) -> Dict[str, Any]:
        response = await self._read(
            f"/clinics/validate/{segment(slug)}",
            "validate_clinic_slug",
            self.key("clinics_validate", slug),
            cancel_token,
        )
        if not response.data:
            raise ValueError(f"Invalid clinic slug: {slug}")
        return response.data

    @service_method
    async def slug_to_clinic_name(
        self, slug: str, cancel_token: Optional[CancelToken] = None
    ) -> str:
        response = await self._read(
            f"/clinics/slug-to-name/{segment(slug)}",
            "slug_to_clinic_name",
            self.key("clinics_slug_to_name", slug),
            cancel_token,
        )
        name = response.data.get("clinicName")
        if not name:
            raise ValueError(f"Failed to convert slug: {slug}")
        return name

    async def is_valid_clinic_slug(self, slug: str) -> bool:
        """Non-raising variant of ``validate_clinic_slug``."""
        try:
            await self.validate_clinic_slug(slug)
        except ServiceError:
            return False
        return True

    async def get_first_available_clinic_slug(self) -> Optional[str]:
        data = await self.get_available_clinics()
        clinics = data.get("clinics") or []
        return clinics[0].slug if clinics else None
