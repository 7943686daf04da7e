"""
MFDS Drug Product Registry API Client

Searches the Korean Ministry of Food and Drug Safety drug product approval
database (DrugPrdtPrmsnInfoService05) published on the data.go.kr portal.

API Documentation: https://www.data.go.kr/data/15095677/openapi.do
Requires a free service key issued by data.go.kr.
"""
import logging
from dataclasses import dataclass
from typing import Any

import httpx

from pilllog.core.config import settings
from pilllog.domains.medications.schemas import DrugSearchType

logger = logging.getLogger(__name__)

SEARCH_OPERATION = "getDrugPrdtPrmsnInqSrvc05"
RESULT_CODE_OK = "00"

# Query parameter used for each kind of search
SEARCH_PARAMS = {
    DrugSearchType.NAME: "item_name",
    DrugSearchType.INGREDIENT: "main_item_ingr",
    DrugSearchType.COMPANY: "entp_name",
}


@dataclass
class DrugInfo:
    """One approved drug product from the registry."""
    name: str
    company: str
    effect: str
    usage: str
    precautions: str
    side_effects: str
    ingredients: str
    approval_number: str


@dataclass
class DrugSearchResult:
    medications: list[DrugInfo]
    total_count: int


class DrugRegistryAPIError(Exception):
    """Raised when the registry returns an error or is unreachable."""
    pass


class DrugRegistryConfigurationError(Exception):
    """Raised when no service key is configured."""
    pass


class DrugRegistryClient:
    """
    Client for the MFDS drug product registry.

    Usage:
        client = DrugRegistryClient(service_key="...")
        result = client.search("타이레놀")
        print(result.total_count, result.medications[0].company)
    """

    def __init__(
        self,
        service_key: str,
        base_url: str = settings.KFDA_API_BASE_URL,
        timeout: float = settings.KFDA_TIMEOUT_SECONDS,
        transport: httpx.BaseTransport | None = None,
    ):
        self.service_key = service_key
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._transport = transport
        self._client: httpx.Client | None = None

    def _get_client(self) -> httpx.Client:
        """Get or create HTTP client (lazy initialization)."""
        if self._client is None:
            self._client = httpx.Client(timeout=self.timeout, transport=self._transport)
        return self._client

    def close(self) -> None:
        """Close the HTTP client."""
        if self._client is not None:
            self._client.close()
            self._client = None

    def __enter__(self) -> "DrugRegistryClient":
        return self

    def __exit__(self, *args) -> None:
        self.close()

    @property
    def is_configured(self) -> bool:
        return bool(self.service_key)

    def search(
        self,
        query: str,
        search_type: DrugSearchType = DrugSearchType.NAME,
        page: int = 1,
        limit: int = 10,
    ) -> DrugSearchResult:
        """
        Search approved drug products.

        Args:
            query: Product name, ingredient or manufacturer, depending on search_type
            search_type: Which registry field to match against
            page: 1-based page number
            limit: Rows per page

        Returns:
            DrugSearchResult with the matching products and the total hit count

        Raises:
            DrugRegistryConfigurationError: If no service key is configured
            DrugRegistryAPIError: If the request fails or the registry reports an error
        """
        if not self.is_configured:
            raise DrugRegistryConfigurationError(
                "KFDA_API_KEY is not set; drug search is unavailable"
            )

        params: dict[str, Any] = {
            "serviceKey": self.service_key,
            "pageNo": page,
            "numOfRows": limit,
            "type": "json",
            SEARCH_PARAMS[search_type]: query,
        }

        try:
            client = self._get_client()
            response = client.get(f"{self.base_url}/{SEARCH_OPERATION}", params=params)
            response.raise_for_status()
            data = response.json()

        except httpx.HTTPStatusError as e:
            logger.error(f"Drug registry HTTP error for {search_type.value}={query!r}: {e}")
            raise DrugRegistryAPIError(f"Drug registry returned status {e.response.status_code}") from e
        except httpx.RequestError as e:
            logger.error(f"Drug registry request error for {search_type.value}={query!r}: {e}")
            raise DrugRegistryAPIError(f"Failed to connect to drug registry: {e}") from e
        except ValueError as e:
            logger.error(f"Drug registry returned a non-JSON body: {e}")
            raise DrugRegistryAPIError("Drug registry returned an invalid response") from e

        return self._parse_response(data)

    def _parse_response(self, data: dict) -> DrugSearchResult:
        """Parse a registry response into structured data."""
        header = data.get("header") or {}
        if header.get("resultCode") != RESULT_CODE_OK:
            message = header.get("resultMsg") or "unknown error"
            raise DrugRegistryAPIError(f"Drug registry error: {message}")

        body = data.get("body") or {}
        items = body.get("items") or []
        # XML-converted responses nest rows under "item", single rows are not wrapped
        if isinstance(items, dict):
            items = items.get("item") or []
        if isinstance(items, dict):
            items = [items]

        medications = [self._parse_item(item) for item in items]
        return DrugSearchResult(
            medications=medications,
            total_count=int(body.get("totalCount") or 0),
        )

    def _parse_item(self, item: dict) -> DrugInfo:
        return DrugInfo(
            name=item.get("ITEM_NAME") or "",
            company=item.get("ENTP_NAME") or "",
            effect=item.get("EE_DOC_DATA") or item.get("MAIN_ITEM_INGR") or "",
            usage=item.get("UD_DOC_DATA") or "",
            precautions=item.get("NB_DOC_DATA") or "",
            side_effects=item.get("SE_DOC_DATA") or "",
            ingredients=item.get("MAIN_ITEM_INGR") or "",
            approval_number=item.get("ITEM_PERMIT_DATE") or "",
        )


# Singleton instance for reuse
_default_client: DrugRegistryClient | None = None


def get_drug_registry_client() -> DrugRegistryClient:
    """Get the default registry client instance."""
    global _default_client
    if _default_client is None:
        if not settings.KFDA_API_KEY:
            logger.warning("KFDA_API_KEY not found. Medication search will not work.")
        _default_client = DrugRegistryClient(service_key=settings.KFDA_API_KEY)
    return _default_client
