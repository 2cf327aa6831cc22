import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Callable, Optional
from urllib.parse import quote

import requests

from openhousepal.core.config import API_BASE_URL, REQUEST_TIMEOUT

logger = logging.getLogger(__name__)

NETWORK_ERROR = "Network error. Please check your connection."
AUTH_REQUIRED = "Authentication required"


@dataclass
class ApiResponse:
    status: int
    data: Any = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return 200 <= self.status < 300

    @property
    def is_network_error(self) -> bool:
        return self.status == 0


class ApiClient:
    """
    Thin wrapper around the OpenHousePal REST API.
    Never raises: every failure comes back as ApiResponse(status, error).
    """

    def __init__(self, base_url: str = API_BASE_URL,
                 token_provider: Callable[[], Optional[str]] = None,
                 on_auth_error: Callable[[str], None] = None,
                 timeout: float = REQUEST_TIMEOUT,
                 session: requests.Session = None):
        self.base_url = base_url.rstrip("/")
        self.token_provider = token_provider or (lambda: None)
        self.on_auth_error = on_auth_error
        self.timeout = timeout
        self.session = session or requests.Session()

    def _headers(self) -> dict:
        headers = {"Content-Type": "application/json"}
        token = self.token_provider()
        if token:
            headers["Authorization"] = f"Bearer {token}"
        return headers

    def _send(self, method: str, url: str, payload) -> ApiResponse:
        try:
            response = self.session.request(method, url, json=payload, headers=self._headers(), timeout=self.timeout)
        except requests.RequestException as e:
            logger.error(f"❌ API {method} {url} failed: {e}")
            return ApiResponse(status=0, error=NETWORK_ERROR)

        try:
            data = response.json()
        except ValueError:
            data = None

        if response.status_code == 401:
            return ApiResponse(status=401, error=AUTH_REQUIRED)

        if 200 <= response.status_code < 300:
            return ApiResponse(status=response.status_code, data=data)

        error = "Request failed"
        if isinstance(data, dict):
            error = data.get("detail") or data.get("message") or data.get("error") or error
            if not isinstance(error, str):
                # FastAPI validation errors come back as a list
                error = "Request failed"
        logger.warning(f"⚠️ API {method} {url} -> {response.status_code}: {error}")
        return ApiResponse(status=response.status_code, error=error)

    async def request(self, endpoint: str, method: str = "GET", payload: Any = None,
                      redirect: str = None, auth_hook: bool = True) -> ApiResponse:
        url = f"{self.base_url}{endpoint}"

        # requests is blocking, keep the event loop free
        loop = asyncio.get_running_loop()
        response = await loop.run_in_executor(None, self._send, method, url, payload)

        if response.status == 401 and auth_hook:
            self._handle_auth_error(redirect or endpoint)
        return response

    def _handle_auth_error(self, path: str):
        if not self.on_auth_error:
            return
        try:
            self.on_auth_error(f"/login?redirect={quote(path, safe='')}")
        except Exception as e:
            logger.error(f"Auth error hook failed: {e}")

    # === AUTH ===

    async def login(self, email: str, password: str) -> ApiResponse:
        # Wrong credentials are a 401 too, that is not an expired session
        return await self.request("/auth/login", "POST", {"email": email, "password": password}, auth_hook=False)

    async def logout(self) -> ApiResponse:
        return await self.request("/auth/logout", "POST")

    async def me(self) -> ApiResponse:
        return await self.request("/auth/me")

    # === COLLECTIONS ===

    async def get_collections(self) -> ApiResponse:
        return await self.request("/collections/")

    async def get_collection_properties(self, collection_id: str) -> ApiResponse:
        return await self.request(f"/collections/{collection_id}/properties")

    async def get_shared_collection(self, share_token: str) -> ApiResponse:
        return await self.request(f"/collections/shared/{share_token}")

    async def update_collection_status(self, collection_id: str, status: str) -> ApiResponse:
        return await self.request(f"/collections/{collection_id}/status", "PATCH", {"status": status})

    async def update_share(self, collection_id: str, make_public: bool, force_regenerate: bool = False) -> ApiResponse:
        payload = {"make_public": make_public}
        if force_regenerate:
            payload["force_regenerate"] = True
        return await self.request(f"/collections/{collection_id}/share", "PATCH", payload)

    async def update_preferences(self, collection_id: str, preferences: dict) -> ApiResponse:
        return await self.request(f"/collection-preferences/collection/{collection_id}", "PUT", preferences)

    async def create_from_address(self, payload: dict) -> ApiResponse:
        return await self.request("/collections/create-from-address", "POST", payload)

    async def delete_collection(self, collection_id: str) -> ApiResponse:
        return await self.request(f"/collections/{collection_id}", "DELETE")

    # === PROPERTY INTERACTIONS ===

    async def interact(self, collection_id: str, property_id: str, interaction_type: str, value: bool) -> ApiResponse:
        return await self.request(
            f"/collections/{collection_id}/properties/{property_id}/interact", "POST",
            {"interaction_type": interaction_type, "value": value},
        )

    async def add_comment(self, collection_id: str, property_id: str, content: str,
                          visitor_name: str = None, visitor_email: str = None) -> ApiResponse:
        return await self.request(
            f"/collections/{collection_id}/properties/{property_id}/comments", "POST",
            {"content": content, "visitor_name": visitor_name, "visitor_email": visitor_email},
        )

    async def get_comments(self, collection_id: str, property_id: str) -> ApiResponse:
        return await self.request(f"/collections/{collection_id}/properties/{property_id}/comments")

    async def get_property_details(self, property_id: str) -> ApiResponse:
        return await self.request(f"/properties/{property_id}/cache")

    async def schedule_tour(self, collection_id: str, property_id: str, payload: dict) -> ApiResponse:
        return await self.request(f"/collections/{collection_id}/properties/{property_id}/schedule-tour", "POST", payload)

    # === OPEN HOUSES ===

    async def get_open_houses(self) -> ApiResponse:
        return await self.request("/api/open-houses")

    async def delete_open_house(self, open_house_id: str) -> ApiResponse:
        return await self.request(f"/api/open-houses/{open_house_id}", "DELETE")
