"""REST client for the kernel server API.

Thin httpx adapter mapping the kernel and kernel spec endpoints onto the
KernelAPI and KernelSpecAPI interfaces.

Contract:
- Inputs: ManagerSettings (base_url, token, request_timeout)
- Outputs: KernelModel / KernelSpecsModel instances, KernelHandle handles
- Errors: httpx transport failures become NetworkError, error statuses ResponseError
"""

import logging
from typing import Any
from urllib.parse import quote

import httpx
from pydantic import ValidationError

from kernel_services.config import ManagerSettings
from kernel_services.errors import NetworkError
from kernel_services.errors import ResponseError
from kernel_services.models import KernelModel
from kernel_services.models import KernelOptions
from kernel_services.models import KernelSpecsModel

from .handle import KernelHandle

logger = logging.getLogger(__name__)

KERNELS_PATH = "/api/kernels"
KERNELSPECS_PATH = "/api/kernelspecs"


class RestKernelClient:
    """Kernel server client over HTTP.

    Satisfies both KernelAPI and KernelSpecAPI. An httpx.AsyncClient can be
    injected (e.g. with a MockTransport); otherwise one is created from the
    settings and closed by aclose().
    """

    def __init__(
        self,
        settings: ManagerSettings | None = None,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        """Initialize REST client.

        Args:
            settings: Connection settings (default: ManagerSettings())
            http_client: Optional preconfigured httpx client
        """
        self.settings = settings or ManagerSettings()
        self._owns_client = http_client is None
        headers = {"Accept": "application/json"}
        if self.settings.token:
            headers["Authorization"] = f"token {self.settings.token}"
        if http_client is None:
            http_client = httpx.AsyncClient(
                base_url=self.settings.base_url,
                headers=headers,
                timeout=self.settings.request_timeout,
            )
        else:
            http_client.headers.update(headers)
        self._http = http_client

    @property
    def is_closed(self) -> bool:
        return self._http.is_closed

    async def aclose(self) -> None:
        """Close the underlying HTTP client if this client created it."""
        if self._owns_client:
            await self._http.aclose()

    async def list_running(self) -> list[KernelModel]:
        """List running kernels."""
        data = await self._request("GET", KERNELS_PATH)
        if not isinstance(data, list):
            raise ResponseError(200, f"Invalid kernel list response: {data!r}")
        return [self._validate_kernel(item) for item in data]

    async def start_new(self, options: KernelOptions | None = None) -> KernelHandle:
        """Start a kernel and return a handle bound to it."""
        options = options or KernelOptions()
        data = await self._request("POST", KERNELS_PATH, json=options.request_body())
        model = self._validate_kernel(data)
        logger.info(f"Started kernel {model.id} ({model.name})")
        return KernelHandle(model)

    def connect_to(self, model: KernelModel) -> KernelHandle:
        """Bind a handle to an existing kernel. No request is made."""
        return KernelHandle(model)

    async def shutdown(self, kernel_id: str) -> None:
        """Shut down a kernel. A kernel already gone (404) is not an error."""
        try:
            await self._request("DELETE", self._kernel_path(kernel_id))
        except ResponseError as e:
            if e.status_code != 404:
                raise
            logger.warning(f"Kernel {kernel_id} was not found on the server")
            return
        logger.info(f"Shut down kernel {kernel_id}")

    async def find_by_id(self, kernel_id: str) -> KernelModel:
        """Fetch the current model of one kernel."""
        data = await self._request("GET", self._kernel_path(kernel_id))
        return self._validate_kernel(data)

    async def get_specs(self) -> KernelSpecsModel:
        """Fetch the kernel specs document."""
        data = await self._request("GET", KERNELSPECS_PATH)
        try:
            return KernelSpecsModel.model_validate(data)
        except ValidationError as e:
            raise ResponseError(200, f"Invalid kernelspecs response: {e}") from e

    def _kernel_path(self, kernel_id: str) -> str:
        return f"{KERNELS_PATH}/{quote(kernel_id, safe='')}"

    def _validate_kernel(self, data: Any) -> KernelModel:
        try:
            return KernelModel.model_validate(data)
        except ValidationError as e:
            raise ResponseError(200, f"Invalid kernel model: {e}") from e

    async def _request(self, method: str, path: str, **kwargs: Any) -> Any:
        try:
            response = await self._http.request(method, path, **kwargs)
        except httpx.TransportError as e:
            raise NetworkError(f"{method} {path} failed: {e}") from e

        if response.is_error:
            message = response.reason_phrase
            try:
                body = response.json()
                if isinstance(body, dict):
                    message = body.get("message") or body.get("reason") or message
            except ValueError:
                pass
            raise ResponseError(response.status_code, message)

        if response.status_code == 204 or not response.content:
            return None
        try:
            return response.json()
        except ValueError as e:
            raise ResponseError(response.status_code, f"Invalid JSON from {method} {path}") from e
