"""HTTP adapter – resilient httpx client wrappers."""
from resilient_http.adapters.http.transport import AsyncTransport, Transport
from resilient_http.adapters.http.client import Client
from resilient_http.adapters.http.async_client import AsyncClient

__all__ = ["AsyncClient", "AsyncTransport", "Client", "Transport"]
