from .base import Transport
from .chaos import ChaosTransport
from .http_transport import HttpTransport

__all__ = ["ChaosTransport", "HttpTransport", "Transport"]
