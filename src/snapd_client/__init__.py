"""
snapd-client - Async client for the snapd REST API.

Talks HTTP over the daemon's Unix socket (``/run/snapd.socket`` by default).

Components:
- transport.py: One request/response cycle per call over the socket
- client.py: SnapClient with the snap, conf, change and interface operations
- auth.py: Load-once credential store (``~/.snap/auth.json``)
- main.py: The ``snapc`` command line
"""

from .client import SnapClient
from .errors import ErrorCategory, SnapdError
from .models import Credential, Envelope, ModifyOptions, PlugRef, RequestDescriptor, SlotRef
from .transport import SnapdTransport

__version__ = "0.1.0"
__all__ = [
    "SnapClient",
    "SnapdTransport",
    "SnapdError",
    "ErrorCategory",
    "Credential",
    "Envelope",
    "ModifyOptions",
    "RequestDescriptor",
    "SlotRef",
    "PlugRef",
]
