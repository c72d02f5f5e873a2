"""Client for the MWA ASVO job queue and file delivery service."""

from asvo_client.application.services import AsvoClient, JobRequest
from asvo_client.bootstrap import build_asvo_client
from asvo_client.config import Settings
from asvo_client.domain.transfer_models import TransferOptions

__version__ = "0.1.0"

__all__ = [
    "AsvoClient",
    "JobRequest",
    "Settings",
    "TransferOptions",
    "__version__",
    "build_asvo_client",
]
