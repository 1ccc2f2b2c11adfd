"""Kandji API access for kandjitool.

Modules:

transport : module
    Authenticated requests, signed upload targets and storage pushes.
models : module
    CustomApp and SignedUploadTarget records.

Example:
    from kandjitool.api import KandjiTransport
    from kandjitool.config import load_config

    transport = KandjiTransport(load_config("kandji.json"))
    target = transport.request_signed_upload_target("MyApp.pkg")

"""

from .models import CustomApp, SignedUploadTarget
from .transport import (
    CUSTOM_APPS_PATH,
    UPLOAD_PATH,
    KandjiTransport,
    build_storage_fields,
    make_session,
)

__all__ = [
    "CUSTOM_APPS_PATH",
    "UPLOAD_PATH",
    "CustomApp",
    "KandjiTransport",
    "SignedUploadTarget",
    "build_storage_fields",
    "make_session",
]
