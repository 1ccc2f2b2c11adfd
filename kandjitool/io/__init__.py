"""Upload workflow for kandjitool.

Modules:

upload : module
    Signed upload, storage push and the bounded attach loop.

Public API:

upload_custom_app : function
    Upload a file and attach it to a custom app.
attach_file_key : function
    Attach an already uploaded file key (retry the attach step alone).
update_postinstall_script : function
    Replace a custom app's post-install script.

Example:
    from pathlib import Path
    from kandjitool.io import upload_custom_app

    result = upload_custom_app(transport, Path("dist/MyApp.pkg"), "app-123")
    print(f"Attached {result.file_key}")

"""

from .upload import (
    DEFAULT_MAX_ATTEMPTS,
    DEFAULT_RETRY_DELAY,
    UploadAttempt,
    attach_file_key,
    update_postinstall_script,
    upload_custom_app,
)

__all__ = [
    "DEFAULT_MAX_ATTEMPTS",
    "DEFAULT_RETRY_DELAY",
    "UploadAttempt",
    "attach_file_key",
    "update_postinstall_script",
    "upload_custom_app",
]
