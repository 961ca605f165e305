from typing import Any, Optional


def envelope(data: Any = None, message: Optional[str] = None, message_uz: Optional[str] = None) -> dict:
    """Uniform success body: ``{success, data?, message?, message_uz?}``."""
    body: dict[str, Any] = {"success": True}
    if data is not None:
        body["data"] = data
    if message is not None:
        body["message"] = message
        body["message_uz"] = message_uz or message
    return body
