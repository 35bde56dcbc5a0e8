"""
Response envelope shared by every EchoWrite endpoint.

Success bodies are ``{"success": true, "data": ..., "message": ...}``;
errors use EchoWriteError.to_dict().
"""

from typing import Any, Dict, Optional


def success_response(data: Any = None, message: Optional[str] = None) -> Dict[str, Any]:
    body: Dict[str, Any] = {"success": True, "data": data}
    if message:
        body["message"] = message
    return body
