# gemini_exchange/services/signer.py
"""Gemini private API request signing"""
import base64
import hashlib
import hmac
import json
import logging
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Dict, Optional

from gemini_exchange.config import Credentials

logger = logging.getLogger(__name__)

PAYLOAD_HEADER = "X-GEMINI-PAYLOAD"
SIGNATURE_HEADER = "X-GEMINI-SIGNATURE"
API_KEY_HEADER = "X-GEMINI-APIKEY"

# Payload key carrying the request path, checked by Gemini against the URL
REQUEST_PATH_KEY = "request"

@dataclass
class OutgoingRequest:
    """An HTTP call before it is handed to the transport"""
    method: str
    path: str   # absolute URL path, e.g. /v1/order/new
    payload: Optional[Dict[str, Any]] = None
    headers: Dict[str, str] = field(default_factory=dict)
    write_body: bool = True

def _json_default(value: Any) -> str:
    if isinstance(value, Decimal):
        return format(value, 'f')
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")

class RequestSigner:
    """Adds Gemini's payload/signature/key header set to private requests"""

    def __init__(self, credentials: Optional[Credentials]):
        self._credentials = credentials

    @property
    def can_sign(self) -> bool:
        return self._credentials is not None

    def encode_payload(self, payload: Dict[str, Any]) -> str:
        """Serialize payload in insertion order and base64 it"""
        serialized = json.dumps(payload, separators=(',', ':'), default=_json_default)
        return base64.b64encode(serialized.encode('ascii')).decode('ascii')

    def get_signature(self, encoded_payload: str) -> str:
        return hmac.new(
            self._credentials.private_key.get_secret_value().encode('utf-8'),
            encoded_payload.encode('ascii'),
            hashlib.sha384
        ).hexdigest()

    def sign(self, request: OutgoingRequest, authenticated: bool) -> bool:
        """
        Sign request in place when the call is declared authenticated.

        Gemini reads the whole payload from the X-GEMINI-PAYLOAD header, so a
        signed request is always a POST that carries no body.

        Args:
            request: Request to mutate
            authenticated: Whether the caller declares this a private call

        Returns:
            bool: True if headers were added, False if the request is untouched
        """
        if not authenticated or not self.can_sign:
            return False

        if request.payload is None:
            request.payload = {}
        request.payload[REQUEST_PATH_KEY] = request.path

        encoded_payload = self.encode_payload(request.payload)
        request.headers[PAYLOAD_HEADER] = encoded_payload
        request.headers[SIGNATURE_HEADER] = self.get_signature(encoded_payload)
        request.headers[API_KEY_HEADER] = self._credentials.public_key.get_secret_value()
        request.method = "POST"
        request.write_body = False

        logger.debug(f"Signed request to {request.path}")
        return True
