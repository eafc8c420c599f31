from typing import Any, Dict, Optional

from fastapi import status

from claim_service.libs.result import Error


class ClientError(Exception):
    def __init__(
        self,
        base_error: Error,
        status_code: int = status.HTTP_400_BAD_REQUEST,
        extra: Optional[Dict[str, Any]] = None,
    ):
        self.base_error = base_error
        self.status_code = status_code
        self.extra = extra or {}
        super().__init__(base_error.message)


class ServerError(Exception):
    def __init__(self, base_error: Error, expose: bool = False):
        self.base_error = base_error
        self.expose = expose
        super().__init__(base_error.message)
