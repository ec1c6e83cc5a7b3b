import hmac
import logging

from fastapi import Depends, HTTPException, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

_LOG = logging.getLogger("crudkit.auth")

bearer = HTTPBearer(auto_error=False)


def auth_guard(request: Request, creds: HTTPAuthorizationCredentials = Depends(bearer)) -> None:
    settings = getattr(request.app.state, "settings", None)
    expected = str(getattr(settings, "API_TOKEN", "") or "")
    if not expected:
        return
    if not creds:
        raise HTTPException(status_code=401, detail="Missing authorization token")
    if not hmac.compare_digest(creds.credentials.encode(), expected.encode()):
        _LOG.warning("rejected token path=%s", request.url.path)
        raise HTTPException(status_code=401, detail="Invalid token")
