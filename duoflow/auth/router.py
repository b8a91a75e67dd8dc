"""
Second-factor router: provider callback relay and the login step itself.
"""
import html
from typing import Optional
from urllib.parse import quote, urlencode

from fastapi import APIRouter, Depends, HTTPException, Request, status
from fastapi.responses import HTMLResponse, RedirectResponse

from ..mfa.context import LoginContext
from ..mfa.service import FlowController, FlowError, FlowOutcome, FlowResult
from ..observability.logging import StructuredLogger
from .dependencies import get_flow_controller, get_login_context

router = APIRouter(prefix="/realms/{realm}", tags=["Second factor"])

# Structured logger for this module
logger = StructuredLogger(__name__)

ERROR_PAGE = """<!DOCTYPE html>
<html>
<head><title>Verification failed</title></head>
<body><p class="error">{message}</p></body>
</html>
"""


def result_to_response(result: FlowResult):
    """Translate a flow result into the HTTP response for the browser."""
    if result.outcome == FlowOutcome.CHALLENGE:
        return RedirectResponse(result.redirect_url, status_code=status.HTTP_303_SEE_OTHER)

    if result.outcome == FlowOutcome.FAILURE_CHALLENGE:
        return HTMLResponse(
            ERROR_PAGE.format(message=html.escape(result.message or "")),
            status_code=result.status_code or status.HTTP_403_FORBIDDEN,
        )

    if result.outcome == FlowOutcome.FAILURE:
        if result.error == FlowError.INTERNAL_ERROR:
            raise HTTPException(status_code=500, detail="Internal error")
        raise HTTPException(status_code=401, detail="Invalid credentials")

    return {"status": "authenticated", "state": result.state.value, "reason": result.reason}


# -------------------- Endpoints --------------------
@router.get("/duo-universal/callback")
async def provider_callback(
    realm: str,
    request: Request,
    kc_client_id: str,
    kc_execution: str,
    kc_tab_id: str,
    kc_session_code: str,
    state: Optional[str] = None,
    duo_code: Optional[str] = None,
):
    """
    Landing point of the provider redirect. Sends the browser back into the
    login flow at the execution that issued the challenge.
    """
    params = {
        "session_code": kc_session_code,
        "execution": kc_execution,
        "client_id": kc_client_id,
        "tab_id": kc_tab_id,
    }
    if state is not None:
        params["state"] = state
    if duo_code is not None:
        params["duo_code"] = duo_code

    url = (
        str(request.base_url).rstrip("/")
        + "/realms/" + quote(realm, safe="")
        + "/login-actions/authenticate?"
        + urlencode(params, quote_via=quote)
    )
    logger.info("Relaying provider callback", realm=realm, client_id=kc_client_id, execution=kc_execution)
    return RedirectResponse(url, status_code=status.HTTP_303_SEE_OTHER)


@router.get("/login-actions/authenticate")
async def authenticate(
    realm: str,
    context: LoginContext = Depends(get_login_context),
    controller: FlowController = Depends(get_flow_controller),
):
    """
    Run the second-factor step for the current authentication session.
    """
    result = await controller.authenticate(context)
    logger.info("Second-factor step finished", realm=realm, state=result.state.value,
                outcome=result.outcome.value)
    return result_to_response(result)
