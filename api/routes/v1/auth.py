"""
api/routes/v1/auth.py -- The credential request endpoint.

Routes:
  POST    /  -- dispatch on reqType: signup, login, updatePassword,
                forgotPassword, deleteUser
  OPTIONS /  -- non-preflight OPTIONS; lists the allowed methods

CORS preflight requests never reach this module: CORSMiddleware answers them
in api/main.py. Any other method on / is a 405 from the router.

Response contract:
  200 application/json  {success, hash} or {success, message} -- every
                        credential outcome, including failures
  200 (empty body)      forgotPassword
  418 text/plain        unknown reqType
  422 error envelope    body is not a valid request object
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Request, Response
from fastapi.responses import JSONResponse, PlainTextResponse

from api.models import AuthRequest, AuthResponse, RequestType
from auth.credentials import CredentialStore

logger = logging.getLogger("credvault.api")

TEAPOT_MESSAGE = "The server refuses the attempt to brew coffee with a teapot"

router = APIRouter()


@router.post(
    "/",
    response_model=AuthResponse,
    responses={418: {"description": "Unknown reqType", "content": {"text/plain": {}}}},
)
def handle_auth_request(request: Request, body: AuthRequest) -> Response:
    """Run one credential operation and return its result.

    Domain and infrastructure failures both come back as 200 with
    success=false -- the status code reflects transport, not the outcome.
    """
    credentials: CredentialStore = request.app.state.credentials

    try:
        req_type = RequestType(body.req_type)
    except ValueError:
        logger.info("Rejected unknown reqType %r", body.req_type)
        return PlainTextResponse(TEAPOT_MESSAGE, status_code=418)

    email = body.user_email
    password = body.user_pass or ""

    if req_type is RequestType.signup:
        result = credentials.signup(email, password)
    elif req_type is RequestType.login:
        result = credentials.verify(email, password)
    elif req_type is RequestType.update_password:
        result = credentials.change_password(email, body.old_pass or "", password)
    elif req_type is RequestType.delete_user:
        result = credentials.delete_account(email, password)
    else:
        credentials.forgot_password(email)
        return Response(status_code=200)

    return JSONResponse(status_code=200, content=result.to_dict())


@router.options("/", include_in_schema=False)
def options_root() -> Response:
    """Answer a plain OPTIONS request with the methods / accepts."""
    return Response(status_code=200, headers={"Allow": "POST, OPTIONS"})
