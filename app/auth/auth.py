# app/auth.py
from fastapi import APIRouter, Request, Depends
from fastapi.responses import JSONResponse, Response
from .handshake import OAuthHandshake
from ..schemas import ErrorBody, TokenResponse

router = APIRouter(prefix="/auth", tags=["auth"])

def get_handshake(request: Request) -> OAuthHandshake:
    return request.app.state.handshake

@router.get("", status_code=302, responses={302: {"description": "Redirect to Shopify"},
                                           403: {"model": ErrorBody}})
async def start_auth(request: Request, handshake: OAuthHandshake = Depends(get_handshake)):
    """
    Entry: /auth?shop=mystore.myshopify.com&hmac=...
    Stores a CSRF state (nonce) for the shop and redirects to Shopify.
    """
    q = request.query_params
    resp = Response(status_code=302)
    resp.headers["location"] = await handshake.initiate(q.get("shop"), q.get("hmac"), resp)
    return resp

@router.get("/callback", response_model=TokenResponse,
            responses={400: {"model": ErrorBody}, 403: {"model": ErrorBody}})
async def oauth_callback(request: Request, handshake: OAuthHandshake = Depends(get_handshake)):
    token_resp = await handshake.callback(request.query_params, request)
    return JSONResponse(token_resp)

@router.options("")
@router.options("/callback")
async def preflight():
    return Response(status_code=204)
