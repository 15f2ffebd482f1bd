# app/auth/handshake.py
import hmac, re
from typing import Mapping
from starlette.concurrency import run_in_threadpool
from starlette.datastructures import ImmutableMultiDict
from starlette.requests import Request
from starlette.responses import Response
from ..config import Settings
from ..utils.logging import logger
from . import shopify_oauth
from .errors import (
    InvalidTenant, MissingParameters, MissingSignatureParameter,
    OriginUnverifiable, SignatureInvalid,
)
from .signature import verify_callback
from .state_store import StateStore

class OAuthHandshake:
    """
    Install handshake: /auth issues a single-use state and sends the merchant
    to Shopify; /auth/callback redeems that state, checks the HMAC and trades
    the code for an offline access token.
    """

    def __init__(self, settings: Settings, store: StateStore):
        if not settings.SHOPIFY_API_KEY or settings.SHOPIFY_API_SECRET is None \
                or not settings.SHOPIFY_API_SECRET.get_secret_value():
            raise ValueError("SHOPIFY_API_KEY and SHOPIFY_API_SECRET must be set")
        self.settings = settings
        self.store = store
        self._shop_re = re.compile(settings.SHOP_DOMAIN_PATTERN, re.I)

    def secure_shop(self, shop: str | None) -> str | None:
        return shop if shop and self._shop_re.fullmatch(shop) else None

    async def initiate(self, shop: str | None, hmac_param: str | None,
                       response: Response | None = None) -> str:
        shop = self.secure_shop(shop)
        if not shop:
            raise InvalidTenant()
        if not hmac_param:
            raise MissingSignatureParameter()

        state = await self.store.create(shop, response)
        logger.info("Starting install for %s (state backend=%s)", shop, self.store.backend)
        return shopify_oauth.build_install_url(self.settings, shop, state)

    async def callback(self, params: Mapping[str, str], request: Request | None = None) -> dict:
        shop = self.secure_shop(params.get("shop"))
        signature = params.get("hmac")
        code = params.get("code")
        state = params.get("state")
        if not (shop and signature and code and state):
            raise MissingParameters()

        # consumed even if a later step fails, so a replay can never succeed
        expected = await self.store.redeem_once(shop, request)
        if expected is None or not hmac.compare_digest(expected.encode(), state.encode()):
            logger.warning("State mismatch for %s", shop)
            raise OriginUnverifiable()

        # every value of a repeated key is signed, not just the last one
        signed = params.multi_items() if isinstance(params, ImmutableMultiDict) else params
        if not verify_callback(signed, self.settings.SHOPIFY_API_SECRET.get_secret_value()):
            logger.warning("HMAC validation failed for %s", shop)
            raise SignatureInvalid()

        token_resp = await run_in_threadpool(shopify_oauth.exchange_token, self.settings, shop, code)

        if self.settings.SHOPIFY_SANITY_CHECK:
            await run_in_threadpool(
                shopify_oauth.fetch_shop, self.settings, shop, token_resp["access_token"]
            )

        logger.info("Install completed for %s (scope=%s)", shop, token_resp.get("scope", ""))
        return token_resp
