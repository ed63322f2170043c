"""Shared fixtures: item/offer builders and mocked Steam collaborators."""

from __future__ import annotations

from unittest.mock import MagicMock

import pytest
from cryptography.hazmat.primitives.asymmetric import rsa
from steampy.models import TradeOfferState

from tradebot.bot_core import TradeOfferBot
from tradebot.friends import SteamFriendsHelper
from tradebot.mobile import MobileHelper
from tradebot.models import (
    AccountPolicy,
    ConfirmationMethod,
    EscrowDuration,
    ItemDescription,
    ItemRef,
    OffersResponse,
    Session,
    TradeOffer,
    TradeOffersSummary,
)
from tradebot.steam_web import SteamWeb
from tradebot.trade_offer_api import TradeOfferWebAPI

ADMIN_STEAM_ID = "76561197960265829"  # account id 101
ADMIN_ACCOUNT_ID = 101
PARTNER_ACCOUNT_ID = 202


class CatalogBuilder:
    """Builds ItemRefs together with their descriptions."""

    def __init__(self) -> None:
        self.descriptions: list[ItemDescription] = []
        self._next_class_id = 1000

    def item(self, type_label: str = "Portal Trading Card", app: int = 400,
             app_id: int = 753, market_hash_name: str | None = None) -> ItemRef:
        class_id = str(self._next_class_id)
        self._next_class_id += 1
        self.descriptions.append(ItemDescription(
            class_id=class_id,
            instance_id="0",
            type=type_label,
            market_hash_name=market_hash_name or f"{app}-Card {class_id}",
            app_id=app_id,
        ))
        return ItemRef(app_id=app_id, class_id=class_id, instance_id="0")

    def card(self, app: int = 400) -> ItemRef:
        return self.item("Portal Trading Card", app=app)

    def foil(self, app: int = 400) -> ItemRef:
        return self.item("Portal Foil Trading Card", app=app)

    @property
    def catalog(self):
        return {d.key: d for d in self.descriptions}


def make_offer(offer_id: str = "1", give=None, receive=None,
               state: TradeOfferState = TradeOfferState.Active,
               confirmation: ConfirmationMethod = ConfirmationMethod.NONE,
               account_id: int = PARTNER_ACCOUNT_ID) -> TradeOffer:
    return TradeOffer(
        offer_id=offer_id,
        account_id_other=account_id,
        state=state,
        confirmation_method=confirmation,
        items_to_give=give,
        items_to_receive=receive,
    )


@pytest.fixture
def builder() -> CatalogBuilder:
    return CatalogBuilder()


@pytest.fixture
def rsa_private_key():
    return rsa.generate_private_key(public_exponent=65537, key_size=2048)


@pytest.fixture
def policy() -> AccountPolicy:
    return AccountPolicy(
        accept_donations=True,
        accept_escrow=False,
        accept_1on1_trades=True,
        accept_1on2_trades=True,
        admins=frozenset({ADMIN_STEAM_ID}),
    )


@pytest.fixture
def api() -> MagicMock:
    """TradeOfferWebAPI mock: everything succeeds, no escrow, no offers."""
    api = MagicMock(spec=TradeOfferWebAPI)
    api.get_trade_offers_summary.return_value = TradeOffersSummary(pending_received_count=0)
    api.get_received_offers.return_value = OffersResponse(offers=[])
    api.accept_trade_offer.return_value = True
    api.decline_trade_offer.return_value = True
    api.decline_trade_offer_short_message.return_value = True
    api.get_trade_offer_escrow_duration.return_value = EscrowDuration(0, 0)
    return api


@pytest.fixture
def steam_web() -> MagicMock:
    steam_web = MagicMock(spec=SteamWeb)
    steam_web.ensure_authenticated.return_value = True
    steam_web.web = MagicMock()
    steam_web.session = Session(api_key="KEY")
    return steam_web


@pytest.fixture
def mobile() -> MagicMock:
    return MagicMock(spec=MobileHelper)


@pytest.fixture
def friends() -> SteamFriendsHelper:
    return SteamFriendsHelper()


@pytest.fixture
def bot(api, steam_web, mobile) -> TradeOfferBot:
    return TradeOfferBot(bot_id="test", api=api, steam_web=steam_web, mobile=mobile)


@pytest.fixture
def serve_offers(api, builder):
    """Make the mocked API list the given offers with the builder's catalog."""

    def _serve(*offers: TradeOffer, pending: int | None = None) -> None:
        api.get_trade_offers_summary.return_value = TradeOffersSummary(
            pending_received_count=len(offers) if pending is None else pending,
        )
        api.get_received_offers.return_value = OffersResponse(
            offers=list(offers),
            descriptions=list(builder.descriptions),
        )

    return _serve
