import logging
import re
from typing import Dict, Union

from steampy.models import SteamUrl

from .exceptions import RemoteCallError
from .models import EscrowDuration, ItemDescription, OffersResponse, TradeOffer, TradeOffersSummary
from .steam_client import SteamWebClient
from .steam_web import SteamWeb

logger = logging.getLogger(__name__)

ECON_SERVICE_URL = SteamUrl.API_URL + "/IEconService/{method}/v1/"

_ESCROW_RE = {
    'ours': re.compile(r"var\s+g_daysMyEscrow\s*=\s*(\d+);"),
    'theirs': re.compile(r"var\s+g_daysTheirEscrow\s*=\s*(\d+);"),
}


class TradeOfferWebAPI:
    """Обертка над IEconService и страницами /tradeoffer/ сообщества Steam"""

    def __init__(self, web: SteamWebClient, steam_web: SteamWeb):
        self.web = web
        self.steam_web = steam_web

    def get_trade_offers_summary(self) -> TradeOffersSummary:
        data = self.web.get_json(ECON_SERVICE_URL.format(method="GetTradeOffersSummary"), params={
            'key': self._api_key(),
            'time_last_visit': 0,
        })
        response = data.get('response', {})
        return TradeOffersSummary(
            pending_received_count=int(response.get('pending_received_count', 0)),
            new_received_count=int(response.get('new_received_count', 0)),
        )

    def get_received_offers(self, active_only: bool = True) -> OffersResponse:
        """Входящие офферы вместе с описаниями предметов (включая неподтвержденные)"""
        data = self.web.get_json(ECON_SERVICE_URL.format(method="GetTradeOffers"), params={
            'key': self._api_key(),
            'get_received_offers': 1,
            'get_sent_offers': 0,
            'get_descriptions': 1,
            'active_only': int(active_only),
            'historical_only': 0,
            'language': 'english',
        })
        response = data.get('response', {})
        try:
            offers = [TradeOffer.from_json(o) for o in response.get('trade_offers_received', [])]
            descriptions = [ItemDescription.from_json(d) for d in response.get('descriptions', [])]
        except (KeyError, ValueError) as e:
            raise RemoteCallError(f"Malformed GetTradeOffers response: {e}")
        return OffersResponse(offers=offers, descriptions=descriptions)

    def accept_trade_offer(self, offer_id: str, partner_steam_id: Union[int, str]) -> bool:
        url = f"{SteamUrl.COMMUNITY_URL}/tradeoffer/{offer_id}/accept"
        try:
            response = self.web.post_form(url, data={
                'sessionid': self.steam_web.session.session_id,
                'serverid': 1,
                'tradeofferid': offer_id,
                'partner': str(partner_steam_id),
                'captcha': '',
            }, headers={'Referer': f"{SteamUrl.COMMUNITY_URL}/tradeoffer/{offer_id}/"})
        except RemoteCallError as e:
            if e.status_code is None:
                raise
            logger.warning(f"Оффер {offer_id} не принят: {e}")
            return False

        try:
            result = response.json()
        except ValueError:
            return False
        accepted = 'tradeid' in result or result.get('needs_mobile_confirmation', False) \
            or result.get('needs_email_confirmation', False)
        if accepted:
            logger.info(f"Accepted trade offer {offer_id} from {partner_steam_id}")
        return bool(accepted)

    def decline_trade_offer(self, offer_id: str, partner_steam_id: Union[int, str]) -> bool:
        declined = self._decline(offer_id)
        if declined:
            logger.info(f"Declined trade offer {offer_id} from {partner_steam_id}")
        return declined

    def decline_trade_offer_short_message(self, offer_id: str) -> bool:
        declined = self._decline(offer_id)
        if declined:
            logger.info(f"Declined trade offer {offer_id}")
        return declined

    def get_trade_offer_escrow_duration(self, offer_id: str) -> EscrowDuration:
        """Сроки удержания берутся со страницы оффера (g_daysMyEscrow / g_daysTheirEscrow)"""
        html = self.web.get_text(f"{SteamUrl.COMMUNITY_URL}/tradeoffer/{offer_id}/")
        days: Dict[str, int] = {}
        for side, pattern in _ESCROW_RE.items():
            match = pattern.search(html)
            if match is None:
                raise RemoteCallError(f"Escrow duration not found for offer {offer_id}")
            days[side] = int(match.group(1))
        return EscrowDuration(days_our_escrow=days['ours'], days_their_escrow=days['theirs'])

    def _decline(self, offer_id: str) -> bool:
        try:
            self.web.post_form(ECON_SERVICE_URL.format(method="DeclineTradeOffer"), data={
                'key': self._api_key(),
                'tradeofferid': offer_id,
            })
        except RemoteCallError as e:
            if e.status_code is None:
                raise
            logger.warning(f"Оффер {offer_id} не отклонен: {e}")
            return False
        return True

    def _api_key(self) -> str:
        api_key = self.steam_web.session.api_key
        if not api_key:
            raise RemoteCallError("API key is not set")
        return api_key
