from typing import List, Optional
from datetime import datetime
from pathlib import Path
import json
import logging
from steampy.models import TradeOfferState
from .models import (AccountPolicy, ConfirmationMethod, Decision, DecisionAction, DecisionReason,
                     TradeOffer)
from .item_classifier import Catalog
from .offer_matcher import evaluate_offer
from .exceptions import AuthenticationError, ClassificationError, RemoteCallError
from .friends import SteamFriendsHelper
from .mobile import MobileHelper
from .steam_web import SteamWeb
from .trade_offer_api import TradeOfferWebAPI

logger = logging.getLogger(__name__)


class TradeOfferBot:
    def __init__(self, bot_id: str, api: TradeOfferWebAPI, steam_web: SteamWeb, mobile: MobileHelper,
                 bot_name: str = None, journal_dir: Optional[Path] = None, max_errors: int = 10):
        self.bot_id = bot_id
        self.bot_name = bot_name or f"Bot_{bot_id}"
        self.api = api
        self.steam_web = steam_web
        self.mobile = mobile
        self.journal_dir = Path(journal_dir) if journal_dir else None
        self.error_count = 0
        self.max_errors = max_errors

    def process_pending_offers(self, friends: SteamFriendsHelper, policy: AccountPolicy) -> List[Decision]:
        """
        CheckForTradeOffers - один проход по входящим офферам.

        Обрабатывается не больше офферов, чем Steam сообщил в pending_received_count.
        Оффер, на котором упал удаленный вызов, не считается обработанным и
        будет проверен на следующем проходе.
        """
        self._log_function_call("CheckForTradeOffers", "start")
        try:
            self._ensure_api_key()
            summary = self.api.get_trade_offers_summary()
            received = self.api.get_received_offers(active_only=True)
        except (RemoteCallError, AuthenticationError) as e:
            self._handle_error("CheckForTradeOffers", e)
            raise

        catalog = received.catalog
        handled = 0
        decisions = []
        failed = False

        for offer in received.offers:
            if handled >= summary.pending_received_count:
                break

            if offer.state != TradeOfferState.Active:
                continue

            if offer.confirmation_method == ConfirmationMethod.EMAIL:
                logger.info(f"Accept the trade offer {offer.offer_id} via your email")
                decisions.append(Decision(DecisionAction.DEFER, DecisionReason.EMAIL_CONFIRM_REQUIRED, offer.offer_id))
                handled += 1
                continue

            # Без веб-сессии оффер не трогаем, проверим его на следующем проходе
            try:
                authenticated = self.steam_web.ensure_authenticated()
            except AuthenticationError as e:
                self._handle_error("RefreshSession", e, offer.offer_id)
                raise
            if not authenticated:
                continue

            try:
                decision = self.handle_trade_offer(offer, catalog, friends, policy)
            except (RemoteCallError, ClassificationError) as e:
                self._handle_error("HandleTradeOffer", e, offer.offer_id)
                failed = True
                continue

            self._log_function_call("HandleTradeOffer", f"{decision.action.value} - {decision.reason.value}", offer.offer_id)
            decisions.append(decision)
            handled += 1

        if not failed:
            self.error_count = 0  # Сброс счетчика ошибок при успехе
        self._log_function_call("CheckForTradeOffers", f"success - handled {handled} offers")
        return decisions

    def _ensure_api_key(self):
        """Без API-ключа IEconService недоступен: авторизуемся и берем ключ со страницы аккаунта"""
        if self.steam_web.session.api_key:
            return
        if not self.steam_web.ensure_authenticated():
            raise AuthenticationError("Web session is not authenticated, cannot fetch API key")
        if not self.steam_web.fetch_api_key():
            raise RemoteCallError("API key is not set")

    def handle_trade_offer(self, offer: TradeOffer, catalog: Catalog,
                           friends: SteamFriendsHelper, policy: AccountPolicy) -> Decision:
        if offer.confirmation_method == ConfirmationMethod.MOBILE_APP:
            self._confirm_all_trades()
            # Подтверждение общее для всех офферов, сам оффер здесь не принимается
            return self._decision(DecisionAction.DEFER, DecisionReason.MOBILE_CONFIRM_REQUIRED, offer)

        partner_id = friends.get_steam_id(offer.account_id_other)

        # Пожертвование: результат accept не проверяется, Steam опросим снова через 2 секунды
        if policy.accept_donations and offer.is_donation:
            self.api.accept_trade_offer(offer.offer_id, partner_id)
            return self._decision(DecisionAction.ACCEPT, DecisionReason.DONATION, offer)

        # Оффер от админа принимаем всегда; неудачный accept тоже считается обработанным
        if friends.is_bot_admin(partner_id, policy.admins):
            if self.api.accept_trade_offer(offer.offer_id, partner_id):
                logger.info(f"Tradeoffer {offer.offer_id} was sent by admin {partner_id}")
                self._confirm_all_trades()
            return self._decision(DecisionAction.ACCEPT, DecisionReason.ADMIN_OVERRIDE, offer)

        if offer.is_give_only:
            self.api.decline_trade_offer(offer.offer_id, partner_id)
            return self._decision(DecisionAction.DECLINE, DecisionReason.UNBALANCED_GIVE, offer)

        if not policy.accept_escrow:
            escrow = self.api.get_trade_offer_escrow_duration(offer.offer_id)
            if escrow.is_held:
                self.api.decline_trade_offer_short_message(offer.offer_id)
                return self._decision(DecisionAction.DECLINE, DecisionReason.ESCROW_HELD, offer)

        decision = evaluate_offer(offer, catalog, policy)

        if decision.action == DecisionAction.ACCEPT:
            if self.api.accept_trade_offer(offer.offer_id, partner_id):
                self._confirm_all_trades()
                return decision
            logger.warning(f"Tradeoffer {offer.offer_id} couldn't be accepted, will retry next time")
            return self._decision(DecisionAction.DEFER, DecisionReason.ACCEPT_CALL_FAILED, offer)

        if decision.reason == DecisionReason.UNRECOGNIZED_ITEMS:
            self.api.decline_trade_offer(offer.offer_id, partner_id)
        else:
            self.api.decline_trade_offer_short_message(offer.offer_id)
        return decision

    def _confirm_all_trades(self):
        self.mobile.confirm_all_trades()

    @staticmethod
    def _decision(action: DecisionAction, reason: DecisionReason, offer: TradeOffer) -> Decision:
        return Decision(action, reason, offer.offer_id)

    def _log_function_call(self, function_name: str, result: str, offer_id: str = None):
        """Логирование каждого вызова функций бота"""
        logger.debug(f"{function_name}: {result}")
        if self.journal_dir is None:
            return

        log_entry = {
            'bot_id': self.bot_id,
            'function': function_name,
            'time': datetime.now().isoformat(),
            'offer_id': offer_id,
            'result': result
        }

        # Запись в файл лога
        self.journal_dir.mkdir(parents=True, exist_ok=True)
        with open(self.journal_dir / f'bot_{self.bot_id}_calls.json', 'a') as f:
            json.dump(log_entry, f, ensure_ascii=False)
            f.write('\n')

    def _handle_error(self, function_name: str, error: Exception, offer_id: str = None):
        """Обработка ошибок"""
        self.error_count += 1
        error_msg = f"Error in {function_name}: {str(error)}"

        logger.error(error_msg)
        self._log_function_call(function_name, f"error - {error_msg}", offer_id)

        # Уведомление админа при большом количестве ошибок
        if self.error_count >= self.max_errors:
            self._notify_admin(f"Bot {self.bot_id} has {self.error_count} consecutive errors. Last error: {error_msg}")

    def _notify_admin(self, message: str):
        """Уведомление админа"""
        logger.critical(f"[ADMIN ALERT] {self.bot_name}: {message}")
