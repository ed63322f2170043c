"""Tests for TradeOfferBot.process_pending_offers decision flow."""

from __future__ import annotations

import json
from dataclasses import replace

import pytest
from steampy.models import TradeOfferState

from tradebot.bot_core import TradeOfferBot
from tradebot.exceptions import AuthenticationError, RemoteCallError
from tradebot.models import (
    ConfirmationMethod,
    DecisionAction,
    DecisionReason,
    EscrowDuration,
    ItemRef,
    Session,
)

from tests.conftest import ADMIN_ACCOUNT_ID, make_offer


class TestListing:
    def test_listing_failure_propagates(self, bot, api, friends, policy) -> None:
        api.get_received_offers.side_effect = RemoteCallError("down")

        with pytest.raises(RemoteCallError):
            bot.process_pending_offers(friends, policy)
        assert bot.error_count == 1

    def test_stops_at_pending_count(self, bot, api, builder, serve_offers, friends, policy) -> None:
        offers = [make_offer(str(i), give=None, receive=[builder.card()]) for i in range(3)]
        serve_offers(*offers, pending=2)

        decisions = bot.process_pending_offers(friends, policy)

        assert [d.offer_id for d in decisions] == ["0", "1"]
        assert api.accept_trade_offer.call_count == 2

    def test_inactive_offers_are_skipped(self, bot, api, builder, serve_offers, friends, policy) -> None:
        """An offer already acted upon is no longer active and is left alone."""
        serve_offers(make_offer(give=None, receive=[builder.card()], state=TradeOfferState.Accepted), pending=1)

        assert bot.process_pending_offers(friends, policy) == []
        api.accept_trade_offer.assert_not_called()
        api.decline_trade_offer.assert_not_called()


class TestApiKey:
    """A session without an API key fetches one before listing offers."""

    def test_keyless_session_recovers_on_later_pass(self, bot, api, steam_web, builder, serve_offers,
                                                     friends, policy) -> None:
        steam_web.session = Session()
        steam_web.fetch_api_key.return_value = None
        serve_offers(make_offer(give=None, receive=[builder.card()]))

        with pytest.raises(RemoteCallError, match="API key"):
            bot.process_pending_offers(friends, policy)
        api.get_trade_offers_summary.assert_not_called()
        assert bot.error_count == 1

        def _fetch_key():
            steam_web.session = Session(api_key="NEWKEY")
            return "NEWKEY"

        steam_web.fetch_api_key.side_effect = _fetch_key

        decisions = bot.process_pending_offers(friends, policy)

        assert [d.action for d in decisions] == [DecisionAction.ACCEPT]
        assert steam_web.session.api_key == "NEWKEY"
        assert bot.error_count == 0

    def test_unauthenticated_keyless_session_fails_the_pass(self, bot, api, steam_web, friends, policy) -> None:
        steam_web.session = Session()
        steam_web.ensure_authenticated.return_value = False

        with pytest.raises(AuthenticationError):
            bot.process_pending_offers(friends, policy)
        steam_web.fetch_api_key.assert_not_called()
        api.get_received_offers.assert_not_called()

    def test_existing_key_is_not_refetched(self, bot, steam_web, builder, serve_offers, friends, policy) -> None:
        serve_offers(make_offer(give=None, receive=[builder.card()]))

        bot.process_pending_offers(friends, policy)

        steam_web.fetch_api_key.assert_not_called()


class TestConfirmationMethods:
    def test_email_confirmation_is_only_counted(self, bot, api, steam_web, builder, serve_offers, friends, policy) -> None:
        serve_offers(make_offer(give=[builder.card()], receive=None, confirmation=ConfirmationMethod.EMAIL))

        decisions = bot.process_pending_offers(friends, policy)

        assert decisions[0].reason == DecisionReason.EMAIL_CONFIRM_REQUIRED
        assert decisions[0].action == DecisionAction.DEFER
        steam_web.ensure_authenticated.assert_not_called()
        api.decline_trade_offer.assert_not_called()

    def test_mobile_confirmation_runs_sweep(self, bot, api, mobile, builder, serve_offers, friends, policy) -> None:
        serve_offers(make_offer(give=[builder.card()], receive=None, confirmation=ConfirmationMethod.MOBILE_APP))

        decisions = bot.process_pending_offers(friends, policy)

        assert decisions[0].reason == DecisionReason.MOBILE_CONFIRM_REQUIRED
        assert decisions[0].action == DecisionAction.DEFER
        mobile.confirm_all_trades.assert_called_once()
        api.decline_trade_offer.assert_not_called()

    def test_unauthenticated_offer_is_retried_later(self, bot, api, steam_web, builder, serve_offers, friends, policy) -> None:
        steam_web.ensure_authenticated.return_value = False
        serve_offers(make_offer(give=None, receive=[builder.card()]))

        assert bot.process_pending_offers(friends, policy) == []
        api.accept_trade_offer.assert_not_called()

    def test_handshake_error_ends_the_pass(self, bot, steam_web, builder, serve_offers, friends, policy) -> None:
        steam_web.ensure_authenticated.side_effect = AuthenticationError("500")
        serve_offers(make_offer(give=None, receive=[builder.card()]))

        with pytest.raises(AuthenticationError):
            bot.process_pending_offers(friends, policy)
        assert bot.error_count == 1


class TestDonationsAndAdmins:
    def test_donation_is_accepted_without_matching(self, bot, api, builder, serve_offers, friends, policy, monkeypatch) -> None:
        def fail(*args, **kwargs):
            raise AssertionError("matcher must not run for donations")

        monkeypatch.setattr("tradebot.bot_core.evaluate_offer", fail)
        serve_offers(make_offer(give=None, receive=[builder.item("Steam Gems")]))

        decisions = bot.process_pending_offers(friends, policy)

        assert decisions[0].reason == DecisionReason.DONATION
        api.accept_trade_offer.assert_called_once_with("1", "76561197960265930")

    def test_donation_counts_even_if_accept_fails(self, bot, api, builder, serve_offers, friends, policy) -> None:
        api.accept_trade_offer.return_value = False
        serve_offers(make_offer(give=None, receive=[builder.card()]))

        decisions = bot.process_pending_offers(friends, policy)

        assert decisions[0].action == DecisionAction.ACCEPT
        api.decline_trade_offer_short_message.assert_not_called()

    def test_donation_declined_when_disabled(self, bot, api, builder, serve_offers, friends, policy) -> None:
        serve_offers(make_offer(give=None, receive=[builder.card()]))

        decisions = bot.process_pending_offers(friends, replace(policy, accept_donations=False))

        assert decisions[0].action == DecisionAction.DECLINE
        api.accept_trade_offer.assert_not_called()

    def test_admin_offer_is_always_accepted(self, bot, api, mobile, builder, serve_offers, friends, policy) -> None:
        serve_offers(make_offer(give=[builder.card(), builder.item("Steam Gems")], receive=None,
                                account_id=ADMIN_ACCOUNT_ID))

        decisions = bot.process_pending_offers(friends, policy)

        assert decisions[0].reason == DecisionReason.ADMIN_OVERRIDE
        api.accept_trade_offer.assert_called_once()
        mobile.confirm_all_trades.assert_called_once()
        api.decline_trade_offer.assert_not_called()

    def test_failed_admin_accept_is_handled_and_reappears_next_pass(self, bot, api, mobile, builder, serve_offers,
                                                                    friends, policy) -> None:
        api.accept_trade_offer.return_value = False
        offer = make_offer(give=[builder.card()], receive=None, account_id=ADMIN_ACCOUNT_ID)
        serve_offers(offer)

        first = bot.process_pending_offers(friends, policy)
        second = bot.process_pending_offers(friends, policy)

        assert first[0].reason == DecisionReason.ADMIN_OVERRIDE
        assert second[0].reason == DecisionReason.ADMIN_OVERRIDE
        assert api.accept_trade_offer.call_count == 2
        mobile.confirm_all_trades.assert_not_called()


class TestDeclines:
    def test_give_without_receive_is_declined(self, bot, api, builder, serve_offers, friends, policy) -> None:
        serve_offers(make_offer(give=[builder.card()], receive=None))

        decisions = bot.process_pending_offers(friends, policy)

        assert decisions[0].reason == DecisionReason.UNBALANCED_GIVE
        api.decline_trade_offer.assert_called_once_with("1", "76561197960265930")

    def test_escrow_offer_is_declined(self, bot, api, builder, serve_offers, friends, policy) -> None:
        api.get_trade_offer_escrow_duration.return_value = EscrowDuration(days_our_escrow=1, days_their_escrow=0)
        serve_offers(make_offer(give=[builder.card(100)], receive=[builder.card(100)]))

        decisions = bot.process_pending_offers(friends, policy)

        assert decisions[0].reason == DecisionReason.ESCROW_HELD
        api.decline_trade_offer_short_message.assert_called_once_with("1")
        api.accept_trade_offer.assert_not_called()

    def test_escrow_allowed_goes_to_matching(self, bot, api, builder, serve_offers, friends, policy) -> None:
        api.get_trade_offer_escrow_duration.return_value = EscrowDuration(days_our_escrow=1, days_their_escrow=0)
        serve_offers(make_offer(give=[builder.card(100)], receive=[builder.card(100)]))

        decisions = bot.process_pending_offers(friends, replace(policy, accept_escrow=True))

        assert decisions[0].reason == DecisionReason.MATCHED_1_1
        api.get_trade_offer_escrow_duration.assert_not_called()

    def test_unmatched_offer_declined_with_message(self, bot, api, builder, serve_offers, friends, policy) -> None:
        serve_offers(make_offer(give=[builder.card(100)], receive=[builder.card(200)]))

        decisions = bot.process_pending_offers(friends, policy)

        assert decisions[0].reason == DecisionReason.UNMATCHED
        api.decline_trade_offer_short_message.assert_called_once_with("1")

    def test_unrecognized_items_declined_with_partner(self, bot, api, builder, serve_offers, friends, policy) -> None:
        serve_offers(make_offer(give=[builder.item("Portal Emoticon")], receive=[builder.card(), builder.card()]))

        decisions = bot.process_pending_offers(friends, policy)

        assert decisions[0].reason == DecisionReason.UNRECOGNIZED_ITEMS
        api.decline_trade_offer.assert_called_once()


class TestMatchedAccepts:
    def test_one_on_two_accept_confirms(self, bot, api, mobile, builder, serve_offers, friends, policy) -> None:
        serve_offers(make_offer(give=[builder.card(100)], receive=[builder.card(200), builder.card(300)]))

        decisions = bot.process_pending_offers(friends, policy)

        assert decisions[0].reason == DecisionReason.MATCHED_1_2
        mobile.confirm_all_trades.assert_called_once()

    def test_failed_accept_is_deferred(self, bot, api, mobile, builder, serve_offers, friends, policy) -> None:
        api.accept_trade_offer.return_value = False
        serve_offers(make_offer(give=[builder.card(100)], receive=[builder.card(100)]))

        decisions = bot.process_pending_offers(friends, policy)

        assert decisions[0].action == DecisionAction.DEFER
        assert decisions[0].reason == DecisionReason.ACCEPT_CALL_FAILED
        mobile.confirm_all_trades.assert_not_called()


class TestPerOfferFailures:
    def test_remote_error_leaves_offer_unhandled(self, bot, api, builder, serve_offers, friends, policy) -> None:
        api.get_trade_offer_escrow_duration.side_effect = [RemoteCallError("timeout"), EscrowDuration()]
        serve_offers(
            make_offer("1", give=[builder.card(100)], receive=[builder.card(100)]),
            make_offer("2", give=[builder.card(200)], receive=[builder.card(200)]),
        )

        decisions = bot.process_pending_offers(friends, policy)

        assert [d.offer_id for d in decisions] == ["2"]
        assert bot.error_count == 1

    def test_missing_description_is_surfaced_per_offer(self, bot, api, builder, serve_offers, friends, policy) -> None:
        unknown = ItemRef(app_id=753, class_id="404", instance_id="0")
        serve_offers(
            make_offer("1", give=[unknown], receive=[builder.card(100)]),
            make_offer("2", give=[builder.card(200)], receive=[builder.card(200)]),
        )

        decisions = bot.process_pending_offers(friends, policy)

        assert [d.offer_id for d in decisions] == ["2"]
        assert bot.error_count == 1

    def test_clean_pass_resets_error_count(self, bot, friends, policy) -> None:
        bot.error_count = 4
        bot.process_pending_offers(friends, policy)
        assert bot.error_count == 0


class TestCallJournal:
    def test_writes_json_lines(self, api, steam_web, mobile, builder, serve_offers, friends, policy, tmp_path) -> None:
        bot = TradeOfferBot(bot_id="j", api=api, steam_web=steam_web, mobile=mobile, journal_dir=tmp_path)
        serve_offers(make_offer(give=[builder.card()], receive=None))

        bot.process_pending_offers(friends, policy)

        lines = (tmp_path / "bot_j_calls.json").read_text().splitlines()
        entries = [json.loads(line) for line in lines]
        assert entries[0]["function"] == "CheckForTradeOffers"
        assert any(e["offer_id"] == "1" and e["result"] == "decline - unbalanced-give" for e in entries)
