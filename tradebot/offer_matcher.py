from typing import List

from .item_classifier import Catalog, filter_by_category, get_app_id
from .models import (AccountPolicy, Decision, DecisionAction, DecisionReason, ItemCategory,
                     ItemDescription, TradeOffer)

OUR_ITEMS_MASK = ItemCategory.TRADING_CARD
THEIR_ITEMS_MASK = ItemCategory.TRADING_CARD | ItemCategory.FOIL_TRADING_CARD


def check_one_on_two(our_items: List[ItemDescription], their_items: List[ItemDescription]) -> bool:
    """1:2, 2:4 и т.д. - за каждую нашу карточку минимум две их"""
    return len(our_items) > 0 and len(their_items) >= len(our_items) * 2


def check_one_on_one(our_items: List[ItemDescription],
                     their_items: List[ItemDescription]) -> List[ItemDescription]:
    """
    Сопоставляет карточки по AppID игры, каждая карточка участвует не более одного раза.
    Обход с конца обоих списков, берется первое совпадение. Входные списки не меняются.
    """
    ours = list(our_items)
    theirs = list(their_items)
    matched = []

    for i in range(len(ours) - 1, -1, -1):
        for j in range(len(theirs) - 1, -1, -1):
            if get_app_id(ours[i]) == get_app_id(theirs[j]):
                matched.append(ours[i])
                del ours[i]
                del theirs[j]
                break

    return matched


def evaluate_offer(offer: TradeOffer, catalog: Catalog, policy: AccountPolicy) -> Decision:
    """Решение по офферу, в котором обе стороны отдают предметы"""
    if not offer.items_to_give or not offer.items_to_receive:
        return Decision(DecisionAction.DECLINE, DecisionReason.UNMATCHED, offer.offer_id)

    our_items = filter_by_category(offer.items_to_give, catalog, OUR_ITEMS_MASK)
    their_items = filter_by_category(offer.items_to_receive, catalog, THEIR_ITEMS_MASK)

    accept_reason = None
    if policy.accept_1on2_trades and check_one_on_two(our_items, their_items):
        accept_reason = DecisionReason.MATCHED_1_2
    elif policy.accept_1on1_trades and len(check_one_on_one(our_items, their_items)) == len(our_items):
        accept_reason = DecisionReason.MATCHED_1_1

    # У нас просят что-то кроме обычных карточек
    if len(offer.items_to_give) > len(our_items):
        return Decision(DecisionAction.DECLINE, DecisionReason.UNRECOGNIZED_ITEMS, offer.offer_id)

    if accept_reason is not None:
        return Decision(DecisionAction.ACCEPT, accept_reason, offer.offer_id)

    return Decision(DecisionAction.DECLINE, DecisionReason.UNMATCHED, offer.offer_id)
