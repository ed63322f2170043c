from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum, IntEnum, IntFlag
from typing import List, Dict, Optional, Tuple, FrozenSet

from steampy.models import TradeOfferState

# Steam community items (cards, backgrounds, emoticons, gems)
STEAM_COMMUNITY_APP_ID = 753


@dataclass(frozen=True)
class Session:
    """Состояние веб-сессии. Заменяется целиком, никогда не правится по полям"""
    session_id: str = ""
    login_token: str = ""
    login_token_secure: str = ""
    api_key: Optional[str] = None
    valid_since: Optional[datetime] = None

    @property
    def is_authenticated(self) -> bool:
        return bool(self.login_token and self.login_token_secure)


class ConfirmationMethod(IntEnum):
    NONE = 0
    EMAIL = 1
    MOBILE_APP = 2


class ItemCategory(IntFlag):
    """Типы предметов сообщества Steam (AppID 753), комбинируются через |"""
    BOOSTER_PACK = 1
    EMOTICON = 2
    PROFILE_BACKGROUND = 4
    STEAM_GEMS = 8
    FOIL_TRADING_CARD = 16
    TRADING_CARD = 32


@dataclass(frozen=True)
class ItemRef:
    app_id: int
    class_id: str
    instance_id: str
    context_id: str = "6"
    asset_id: str = ""
    amount: int = 1

    @classmethod
    def from_json(cls, data: Dict) -> "ItemRef":
        return cls(
            app_id=int(data['appid']),
            class_id=str(data['classid']),
            instance_id=str(data.get('instanceid', '0')),
            context_id=str(data.get('contextid', '6')),
            asset_id=str(data.get('assetid', '')),
            amount=int(data.get('amount', 1)),
        )


@dataclass(frozen=True)
class ItemDescription:
    class_id: str
    instance_id: str
    type: str
    market_hash_name: str
    app_id: int = STEAM_COMMUNITY_APP_ID
    name: str = ""

    @property
    def key(self) -> Tuple[str, str]:
        return self.class_id, self.instance_id

    @classmethod
    def from_json(cls, data: Dict) -> "ItemDescription":
        return cls(
            class_id=str(data['classid']),
            instance_id=str(data.get('instanceid', '0')),
            type=data.get('type', ''),
            market_hash_name=data.get('market_hash_name', ''),
            app_id=int(data.get('appid', STEAM_COMMUNITY_APP_ID)),
            name=data.get('name', ''),
        )


@dataclass(frozen=True)
class TradeOffer:
    """Входящий трейд-оффер в том виде, в каком его вернул Steam"""
    offer_id: str
    account_id_other: int
    state: TradeOfferState
    confirmation_method: ConfirmationMethod = ConfirmationMethod.NONE
    items_to_give: Optional[List[ItemRef]] = None
    items_to_receive: Optional[List[ItemRef]] = None
    message: str = ""

    @property
    def is_donation(self) -> bool:
        return not self.items_to_give and bool(self.items_to_receive)

    @property
    def is_give_only(self) -> bool:
        return bool(self.items_to_give) and not self.items_to_receive

    @classmethod
    def from_json(cls, data: Dict) -> "TradeOffer":
        give = data.get('items_to_give')
        receive = data.get('items_to_receive')
        return cls(
            offer_id=str(data['tradeofferid']),
            account_id_other=int(data['accountid_other']),
            state=TradeOfferState(int(data['trade_offer_state'])),
            confirmation_method=ConfirmationMethod(int(data.get('confirmation_method', 0))),
            items_to_give=[ItemRef.from_json(i) for i in give] if give is not None else None,
            items_to_receive=[ItemRef.from_json(i) for i in receive] if receive is not None else None,
            message=data.get('message', ''),
        )


@dataclass
class OffersResponse:
    offers: List[TradeOffer]
    descriptions: List[ItemDescription] = field(default_factory=list)

    @property
    def catalog(self) -> Dict[Tuple[str, str], ItemDescription]:
        return {d.key: d for d in self.descriptions}


@dataclass(frozen=True)
class TradeOffersSummary:
    pending_received_count: int = 0
    new_received_count: int = 0


@dataclass(frozen=True)
class EscrowDuration:
    days_our_escrow: int = 0
    days_their_escrow: int = 0

    @property
    def is_held(self) -> bool:
        return self.days_our_escrow > 0 or self.days_their_escrow > 0


@dataclass(frozen=True)
class AccountPolicy:
    accept_donations: bool = False
    accept_escrow: bool = False
    accept_1on1_trades: bool = False
    accept_1on2_trades: bool = False
    admins: FrozenSet[str] = frozenset()


class DecisionAction(str, Enum):
    ACCEPT = "accept"
    DECLINE = "decline"
    DEFER = "defer"


class DecisionReason(str, Enum):
    EMAIL_CONFIRM_REQUIRED = "email-confirm-required"
    MOBILE_CONFIRM_REQUIRED = "mobile-confirm-required"
    DONATION = "donation"
    ADMIN_OVERRIDE = "admin-override"
    ESCROW_HELD = "escrow-held"
    UNBALANCED_GIVE = "unbalanced-give"
    MATCHED_1_1 = "matched-1-1"
    MATCHED_1_2 = "matched-1-2"
    UNMATCHED = "unmatched"
    UNRECOGNIZED_ITEMS = "unrecognized-items"
    ACCEPT_CALL_FAILED = "accept-call-failed"


@dataclass(frozen=True)
class Decision:
    action: DecisionAction
    reason: DecisionReason
    offer_id: Optional[str] = None
