"""
Классификация предметов сообщества Steam (AppID 753) по полю type описания.

Проверки идут в фиксированном порядке, первая совпавшая побеждает.
С маской wanted проверяются только категории из маски: "Foil Emoticon" при маске
FOIL_TRADING_CARD считается фольгой, а при маске EMOTICON - смайликом.
Фольга проверяется раньше обычной карточки: "Foil Trading Card" содержит и "trading card".
"""
import logging
from typing import Dict, List, Optional, Sequence, Tuple

from .exceptions import ClassificationError
from .models import ItemCategory, ItemDescription, ItemRef, STEAM_COMMUNITY_APP_ID

logger = logging.getLogger(__name__)

Catalog = Dict[Tuple[str, str], ItemDescription]


def _is_booster_pack(label: str) -> bool:
    return "booster pack" in label

def _is_emoticon(label: str) -> bool:
    return "emoticon" in label

def _is_profile_background(label: str) -> bool:
    return "profile background" in label

def _is_steam_gems(label: str) -> bool:
    return label == "steam gems"

def _is_foil_card(label: str) -> bool:
    return "foil" in label

def _is_trading_card(label: str) -> bool:
    return "trading card" in label and "foil" not in label


CATEGORY_RULES = (
    (ItemCategory.BOOSTER_PACK, _is_booster_pack),
    (ItemCategory.EMOTICON, _is_emoticon),
    (ItemCategory.PROFILE_BACKGROUND, _is_profile_background),
    (ItemCategory.STEAM_GEMS, _is_steam_gems),
    (ItemCategory.FOIL_TRADING_CARD, _is_foil_card),
    (ItemCategory.TRADING_CARD, _is_trading_card),
)


def category_of(description: ItemDescription,
                wanted: ItemCategory = ItemCategory(0)) -> Optional[ItemCategory]:
    """Первая категория из маски wanted, чье правило подходит к type. Пустая маска - любые категории"""
    label = description.type.strip().lower()
    for category, rule in CATEGORY_RULES:
        if wanted and not (wanted & category):
            continue
        if rule(label):
            return category
    return None


def lookup_description(item: ItemRef, catalog: Catalog) -> ItemDescription:
    try:
        return catalog[(item.class_id, item.instance_id)]
    except KeyError:
        raise ClassificationError(
            f"No description for classid={item.class_id} instanceid={item.instance_id}"
        )


def classify(item: ItemRef, catalog: Catalog,
             wanted: ItemCategory = ItemCategory(0)) -> Optional[ItemCategory]:
    """
    Категория предмета из AppID 753. Проверяется каждая категория маски wanted,
    а не только первая подошедшая по общему порядку. Пустая маска означает "любая категория".
    """
    if item.app_id != STEAM_COMMUNITY_APP_ID:
        return None

    return category_of(lookup_description(item, catalog), wanted)


def get_app_id(description: ItemDescription) -> int:
    """AppID игры - число до первого '-' в market_hash_name ("440-Scout" -> 440)"""
    prefix = description.market_hash_name.split('-')[0]
    try:
        return int(prefix)
    except ValueError:
        raise ClassificationError(
            f"Cannot derive app id from market_hash_name {description.market_hash_name!r}"
        )


def filter_by_category(items: Optional[Sequence[ItemRef]], catalog: Catalog,
                       wanted: ItemCategory) -> List[ItemDescription]:
    filtered = []
    for item in items or []:
        if classify(item, catalog, wanted) is None:
            continue

        description = lookup_description(item, catalog)
        try:
            get_app_id(description)
        except ClassificationError as e:
            # Предмет с битым market_hash_name не участвует в сравнении
            logger.error(str(e))
            continue

        filtered.append(description)
    return filtered
