from typing import Iterable
from steampy.utils import account_id_to_steam_id


class SteamFriendsHelper:
    def get_steam_id(self, account_id: int) -> str:
        """AccountID (32 бита) -> SteamID64"""
        return str(account_id_to_steam_id(str(account_id)))

    def is_bot_admin(self, steam_id: str, admins: Iterable[str]) -> bool:
        return str(steam_id) in {str(admin) for admin in admins}
