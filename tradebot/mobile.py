import logging
from steampy.confirmation import ConfirmationExecutor
from .exceptions import RemoteCallError
from .steam_client import SteamWebClient

logger = logging.getLogger(__name__)


class MobileHelper:
    """Подтверждения мобильного аутентификатора"""

    def __init__(self, web: SteamWebClient, identity_secret: str, steam_id: str):
        self.web = web
        self.identity_secret = identity_secret
        self.steam_id = str(steam_id)

    def confirm_all_trades(self) -> int:
        """
        Подтверждает ВСЕ ожидающие мобильные подтверждения, а не только конкретный оффер.
        Запросы идут через общую сессию бота: те же cookie, прокси и заголовки.
        """
        if not self.identity_secret:
            logger.warning("identity_secret не задан, мобильные подтверждения пропущены")
            return 0

        executor = ConfirmationExecutor(self.identity_secret, self.steam_id, self.web.session)

        try:
            confirmations = executor._get_confirmations()
            for confirmation in confirmations:
                executor._send_confirmation(confirmation)
        except Exception as e:
            raise RemoteCallError(f"Mobile confirmation failed: {e}")

        if confirmations:
            logger.info(f"Подтверждено мобильных подтверждений: {len(confirmations)}")
        return len(confirmations)
