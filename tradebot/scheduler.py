import asyncio
import logging
from typing import Optional

from .bot_core import TradeOfferBot
from .friends import SteamFriendsHelper
from .models import AccountPolicy

logger = logging.getLogger(__name__)

DEFAULT_POLL_INTERVAL = 2.0


class TradeOfferPoller:
    """
    Фоновая задача: проход по офферам, пауза, снова проход.

    Проходы не пересекаются - следующая пауза начинается только после
    завершения предыдущего прохода. stop() не прерывает идущие запросы,
    цикл завершится на ближайшей проверке флага остановки.
    """

    def __init__(self, bot: TradeOfferBot, friends: SteamFriendsHelper, policy: AccountPolicy,
                 interval: float = DEFAULT_POLL_INTERVAL):
        self.bot = bot
        self.friends = friends
        self.policy = policy
        self.interval = interval
        self._task: Optional[asyncio.Task] = None
        self._stop_event: Optional[asyncio.Event] = None

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> asyncio.Task:
        """Запуск цикла в текущем event loop"""
        if self.is_running:
            return self._task
        self._stop_event = asyncio.Event()
        self._task = asyncio.get_running_loop().create_task(self._run())
        return self._task

    def stop(self):
        """Остановка цикла"""
        if self._stop_event is not None:
            self._stop_event.set()

    async def wait_closed(self):
        if self._task is not None:
            await self._task

    async def _run(self):
        stop_event = self._stop_event
        logger.info(f"Запущена проверка трейд-офферов для {self.bot.bot_name}")

        while not stop_event.is_set():
            try:
                await asyncio.to_thread(self.bot.process_pending_offers, self.friends, self.policy)
            except Exception as e:
                logger.exception(f"Ошибка в цикле проверки офферов: {e}")

            if stop_event.is_set():
                break

            try:
                await asyncio.wait_for(stop_event.wait(), timeout=self.interval)
            except asyncio.TimeoutError:
                pass

        logger.info("Cancelled the TradeOfferTask.")
        self._stop_event = None
