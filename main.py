import asyncio
import importlib
import schedule
import time
import threading
from pathlib import Path
from tradebot.bot_core import TradeOfferBot
from tradebot.crypto import load_public_key
from tradebot.exceptions import AuthenticationError, RemoteCallError
from tradebot.friends import SteamFriendsHelper
from tradebot.mobile import MobileHelper
from tradebot.scheduler import TradeOfferPoller
from tradebot.steam_client import SteamWebClient
from tradebot.steam_web import SteamWeb
from tradebot.trade_offer_api import TradeOfferWebAPI
from utils.logger import setup_logger, cleanup_old_logs
from config import Config


def load_nonce_provider(path: str):
    """Создает транспорт по строке вида "package.module:factory" """
    if not path or ":" not in path:
        raise ValueError("NONCE_PROVIDER must look like 'package.module:factory'")
    module_name, factory_name = path.split(":", 1)
    factory = getattr(importlib.import_module(module_name), factory_name)
    return factory()


class BotOrchestrator:
    """Оркестратор: собирает бота из конфигурации и запускает проверку офферов"""

    def __init__(self, nonce_provider, config=Config):
        self.config = config
        self.logger = setup_logger("BotOrchestrator", config.LOG_DIR)
        # Логи модулей бота пишем в logs/tradebot/
        setup_logger("tradebot", config.LOG_DIR)
        self.is_running = True

        self.web = SteamWebClient(proxy=config.PROXY)
        self.steam_web = SteamWeb(
            self.web,
            nonce_provider,
            config.STEAM_ID,
            api_key=config.STEAM_API_KEY,
            public_key=load_public_key(config.STEAM_PUBLIC_KEY_FILE),
        )
        self.bot = TradeOfferBot(
            bot_id=config.BOT_ID,
            api=TradeOfferWebAPI(self.web, self.steam_web),
            steam_web=self.steam_web,
            mobile=MobileHelper(self.web, config.IDENTITY_SECRET, config.STEAM_ID),
            bot_name=config.BOT_NAME,
            journal_dir=Path(config.LOG_DIR),
        )
        self.poller = TradeOfferPoller(
            self.bot,
            SteamFriendsHelper(),
            config.account_policy(),
            interval=config.POLL_INTERVAL,
        )

        # Настройка планировщика для автоматических задач
        self._setup_scheduler()

    async def run(self):
        """Авторизация и запуск цикла проверки офферов"""
        self.logger.info(f"Запуск бота {self.bot.bot_name}")

        # Ошибка входа не останавливает бота: сессию и API-ключ добьет первый проход
        try:
            if not await asyncio.to_thread(self.steam_web.ensure_authenticated):
                self.logger.warning("Веб-сессия не авторизована, повторим на первом проходе")
            elif not self.steam_web.session.api_key:
                await asyncio.to_thread(self.steam_web.fetch_api_key)
        except (AuthenticationError, RemoteCallError) as e:
            self.logger.error(f"Ошибка авторизации при запуске: {e}")

        # Запуск планировщика в отдельном потоке
        scheduler_thread = threading.Thread(target=self._run_scheduler, daemon=True)
        scheduler_thread.start()

        self.poller.start()
        await self.poller.wait_closed()

    def _setup_scheduler(self):
        """Настройка планировщика для автоматических задач"""
        # Проверка здоровья бота каждые 15 минут
        schedule.every(15).minutes.do(self._health_check_job)

        # Очистка старых логов каждую неделю
        schedule.every().week.do(self._cleanup_old_logs)

    def _run_scheduler(self):
        """Запуск планировщика в отдельном потоке"""
        while self.is_running:
            schedule.run_pending()
            time.sleep(60)  # Проверка каждую минуту

    def _health_check_job(self):
        """Проверка здоровья бота"""
        if not self.poller.is_running:
            self.logger.warning(f"Цикл проверки офферов бота {self.bot.bot_id} не запущен")
        if self.bot.error_count >= 5:
            self.logger.warning(f"Бот {self.bot.bot_id} имеет {self.bot.error_count} ошибок")

    def _cleanup_old_logs(self):
        """Очистка старых лог-файлов"""
        try:
            removed = cleanup_old_logs(self.config.LOG_DIR, self.config.LOG_RETENTION_DAYS)
            self.logger.info(f"Удалено старых логов: {removed}")
        except OSError as e:
            self.logger.error(f"Ошибка очистки логов: {e}")

    def stop(self):
        """Остановка оркестратора"""
        self.is_running = False
        self.poller.stop()
        schedule.clear()
        self.logger.info("Оркестратор остановлен")


async def main():
    """Главная функция запуска"""
    print("=== Steam trade offer bot ===")
    print("Инициализация...")

    orchestrator = BotOrchestrator(load_nonce_provider(Config.NONCE_PROVIDER))

    try:
        await orchestrator.run()
    finally:
        orchestrator.stop()


if __name__ == "__main__":
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        print("\nБот остановлен")
