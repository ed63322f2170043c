import os
from dotenv import load_dotenv
from tradebot.models import AccountPolicy

load_dotenv()


def _env_bool(name: str, default: bool = False) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


class Config:
    STEAM_API_KEY = os.getenv("STEAM_API_KEY")
    PROXY = os.getenv("PROXY")  # "http://user:pass@ip:port"
    BOT_ID = os.getenv("BOT_ID", "main")
    BOT_NAME = os.getenv("BOT_NAME")
    STEAM_ID = os.getenv("STEAM_ID")  # SteamID64 аккаунта бота
    IDENTITY_SECRET = os.getenv("IDENTITY_SECRET")
    NONCE_PROVIDER = os.getenv("NONCE_PROVIDER")  # "package.module:factory"
    STEAM_PUBLIC_KEY_FILE = os.getenv("STEAM_PUBLIC_KEY_FILE")

    ACCEPT_DONATIONS = _env_bool("ACCEPT_DONATIONS")
    ACCEPT_ESCROW = _env_bool("ACCEPT_ESCROW")
    ACCEPT_1ON1_TRADES = _env_bool("ACCEPT_1ON1_TRADES")
    ACCEPT_1ON2_TRADES = _env_bool("ACCEPT_1ON2_TRADES")
    ADMINS = [a.strip() for a in os.getenv("ADMINS", "").split(",") if a.strip()]

    POLL_INTERVAL = float(os.getenv("POLL_INTERVAL", "2"))
    LOG_DIR = os.getenv("LOG_DIR", "logs")
    LOG_RETENTION_DAYS = int(os.getenv("LOG_RETENTION_DAYS", "30"))

    @classmethod
    def account_policy(cls) -> AccountPolicy:
        return AccountPolicy(
            accept_donations=cls.ACCEPT_DONATIONS,
            accept_escrow=cls.ACCEPT_ESCROW,
            accept_1on1_trades=cls.ACCEPT_1ON1_TRADES,
            accept_1on2_trades=cls.ACCEPT_1ON2_TRADES,
            admins=frozenset(cls.ADMINS),
        )
