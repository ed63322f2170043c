import base64
import logging
import re
from dataclasses import replace
from datetime import datetime
from typing import Optional, Union
from urllib.parse import quote_plus

from cryptography.hazmat.primitives.asymmetric.rsa import RSAPublicKey
from steampy.models import SteamUrl

from . import crypto
from .exceptions import AuthenticationError, RemoteCallError
from .models import Session
from .steam_client import SteamWebClient

logger = logging.getLogger(__name__)

COMMUNITY_HOST = "steamcommunity.com"
STORE_HOST = "store.steampowered.com"
SIGN_IN_MARKER = "Sign In"
AUTHENTICATE_USER_URL = SteamUrl.API_URL + "/ISteamUserAuth/AuthenticateUser/v1/"

_API_KEY_RE = re.compile(r"Key:\s*([0-9A-Fa-f]{32})")


class SteamWeb:
    """
    Авторизация веб-сессии Steam по одноразовому nonce.

    nonce_provider - объект транспорта (CM-соединение) с методом
    request_web_api_user_nonce() -> str | bytes.
    """

    def __init__(self, web: SteamWebClient, nonce_provider, steam_id: Union[int, str],
                 api_key: str = None, public_key: RSAPublicKey = None):
        self.web = web
        self.nonce_provider = nonce_provider
        self.steam_id = str(steam_id)
        self.public_key = public_key or crypto.load_public_key()
        self.session = Session(api_key=api_key)

    def is_session_valid(self) -> bool:
        """Если на странице профиля есть "Sign In", мы не авторизованы"""
        response = self.web.get_text(f"https://{COMMUNITY_HOST}/my/")
        return SIGN_IN_MARKER not in response

    def ensure_authenticated(self) -> bool:
        """Проверяет сессию и при необходимости заново авторизуется с новым nonce"""
        try:
            if self.is_session_valid():
                return True
        except RemoteCallError as e:
            logger.warning(f"Не удалось проверить сессию: {e}")
            return False

        logger.info("Reauthenticating...")
        return self.reauthenticate()

    def reauthenticate(self, nonce: Union[str, bytes] = None) -> bool:
        """
        Рукопожатие ISteamUserAuth/AuthenticateUser.
        Session и cookie меняются только после успешного ответа, при ошибке остаются прежними.
        """
        if nonce is None:
            try:
                nonce = self.nonce_provider.request_web_api_user_nonce()
            except Exception as e:
                logger.error(f"Не удалось получить nonce: {e}")
                return False
        if not nonce:
            logger.error("Usernonce is empty")
            return False

        session_key = crypto.generate_session_key()
        encrypted_session_key = crypto.rsa_encrypt(session_key, self.public_key)

        raw_nonce = nonce if isinstance(nonce, bytes) else nonce.encode('ascii')
        login_key = bytearray(len(raw_nonce))
        login_key[:] = raw_nonce
        encrypted_login_key = crypto.symmetric_encrypt(bytes(login_key), session_key)

        body = "&".join([
            f"steamid={self.steam_id}",
            f"sessionkey={_url_encode(encrypted_session_key)}",
            f"encrypted_loginkey={_url_encode(encrypted_login_key)}",
        ])

        try:
            response = self.web.post_form(
                AUTHENTICATE_USER_URL + "?format=json",
                data=body,
                headers={"Content-Type": "application/x-www-form-urlencoded"},
            )
            auth_result = response.json().get('authenticateuser')
        except RemoteCallError as e:
            if e.status_code == 403:
                logger.warning("AuthenticateUser rejected the nonce (403)")
                return False
            logger.error(f"AuthenticateUser failed: {e}")
            raise AuthenticationError(str(e)) from e
        except ValueError as e:
            logger.error(f"AuthenticateUser returned invalid JSON: {e}")
            raise AuthenticationError(str(e)) from e

        if not auth_result or not auth_result.get('token') or not auth_result.get('tokensecure'):
            logger.warning("AuthenticateUser returned no tokens")
            return False

        session_id = base64.b64encode(self.steam_id.encode('utf-8')).decode('ascii')
        new_session = replace(
            self.session,
            session_id=session_id,
            login_token=auth_result['token'],
            login_token_secure=auth_result['tokensecure'],
            valid_since=datetime.now(),
        )

        cookies = {}
        for host in (STORE_HOST, COMMUNITY_HOST):
            cookies[('sessionid', host)] = new_session.session_id
            cookies[('steamLogin', host)] = new_session.login_token
            cookies[('steamLoginSecure', host)] = new_session.login_token_secure

        self.web.replace_cookies(cookies)
        self.session = new_session
        return True

    def fetch_api_key(self) -> Optional[str]:
        """Берет API-ключ со страницы /dev/apikey, при отсутствии регистрирует новый"""
        url = f"https://{COMMUNITY_HOST}/dev/apikey?l=english"
        api_key = self._parse_api_key(self.web.get_text(url))

        if api_key is None:
            logger.info("API-ключ не найден, регистрируем новый")
            self.web.post_form(f"https://{COMMUNITY_HOST}/dev/registerkey", data={
                'domain': 'localhost',
                'agreeToTerms': 'agreed',
                'sessionid': self.session.session_id,
                'Submit': 'Register',
            })
            api_key = self._parse_api_key(self.web.get_text(url))

        if api_key is None:
            logger.error("Не удалось получить API-ключ")
            return None

        self.session = replace(self.session, api_key=api_key)
        return api_key

    @staticmethod
    def _parse_api_key(html: str) -> Optional[str]:
        match = _API_KEY_RE.search(html)
        return match.group(1) if match else None


def _url_encode(data: bytes) -> str:
    # пробел -> '+', символы !*() не кодируются
    return quote_plus(data, safe="!*()")
