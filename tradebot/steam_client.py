import requests
from requests.cookies import RequestsCookieJar
from typing import Dict, Optional, Tuple
from .exceptions import RemoteCallError, ProxyError


class SteamWebClient:
    """Общая HTTP-сессия бота: прокси, таймауты и cookie-jar для всех запросов к Steam"""

    def __init__(self, proxy: str = None, timeout: int = 15, session: requests.Session = None):
        self.session = session or requests.Session()
        self.proxy = proxy
        self.timeout = timeout
        self._setup_session()

    def _setup_session(self):
        if self.proxy:
            proxies = {"http": self.proxy, "https": self.proxy}
            self.session.proxies.update(proxies)
            try:
                # Проверка работоспособности прокси
                test = requests.get("https://api.steampowered.com", proxies=proxies, timeout=10)
            except Exception as e:
                raise ProxyError(f"Proxy error: {e}")
            if test.status_code != 200:
                raise ProxyError("Proxy test failed")

    @property
    def cookies(self) -> RequestsCookieJar:
        return self.session.cookies

    def replace_cookies(self, cookies: Dict[Tuple[str, str], str]):
        """Заменяет cookie-jar целиком: новый jar собирается отдельно и подставляется одним присваиванием"""
        jar = RequestsCookieJar()
        for (name, domain), value in cookies.items():
            jar.set(name, value, domain=domain, path='/')
        self.session.cookies = jar

    def get_text(self, url: str, params: Dict = None) -> str:
        return self._request("GET", url, params=params).text

    def get_json(self, url: str, params: Dict = None) -> Dict:
        response = self._request("GET", url, params=params)
        try:
            return response.json()
        except ValueError as e:
            raise RemoteCallError(f"Invalid JSON from {url}: {e}")

    def post_form(self, url: str, data, headers: Optional[Dict] = None) -> requests.Response:
        return self._request("POST", url, data=data, headers=headers)

    def _request(self, method: str, url: str, **kwargs) -> requests.Response:
        try:
            response = self.session.request(method, url, timeout=self.timeout, **kwargs)
        except requests.RequestException as e:
            raise RemoteCallError(f"{method} {url} failed: {e}")
        if response.status_code >= 400:
            raise RemoteCallError(f"{method} {url} returned HTTP {response.status_code}", response.status_code)
        return response
