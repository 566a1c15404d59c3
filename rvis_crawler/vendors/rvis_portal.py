"""Client utilities for the RVIS location search portal."""

import logging
from typing import Dict, Optional, Tuple

import requests

from rvis_crawler.etl.extract import TokenMissing

logger = logging.getLogger(__name__)

REQUEST_TIMEOUT = 30
USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/91.0.4472.124 Safari/537.36"
)
BROWSER_HEADERS = {
    "User-Agent": USER_AGENT,
    "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,image/webp,*/*;q=0.8",
    "Accept-Language": "zh-TW,zh;q=0.9,en-US;q=0.8,en;q=0.7",
    "Accept-Encoding": "gzip, deflate",
    "Connection": "keep-alive",
    "Upgrade-Insecure-Requests": "1",
    "Sec-Fetch-Dest": "document",
    "Sec-Fetch-Mode": "navigate",
    "Sec-Fetch-Site": "same-origin",
}
FORM_CONTENT_TYPE = "application/x-www-form-urlencoded"


class RvisPortalError(RuntimeError):
    """Raised when a portal request does not produce a usable page."""


class TransportFailure(RvisPortalError):
    """The request never got an HTTP response (DNS, connect, timeout...)."""


class ProtocolFailure(RvisPortalError):
    """The portal answered with a status other than 200."""

    def __init__(self, url: str, status_code: int) -> None:
        super().__init__(f"HTTP {status_code} from {url}")
        self.url = url
        self.status_code = status_code


def build_search_form(token: str, page: int, county: str = "", town: str = "", village: str = "") -> Dict[str, str]:
    """Search form fields; empty filters ask the portal for the full listing."""
    if page < 1:
        raise ValueError("page numbers start at 1")
    return {
        "_csrf": token,
        "p": str(page),
        "countySel": county,
        "townSel": town,
        "villageSel": village,
    }


class RvisSession:
    """Cookie jar plus anti-forgery token for one crawl run."""

    def __init__(
        self,
        base_url: str,
        *,
        timeout: float = REQUEST_TIMEOUT,
        http: Optional[requests.Session] = None,
    ) -> None:
        self.base_url = base_url
        self.timeout = timeout
        self.token: Optional[str] = None
        self._http = http if http is not None else requests.Session()
        self._http.headers.update(BROWSER_HEADERS)

    @property
    def cookies(self):
        return self._http.cookies

    def request(self, url: str, method: str = "GET", form: Optional[Dict[str, str]] = None) -> Tuple[str, int]:
        """Perform a request and return ``(body, status_code)``.

        Passing ``form`` turns the call into a url-encoded POST with the
        portal page as ``Referer``.
        """
        headers: Dict[str, str] = {}
        if form is not None:
            method = "POST"
            headers["Content-Type"] = FORM_CONTENT_TYPE
            headers["Referer"] = self.base_url

        try:
            response = self._http.request(
                method,
                url,
                data=form,
                headers=headers,
                timeout=self.timeout,
                allow_redirects=True,
            )
        except requests.RequestException as exc:
            logger.error("%s %s failed: %s", method, url, exc)
            raise TransportFailure(f"{method} {url} failed: {exc}") from exc

        if response.status_code != 200:
            logger.error("%s %s returned HTTP %s", method, url, response.status_code)
            raise ProtocolFailure(url, response.status_code)

        return response.text, response.status_code

    def submit_search(self, page: int, county: str = "", town: str = "", village: str = "") -> str:
        """POST the search form for ``page`` and return the result page body."""
        if not self.token:
            raise TokenMissing("session has no _csrf token; fetch the landing page first")
        form = build_search_form(self.token, page, county=county, town=town, village=village)
        body, _ = self.request(self.base_url, "POST", form)
        return body
