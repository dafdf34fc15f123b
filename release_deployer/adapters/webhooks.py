"""Discord-style webhook notifier."""

from __future__ import annotations

import logging
from typing import Mapping, Optional, Sequence

import httpx

from release_deployer.application.ports import Logger, Notifier
from release_deployer.models import NotificationEvent

_module_logger = logging.getLogger(__name__)


class WebhookNotifier(Notifier):
    """Posts ``{"content": message}`` to every endpoint configured for an event.

    Delivery is best-effort: transport errors and non-2xx responses are logged
    and swallowed so that notifications never alter the outcome of a run.
    """

    def __init__(
        self,
        *,
        webhooks: Mapping[str, Sequence[str]],
        timeout: float = 10.0,
        client: Optional[httpx.Client] = None,
    ):
        self._webhooks = {event: tuple(urls) for event, urls in webhooks.items()}
        self._client = client or httpx.Client(timeout=timeout)

    def close(self) -> None:
        self._client.close()

    def notify(
        self, event: NotificationEvent, message: str, *, logger: Optional[Logger] = None
    ) -> int:
        log: Logger = logger or _module_logger
        urls = self._webhooks.get(event, ())
        if not urls:
            log.info("No webhook configured for %s. Skipping notification.", event)
            return 0
        delivered = 0
        for url in urls:
            if self._post(url, message, log):
                delivered += 1
        return delivered

    def _post(self, url: str, message: str, log: Logger) -> bool:
        try:
            response = self._client.post(url, json={"content": message})
            response.raise_for_status()
        except (httpx.HTTPError, httpx.InvalidURL) as exc:
            log.warning("Webhook delivery to %s failed: %s", url, exc)
            return False
        return True


class NullNotifier(Notifier):
    """Notifier used when no webhooks are configured at all."""

    def notify(
        self, event: NotificationEvent, message: str, *, logger: Optional[Logger] = None
    ) -> int:
        _module_logger.debug("Notifications disabled; dropping %s", event)
        return 0
