import json

import httpx

from release_deployer.adapters.webhooks import NullNotifier, WebhookNotifier


def make_notifier(webhooks, handler):
    client = httpx.Client(transport=httpx.MockTransport(handler))
    return WebhookNotifier(webhooks=webhooks, client=client)


def test_posts_discord_payload_to_each_endpoint():
    requests: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        return httpx.Response(204)

    notifier = make_notifier(
        {"on_start": ["https://hooks.example/a", "https://hooks.example/b"]}, handler
    )

    delivered = notifier.notify("on_start", "**Deployment started!**\nDeploying to: `prod-1`")

    assert delivered == 2
    assert [str(request.url) for request in requests] == [
        "https://hooks.example/a",
        "https://hooks.example/b",
    ]
    assert json.loads(requests[0].content) == {
        "content": "**Deployment started!**\nDeploying to: `prod-1`"
    }
    assert requests[0].headers["content-type"] == "application/json"


def test_unconfigured_event_sends_nothing():
    requests: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        return httpx.Response(204)

    notifier = make_notifier({"on_error": ["https://hooks.example/a"]}, handler)

    assert notifier.notify("on_success", "done") == 0
    assert requests == []


def test_delivery_failures_are_swallowed():
    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.host == "down.example":
            raise httpx.ConnectError("connection refused", request=request)
        if request.url.host == "broken.example":
            return httpx.Response(500)
        return httpx.Response(200)

    notifier = make_notifier(
        {
            "on_error": [
                "https://down.example/hook",
                "https://broken.example/hook",
                "https://ok.example/hook",
            ]
        },
        handler,
    )

    assert notifier.notify("on_error", "failed") == 1


def test_null_notifier_is_silent():
    assert NullNotifier().notify("on_start", "hello") == 0


class RecordingLogger:
    def __init__(self) -> None:
        self.warnings: list[str] = []

    def info(self, msg, *args, **kwargs) -> None:
        pass

    def debug(self, msg, *args, **kwargs) -> None:
        pass

    def error(self, msg, *args, **kwargs) -> None:
        pass

    def warning(self, msg, *args, **kwargs) -> None:
        self.warnings.append(msg % args)


def test_delivery_failures_go_to_the_given_logger():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    notifier = make_notifier({"on_error": ["https://down.example/hook"]}, handler)
    run_logger = RecordingLogger()

    assert notifier.notify("on_error", "failed", logger=run_logger) == 0
    assert run_logger.warnings == [
        "Webhook delivery to https://down.example/hook failed: connection refused"
    ]
