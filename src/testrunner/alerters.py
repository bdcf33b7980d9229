"""
Alerters for run reports.

An alerter is called as ``alerter(level, report)`` once a run finished.
``level`` works like a log level: at ``info`` every report is sent, at
``error`` only reports of runs that did not pass.

HTTP delivery uses urllib; no client library is needed.
"""

from __future__ import annotations

import asyncio
import json
import logging
import os
import time
import urllib.error
import urllib.request
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional

import yaml

from testrunner.errors import ActionError, ConfigError
from testrunner.report import Report

logger = logging.getLogger(__name__)

ENV_URL = "TESTRUNNER_WEBHOOK_URL"
ENV_TOKEN = "TESTRUNNER_WEBHOOK_TOKEN"
ENV_USER = "TESTRUNNER_WEBHOOK_USER"
ENV_CHANNEL = "TESTRUNNER_WEBHOOK_CHANNEL"


class AlertLevel(Enum):
    """How eager an alerter is to report."""

    INFO = "info"
    ERROR = "error"


@dataclass
class DeliveryResult:
    """Result of attempting to deliver a report."""

    alerter: str
    success: bool
    status_code: int = 0
    error: str = ""
    timestamp: float = field(default_factory=time.time)


def parse_level(level: str | AlertLevel) -> AlertLevel:
    if isinstance(level, AlertLevel):
        return level
    try:
        return AlertLevel(level)
    except ValueError as exc:
        raise ConfigError(f"Unknown alert level: {level}") from exc


def should_alert(level: str | AlertLevel, report: Report) -> bool:
    """``info`` always alerts; ``error`` alerts only when the run did not pass."""
    if parse_level(level) is AlertLevel.INFO:
        return True
    return not report.all_passed


def _assertion_fields(error: BaseException) -> Optional[Dict[str, Any]]:
    """Error fields without the exception type when an assertion failed."""
    if isinstance(error, AssertionError):
        return {"message": str(error)}
    if isinstance(error, ActionError) and isinstance(error.__cause__, AssertionError):
        return {
            "action": error.action,
            "actor": error.actor,
            "hook": error.hook,
            "message": str(error.__cause__),
        }
    return None


def format_report(report: Report) -> str:
    """Render a report as a fenced YAML block for chat transports.

    Failed assertions are reported by message only, whether they come from
    setup or from an action hook.
    """
    data = report.to_dict()
    if report.error is not None:
        fields = _assertion_fields(report.error)
        if fields is not None:
            data["error"] = fields
    return "```\n" + yaml.safe_dump(data, sort_keys=False) + "```"


# ---------------------------------------------------------------------------
# Alerters
# ---------------------------------------------------------------------------


class LogAlerter:
    """Writes the formatted report to the ``testrunner.alerters`` logger."""

    name = "log"

    async def __call__(self, level: str, report: Report) -> Optional[DeliveryResult]:
        if not should_alert(level, report):
            logger.info("Run succeeded; sending no alert.")
            return None
        log = logger.error if not report.all_passed else logger.info
        log("run report:\n%s", format_report(report))
        return DeliveryResult(alerter=self.name, success=True)


class WebhookAlerter:
    """
    Posts the formatted report to a chat webhook.

    Usage:
        alerter = WebhookAlerter(url="https://chat.example.com/api/v1/chat.postMessage",
                                 token="...", user_id="...", channel="#qa")
        await alerter("error", report)

    Delivery failures are logged and returned, never raised. Missing
    credentials raise ``ConfigError``, but only once a report is due to be
    posted.
    """

    name = "webhook"

    def __init__(
        self,
        url: str,
        token: str = "",
        user_id: str = "",
        channel: str = "",
        timeout: float = 10.0,
    ) -> None:
        self.url = url
        self.token = token
        self.user_id = user_id
        self.channel = channel
        self.timeout = timeout
        self.history: list[DeliveryResult] = []

    @classmethod
    def from_env(cls) -> WebhookAlerter:
        return cls(
            url=os.environ.get(ENV_URL, ""),
            token=os.environ.get(ENV_TOKEN, ""),
            user_id=os.environ.get(ENV_USER, ""),
            channel=os.environ.get(ENV_CHANNEL, ""),
        )

    def check_credentials(self) -> None:
        if not self.url or not self.token or not self.user_id:
            raise ConfigError(f"Missing from environment: {ENV_URL}, {ENV_TOKEN}, {ENV_USER}")

    def payload(self, report: Report) -> Dict[str, Any]:
        body: Dict[str, Any] = {"text": format_report(report), "emoji": ":robot:"}
        if self.channel:
            body["channel"] = self.channel
        return body

    async def __call__(self, level: str, report: Report) -> Optional[DeliveryResult]:
        if not should_alert(level, report):
            logger.info("Run succeeded; sending no alert.")
            return None
        self.check_credentials()
        logger.info("Posting report to %s", self.channel or self.url)
        result = await asyncio.to_thread(self._http_post, self.payload(report))
        if not result.success:
            logger.warning("Posting failed with %s: %s", result.status_code, result.error)
        self.history.append(result)
        return result

    def _http_post(self, payload: Dict[str, Any]) -> DeliveryResult:
        """Send HTTP POST. Isolated for testability."""
        headers = {"Content-Type": "application/json"}
        if self.token:
            headers["X-Auth-Token"] = self.token
        if self.user_id:
            headers["X-User-Id"] = self.user_id
        try:
            req = urllib.request.Request(
                self.url,
                data=json.dumps(payload).encode("utf-8"),
                headers=headers,
                method="POST",
            )
            with urllib.request.urlopen(req, timeout=self.timeout) as resp:
                return DeliveryResult(alerter=self.name, success=True, status_code=resp.status)
        except urllib.error.HTTPError as e:
            return DeliveryResult(alerter=self.name, success=False, status_code=e.code, error=str(e))
        except Exception as e:
            return DeliveryResult(alerter=self.name, success=False, error=str(e))


BUILTIN_ALERTERS = {
    LogAlerter.name: LogAlerter,
    WebhookAlerter.name: WebhookAlerter.from_env,
}
