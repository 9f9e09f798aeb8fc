"""
Risk Prediction Engine - Alerting.

============================================================
PURPOSE
============================================================
Caller-side dispatch of high-risk predictions.

The engine never notifies anyone itself. An application that
wants to warn a user hands each PredictionResult to
RiskAlertingService, which decides, formats, rate limits and
sends.

Provides:
- Alert formatting with the prediction's reasons
- Webhook delivery via httpx
- Per-user rate limiting to prevent alert fatigue

============================================================
ALERT POLICY
============================================================
- Alert when risk_score >= notify_threshold (70)
- CRITICAL predictions (>= critical_threshold) bypass rate limiting
- A failed sender never raises into the caller

============================================================
"""

import logging
from datetime import datetime, timedelta
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Protocol, Tuple

import httpx

from core.clock import ClockProtocol, SystemClock, to_iso8601

from .config import AlertingConfig
from .engine import format_reason
from .recommendations import get_recommended_interventions
from .types import PredictionResult, RiskLevel


logger = logging.getLogger(__name__)


# ============================================================
# ALERT MESSAGE DATACLASS
# ============================================================


@dataclass(frozen=True)
class RiskAlert:
    """
    Structured alert for a high-risk prediction.

    ============================================================
    FIELDS
    ============================================================
    - user_id: Who the prediction is about
    - severity: HIGH or CRITICAL
    - title: Short title
    - message: Compact reason text
    - risk_score / confidence / risk_level: From the prediction
    - interventions: Suggested intervention types
    - context: Factor map and data points

    ============================================================
    """

    user_id: str
    severity: str
    title: str
    message: str
    timestamp: datetime
    risk_level: RiskLevel
    risk_score: int
    confidence: int
    interventions: Tuple[str, ...] = ()
    context: Dict[str, Any] = field(default_factory=dict)

    @property
    def is_critical(self) -> bool:
        return self.severity == "CRITICAL"

    def to_text(self) -> str:
        """Plain-text rendering for chat or log destinations."""
        lines = [
            f"{self.title}",
            f"Risk: {self.risk_score}/100 (confidence {self.confidence}%)",
            f"Why: {self.message}",
        ]
        if self.interventions:
            lines.append(f"Try: {', '.join(self.interventions)}")
        return "\n".join(lines)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "user_id": self.user_id,
            "severity": self.severity,
            "title": self.title,
            "message": self.message,
            "timestamp": to_iso8601(self.timestamp),
            "risk_level": self.risk_level.value,
            "risk_score": self.risk_score,
            "confidence": self.confidence,
            "interventions": list(self.interventions),
            "context": dict(self.context),
        }


# ============================================================
# ALERT SENDER PROTOCOL
# ============================================================


class AlertSender(Protocol):
    """
    Protocol for alert sending implementations.

    Allows for different alert destinations:
    - Webhook (push service, chat bot relay)
    - Log output
    """

    async def send(self, alert: RiskAlert) -> bool:
        """
        Send an alert.

        Returns:
            True if sent successfully
        """
        ...


# ============================================================
# WEBHOOK ALERT SENDER
# ============================================================


class WebhookAlertSender:
    """
    POST alerts as JSON to an HTTP endpoint.

    Any 2xx response counts as delivered. `transport` is passed
    through to httpx (tests use httpx.MockTransport).
    """

    def __init__(
        self,
        url: str,
        timeout_seconds: float = 10.0,
        headers: Optional[Dict[str, str]] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self._url = url
        self._timeout = timeout_seconds
        self._headers = dict(headers or {})
        self._transport = transport

    async def send(self, alert: RiskAlert) -> bool:
        try:
            async with httpx.AsyncClient(timeout=self._timeout, transport=self._transport) as client:
                response = await client.post(self._url, json=alert.to_dict(), headers=self._headers)
        except httpx.HTTPError as e:
            logger.warning(f"Webhook alert for user {alert.user_id} failed: {e}")
            return False

        if not response.is_success:
            logger.warning(
                f"Webhook alert for user {alert.user_id} rejected with status {response.status_code}"
            )
            return False
        return True


# ============================================================
# CONSOLE ALERT SENDER (FOR DEVELOPMENT)
# ============================================================


class ConsoleAlertSender:
    """Write alerts to the log (for development/testing)."""

    async def send(self, alert: RiskAlert) -> bool:
        logger.warning(f"RISK ALERT [{alert.severity}] user={alert.user_id}\n{alert.to_text()}")
        return True


# ============================================================
# RATE LIMITER
# ============================================================


class AlertRateLimiter:
    """
    Rate limits alerts per user.

    ============================================================
    LOGIC
    ============================================================
    - Track last alert time per user
    - Enforce minimum interval between alerts
    - Always allow CRITICAL alerts
    - Forget users whose interval has lapsed

    ============================================================
    """

    def __init__(self, min_interval_seconds: float = 1800.0):
        self._min_interval = timedelta(seconds=min_interval_seconds)
        self._last_alerts: Dict[str, datetime] = {}

    def should_send(self, user_id: str, severity: str, now: datetime) -> bool:
        if severity == "CRITICAL":
            return True

        last_alert = self._last_alerts.get(user_id)
        if last_alert is None:
            return True

        return (now - last_alert) >= self._min_interval

    def record_sent(self, user_id: str, now: datetime) -> None:
        # Entries past the interval no longer block anything
        self._last_alerts = {
            uid: sent_at
            for uid, sent_at in self._last_alerts.items()
            if now - sent_at < self._min_interval
        }
        self._last_alerts[user_id] = now

    @property
    def tracked_users(self) -> int:
        return len(self._last_alerts)

    def reset(self, user_id: Optional[str] = None) -> None:
        """Clear rate limit state for one user, or everyone."""
        if user_id is None:
            self._last_alerts.clear()
        else:
            self._last_alerts.pop(user_id, None)


# ============================================================
# RISK ALERTING SERVICE
# ============================================================


class RiskAlertingService:
    """
    Decides, builds and dispatches alerts for predictions.

    ============================================================
    RESPONSIBILITIES
    ============================================================
    1. Determine if a prediction warrants an alert
    2. Build the alert message
    3. Rate limit per user
    4. Send via configured senders

    ============================================================
    """

    def __init__(
        self,
        config: Optional[AlertingConfig] = None,
        senders: Optional[List[AlertSender]] = None,
        clock: Optional[ClockProtocol] = None,
    ):
        self._config = config or AlertingConfig()
        self._senders: List[AlertSender] = list(senders or [])
        self._clock = clock or SystemClock()
        self._rate_limiter = AlertRateLimiter(
            min_interval_seconds=self._config.min_seconds_between_alerts
        )

    @property
    def senders(self) -> List[AlertSender]:
        return list(self._senders)

    def add_sender(self, sender: AlertSender) -> None:
        self._senders.append(sender)

    def should_alert(self, result: PredictionResult) -> bool:
        return result.risk_score >= self._config.notify_threshold

    def severity_for(self, result: PredictionResult) -> str:
        if result.risk_score >= self._config.critical_threshold:
            return "CRITICAL"
        return "HIGH"

    def build_alert(self, user_id: str, result: PredictionResult) -> RiskAlert:
        """
        Build an alert from a prediction.

        Args:
            user_id: User the prediction belongs to
            result: The prediction to report

        Returns:
            RiskAlert ready to send
        """
        severity = self.severity_for(result)

        return RiskAlert(
            user_id=user_id,
            severity=severity,
            title=f"Risk {severity}: {result.risk_score}/100",
            message=format_reason(result.reason),
            timestamp=self._clock.now(),
            risk_level=result.risk_level,
            risk_score=result.risk_score,
            confidence=result.confidence,
            interventions=tuple(get_recommended_interventions(result.risk_score)),
            context={
                "factors": dict(result.factors),
                "data_points": result.data_points,
                "prediction_id": str(result.prediction_id),
            },
        )

    async def process(self, user_id: str, result: PredictionResult) -> Optional[RiskAlert]:
        """
        Send an alert for a prediction if warranted.

        Returns:
            RiskAlert if at least one sender delivered it, None otherwise
        """
        if not self.should_alert(result):
            return None

        alert = self.build_alert(user_id, result)
        now = alert.timestamp

        if not self._rate_limiter.should_send(user_id, alert.severity, now):
            logger.debug(f"Alert for user {user_id} suppressed by rate limit")
            return None

        sent = False
        for sender in self._senders:
            try:
                if await sender.send(alert):
                    sent = True
            except Exception as e:
                logger.warning(f"Alert sender {type(sender).__name__} raised: {e}")

        if not sent:
            return None

        self._rate_limiter.record_sent(user_id, now)
        logger.info(f"Sent {alert.severity} alert to user {user_id} (risk {result.risk_score})")
        return alert


# ============================================================
# FACTORY FUNCTIONS
# ============================================================


def create_webhook_alerting_service(
    url: Optional[str] = None,
    config: Optional[AlertingConfig] = None,
    clock: Optional[ClockProtocol] = None,
) -> RiskAlertingService:
    """
    Create an alerting service that posts to a webhook.

    The URL defaults to config.webhook_url.
    """
    config = config or AlertingConfig()
    target = url or config.webhook_url
    if not target:
        raise ValueError("A webhook URL is required (argument or AlertingConfig.webhook_url)")

    return RiskAlertingService(
        config=config,
        senders=[WebhookAlertSender(target, timeout_seconds=config.webhook_timeout_seconds)],
        clock=clock,
    )


def create_console_alerting_service(
    config: Optional[AlertingConfig] = None,
    clock: Optional[ClockProtocol] = None,
) -> RiskAlertingService:
    """Create an alerting service that writes to the log."""
    return RiskAlertingService(config=config, senders=[ConsoleAlertSender()], clock=clock)
