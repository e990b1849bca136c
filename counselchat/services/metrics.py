"""
In-process relay counters, rendered in Prometheus text exposition format.
"""

import time
from dataclasses import dataclass, field
from typing import Dict


@dataclass
class RelayMetrics:
    """Counters for one relay process"""
    messages_relayed: int = 0
    bootstraps_recorded: int = 0
    bootstrap_failures: int = 0
    reports_relayed: int = 0
    events_announced: int = 0
    invalid_payloads: int = 0
    handler_errors: int = 0
    started_at: float = field(default_factory=time.time)

    def render(self, online: Dict[str, int]) -> str:
        lines = []

        def metric(name: str, kind: str, help_text: str, value, labels: str = "") -> None:
            lines.append(f"# HELP {name} {help_text}")
            lines.append(f"# TYPE {name} {kind}")
            lines.append(f"{name}{labels} {value}")

        lines.append("# HELP counselchat_online_connections Registered connections by role")
        lines.append("# TYPE counselchat_online_connections gauge")
        for role, count in sorted(online.items()):
            lines.append(f'counselchat_online_connections{{role="{role}"}} {count}')

        metric("counselchat_messages_relayed_total", "counter", "Chat messages relayed", self.messages_relayed)
        metric("counselchat_bootstraps_recorded_total", "counter",
               "New student-counselor pairings recorded", self.bootstraps_recorded)
        metric("counselchat_bootstrap_failures_total", "counter",
               "Relationship updates that failed to persist", self.bootstrap_failures)
        metric("counselchat_reports_relayed_total", "counter", "Student reports relayed", self.reports_relayed)
        metric("counselchat_events_announced_total", "counter", "Generic events announced", self.events_announced)
        metric("counselchat_invalid_payloads_total", "counter", "Inbound events rejected as malformed",
               self.invalid_payloads)
        metric("counselchat_handler_errors_total", "counter", "Unexpected errors in event handlers",
               self.handler_errors)
        metric("counselchat_uptime_seconds", "counter", "Service uptime in seconds",
               round(time.time() - self.started_at, 3))

        return "\n".join(lines) + "\n"
