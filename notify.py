import logging
import subprocess

from config import Config

log = logging.getLogger(__name__)

RATE_LIMIT_MARKER = "Rate limited"


def should_notify(message: str) -> bool:
    # Rate limiting is expected behaviour, not worth a page
    return RATE_LIMIT_MARKER not in message


def send_error_alert(config: Config, message: str) -> bool:
    """Send a failed-check alert through the configured command, if any."""
    if not config.alert_phone_number:
        return False
    text = f"Claude Usage Check Failed:\n{message}"
    try:
        result = subprocess.run(
            [str(config.alert_command), config.alert_phone_number, text],
            capture_output=True, text=True, timeout=30,
        )
    except (OSError, subprocess.SubprocessError) as exc:
        log.debug("Alert command failed: %s", exc)
        return False
    if result.returncode != 0:
        log.debug("Alert command exited %d: %s", result.returncode, result.stderr.strip())
        return False
    return True
