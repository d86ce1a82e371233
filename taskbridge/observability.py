"""Process-wide logging and Logfire setup."""

import logging

from taskbridge.settings import Settings

logger = logging.getLogger(__name__)

_logfire_configured: bool = False


def configure_logging(settings: Settings) -> None:
    """Apply the configured log level to the root logger."""
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
    )
    _configure_logfire(settings)


def _configure_logfire(settings: Settings) -> None:
    """Configure Logfire if token is present (one-time)."""
    global _logfire_configured
    if _logfire_configured:
        return

    if settings.logfire_token:
        try:
            import logfire

            logfire.configure(
                token=settings.logfire_token,
                send_to_logfire="if-token-present",
                service_name=settings.logfire_service_name,
                environment=settings.logfire_environment,
                console=logfire.ConsoleOptions(show_project_link=False),
            )

            # Outbound LINE and extraction-service calls
            logfire.instrument_httpx(capture_all=True)

            logger.info(f"logfire_enabled: service={settings.logfire_service_name}")
        except Exception as e:
            logger.warning(f"logfire_initialization_failed: {str(e)}")
    else:
        logger.info("logfire_disabled: token not provided")

    _logfire_configured = True
