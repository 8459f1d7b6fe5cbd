"""
Configuration module for the voice relay application.

Key components:
- constants: application-wide constants such as sample rates, MIME types,
  protocol event names and default model settings.
- settings: the RelaySettings model, populated from environment variables.
- logging_config: console and rotating file logging for the application logger.

Usage examples:
```python
from voice_relay.config.constants import LOGGER_NAME, TELEPHONY_SAMPLE_RATE
from voice_relay.config.logging_config import configure_logging
from voice_relay.config.settings import RelaySettings

logger = configure_logging()
settings = RelaySettings.from_env()
logger.info(f"Using model {settings.model}")
```
"""
