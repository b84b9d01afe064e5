"""
Configuration module for the bridge.

Key components:
- constants: Audio format parameters, protocol event names and defaults.
- settings: The immutable BridgeSettings value read once from the environment.
- logging_config: Console and rotating-file logging for the application logger.

Usage examples:
```python
from callbridge.config.settings import BridgeSettings
from callbridge.config.logging_config import configure_logging

settings = BridgeSettings.from_env()
logger = configure_logging(settings.log_level)
logger.info("Application started")
```
"""
