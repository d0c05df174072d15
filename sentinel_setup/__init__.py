"""Provisioning of Ubuntu 24.04 hosts for ALTCHA Sentinel."""

from sentinel_setup.config import APP_NAME, VERSION, Config
from sentinel_setup.pipeline import SentinelSetup

__version__ = VERSION

__all__ = ["APP_NAME", "Config", "SentinelSetup", "__version__"]
