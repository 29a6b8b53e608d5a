"""Validators for the goldfish simulator.

Pure Python validation of configuration before any trial runs.
"""

from goldfish.services.validators.config_validator import ConfigValidator

__all__ = ["ConfigValidator"]
