"""Dendrite Core - constants and validators shared by every layer.

Import specific names from submodules:
    from dendrite.core.constants import ErrorCode, Limits, ResourceKind
    from dendrite.core.validators import ValidationError, validate_config
"""

from dendrite.core import constants, validators

__all__ = [
    "constants",
    "validators",
]
