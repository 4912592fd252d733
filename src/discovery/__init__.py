"""Discovery package that rebuilds chart values from a running installation."""

from .discovery import Discovery, discover
from .errors import DiscoveryError, InvalidStorageType, RenderError
from .probes import CredentialCorrection
from .profile import ConfigurationProfile
from .reconcile import CorrectionOutcome, reconcile_credentials
from .render import render_values

__all__ = [
    "ConfigurationProfile",
    "CorrectionOutcome",
    "CredentialCorrection",
    "Discovery",
    "DiscoveryError",
    "InvalidStorageType",
    "RenderError",
    "discover",
    "reconcile_credentials",
    "render_values",
]
