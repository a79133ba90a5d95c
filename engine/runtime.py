"""Runtime details reported by the health endpoint."""

import os
import sys
from importlib import metadata

from config import settings

DISTRIBUTION_NAME = "squad-wrapped"
REPORTED_PACKAGES = ("fastapi", "requests")


def _package_version(name):
    try:
        return metadata.version(name)
    except metadata.PackageNotFoundError:
        return None


def spotify_grant():
    """Name the token grant the catalog client will use, or None when unconfigured."""
    if not (settings.SPOTIFY_CLIENT_ID and settings.SPOTIFY_CLIENT_SECRET):
        return None
    if settings.SPOTIFY_REFRESH_TOKEN:
        return "refresh_token"
    return "client_credentials"


def get_runtime_info():
    grant = spotify_grant()
    return {
        "app_version": os.environ.get("SQUAD_WRAPPED_VERSION") or _package_version(DISTRIBUTION_NAME) or "0.0.0",
        "python_version": sys.version.split()[0],
        "packages": {name: _package_version(name) for name in REPORTED_PACKAGES},
        "spotify_grant": grant,
        # Creating a playlist needs a user token.
        "can_create_playlists": grant == "refresh_token",
        "market": settings.SPOTIFY_MARKET,
    }
