"""Plugin naming conventions, reserved ids and website links."""

from __future__ import annotations

import re
from urllib.parse import quote

SERVICE_ID = "@deskhost/service"
BUNDLE_ID = "deskhost-build-bundle"
BUILTIN_PLUGIN_ID = "@deskhost/builtin-plugin"
BUNDLE_LOGO = "/public/deskhost-bundle.png"
SERVICE_WEBSITE = "https://deskhost.dev/"
LOGO_ROUTE = "/_plugin-logo/"

_OFFICIAL_SCOPE = "@deskhost/"
_PLUGIN_ID_RE = re.compile(r"^(@deskhost/plugin-|deskhost-plugin-|@[\w-]+(\.[\w-]+)?/deskhost-plugin-)")
_OFFICIAL_ID_RE = re.compile(r"^@deskhost/plugin-")


def is_plugin(package_id: str) -> bool:
    """True when the package name follows a plugin naming convention."""
    return bool(_PLUGIN_ID_RE.match(package_id))


def is_official_plugin(package_id: str) -> bool:
    return bool(_OFFICIAL_ID_RE.match(package_id)) or package_id == SERVICE_ID


def is_plugin_or_service(package_id: str) -> bool:
    return package_id == SERVICE_ID or is_plugin(package_id)


def bundle_member_id(short_id: str) -> str:
    """Map a bundled sub-plugin short name (e.g. 'router') to its package id."""
    return f"{_OFFICIAL_SCOPE}plugin-{short_id}"


def get_plugin_link(package_id: str) -> str:
    if package_id == SERVICE_ID:
        return SERVICE_WEBSITE
    if _OFFICIAL_ID_RE.match(package_id):
        short = package_id[len(_OFFICIAL_SCOPE):]
        return f"https://github.com/deskhost/deskhost/tree/main/packages/{short}"
    return f"https://www.npmjs.com/package/{quote(package_id, safe='@/')}"


def logo_url(package_id: str) -> str:
    return f"{LOGO_ROUTE}{quote(package_id, safe='')}"
