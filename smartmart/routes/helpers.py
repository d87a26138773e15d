from urllib.parse import urljoin

from flask import current_app, request, url_for


def public_url(endpoint: str, **values) -> str:
    """Absolute URL for ``endpoint``, rooted at ``PUBLIC_BASE_URL`` when set."""
    base_url = current_app.config.get("PUBLIC_BASE_URL") or request.host_url
    return urljoin(base_url, url_for(endpoint, **values))
