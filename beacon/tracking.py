import base64
import json
from urllib.parse import urlsplit

from flask import current_app

from beacon.models import PageView

BEACON = "R0lGODlhAQABAIAAANvf7wAAACH5BAEAAAAALAAAAAABAAEAAAICRAEAOw=="

# 1x1 transparent gif, decoded once
PIXEL = base64.b64decode(BEACON)


class BeaconError(ValueError):
    pass


def get_real_ip(request):
    forwarded = request.headers.get('X-Forwarded-For', '')
    for hop in forwarded.split(','):
        if hop.strip():
            return hop.strip()
    return request.remote_addr


def parse_url(raw_url):
    """Return (normalized url, domain) for the tracked page."""
    if not raw_url:
        raise BeaconError("Missing required parameter 'u'")

    try:
        parts = urlsplit(raw_url.strip())
        # raises on a non-numeric or out of range port
        parts.port
    except ValueError as e:
        raise BeaconError(f"Invalid url {raw_url!r}: {e}") from e

    domain = parts.netloc.rpartition('@')[2]
    if not domain:
        raise BeaconError(f"Url {raw_url!r} has no host")

    return parts.geturl(), domain


def serialize_headers(headers):
    # Best-effort: a header we can't encode shouldn't cost us the page view
    try:
        return json.dumps({key: headers.getlist(key) for key in headers.keys()})
    except (TypeError, ValueError) as e:
        current_app.logger.warning(f"Could not serialize request headers: {e}")
        return None


def parse_page_view(request):
    """Build an unsaved PageView from a pixel request.

    Raises BeaconError when the request can't produce the required
    url, domain and ip fields.
    """
    url, domain = parse_url(request.args.get('u'))

    ip = get_real_ip(request)
    if not ip:
        raise BeaconError("Could not determine client ip")

    return PageView(
        url=url,
        domain=domain,
        ip=ip,
        title=request.args.get('t'),
        ua=request.headers.get('User-Agent'),
        locale=request.headers.get('Accept-Language'),
        headers=serialize_headers(request.headers),
    )
