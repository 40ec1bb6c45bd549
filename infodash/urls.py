"""URL helpers shared by feed discovery and image resolution."""

from __future__ import annotations


def host_of(url: str) -> str:
    """Return the text between ``://`` and the next ``/``."""
    start = url.find("://")
    if start == -1:
        return ""
    start += 3
    end = url.find("/", start)
    return url[start:] if end == -1 else url[start:end]


def scheme_of(url: str) -> str:
    pos = url.find("://")
    return url[:pos] if pos != -1 else "https"


def origin(url: str) -> str:
    """Return ``scheme://host`` for ``url``."""
    if "://" not in url:
        return ""
    return f"{scheme_of(url)}://{host_of(url)}"


def resolve_url(base: str, href: str) -> str:
    """Resolve ``href`` found on the page at ``base`` to an absolute URL."""
    href = (href or "").strip()
    if not href:
        return ""
    if "://" in href.split("?", 1)[0]:
        return href
    if href.startswith("//"):
        return f"{scheme_of(base)}:{href}"
    if href.startswith("/"):
        return origin(base) + href

    path = base.split("?", 1)[0].split("#", 1)[0]
    host_start = path.find("://")
    last_slash = path.rfind("/")
    if host_start != -1 and last_slash <= host_start + 2:
        directory = path + "/"
    else:
        directory = path[: last_slash + 1]
    return directory + href


def favicon_url(feed_url: str) -> str:
    """Favicon service URL for the host serving ``feed_url``."""
    domain = host_of(feed_url)
    if not domain:
        return ""
    return "https://www.google.com/s2/favicons?sz=32&domain=" + domain
