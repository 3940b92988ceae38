import httpx

from pyrelay.exceptions import BuilderError

Url = httpx.URL
UrlType = Url | str


def parse_url(url: UrlType, base_url: Url | None = None) -> Url:
    """Parse an absolute URL. Relative input is resolved against `base_url` when one is given.

    Raises:
        BuilderError: The URL can not be parsed or is not absolute.
    """
    if not isinstance(url, str | Url):
        raise TypeError(f"url must be str or Url, not {type(url).__name__!r}")
    try:
        parsed = Url(url)
        if base_url is not None and parsed.is_relative_url:
            parsed = base_url.join(parsed)
    except httpx.InvalidURL as e:
        raise BuilderError(f"invalid url: {e}", {"url": str(url)}) from e

    if not parsed.is_absolute_url or not parsed.host:
        raise BuilderError("relative URL without a base", {"url": str(url)})
    return parsed
