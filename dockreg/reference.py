import re

DEFAULT_DOMAIN = "docker.io"
LEGACY_DEFAULT_DOMAIN = "index.docker.io"
OFFICIAL_REPOSITORY_PREFIX = "library/"

_DIGEST = re.compile(r"^[a-z0-9]+(?:[.+_-][a-z0-9]+)*:[a-fA-F0-9]{32,}$")
_DOMAIN_COMPONENT = r"[a-zA-Z0-9](?:[a-zA-Z0-9-]*[a-zA-Z0-9])?"
_DOMAIN = re.compile(
    rf"^{_DOMAIN_COMPONENT}(?:\.{_DOMAIN_COMPONENT})*(?::[0-9]+)?$"
)
_TAG = re.compile(r"^[\w][\w.-]{0,127}$")
_PATH_COMPONENT = re.compile(r"^[a-z0-9]+(?:(?:[._]|__|-+)[a-z0-9]+)*$")


def _split_domain(name: str) -> tuple[str, str]:
    first, sep, rest = name.partition("/")
    if sep and ("." in first or ":" in first or first == "localhost"):
        if first == LEGACY_DEFAULT_DOMAIN:
            return DEFAULT_DOMAIN, rest
        return first, rest
    return DEFAULT_DOMAIN, name


def parse_image_name(image_name: str) -> tuple[str, str, str, str]:
    """Parse the name of an image as used in `docker pull` and return its parts.

    Returns (domain, path, tag, digest); tag and digest are empty strings
    when the name does not contain them.

    >>> parse_image_name("golang:1.12.0")
    ('docker.io', 'library/golang', '1.12.0', '')
    """
    if not image_name or image_name != image_name.strip():
        raise ValueError(f"invalid reference format: {image_name!r}")

    remainder, _, digest = image_name.partition("@")
    if digest and not _DIGEST.match(digest):
        raise ValueError(f"invalid digest in reference: {image_name!r}")

    domain, path = _split_domain(remainder)
    if not _DOMAIN.match(domain):
        raise ValueError(f"invalid domain in reference: {image_name!r}")

    tag = ""
    if ":" in path:
        path, tag = path.rsplit(":", 1)
        if not _TAG.match(tag):
            raise ValueError(f"invalid tag in reference: {image_name!r}")

    if not path or not all(_PATH_COMPONENT.match(c) for c in path.split("/")):
        raise ValueError(f"invalid repository name in reference: {image_name!r}")

    if domain == DEFAULT_DOMAIN and "/" not in path:
        path = f"{OFFICIAL_REPOSITORY_PREFIX}{path}"

    return domain, path, tag, digest
