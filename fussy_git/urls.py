"""Parse remote URLs and derive canonical repository locations.

Supported forms:

    git@github.com:spf13/cobra.git      (SCP-like, treated as ssh)
    ssh://git@github.com/spf13/cobra.git
    https://github.com/spf13/cobra
    git://github.com/spf13/cobra.git
    file:///srv/repos/cobra.git         (local)
    /srv/repos/cobra                    (local)

Every successful parse yields a non-empty ``domain`` and ``repo_name``; anything
else raises :class:`~fussy_git.exceptions.ParseError`.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Optional
from urllib.parse import unquote, urlsplit

from .exceptions import ParseError

LOCAL_DOMAIN = "local"

_SCP_LIKE_RE = re.compile(r"^(?P<user>[A-Za-z0-9_.-]+)@(?P<host>[A-Za-z0-9.-]+):(?P<path>.*)$")

SSH_SCHEMES = frozenset({"ssh", "git+ssh"})
HTTP_SCHEMES = frozenset({"http", "https"})
NETWORK_SCHEMES = SSH_SCHEMES | HTTP_SCHEMES | {"git"}


@dataclass(frozen=True)
class ParsedURL:
    """One parse result. Never persisted."""

    original: str
    scheme: str
    user: str
    domain: str
    path: str
    repo_name: str
    is_ssh: bool

    @property
    def segments(self) -> tuple[str, ...]:
        return tuple(part for part in self.path.split("/") if part)


def _strip_git_suffix(value: str) -> str:
    value = value.rstrip("/")
    if value.endswith(".git"):
        value = value[: -len(".git")]
    return value


def _clean_remote_path(url: str, raw: str) -> str:
    path = _strip_git_suffix(raw.lstrip("/"))
    parts = [part for part in path.split("/") if part]
    if any(part in (".", "..") for part in parts):
        raise ParseError(url, "relative segments are not allowed in a remote path", fields=("path",))
    return "/".join(parts)


def _repo_name(path: str) -> str:
    if not path:
        return ""
    return _strip_git_suffix(path.rsplit("/", 1)[-1])


def _match_scp_like(url: str) -> Optional[ParsedURL]:
    match = _SCP_LIKE_RE.match(url)
    if not match:
        return None
    path = _clean_remote_path(url, match.group("path"))
    return ParsedURL(
        original=url,
        scheme="ssh",
        user=match.group("user"),
        domain=match.group("host").lower(),
        path=path,
        repo_name=_repo_name(path),
        is_ssh=True,
    )


def _local(url: str, raw_path: str) -> ParsedURL:
    parts = [part for part in _strip_git_suffix(raw_path).split("/") if part not in ("", ".", "..")]
    path = "/".join(parts)
    return ParsedURL(
        original=url,
        scheme="file",
        user="",
        domain=LOCAL_DOMAIN,
        path=path,
        repo_name=_repo_name(path),
        is_ssh=False,
    )


def _match_uri(url: str) -> Optional[ParsedURL]:
    try:
        split = urlsplit(url)
        hostname = split.hostname or ""
        username = split.username or ""
    except ValueError as exc:
        raise ParseError(url, str(exc)) from exc
    scheme = split.scheme.lower()
    if not scheme:
        if ":" in url:
            raise ParseError(url, "ambiguous URL, neither SCP-like nor a standard URI", fields=("scheme",))
        return _local(url, url)
    if scheme == "file":
        return _local(url, unquote(split.path))
    if scheme not in NETWORK_SCHEMES:
        raise ParseError(url, f"unsupported or ambiguous scheme '{scheme}'", fields=("scheme",))
    path = _clean_remote_path(url, unquote(split.path))
    return ParsedURL(
        original=url,
        scheme=scheme,
        user=username,
        domain=hostname,
        path=path,
        repo_name=_repo_name(path),
        is_ssh=scheme in SSH_SCHEMES,
    )


# Narrowest grammar first; the first matcher returning a result wins.
_MATCHERS: tuple[Callable[[str], Optional[ParsedURL]], ...] = (
    _match_scp_like,
    _match_uri,
)


def parse_url(url: str) -> ParsedURL:
    """Parse ``url`` into a :class:`ParsedURL`."""

    candidate = url.strip()
    if not candidate:
        raise ParseError(url, "URL is empty", fields=("domain", "repo_name"))
    parsed: Optional[ParsedURL] = None
    for matcher in _MATCHERS:
        parsed = matcher(candidate)
        if parsed is not None:
            break
    if parsed is None:  # pragma: no cover - _match_uri always decides
        raise ParseError(url, "unsupported URL format")
    missing = [name for name in ("domain", "repo_name") if not getattr(parsed, name)]
    if missing:
        raise ParseError(url, "could not determine " + " and ".join(missing), fields=missing)
    return parsed


def canonical_path(parsed: ParsedURL, root: Path) -> Path:
    """Return where the repository belongs under ``root``, whatever the scheme."""

    return Path(root).joinpath(parsed.domain, *parsed.segments)


def normalized_identity(parsed: ParsedURL) -> str:
    """Return ``domain/path`` as a scheme-independent identity key."""

    return "/".join((parsed.domain, *parsed.segments))


def to_ssh(parsed: ParsedURL) -> str:
    """Return the SCP-like SSH form of an http(s) URL.

    SSH URLs are returned unchanged.
    """

    if parsed.is_ssh:
        return parsed.original
    if parsed.scheme not in HTTP_SCHEMES:
        raise ParseError(parsed.original, f"cannot convert scheme '{parsed.scheme}' to ssh", fields=("scheme",))
    if not parsed.path:
        raise ParseError(parsed.original, "cannot convert to ssh without a path", fields=("path",))
    path = parsed.path if parsed.path.endswith(".git") else f"{parsed.path}.git"
    return f"{parsed.user or 'git'}@{parsed.domain}:{path}"


def to_https(parsed: ParsedURL) -> str:
    """Return the HTTPS form of an ssh or git:// URL.

    http(s) URLs are returned unchanged.
    """

    if parsed.scheme in HTTP_SCHEMES:
        return parsed.original
    return https_form(parsed)


def https_form(parsed: ParsedURL) -> str:
    """Rebuild ``https://<domain>/<path>`` for any network URL.

    Unlike :func:`to_https` this also rebuilds http(s) input, so two URLs for the
    same repository produce the same string.
    """

    if parsed.scheme not in NETWORK_SCHEMES:
        raise ParseError(parsed.original, f"cannot convert scheme '{parsed.scheme}' to https", fields=("scheme",))
    if not parsed.path:
        raise ParseError(parsed.original, "cannot convert to https without a path", fields=("path",))
    return f"https://{parsed.domain}/{_strip_git_suffix(parsed.path)}"


def same_remote(left: ParsedURL, right: ParsedURL) -> bool:
    """Compare two parsed URLs across transport schemes."""

    try:
        return https_form(left) == https_form(right)
    except ParseError:
        return left.scheme == right.scheme and normalized_identity(left) == normalized_identity(right)


__all__ = [
    "LOCAL_DOMAIN",
    "ParsedURL",
    "parse_url",
    "canonical_path",
    "normalized_identity",
    "to_ssh",
    "to_https",
    "https_form",
    "same_remote",
]
