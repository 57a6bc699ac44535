"""Version parsing, stability classification and ordering.

Ordering rules:

* Semantic, numeric and snapshot versions form one release family. They are
  compared by their integer release components (the shorter sequence padded
  with zeros), then by pre-release rank
  ``other < alpha < beta < milestone < rc < snapshot < stable``, then by the
  numeric suffix of the pre-release token.
* Two ad-hoc literals compare by their leading integers, then by the
  normalized remainder.
* Anything else (an ad-hoc literal against the release family) falls back to
  a lexicographic comparison of the normalized literals. That ordering is
  deterministic but carries no semantic meaning, and it is not transitive
  across kinds: ``10-x > 9-x``, ``9-x > 5`` and ``5 > 10-x`` all hold. A set
  mixing ad-hoc and release-family literals therefore has no well-defined
  maximum; ``maximum`` sorts its input by literal first so the answer does
  not depend on the order the versions arrive in.
"""

from __future__ import annotations

import functools
import re
from typing import Iterable, List, Optional, Tuple, Union

import semantic_version

from constants import Constants
from .models import STABLE, StabilityTag, Version, VersionKind

VersionLike = Union[Version, str]

_NUMERIC_RE = re.compile(r"^\d+(?:\.\d+)*$")
_LEADING_NUMERIC_RE = re.compile(r"^\d+(?:\.\d+)*")
_PRE_TOKEN_RE = re.compile(r"^([a-z]+)[.\-_]?(\d*)")
_SNAPSHOT_SUFFIX = "-snapshot"

_RELEASE_FAMILY = (VersionKind.SEMANTIC, VersionKind.NUMERIC, VersionKind.SNAPSHOT)

_TOKEN_ALIASES = {"m": "milestone", "cr": "rc"}
_PRE_RANK = {"alpha": 1, "beta": 2, "milestone": 3, "rc": 4, "snapshot": 5}
_RANK_OTHER = 0
_RANK_STABLE = 6


def parse(raw: str) -> Version:
    """Parse a version literal. Never fails: unknown shapes become AdHoc."""
    text = (raw or "").strip()

    if text.lower().endswith(_SNAPSHOT_SUFFIX) and len(text) > len(_SNAPSHOT_SUFFIX):
        base = parse(text[:-len(_SNAPSHOT_SUFFIX)])
        return Version(
            raw=raw,
            kind=VersionKind.SNAPSHOT,
            release=base.release,
            pre_release=base.pre_release,
            base=base.raw,
        )

    try:
        semver = semantic_version.Version(text)
    except ValueError:
        semver = None
    if semver is not None:
        return Version(
            raw=raw,
            kind=VersionKind.SEMANTIC,
            release=(semver.major, semver.minor, semver.patch),
            pre_release=tuple(str(part) for part in semver.prerelease),
        )

    if _NUMERIC_RE.match(text):
        return Version(
            raw=raw,
            kind=VersionKind.NUMERIC,
            release=tuple(int(part) for part in text.split(".")),
        )

    leading = _LEADING_NUMERIC_RE.match(text)
    release = tuple(int(part) for part in leading.group(0).split(".")) if leading else ()
    return Version(raw=raw, kind=VersionKind.ADHOC, release=release)


@functools.lru_cache(maxsize=8)
def _token_pattern(tokens: Tuple[str, ...]) -> "re.Pattern[str]":
    """Compile the unstable-token scanner once per token set."""
    alternatives = "|".join(re.escape(t) for t in sorted(tokens, key=len, reverse=True))
    # Token must start a segment and may only be followed by digits before the next delimiter.
    return re.compile(rf"(?<![a-z])({alternatives})(?=\d*(?:[^a-z\d]|$))")


def classify(version: VersionLike) -> StabilityTag:
    """Classify a version as stable or unstable by scanning for pre-release tokens."""
    raw = version.raw if isinstance(version, Version) else str(version)
    text = raw.strip().lower()
    if "snapshot" in text:
        return StabilityTag("snapshot")

    remainder = _LEADING_NUMERIC_RE.sub("", text, count=1)
    match = _token_pattern(tuple(Constants.UNSTABLE_TOKENS)).search(remainder)
    if match:
        return StabilityTag(match.group(1))
    return STABLE


def is_stable(version: VersionLike) -> bool:
    return classify(version).is_stable


def _coerce(value: VersionLike) -> Version:
    return value if isinstance(value, Version) else parse(value)


def _cmp(a, b) -> int:
    return (a > b) - (a < b)


def _cmp_release(a: Tuple[int, ...], b: Tuple[int, ...]) -> int:
    width = max(len(a), len(b))
    padded_a = a + (0,) * (width - len(a))
    padded_b = b + (0,) * (width - len(b))
    return _cmp(padded_a, padded_b)


def _normalize(text: str) -> str:
    return text.strip().lower()


def _pre_release_key(version: Version) -> Tuple[int, int, str]:
    """(rank, numeric suffix, normalized text) of the pre-release part."""
    if version.kind is VersionKind.SNAPSHOT:
        return _PRE_RANK["snapshot"], 0, ""
    if not version.pre_release:
        return _RANK_STABLE, 0, ""

    text = ".".join(version.pre_release).lower()
    match = _PRE_TOKEN_RE.match(text)
    if match is None:
        digits = re.match(r"\d+", text)
        return _RANK_OTHER, int(digits.group(0)) if digits else 0, text

    token = _TOKEN_ALIASES.get(match.group(1), match.group(1))
    rank = _PRE_RANK.get(token, _RANK_OTHER)
    number = match.group(2)
    if not number:
        # rc.2 style: the number is the next identifier
        trailing = re.search(r"(\d+)", text[match.end():])
        number = trailing.group(1) if trailing else "0"
    return rank, int(number), text


def _remainder(version: Version) -> str:
    return _LEADING_NUMERIC_RE.sub("", _normalize(version.raw), count=1)


def compare(a: VersionLike, b: VersionLike) -> int:
    """Return -1, 0 or 1 as ``a`` is older than, equal to or newer than ``b``."""
    va, vb = _coerce(a), _coerce(b)

    if va.kind in _RELEASE_FAMILY and vb.kind in _RELEASE_FAMILY:
        return (
            _cmp_release(va.release, vb.release)
            or _cmp(_pre_release_key(va), _pre_release_key(vb))
        )

    if va.kind is VersionKind.ADHOC and vb.kind is VersionKind.ADHOC:
        return (
            _cmp_release(va.release, vb.release)
            or _cmp(_remainder(va), _remainder(vb))
            or _cmp(va.raw, vb.raw)
        )

    # Cross-kind fallback: lexicographic, deterministic only.
    return _cmp(_normalize(va.raw), _normalize(vb.raw)) or _cmp(va.raw, vb.raw)


sort_key = functools.cmp_to_key(compare)


def is_newer(candidate: VersionLike, current: VersionLike) -> bool:
    """True when ``candidate`` strictly exceeds ``current``."""
    return compare(candidate, current) > 0


def maximum(versions: Iterable[Version]) -> Optional[Version]:
    """Highest version; ties resolve to the lexicographically smallest literal."""
    ordered = sorted(versions, key=lambda v: v.raw)
    if not ordered:
        return None
    return max(ordered, key=sort_key)


def latest(literals: Iterable[str], stable_only: bool = False) -> Optional[str]:
    """Return the newest literal, optionally ignoring pre-releases."""
    parsed: List[Version] = [parse(raw) for raw in literals]
    if stable_only:
        parsed = [v for v in parsed if classify(v).is_stable]
    best = maximum(parsed)
    return best.raw if best is not None else None


def sort_descending(literals: Iterable[str]) -> List[str]:
    """Literals ordered newest first."""
    return [v.raw for v in sorted((parse(raw) for raw in literals), key=sort_key, reverse=True)]
