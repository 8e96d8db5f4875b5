"""Tag predicate and release-name derivation.

Every platform run derives the release identity independently from the
pushed ref, so these helpers must stay pure and deterministic: identical refs
always converge on the same release record.
"""

from __future__ import annotations

TAG_REF_PREFIX = "refs/tags/"
RELEASE_NAME_PREFIX = "Release "


def is_tagged_release(ref: object) -> bool:
    """Return True iff ``ref`` names a tag (``refs/tags/<name>``)."""

    if not isinstance(ref, str):
        return False
    return ref.startswith(TAG_REF_PREFIX)


def release_tag_from_ref(ref: str) -> str:
    """Strip the tag namespace prefix from ``ref`` exactly once."""

    if not is_tagged_release(ref):
        raise ValueError(f"Not a tag reference: {ref!r}")
    return ref[len(TAG_REF_PREFIX) :]


def release_name_for_tag(tag: str) -> str:
    return f"{RELEASE_NAME_PREFIX}{tag}"
