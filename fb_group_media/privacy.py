"""Redaction of personal data before records are stored.

A privacy mask mirrors the record's shape. Each leaf is a predicate
`(value, key, record) -> bool`; when it returns True the value is replaced
by a redaction marker. Nested dicts in the mask apply to nested records.
"""

from typing import Any, Callable, Mapping, Union

MaskPredicate = Callable[[Any, str, Mapping[str, Any]], bool]
PrivacyMask = Mapping[str, Union[MaskPredicate, "PrivacyMask"]]


def always(value: Any, key: str, record: Mapping[str, Any]) -> bool:
    return True


def redaction_marker(key: str) -> str:
    return f'<Redacted property "{key}">'


AUTHOR_MASK: PrivacyMask = {
    "authorName": always,
    "authorProfileUrl": always,
    "authorProfileImageThumb": {
        "url": always,
    },
}

PHOTO_PRIVACY_MASK: PrivacyMask = dict(AUTHOR_MASK)

VIDEO_PRIVACY_MASK: PrivacyMask = {
    "userId": always,
    **AUTHOR_MASK,
}

ALBUM_PRIVACY_MASK: PrivacyMask = {
    "ownerFbid": always,
    "ownerName": always,
    "ownerUsername": always,
    "ownerType": always,
    "contributors": always,
}


def apply_privacy_mask(record: Mapping[str, Any], mask: PrivacyMask, _prefix: str = "") -> dict[str, Any]:
    """Return a copy of `record` with masked fields redacted.

    Null values stay null, so a redacted field always means data was found.
    The input record is not modified.
    """
    result = dict(record)
    for key, rule in mask.items():
        if key not in result:
            continue
        value = result[key]
        path = f"{_prefix}{key}"

        if isinstance(rule, Mapping):
            if isinstance(value, Mapping):
                result[key] = apply_privacy_mask(value, rule, f"{path}.")
            continue

        if value is not None and rule(value, key, record):
            result[key] = redaction_marker(path)
    return result
