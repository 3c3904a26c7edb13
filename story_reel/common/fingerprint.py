"""
Cache keys for generation requests.

The digest covers the request text only; the asset kind is the other half of
the cache key and is kept in its own column. Inputs are hashed verbatim, so
"A" and "a" (or a trailing space) are different keys.

The audio identity joins instruction and text with a single colon, which means
("a:b", "c") and ("a", "b:c") share a key. That is accepted as-is.
"""

from __future__ import annotations

import hashlib

AUDIO_SEPARATOR = ":"


def fingerprint(identity: str) -> str:
    return hashlib.md5(identity.encode("utf-8"), usedforsecurity=False).hexdigest()


def image_fingerprint(image_prompt: str) -> str:
    return fingerprint(image_prompt)


def audio_identity(audio_prompt: str, text: str) -> str:
    return f"{audio_prompt}{AUDIO_SEPARATOR}{text}"


def audio_fingerprint(audio_prompt: str, text: str) -> str:
    return fingerprint(audio_identity(audio_prompt, text))
