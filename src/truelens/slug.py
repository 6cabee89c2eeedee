# SPDX-License-Identifier: Apache-2.0
# Copyright (C) 2024-2026 The Birthmark Standard Foundation

"""
Device label normalization.

Every device label that crosses the wire (capture upload, registration)
goes through convert_to_slug so the server sees one canonical identifier.
"""

import re
import unicodedata

_NON_ALNUM = re.compile(r"[^a-z0-9]+")


def convert_to_slug(text) -> str:
    """
    Convert a human-readable label into a URL-safe slug.

    Lowercases, strips accents, replaces every run of non-alphanumerics
    with a single hyphen and trims leading/trailing hyphens.

    Example:
        >>> convert_to_slug("  Caméra Arrière (USB) ")
        'camera-arriere-usb'
        >>> convert_to_slug(convert_to_slug("HD Pro Webcam C920"))
        'hd-pro-webcam-c920'
    """
    decomposed = unicodedata.normalize("NFKD", str(text))
    stripped = "".join(c for c in decomposed if not unicodedata.combining(c))
    return _NON_ALNUM.sub("-", stripped.lower()).strip("-")
