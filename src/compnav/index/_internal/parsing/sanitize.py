"""Masking of server-side template islands inside scripts.

Pages often embed `<?php ... ?>` blocks or `{{ ... }}` interpolations in
their scripts. Those are replaced by a numeric literal padded with spaces so
the result parses and every line and column stays where it was.
"""

from __future__ import annotations

import re

_SERVER_ISLAND = re.compile(r"<\?(?:=|php)?[\s\S]*?\?>")
_INTERPOLATION = re.compile(r"\{\{[\s\S]*?\}\}")


def _mask(match: re.Match[str]) -> str:
    out: list[str] = []
    replaced = False
    for ch in match.group(0):
        if ch in "\r\n":
            out.append(ch)
        elif not replaced:
            out.append("0")
            replaced = True
        else:
            out.append(" ")
    return "".join(out)


def sanitize_script(text: str) -> str:
    """Mask `<? ... ?>` and `{{ ... }}` spans, keeping newlines and length."""
    if "<?" not in text and "{{" not in text:
        return text
    return _INTERPOLATION.sub(_mask, _SERVER_ISLAND.sub(_mask, text))
