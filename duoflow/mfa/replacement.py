"""
Conversion of administrator-entered replacement strings.

Operators write ``$1`` / ``${name}`` group references and escape a literal
character with a backslash (``\\$`` for a dollar sign). The result is a
template for ``re.sub``.
"""
import re

_GROUP_REFERENCE = re.compile(r"\$(?:(\d+)|\{(\w+)\})")


def _literal(char: str) -> str:
    return "\\\\" if char == "\\" else char


def to_python_replacement(replacement: str) -> str:
    """Raise ``re.error`` for a dangling escape or a bare ``$``."""
    parts = []
    i = 0
    while i < len(replacement):
        char = replacement[i]
        if char == "\\":
            i += 1
            if i == len(replacement):
                raise re.error("character to be escaped is missing", pos=i)
            parts.append(_literal(replacement[i]))
            i += 1
        elif char == "$":
            match = _GROUP_REFERENCE.match(replacement, i)
            if match is None:
                raise re.error("illegal group reference", pos=i)
            parts.append("\\g<%s>" % (match.group(1) or match.group(2)))
            i = match.end()
        else:
            parts.append(char)
            i += 1
    return "".join(parts)
